"""
Core application utilities for settings, security, errors and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Dependency helpers (tenant extraction, tenant-scoped DB session, role and module gates)
- Domain error types rendered by the global exception handlers
"""

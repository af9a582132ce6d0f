"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each area (security, tenancy,
employees, scheduling). They assume the provided AsyncSession has the business
context configured (see workforce_api.core.deps.get_tenant_session).
"""

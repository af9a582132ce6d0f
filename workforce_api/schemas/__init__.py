"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by area (auth, tenancy, employees, scheduling, realtime)
and also include common reusable models such as standard responses.
"""

from .common import ErrorResponse, MessageResponse  # noqa: F401

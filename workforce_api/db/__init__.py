"""
Database package: configuration, engine/session management, and business
(tenant) context helpers.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    get_engine,
    get_async_session,
    get_session_maker,
    set_current_tenant,
    tenant_context,
)

# Register every mapped class with Base.metadata on package import.
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "get_async_session",
    "get_session_maker",
    "set_current_tenant",
    "tenant_context",
    "models",
]

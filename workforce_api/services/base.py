from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds the business-scoped session shared by the
    repositories a service builds.

    Services own validation and orchestration and raise domain errors from
    workforce_api.core.errors; data access stays in repositories. Repositories
    may be injected instead, in which case the session can be None.
    """

    def __init__(self, session: Optional[AsyncSession]) -> None:
        self.session = session

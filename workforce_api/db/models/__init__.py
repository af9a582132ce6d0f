"""
ORM models for tenancy, security, employees and scheduling.

Importing this package registers every mapped class with the Base metadata
for Alembic and runtime usage.
"""

from .tenancy import (  # noqa: F401
    Business,
    Module,
    ModuleInstallation,
)
from .security import (  # noqa: F401
    User,
    Role,
    Permission,
    UserRole,
    RolePermission,
)
from .employees import (  # noqa: F401
    Position,
    EmployeePosition,
)
from .scheduling import (  # noqa: F401
    Schedule,
    Station,
    ScheduleShift,
    EmployeeAvailability,
    ShiftSwapRequest,
)

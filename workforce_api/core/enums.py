from __future__ import annotations

from enum import Enum


class ScheduleStatus(str, Enum):
    """Lifecycle of a schedule; employees only see PUBLISHED schedules."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class ShiftStatus(str, Enum):
    """Status of a single shift slot."""

    SCHEDULED = "SCHEDULED"
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class AvailabilityType(str, Enum):
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    PREFERRED = "PREFERRED"


class SwapStatus(str, Enum):
    """Shift swap request workflow; only PENDING requests can move."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class SubscriptionTier(str, Enum):
    FREE = "free"
    STANDARD = "standard"
    ENTERPRISE = "enterprise"


class ModuleKey(str, Enum):
    """Built-in installable modules."""

    DRIVE = "drive"
    CHAT = "chat"
    CALENDAR = "calendar"
    HR = "hr"
    SCHEDULING = "scheduling"
    TODO = "todo"


# Role names checked by the scheduling gates
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
PERM_SCHEDULING_ADMIN = "scheduling:admin"
PERM_SCHEDULING_MANAGE = "scheduling:manage"
PERM_REPORTS_VIEW = "reports:view"

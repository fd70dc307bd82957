from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Per-student status stored inside an attendance day."""

    PRESENT = "present"
    ABSENT = "absent"
    HOLIDAY = "holiday"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class TestStatus(str, Enum):
    """Lifecycle of a test definition."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class MarkStatus(str, Enum):
    """Outcome of one student's score entry."""

    PASSED = "passed"
    FAILED = "failed"
    ABSENT = "absent"

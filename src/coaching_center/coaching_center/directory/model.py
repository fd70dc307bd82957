from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Batch:
    batch_id: int
    coach_id: int
    batch_name: str
    subject: Optional[str] = None
    status: str = "Active"


@dataclass(frozen=True)
class Student:
    """Read-only view of a student profile owned by the tenant directory."""

    student_id: int
    coach_id: int
    student_code: Optional[str]
    first_name: str
    last_name: str
    mobile_number: Optional[str] = None
    father_mobile_number: Optional[str] = None
    status: StudentStatus = StudentStatus.ACTIVE
    batch_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def display(self) -> dict:
        return {
            "studentId": self.student_id,
            "studentCode": self.student_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }

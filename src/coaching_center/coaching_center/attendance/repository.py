from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceDay, AttendanceEntry


class AttendanceRepository(Protocol):
    def get_day(self, coach_id: int, batch_id: int, attendance_date: date) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def create_day(
        self,
        *,
        coach_id: int,
        batch_id: int,
        attendance_date: date,
        entries: Sequence[AttendanceEntry],
        is_holiday: bool,
        holiday_reason: Optional[str],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        """Insert a new day; raises DuplicateKeyError if (coach, batch, date) already exists."""

        raise NotImplementedError

    def merge_entries(
        self,
        *,
        attendance_id: int,
        entries: Sequence[AttendanceEntry],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        """Upsert the given entries only (see AttendanceDay.merged_with) and clear holiday state."""

        raise NotImplementedError

    def replace_entries(
        self,
        *,
        attendance_id: int,
        entries: Sequence[AttendanceEntry],
        is_holiday: bool,
        holiday_reason: Optional[str],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        raise NotImplementedError

    def list_for_batch(self, coach_id: int, batch_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        """Days of the batch in [start, end], oldest first."""

        raise NotImplementedError

    def list_for_student(self, coach_id: int, student_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        """Days in [start, end] (any batch of the coach) whose entries include the student, oldest first."""

        raise NotImplementedError

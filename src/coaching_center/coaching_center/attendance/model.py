from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceEntry:
    student_id: int
    status: AttendanceStatus


@dataclass(frozen=True)
class AttendanceDay:
    """Domain entity: one record per (coach, batch, calendar day)."""

    attendance_id: int
    coach_id: int
    batch_id: int
    attendance_date: date
    entries: tuple[AttendanceEntry, ...]
    is_holiday: bool
    holiday_reason: Optional[str]
    marked_by: int
    created_at: datetime
    updated_at: datetime

    def status_for(self, student_id: int) -> Optional[AttendanceStatus]:
        for e in self.entries:
            if e.student_id == student_id:
                return e.status
        return None

    def status_map(self) -> dict[int, AttendanceStatus]:
        return {e.student_id: e.status for e in self.entries}

    def count(self, status: AttendanceStatus) -> int:
        return sum(1 for e in self.entries if e.status == status)

    def merged_with(self, entries: Iterable[AttendanceEntry], *, marked_by: int, updated_at: datetime) -> "AttendanceDay":
        """Partial re-mark: overwrite the given students, keep everyone else, append newcomers.

        Marking a normal day always clears the holiday flag and reason.
        """

        incoming = {e.student_id: e.status for e in entries}
        merged = [AttendanceEntry(e.student_id, incoming.pop(e.student_id, e.status)) for e in self.entries]
        merged.extend(AttendanceEntry(sid, status) for sid, status in incoming.items())
        return replace(
            self,
            entries=tuple(merged),
            is_holiday=False,
            holiday_reason=None,
            marked_by=marked_by,
            updated_at=updated_at,
        )

    def replaced_with(
        self,
        entries: Iterable[AttendanceEntry],
        *,
        is_holiday: bool,
        holiday_reason: Optional[str],
        marked_by: int,
        updated_at: datetime,
    ) -> "AttendanceDay":
        return replace(
            self,
            entries=tuple(entries),
            is_holiday=is_holiday,
            holiday_reason=holiday_reason,
            marked_by=marked_by,
            updated_at=updated_at,
        )


@dataclass(frozen=True)
class AttendanceTally:
    """Present/absent/holiday counts for one student over a period."""

    present: int = 0
    absent: int = 0
    holiday: int = 0

    @property
    def total_days(self) -> int:
        return self.present + self.absent + self.holiday

    @property
    def working_days(self) -> int:
        return self.present + self.absent

    def add(self, status: Optional[AttendanceStatus]) -> "AttendanceTally":
        if status == AttendanceStatus.PRESENT:
            return replace(self, present=self.present + 1)
        if status == AttendanceStatus.ABSENT:
            return replace(self, absent=self.absent + 1)
        if status == AttendanceStatus.HOLIDAY:
            return replace(self, holiday=self.holiday + 1)
        return self

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional, Union

from ..common.datetime_utils import DateLike, now_local, to_calendar_day
from ..common.validators import optional_text, require_int
from ..core.context import TenantContext
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from ..directory.model import Batch
from ..directory.repository import TenantDirectory
from .model import AttendanceDay, AttendanceEntry
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

EntryInput = Union[AttendanceEntry, Mapping[str, object]]


class AttendanceLedgerService:
    """Use cases: mark attendance (partial merge) and mark a holiday (full replace)."""

    def __init__(self, attendance: AttendanceRepository, directory: TenantDirectory):
        self._attendance = attendance
        self._directory = directory

    def _require_batch(self, ctx: TenantContext, batch_id: int) -> Batch:
        batch = self._directory.get_batch(ctx.coach_id, int(batch_id))
        if not batch:
            raise NotFoundError("Batch not found")
        return batch

    @staticmethod
    def _normalize_entries(entries: Iterable[EntryInput]) -> list[AttendanceEntry]:
        by_student: dict[int, AttendanceStatus] = {}
        for raw in entries or []:
            if isinstance(raw, AttendanceEntry):
                student_id, status = raw.student_id, raw.status
            elif isinstance(raw, Mapping):
                student_id, status = raw.get("studentId"), raw.get("status")
            else:
                raise ValidationError("Each attendance record must be an object")
            if student_id in (None, ""):
                raise ValidationError("Student ID is required for each record")
            sid = require_int(student_id, "Student ID")
            try:
                by_student[sid] = AttendanceStatus(status)
            except (TypeError, ValueError):
                raise ValidationError("Status must be present, absent, or holiday")
        if not by_student:
            raise ValidationError("At least one student record required")
        return [AttendanceEntry(sid, st) for sid, st in by_student.items()]

    def _create_or_get(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        day,
        entries: list[AttendanceEntry],
        is_holiday: bool,
        holiday_reason: Optional[str],
        actor: int,
        now: datetime,
    ) -> tuple[AttendanceDay, bool]:
        """Insert the day, or return the existing one when another request created it first."""

        try:
            created = self._attendance.create_day(
                coach_id=ctx.coach_id,
                batch_id=batch_id,
                attendance_date=day,
                entries=entries,
                is_holiday=is_holiday,
                holiday_reason=holiday_reason,
                marked_by=actor,
                now=now,
            )
            return created, True
        except DuplicateKeyError:
            logger.warning("Attendance day %s for batch %s already exists, retrying as update", day, batch_id)
            existing = self._attendance.get_day(ctx.coach_id, batch_id, day)
            if existing is None:
                raise
            return existing, False

    def mark_attendance(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        date: DateLike,
        entries: Iterable[EntryInput],
        actor_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> AttendanceDay:
        now = now or now_local()
        actor = int(actor_id) if actor_id is not None else ctx.actor
        batch = self._require_batch(ctx, batch_id)
        normalized = self._normalize_entries(entries)
        day = to_calendar_day(date)

        student_ids = [e.student_id for e in normalized]
        members = self._directory.count_active_members(ctx.coach_id, batch.batch_id, student_ids)
        if members != len(student_ids):
            raise ValidationError("One or more students do not belong to this batch or coaching")

        existing = self._attendance.get_day(ctx.coach_id, batch.batch_id, day)
        if existing is None:
            existing, created = self._create_or_get(
                ctx,
                batch_id=batch.batch_id,
                day=day,
                entries=normalized,
                is_holiday=False,
                holiday_reason=None,
                actor=actor,
                now=now,
            )
            if created:
                logger.info(
                    "Attendance created coach=%s batch=%s date=%s students=%d",
                    ctx.coach_id, batch.batch_id, day, len(normalized),
                )
                return existing

        record = self._attendance.merge_entries(
            attendance_id=existing.attendance_id,
            entries=normalized,
            marked_by=actor,
            now=now,
        )
        logger.info(
            "Attendance merged coach=%s batch=%s date=%s students=%d",
            ctx.coach_id, batch.batch_id, day, len(normalized),
        )
        return record

    def mark_holiday(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        date: DateLike,
        holiday_reason: Optional[str] = None,
        actor_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> AttendanceDay:
        now = now or now_local()
        actor = int(actor_id) if actor_id is not None else ctx.actor
        batch = self._require_batch(ctx, batch_id)
        day = to_calendar_day(date)
        reason = optional_text(holiday_reason, "Holiday reason", max_length=255)

        students = self._directory.find_active_students(ctx.coach_id, batch.batch_id)
        if not students:
            raise ValidationError("No active students found in this batch")

        entries = [AttendanceEntry(s.student_id, AttendanceStatus.HOLIDAY) for s in students]

        existing = self._attendance.get_day(ctx.coach_id, batch.batch_id, day)
        if existing is None:
            existing, created = self._create_or_get(
                ctx,
                batch_id=batch.batch_id,
                day=day,
                entries=entries,
                is_holiday=True,
                holiday_reason=reason,
                actor=actor,
                now=now,
            )
            if created:
                logger.info("Holiday marked coach=%s batch=%s date=%s", ctx.coach_id, batch.batch_id, day)
                return existing

        record = self._attendance.replace_entries(
            attendance_id=existing.attendance_id,
            entries=entries,
            is_holiday=True,
            holiday_reason=reason,
            marked_by=actor,
            now=now,
        )
        logger.info("Holiday marked over existing record coach=%s batch=%s date=%s", ctx.coach_id, batch.batch_id, day)
        return record

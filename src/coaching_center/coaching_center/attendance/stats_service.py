from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import DateLike, iso, month_bounds, month_label, to_calendar_day
from ..common.numbers import round2
from ..common.pagination import Page, paginate
from ..core.constants import DEFAULT_DATE_VIEW_LIMIT, DEFAULT_PAGE, DEFAULT_REPORT_LIMIT, LOW_ATTENDANCE_THRESHOLD
from ..core.context import TenantContext
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..directory.model import Batch, Student
from ..directory.repository import TenantDirectory
from .model import AttendanceDay, AttendanceTally
from .policies.base import AttendancePercentagePolicy
from .policies.exclude_holidays import ExcludeHolidaysPolicy
from .repository import AttendanceRepository


@dataclass(frozen=True)
class DateAttendanceView:
    batch_id: int
    attendance_date: date
    marked: bool
    is_holiday: bool
    holiday_reason: Optional[str]
    page: Page[dict]
    marked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        out = {
            "date": iso(self.attendance_date),
            "batchId": self.batch_id,
            "marked": self.marked,
            "isHoliday": self.is_holiday,
            "holidayReason": self.holiday_reason,
            "totalStudents": self.page.total,
            "attendance": self.page.items,
            **self.page.meta(),
            "markedAt": iso(self.marked_at),
        }
        if not self.marked:
            out["message"] = "No attendance marked yet. Displaying all active students."
        return out


@dataclass(frozen=True)
class AbsentList:
    batch_id: int
    attendance_date: date
    page: Page[dict]

    def to_dict(self) -> dict:
        return {
            "date": iso(self.attendance_date),
            "batchId": self.batch_id,
            "totalAbsent": self.page.total,
            "absentStudents": self.page.items,
            **self.page.meta(),
        }


@dataclass(frozen=True)
class StudentMonthlyAttendance:
    student: dict
    month: str
    tally: AttendanceTally
    attendance_percentage: float
    absent_dates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "student": self.student,
            "month": self.month,
            "statistics": {
                "totalDays": self.tally.total_days,
                "workingDays": self.tally.working_days,
                "presentDays": self.tally.present,
                "absentDays": self.tally.absent,
                "holidayDays": self.tally.holiday,
                "attendancePercentage": self.attendance_percentage,
            },
            "absentDates": self.absent_dates,
        }


@dataclass(frozen=True)
class MonthlyAttendanceSummary:
    batch: Batch
    month: str
    students: list[dict]
    page: Page[dict]
    low_attendance_students: list[dict]
    batch_statistics: dict

    def to_dict(self) -> dict:
        return {
            "batch": {"batchId": self.batch.batch_id, "batchName": self.batch.batch_name},
            "month": self.month,
            "batchStatistics": self.batch_statistics,
            "studentAttendance": self.page.items,
            "lowAttendanceStudents": self.low_attendance_students,
            **self.page.meta(),
        }


@dataclass(frozen=True)
class AttendanceRange:
    batch_id: int
    start: date
    end: date
    records: list[dict]

    def to_dict(self) -> dict:
        return {
            "dateRange": {"start": iso(self.start), "end": iso(self.end)},
            "batchId": self.batch_id,
            "totalRecords": len(self.records),
            "records": self.records,
        }


class AttendanceStatsService:
    """Read side of the ledger: every number is recomputed from the stored days on each call.

    Unmarked days read as absent in the date view; percentages use one
    AttendancePercentagePolicy for every endpoint.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        directory: TenantDirectory,
        *,
        policy: AttendancePercentagePolicy | None = None,
        low_attendance_threshold: float = LOW_ATTENDANCE_THRESHOLD,
    ):
        self._attendance = attendance
        self._directory = directory
        self._policy = policy or ExcludeHolidaysPolicy()
        self._threshold = float(low_attendance_threshold)

    def _require_batch(self, ctx: TenantContext, batch_id: int) -> Batch:
        batch = self._directory.get_batch(ctx.coach_id, int(batch_id))
        if not batch:
            raise NotFoundError("Batch not found")
        return batch

    def _require_student(self, ctx: TenantContext, student_id: int) -> Student:
        student = self._directory.get_student(ctx.coach_id, int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    @staticmethod
    def _student_row(student: Optional[Student], student_id: int, status: AttendanceStatus) -> dict:
        return {
            "studentId": student_id,
            "studentCode": student.student_code if student else None,
            "firstName": student.first_name if student else None,
            "lastName": student.last_name if student else None,
            "mobileNumber": student.mobile_number if student else None,
            "status": status.value,
        }

    def _tally(self, days: Sequence[AttendanceDay], student_id: int) -> tuple[AttendanceTally, list[str], int]:
        tally = AttendanceTally()
        absent_dates: list[str] = []
        recorded = 0
        for d in days:
            status = d.status_for(student_id)
            if status is None:
                continue
            recorded += 1
            tally = tally.add(status)
            if status == AttendanceStatus.ABSENT:
                absent_dates.append(iso(d.attendance_date))
        return tally, absent_dates, recorded

    def get_date_view(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        date: DateLike,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_DATE_VIEW_LIMIT,
    ) -> DateAttendanceView:
        batch = self._require_batch(ctx, batch_id)
        day = to_calendar_day(date)
        record = self._attendance.get_day(ctx.coach_id, batch.batch_id, day)

        if record is None:
            roster = self._directory.find_active_students(ctx.coach_id, batch.batch_id)
            rows = [self._student_row(s, s.student_id, AttendanceStatus.ABSENT) for s in roster]
            return DateAttendanceView(
                batch_id=batch.batch_id,
                attendance_date=day,
                marked=False,
                is_holiday=False,
                holiday_reason=None,
                page=paginate(rows, page, limit),
            )

        entries_page = paginate(record.entries, page, limit)
        students = {
            s.student_id: s
            for s in self._directory.get_students(ctx.coach_id, [e.student_id for e in entries_page.items])
        }
        rows = [self._student_row(students.get(e.student_id), e.student_id, e.status) for e in entries_page.items]
        return DateAttendanceView(
            batch_id=batch.batch_id,
            attendance_date=day,
            marked=True,
            is_holiday=record.is_holiday,
            holiday_reason=record.holiday_reason,
            page=Page(items=rows, page=entries_page.page, limit=entries_page.limit, total=entries_page.total),
            marked_at=record.updated_at,
        )

    def get_absent_students(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        date: DateLike,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_DATE_VIEW_LIMIT,
    ) -> AbsentList:
        batch = self._require_batch(ctx, batch_id)
        day = to_calendar_day(date)
        record = self._attendance.get_day(ctx.coach_id, batch.batch_id, day)
        if record is None:
            raise NotFoundError("Attendance record not found for this date")

        absent_ids = [e.student_id for e in record.entries if e.status == AttendanceStatus.ABSENT]
        id_page = paginate(absent_ids, page, limit)
        students = {s.student_id: s for s in self._directory.get_students(ctx.coach_id, id_page.items)}

        rows = []
        for sid in id_page.items:
            s = students.get(sid)
            rows.append(
                {
                    "studentId": sid,
                    "studentCode": s.student_code if s else None,
                    "firstName": s.first_name if s else None,
                    "lastName": s.last_name if s else None,
                    "mobileNumber": s.mobile_number if s else None,
                    "fatherMobileNumber": s.father_mobile_number if s else None,
                }
            )
        return AbsentList(
            batch_id=batch.batch_id,
            attendance_date=day,
            page=Page(items=rows, page=id_page.page, limit=id_page.limit, total=id_page.total),
        )

    def get_monthly_absent_count(self, ctx: TenantContext, *, student_id: int, year: int, month: int) -> StudentMonthlyAttendance:
        start, end = month_bounds(year, month)
        student = self._require_student(ctx, student_id)
        days = self._attendance.list_for_student(ctx.coach_id, student.student_id, start, end)
        tally, absent_dates, _ = self._tally(days, student.student_id)

        return StudentMonthlyAttendance(
            student=student.display(),
            month=month_label(year, month),
            tally=tally,
            attendance_percentage=self._policy.percentage(tally),
            absent_dates=sorted(absent_dates),
        )

    def get_monthly_attendance_percentage(self, ctx: TenantContext, *, student_id: int, year: int, month: int) -> dict:
        """Compact per-student figure used by the performance dashboard."""

        summary = self.get_monthly_absent_count(ctx, student_id=student_id, year=year, month=month)
        return {
            "studentId": summary.student["studentId"],
            "month": summary.month,
            "totalDays": summary.tally.total_days,
            "workingDays": summary.tally.working_days,
            "presentDays": summary.tally.present,
            "percentage": summary.attendance_percentage,
        }

    def get_monthly_report(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        year: int,
        month: int,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> MonthlyAttendanceSummary:
        start, end = month_bounds(year, month)
        batch = self._require_batch(ctx, batch_id)
        days = self._attendance.list_for_batch(ctx.coach_id, batch.batch_id, start, end)
        students = self._directory.find_active_students(ctx.coach_id, batch.batch_id)

        stats: list[dict] = []
        max_recorded = 0
        for s in students:
            tally, absent_dates, recorded = self._tally(days, s.student_id)
            max_recorded = max(max_recorded, recorded)
            stats.append(
                {
                    "studentId": s.student_id,
                    "studentCode": s.student_code,
                    "firstName": s.first_name,
                    "lastName": s.last_name,
                    "mobileNumber": s.mobile_number,
                    "absentDays": tally.absent,
                    "presentDays": tally.present,
                    "holidayDays": tally.holiday,
                    "totalDays": tally.total_days,
                    "attendancePercentage": self._policy.percentage(tally),
                    "absentDates": absent_dates,
                }
            )

        # Worst attendance first; sort is stable so ties keep roster order.
        stats.sort(key=lambda x: x["absentDays"], reverse=True)
        low = [s for s in stats if s["attendancePercentage"] < self._threshold]

        average = sum(s["attendancePercentage"] for s in stats) / len(stats) if stats else 0.0
        batch_stats = {
            "totalStudents": len(students),
            "totalDays": max_recorded,
            "totalPresent": sum(s["presentDays"] for s in stats),
            "totalAbsent": sum(s["absentDays"] for s in stats),
            "averageAttendancePercentage": round2(average),
            "lowAttendanceCount": len(low),
        }

        return MonthlyAttendanceSummary(
            batch=batch,
            month=month_label(year, month),
            students=stats,
            page=paginate(stats, page, limit),
            low_attendance_students=low,
            batch_statistics=batch_stats,
        )

    def get_attendance_range(self, ctx: TenantContext, *, batch_id: int, start_date: DateLike, end_date: DateLike) -> AttendanceRange:
        start = to_calendar_day(start_date)
        end = to_calendar_day(end_date)
        if start > end:
            raise ValidationError("Start date must be before end date")

        batch = self._require_batch(ctx, batch_id)
        days = self._attendance.list_for_batch(ctx.coach_id, batch.batch_id, start, end)

        records = [
            {
                "attendanceId": d.attendance_id,
                "date": iso(d.attendance_date),
                "isHoliday": d.is_holiday,
                "holidayReason": d.holiday_reason,
                "totalStudents": len(d.entries),
                "presentCount": d.count(AttendanceStatus.PRESENT),
                "absentCount": d.count(AttendanceStatus.ABSENT),
                "holidayCount": d.count(AttendanceStatus.HOLIDAY),
                "markedAt": iso(d.updated_at),
            }
            for d in sorted(days, key=lambda d: d.attendance_date, reverse=True)
        ]
        return AttendanceRange(batch_id=batch.batch_id, start=start, end=end, records=records)

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..analytics.service import ScoringAnalyticsService
from ..attendance.stats_service import AttendanceStatsService
from ..common.datetime_utils import iso, month_bounds, month_label
from ..common.numbers import percentage
from ..core.context import TenantContext
from ..core.exceptions import NotFoundError
from ..directory.repository import TenantDirectory
from ..marks.repository import TestMarkRepository, TestRepository


@dataclass(frozen=True)
class MonthlyAttendanceReport:
    batch_id: int
    month: str
    per_student: list[dict]
    batch_average: float

    def to_dict(self) -> dict:
        return {
            "batchId": self.batch_id,
            "month": self.month,
            "perStudent": self.per_student,
            "batchAverage": self.batch_average,
        }


@dataclass(frozen=True)
class TestAnalysis:
    __test__ = False

    test_id: int
    per_student: list[dict]
    average: float
    median: float
    std_dev: float

    def to_dict(self) -> dict:
        return {
            "testId": self.test_id,
            "perStudent": self.per_student,
            "average": self.average,
            "median": self.median,
            "stdDev": self.std_dev,
        }


@dataclass(frozen=True)
class MonthlyExport:
    batch_id: int
    month: str
    attendance: list[dict]
    marks: list[dict]

    def to_dict(self) -> dict:
        return {
            "batchId": self.batch_id,
            "month": self.month,
            "attendance": self.attendance,
            "marks": self.marks,
        }


class ReportService:
    """Payloads consumed by the Excel/PDF renderers.

    Field names and rounding are part of the contract; renderers do no math.
    """

    def __init__(
        self,
        stats: AttendanceStatsService,
        analytics: ScoringAnalyticsService,
        tests: TestRepository,
        marks: TestMarkRepository,
        directory: TenantDirectory,
    ):
        self._stats = stats
        self._analytics = analytics
        self._tests = tests
        self._marks = marks
        self._directory = directory

    def monthly_attendance_report(self, ctx: TenantContext, *, batch_id: int, year: int, month: int) -> MonthlyAttendanceReport:
        summary = self._stats.get_monthly_report(ctx, batch_id=batch_id, year=year, month=month)
        per_student = [
            {
                "studentId": s["studentId"],
                "presentDays": s["presentDays"],
                "absentDays": s["absentDays"],
                "holidayDays": s["holidayDays"],
                "percentage": s["attendancePercentage"],
            }
            for s in summary.students
        ]
        return MonthlyAttendanceReport(
            batch_id=summary.batch.batch_id,
            month=summary.month,
            per_student=per_student,
            batch_average=summary.batch_statistics["averageAttendancePercentage"],
        )

    def test_analysis(self, ctx: TenantContext, *, test_id: int) -> TestAnalysis:
        test = self._tests.get(ctx.coach_id, int(test_id))
        if not test:
            raise NotFoundError("Test not found")
        analysis = self._analytics.analyse_test(ctx, test)
        return TestAnalysis(
            test_id=test.test_id,
            per_student=[
                {
                    "studentId": r["studentId"],
                    "marksObtained": r["marksObtained"],
                    "percentage": r["percentage"],
                    "rank": r["rank"],
                    "status": r["status"],
                }
                for r in analysis.results
            ],
            average=analysis.stats.average,
            median=analysis.stats.median,
            std_dev=analysis.stats.std_dev,
        )

    def monthly_export(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        year: int,
        month: int,
        student_id: Optional[int] = None,
    ) -> MonthlyExport:
        start, end = month_bounds(year, month)
        only: Optional[int] = None
        if student_id is not None:
            student = self._directory.get_student(ctx.coach_id, int(student_id))
            if not student:
                raise NotFoundError("Student not found")
            only = student.student_id

        summary = self._stats.get_monthly_report(ctx, batch_id=batch_id, year=year, month=month)
        attendance = [
            {
                "studentId": s["studentId"],
                "studentCode": s["studentCode"],
                "name": f"{s['firstName']} {s['lastName']}",
                "mobile": s["mobileNumber"] or "",
                "totalDays": s["totalDays"],
                "presentDays": s["presentDays"],
                "absentDays": s["absentDays"],
                "holidayDays": s["holidayDays"],
                "attendancePercentage": s["attendancePercentage"],
            }
            for s in sorted(summary.students, key=lambda x: x["studentId"])
            if only is None or s["studentId"] == only
        ]

        tests = {
            t.test_id: t
            for t in self._tests.list_for_batch(ctx.coach_id, summary.batch.batch_id)
            if start <= t.test_date <= end
        }
        marks = [
            m
            for m in (self._marks.list_for_tests(ctx.coach_id, list(tests)) if tests else [])
            if m.test_id in tests and (only is None or m.student_id == only)
        ]
        students = {s.student_id: s for s in self._directory.get_students(ctx.coach_id, {m.student_id for m in marks})}

        rows = []
        for m in sorted(marks, key=lambda m: (tests[m.test_id].test_date, m.test_id, m.student_id)):
            t = tests[m.test_id]
            s = students.get(m.student_id)
            rows.append(
                {
                    "studentId": m.student_id,
                    "studentCode": s.student_code if s else None,
                    "name": s.full_name if s else "",
                    "testName": t.test_name,
                    "subject": t.subject,
                    "date": iso(t.test_date),
                    "marksObtained": m.marks_obtained,
                    "totalMarks": t.total_marks,
                    "percentage": percentage(m.marks_obtained, t.total_marks),
                }
            )

        return MonthlyExport(
            batch_id=summary.batch.batch_id,
            month=month_label(year, month),
            attendance=attendance,
            marks=rows,
        )

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..common.datetime_utils import iso
from ..common.numbers import percentage, round2
from ..common.pagination import Page, paginate
from ..common.validators import require_int
from ..core.constants import (
    DEFAULT_DATE_VIEW_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_REPORT_LIMIT,
    DEFAULT_TIMESERIES_LIMIT,
    SUBJECT_RANKING_SIZE,
)
from ..core.context import TenantContext
from ..core.enums import MarkStatus
from ..core.exceptions import NotFoundError
from ..directory.model import Batch, Student
from ..directory.repository import TenantDirectory
from ..marks.model import RankSnapshot, Test, TestMark
from ..marks.repository import TestMarkRepository, TestRepository
from .statistics import ScoreStats, rank_scores, score_summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestScoreAnalysis:
    """Ranked results and summary statistics of one test, computed from its stored marks."""

    __test__ = False

    test: Test
    stats: ScoreStats
    passed: int
    failed: int
    absent: int
    results: list[dict]

    @property
    def total_students(self) -> int:
        return len(self.results)

    def statistics(self) -> dict:
        return {
            "totalStudents": self.total_students,
            "passedStudents": self.passed,
            "failedStudents": self.failed,
            "absentStudents": self.absent,
            "averageScore": self.stats.average,
            "medianScore": self.stats.median,
            "highestScore": self.stats.highest,
            "lowestScore": self.stats.lowest,
            "standardDeviation": self.stats.std_dev,
            "passPercentage": percentage(self.passed, self.total_students),
        }

    def to_dict(self, page: Page[dict]) -> dict:
        return {
            "test": self.test.summary(),
            "statistics": self.statistics(),
            "results": page.items,
            **page.meta(),
        }


@dataclass(frozen=True)
class TestHistory:
    __test__ = False

    student: dict
    page: Page[dict]
    subject_wise: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "student": self.student,
            "testHistory": self.page.items,
            "subjectWisePerformance": self.subject_wise,
            "totalTests": self.page.total,
            **self.page.meta(),
        }


@dataclass(frozen=True)
class SubjectAnalysis:
    batch: Batch
    subject: str
    tests_created: int
    students_tested: int
    stats: ScoreStats
    average_percentage: float
    top_students: list[dict]
    bottom_students: list[dict]

    def to_dict(self) -> dict:
        out = {
            "subject": self.subject,
            "batch": {"batchId": self.batch.batch_id, "batchName": self.batch.batch_name},
            "analysis": {
                "testsCreated": self.tests_created,
                "studentsTested": self.students_tested,
                "averageScore": self.stats.average,
                "averagePercentage": self.average_percentage,
                "highestScore": self.stats.highest,
                "lowestScore": self.stats.lowest,
                "topStudents": self.top_students,
                "bottomStudents": self.bottom_students,
            },
        }
        if self.tests_created == 0:
            out["message"] = "No tests found for this subject"
        return out


def _by_date(pairs: Sequence[tuple[TestMark, Test]]) -> list[tuple[TestMark, Test]]:
    return sorted(pairs, key=lambda p: (p[1].test_date, p[1].test_id))


class ScoringAnalyticsService:
    """Derived test statistics: rankings, pass/fail counts, subject rollups and time series.

    Nothing here is cached; every figure comes from the stored marks of the
    current call. Rankings computed for a test are written back to its marks.
    """

    def __init__(self, tests: TestRepository, marks: TestMarkRepository, directory: TenantDirectory):
        self._tests = tests
        self._marks = marks
        self._directory = directory

    def _require_student(self, ctx: TenantContext, student_id: int) -> Student:
        student = self._directory.get_student(ctx.coach_id, int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _require_test(self, ctx: TenantContext, test_id: int) -> Test:
        test = self._tests.get(ctx.coach_id, int(test_id))
        if not test:
            raise NotFoundError("Test not found")
        return test

    def _student_marks(self, ctx: TenantContext, student: Student, subject: Optional[str] = None) -> list[tuple[TestMark, Test]]:
        """The student's marks joined with their tests, newest mark first."""

        marks = self._marks.list_for_student(ctx.coach_id, student.student_id)
        tests = {t.test_id: t for t in self._tests.get_many(ctx.coach_id, {m.test_id for m in marks})}
        pairs = [(m, tests[m.test_id]) for m in marks if m.test_id in tests]
        if subject is not None:
            pairs = [(m, t) for m, t in pairs if t.subject == subject]
        return pairs

    def analyse_test(self, ctx: TenantContext, test: Test) -> TestScoreAnalysis:
        marks = self._marks.list_for_test(ctx.coach_id, test.test_id)
        by_student = {m.student_id: m for m in marks}
        ranked = rank_scores([(m.student_id, m.marks_obtained) for m in marks])
        students = {s.student_id: s for s in self._directory.get_students(ctx.coach_id, list(by_student))}

        results = []
        for r in ranked:
            m = by_student[r.student_id]
            s = students.get(r.student_id)
            results.append(
                {
                    "rank": r.rank,
                    "percentile": r.percentile,
                    "studentId": r.student_id,
                    "studentCode": s.student_code if s else None,
                    "firstName": s.first_name if s else None,
                    "lastName": s.last_name if s else None,
                    "mobileNumber": s.mobile_number if s else None,
                    "marksObtained": m.marks_obtained,
                    "percentage": percentage(m.marks_obtained, test.total_marks),
                    "status": m.status.value,
                    "timeTaken": m.time_taken,
                    "remarks": m.remarks,
                }
            )

        if ranked:
            self._marks.save_rankings(
                ctx.coach_id,
                test.test_id,
                [RankSnapshot(student_id=r.student_id, rank=r.rank, percentile=r.percentile) for r in ranked],
            )
            logger.debug("Rankings refreshed coach=%s test=%s students=%d", ctx.coach_id, test.test_id, len(ranked))

        return TestScoreAnalysis(
            test=test,
            stats=score_summary([m.marks_obtained for m in marks]),
            passed=sum(1 for m in marks if m.status == MarkStatus.PASSED),
            failed=sum(1 for m in marks if m.status == MarkStatus.FAILED),
            absent=sum(1 for m in marks if m.status == MarkStatus.ABSENT),
            results=results,
        )

    def get_test_history(
        self,
        ctx: TenantContext,
        *,
        student_id: int,
        subject: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_DATE_VIEW_LIMIT,
    ) -> TestHistory:
        student = self._require_student(ctx, student_id)
        pairs = self._student_marks(ctx, student, subject)

        rows = [
            {
                "markId": m.mark_id,
                "testId": t.test_id,
                "testName": t.test_name,
                "subject": t.subject,
                "testDate": iso(t.test_date),
                "marksObtained": m.marks_obtained,
                "totalMarks": t.total_marks,
                "percentage": percentage(m.marks_obtained, t.total_marks),
                "status": m.status.value,
                "rank": m.rank,
                "percentile": m.percentile,
                "remarks": m.remarks,
            }
            for m, t in pairs
        ]

        # Rollup covers the whole history, not just the requested page.
        subject_wise: dict[str, dict] = OrderedDict()
        for m, t in pairs:
            entry = subject_wise.setdefault(t.subject, {"testsTaken": 0, "totalMarks": 0.0, "marksObtained": 0.0})
            entry["testsTaken"] += 1
            entry["totalMarks"] += t.total_marks
            entry["marksObtained"] += m.marks_obtained
        for entry in subject_wise.values():
            entry["average"] = percentage(entry["marksObtained"], entry["totalMarks"])
            entry["totalMarks"] = round2(entry["totalMarks"])
            entry["marksObtained"] = round2(entry["marksObtained"])

        return TestHistory(student=student.display(), page=paginate(rows, page, limit), subject_wise=dict(subject_wise))

    def get_test_results(
        self,
        ctx: TenantContext,
        *,
        test_id: int,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> tuple[TestScoreAnalysis, Page[dict]]:
        test = self._require_test(ctx, test_id)
        analysis = self.analyse_test(ctx, test)
        return analysis, paginate(analysis.results, page, limit)

    def get_batch_test_analysis(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        test_id: int,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> tuple[TestScoreAnalysis, Page[dict]]:
        test = self._tests.get(ctx.coach_id, int(test_id))
        if not test or test.batch_id != int(batch_id):
            raise NotFoundError("Test not found for this batch")
        analysis = self.analyse_test(ctx, test)
        return analysis, paginate(analysis.results, page, limit)

    def get_subject_analysis(self, ctx: TenantContext, *, batch_id: int, subject: str) -> SubjectAnalysis:
        batch = self._directory.get_batch(ctx.coach_id, int(batch_id))
        if not batch:
            raise NotFoundError("Batch not found")

        tests = {t.test_id: t for t in self._tests.list_for_batch(ctx.coach_id, batch.batch_id, subject=subject)}
        marks = [m for m in self._marks.list_for_tests(ctx.coach_id, list(tests)) if m.test_id in tests] if tests else []

        per_student: dict[int, dict] = OrderedDict()
        for m in marks:
            entry = per_student.setdefault(
                m.student_id, {"testsTaken": 0, "totalMarks": 0.0, "marksObtained": 0.0}
            )
            entry["testsTaken"] += 1
            entry["totalMarks"] += tests[m.test_id].total_marks
            entry["marksObtained"] += m.marks_obtained

        students = {s.student_id: s for s in self._directory.get_students(ctx.coach_id, list(per_student))}
        rows = []
        for sid, entry in per_student.items():
            s = students.get(sid)
            rows.append(
                {
                    "studentId": sid,
                    "studentCode": s.student_code if s else None,
                    "firstName": s.first_name if s else None,
                    "lastName": s.last_name if s else None,
                    "testsTaken": entry["testsTaken"],
                    "totalMarks": round2(entry["totalMarks"]),
                    "marksObtained": round2(entry["marksObtained"]),
                    "percentage": percentage(entry["marksObtained"], entry["totalMarks"]),
                }
            )
        rows.sort(key=lambda r: (-r["percentage"], r["studentId"]))

        scored = sum(m.marks_obtained for m in marks)
        possible = sum(tests[m.test_id].total_marks for m in marks)
        return SubjectAnalysis(
            batch=batch,
            subject=subject,
            tests_created=len(tests),
            students_tested=len(per_student),
            stats=score_summary([m.marks_obtained for m in marks]),
            average_percentage=percentage(scored, possible),
            top_students=rows[:SUBJECT_RANKING_SIZE],
            bottom_students=list(reversed(rows))[:SUBJECT_RANKING_SIZE],
        )

    def get_subject_performance(self, ctx: TenantContext, *, student_id: int, subject: str) -> dict:
        student = self._require_student(ctx, student_id)
        pairs = _by_date(self._student_marks(ctx, student, subject))
        scores = [m.marks_obtained for m, _ in pairs]
        stats = score_summary(scores)

        return {
            "student": student.display(),
            "subject": subject,
            "performance": {
                "testsTaken": len(pairs),
                "averageMarks": stats.average,
                "averagePercentage": percentage(sum(scores), sum(t.total_marks for _, t in pairs)),
                "bestScore": stats.highest,
                "worstScore": stats.lowest,
                "trend": [
                    {
                        "testId": t.test_id,
                        "testName": t.test_name,
                        "marksObtained": m.marks_obtained,
                        "totalMarks": t.total_marks,
                        "percentage": percentage(m.marks_obtained, t.total_marks),
                        "date": iso(t.test_date),
                    }
                    for m, t in pairs
                ],
            },
        }

    def get_marks_over_time(self, ctx: TenantContext, *, student_id: int, limit: int = DEFAULT_TIMESERIES_LIMIT) -> list[dict]:
        n = require_int(limit, "limit", min_value=1, max_value=500)
        student = self._require_student(ctx, student_id)
        pairs = _by_date(self._student_marks(ctx, student))[:n]
        return [
            {
                "testId": t.test_id,
                "testName": t.test_name,
                "subject": t.subject,
                "date": iso(t.test_date),
                "marksObtained": m.marks_obtained,
                "totalMarks": t.total_marks,
                "percentage": percentage(m.marks_obtained, t.total_marks),
            }
            for m, t in pairs
        ]

    def get_subject_wise_marks(self, ctx: TenantContext, *, student_id: int) -> list[dict]:
        student = self._require_student(ctx, student_id)
        grouped: dict[str, list[tuple[TestMark, Test]]] = {}
        for m, t in self._student_marks(ctx, student):
            grouped.setdefault(t.subject, []).append((m, t))

        summary = []
        for subject in sorted(grouped):
            pairs = grouped[subject]
            scores = [m.marks_obtained for m, _ in pairs]
            stats = score_summary(scores)
            summary.append(
                {
                    "subject": subject,
                    "testsTaken": len(pairs),
                    "averageMarks": stats.average,
                    "averagePercentage": percentage(sum(scores), sum(t.total_marks for _, t in pairs)),
                    "bestScore": stats.highest,
                    "worstScore": stats.lowest,
                }
            )
        return summary

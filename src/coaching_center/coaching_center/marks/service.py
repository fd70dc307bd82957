from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_local, to_calendar_day
from ..common.pagination import Page, paginate
from ..common.validators import optional_int, optional_text, require_non_empty, require_number
from ..core.constants import DEFAULT_PAGE, DEFAULT_REPORT_LIMIT, MAX_TOTAL_MARKS
from ..core.context import TenantContext
from ..core.enums import MarkStatus
from ..core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from ..directory.model import Batch
from ..directory.repository import TenantDirectory
from .model import MarkDetails, NewTest, Test, TestMark
from .repository import TestMarkRepository, TestRepository

logger = logging.getLogger(__name__)


class MarksService:
    """Test definitions and per-student marks (one row per test and student)."""

    def __init__(self, tests: TestRepository, marks: TestMarkRepository, directory: TenantDirectory):
        self._tests = tests
        self._marks = marks
        self._directory = directory

    def _require_batch(self, ctx: TenantContext, batch_id: int) -> Batch:
        batch = self._directory.get_batch(ctx.coach_id, int(batch_id))
        if not batch:
            raise NotFoundError("Batch not found")
        return batch

    def _require_test(self, ctx: TenantContext, test_id: int) -> Test:
        test = self._tests.get(ctx.coach_id, int(test_id))
        if not test:
            raise NotFoundError("Test not found")
        return test

    @staticmethod
    def _validate_definition(definition: NewTest) -> NewTest:
        name = require_non_empty(definition.test_name, "Test name")
        subject = require_non_empty(definition.subject, "Subject")
        if len(name) > 100:
            raise ValidationError("Test name must not exceed 100 characters")
        if len(subject) > 50:
            raise ValidationError("Subject must not exceed 50 characters")

        total = require_number(definition.total_marks, "Total marks")
        if total < 1 or total > MAX_TOTAL_MARKS:
            raise ValidationError(f"Total marks must be between 1 and {MAX_TOTAL_MARKS}")

        passing: Optional[float] = None
        if definition.passing_marks is not None:
            passing = require_number(definition.passing_marks, "Passing marks", min_value=0)
            if passing > total:
                raise ValidationError("Passing marks cannot exceed total marks")

        negative: Optional[float] = None
        has_negative = bool(definition.has_negative_marking)
        if has_negative and definition.negative_mark_per_wrong_answer is not None:
            negative = require_number(
                definition.negative_mark_per_wrong_answer, "Negative mark per wrong answer", min_value=0
            )

        return NewTest(
            test_name=name,
            subject=subject,
            test_date=to_calendar_day(definition.test_date),
            total_marks=total,
            passing_marks=passing,
            has_negative_marking=has_negative,
            negative_mark_per_wrong_answer=negative,
            description=optional_text(definition.description, "Description", max_length=500),
        )

    def add_test(self, ctx: TenantContext, *, batch_id: int, definition: NewTest, now: datetime | None = None) -> Test:
        now = now or now_local()
        batch = self._require_batch(ctx, batch_id)
        clean = self._validate_definition(definition)

        test = self._tests.create(
            coach_id=ctx.coach_id,
            batch_id=batch.batch_id,
            definition=clean,
            created_by=ctx.actor,
            now=now,
        )
        logger.info("Test created coach=%s batch=%s test=%s subject=%s", ctx.coach_id, batch.batch_id, test.test_id, test.subject)
        return test

    def add_marks(
        self,
        ctx: TenantContext,
        *,
        test_id: int,
        student_id: int,
        marks_obtained,
        status: Optional[str] = None,
        correct_answers=None,
        wrong_answers=None,
        attempted_questions=None,
        time_taken=None,
        remarks: Optional[str] = None,
        now: datetime | None = None,
    ) -> TestMark:
        """Create or re-grade one student's mark for a test.

        A caller-supplied status wins; otherwise the status is derived from the
        test's passing marks.
        """

        now = now or now_local()
        test = self._require_test(ctx, test_id)
        student = self._directory.get_student(ctx.coach_id, int(student_id))
        if not student:
            raise NotFoundError("Student not found")

        score = require_number(marks_obtained, "Marks obtained", min_value=0)
        if score > test.total_marks:
            raise ValidationError(f"Marks obtained ({score:g}) cannot exceed total marks ({test.total_marks:g})")

        if status is not None and status != "":
            try:
                final_status = MarkStatus(status)
            except ValueError:
                raise ValidationError("Status must be passed, failed, or absent")
        else:
            final_status = test.derive_status(score)

        details = MarkDetails(
            correct_answers=optional_int(correct_answers, "Correct answers"),
            wrong_answers=optional_int(wrong_answers, "Wrong answers"),
            attempted_questions=optional_int(attempted_questions, "Attempted questions"),
            time_taken=optional_int(time_taken, "Time taken"),
            remarks=optional_text(remarks, "Remarks", max_length=500),
        )

        existing = self._marks.get(ctx.coach_id, test.test_id, student.student_id)
        if existing is None:
            try:
                created = self._marks.create(
                    coach_id=ctx.coach_id,
                    test_id=test.test_id,
                    student_id=student.student_id,
                    batch_id=test.batch_id,
                    marks_obtained=score,
                    status=final_status,
                    details=details,
                    now=now,
                )
                logger.info(
                    "Marks saved coach=%s test=%s student=%s marks=%s status=%s",
                    ctx.coach_id, test.test_id, student.student_id, score, final_status.value,
                )
                return created
            except DuplicateKeyError:
                logger.warning("Marks for test %s student %s already exist, retrying as update", test.test_id, student.student_id)
                existing = self._marks.get(ctx.coach_id, test.test_id, student.student_id)
                if existing is None:
                    raise

        updated = self._marks.update(
            mark_id=existing.mark_id,
            marks_obtained=score,
            status=final_status,
            details=details,
            now=now,
        )
        logger.info(
            "Marks updated coach=%s test=%s student=%s marks=%s status=%s",
            ctx.coach_id, test.test_id, student.student_id, score, final_status.value,
        )
        return updated

    def list_batch_tests(
        self,
        ctx: TenantContext,
        *,
        batch_id: int,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> tuple[Batch, Page[Test]]:
        batch = self._require_batch(ctx, batch_id)
        tests = self._tests.list_for_batch(ctx.coach_id, batch.batch_id)
        return batch, paginate(list(tests), page, limit)

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import MarkStatus
from .model import MarkDetails, NewTest, RankSnapshot, Test, TestMark


class TestRepository(Protocol):
    __test__ = False

    def create(self, *, coach_id: int, batch_id: int, definition: NewTest, created_by: int, now: datetime) -> Test:
        raise NotImplementedError

    def get(self, coach_id: int, test_id: int) -> Optional[Test]:
        raise NotImplementedError

    def get_many(self, coach_id: int, test_ids: Iterable[int]) -> Sequence[Test]:
        raise NotImplementedError

    def list_for_batch(self, coach_id: int, batch_id: int, *, subject: Optional[str] = None) -> Sequence[Test]:
        """Tests of the batch, newest test date first."""

        raise NotImplementedError


class TestMarkRepository(Protocol):
    __test__ = False

    def get(self, coach_id: int, test_id: int, student_id: int) -> Optional[TestMark]:
        raise NotImplementedError

    def create(
        self,
        *,
        coach_id: int,
        test_id: int,
        student_id: int,
        batch_id: int,
        marks_obtained: float,
        status: MarkStatus,
        details: MarkDetails,
        now: datetime,
    ) -> TestMark:
        """Insert; raises DuplicateKeyError if (coach, test, student) already exists."""

        raise NotImplementedError

    def update(
        self,
        *,
        mark_id: int,
        marks_obtained: float,
        status: MarkStatus,
        details: MarkDetails,
        now: datetime,
    ) -> TestMark:
        raise NotImplementedError

    def list_for_test(self, coach_id: int, test_id: int) -> Sequence[TestMark]:
        raise NotImplementedError

    def list_for_tests(self, coach_id: int, test_ids: Iterable[int]) -> Sequence[TestMark]:
        raise NotImplementedError

    def list_for_student(self, coach_id: int, student_id: int) -> Sequence[TestMark]:
        """Newest entry first."""

        raise NotImplementedError

    def save_rankings(self, coach_id: int, test_id: int, rankings: Sequence[RankSnapshot]) -> None:
        raise NotImplementedError

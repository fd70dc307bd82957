from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import MarkStatus, TestStatus


@dataclass(frozen=True)
class NewTest:
    """Input for creating a test (rubric + schedule)."""

    test_name: str
    subject: str
    test_date: date
    total_marks: float
    passing_marks: Optional[float] = None
    has_negative_marking: bool = False
    negative_mark_per_wrong_answer: Optional[float] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Test:
    __test__ = False  # not a pytest class

    test_id: int
    coach_id: int
    batch_id: int
    test_name: str
    subject: str
    test_date: date
    total_marks: float
    passing_marks: Optional[float]
    has_negative_marking: bool
    negative_mark_per_wrong_answer: Optional[float]
    description: Optional[str]
    status: TestStatus
    created_by: int
    created_at: datetime
    updated_at: datetime

    def derive_status(self, marks_obtained: float) -> MarkStatus:
        if self.passing_marks is not None and marks_obtained < self.passing_marks:
            return MarkStatus.FAILED
        return MarkStatus.PASSED

    def summary(self) -> dict:
        return {
            "testId": self.test_id,
            "testName": self.test_name,
            "subject": self.subject,
            "testDate": self.test_date.strftime("%Y-%m-%d"),
            "totalMarks": self.total_marks,
            "passingMarks": self.passing_marks,
            "batchId": self.batch_id,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class MarkDetails:
    """Optional score breakdown supplied with a mark entry."""

    correct_answers: Optional[int] = None
    wrong_answers: Optional[int] = None
    attempted_questions: Optional[int] = None
    time_taken: Optional[int] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class TestMark:
    """One student's score for one test; rank/percentile are snapshots of the last analysis."""

    __test__ = False

    mark_id: int
    coach_id: int
    test_id: int
    student_id: int
    batch_id: int
    marks_obtained: float
    status: MarkStatus
    submitted_at: datetime
    created_at: datetime
    updated_at: datetime
    correct_answers: Optional[int] = None
    wrong_answers: Optional[int] = None
    attempted_questions: Optional[int] = None
    time_taken: Optional[int] = None
    rank: Optional[int] = None
    percentile: Optional[float] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class RankSnapshot:
    student_id: int
    rank: int
    percentile: float

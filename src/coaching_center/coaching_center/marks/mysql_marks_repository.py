from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import MarkStatus, TestStatus
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import MarkDetails, NewTest, RankSnapshot, Test, TestMark
from .repository import TestMarkRepository, TestRepository

_TEST_COLUMNS = """
    test_id, coach_id, batch_id, test_name, subject, test_date, total_marks, passing_marks,
    has_negative_marking, negative_mark_per_wrong_answer, description, status, created_by,
    created_at, updated_at
"""

_MARK_COLUMNS = """
    mark_id, coach_id, test_id, student_id, batch_id, marks_obtained, correct_answers,
    wrong_answers, attempted_questions, time_taken, status, `rank`, percentile, remarks,
    submitted_at, created_at, updated_at
"""


def _opt_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _to_test(r: dict) -> Test:
    return Test(
        test_id=int(r["test_id"]),
        coach_id=int(r["coach_id"]),
        batch_id=int(r["batch_id"]),
        test_name=r["test_name"],
        subject=r["subject"],
        test_date=r["test_date"],
        total_marks=float(r["total_marks"]),
        passing_marks=_opt_float(r.get("passing_marks")),
        has_negative_marking=bool(r.get("has_negative_marking")),
        negative_mark_per_wrong_answer=_opt_float(r.get("negative_mark_per_wrong_answer")),
        description=r.get("description"),
        status=TestStatus(r["status"]),
        created_by=int(r["created_by"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def _to_mark(r: dict) -> TestMark:
    return TestMark(
        mark_id=int(r["mark_id"]),
        coach_id=int(r["coach_id"]),
        test_id=int(r["test_id"]),
        student_id=int(r["student_id"]),
        batch_id=int(r["batch_id"]),
        marks_obtained=float(r["marks_obtained"]),
        status=MarkStatus(r["status"]),
        submitted_at=r["submitted_at"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        correct_answers=_opt_int(r.get("correct_answers")),
        wrong_answers=_opt_int(r.get("wrong_answers")),
        attempted_questions=_opt_int(r.get("attempted_questions")),
        time_taken=_opt_int(r.get("time_taken")),
        rank=_opt_int(r.get("rank")),
        percentile=_opt_float(r.get("percentile")),
        remarks=r.get("remarks"),
    )


class MySQLTestRepository(TestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, coach_id: int, batch_id: int, definition: NewTest, created_by: int, now: datetime) -> Test:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tests(
                    coach_id, batch_id, test_name, subject, test_date, total_marks, passing_marks,
                    has_negative_marking, negative_mark_per_wrong_answer, description, status,
                    created_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(coach_id),
                    int(batch_id),
                    definition.test_name,
                    definition.subject,
                    definition.test_date,
                    definition.total_marks,
                    definition.passing_marks,
                    int(definition.has_negative_marking),
                    definition.negative_mark_per_wrong_answer,
                    definition.description,
                    TestStatus.ACTIVE.value,
                    int(created_by),
                    now,
                    now,
                ),
            )
            test_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_TEST_COLUMNS} FROM tests WHERE test_id=%s", (test_id,))
            return _to_test(fetchone(cur))

    def get(self, coach_id: int, test_id: int) -> Optional[Test]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEST_COLUMNS} FROM tests WHERE test_id=%s AND coach_id=%s",
                (int(test_id), int(coach_id)),
            )
            r = fetchone(cur)
            return _to_test(r) if r else None

    def get_many(self, coach_id: int, test_ids: Iterable[int]) -> Sequence[Test]:
        ids = sorted({int(x) for x in test_ids})
        if not ids:
            return []
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEST_COLUMNS} FROM tests WHERE coach_id=%s AND test_id IN ({placeholders})",
                (int(coach_id), *params),
            )
            return [_to_test(r) for r in fetchall(cur)]

    def list_for_batch(self, coach_id: int, batch_id: int, *, subject: Optional[str] = None) -> Sequence[Test]:
        clauses = ["coach_id=%s", "batch_id=%s"]
        params: list[object] = [int(coach_id), int(batch_id)]
        if subject is not None:
            clauses.append("subject=%s")
            params.append(subject)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEST_COLUMNS} FROM tests WHERE {where} ORDER BY test_date DESC, test_id DESC",
                tuple(params),
            )
            return [_to_test(r) for r in fetchall(cur)]


class MySQLTestMarkRepository(TestMarkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, coach_id: int, test_id: int, student_id: int) -> Optional[TestMark]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_MARK_COLUMNS} FROM test_marks WHERE coach_id=%s AND test_id=%s AND student_id=%s",
                (int(coach_id), int(test_id), int(student_id)),
            )
            r = fetchone(cur)
            return _to_mark(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO test_marks(
                    coach_id, test_id, student_id, batch_id, marks_obtained, correct_answers,
                    wrong_answers, attempted_questions, time_taken, status, remarks,
                    submitted_at, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(coach_id),
                    int(test_id),
                    int(student_id),
                    int(batch_id),
                    marks_obtained,
                    details.correct_answers,
                    details.wrong_answers,
                    details.attempted_questions,
                    details.time_taken,
                    status.value,
                    details.remarks,
                    now,
                    now,
                    now,
                ),
            )
            mark_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_MARK_COLUMNS} FROM test_marks WHERE mark_id=%s", (mark_id,))
            return _to_mark(fetchone(cur))

    def update(
        self,
        *,
        mark_id: int,
        marks_obtained: float,
        status: MarkStatus,
        details: MarkDetails,
        now: datetime,
    ) -> TestMark:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE test_marks
                SET marks_obtained=%s, correct_answers=%s, wrong_answers=%s, attempted_questions=%s,
                    time_taken=%s, status=%s, remarks=%s, submitted_at=%s, updated_at=%s
                WHERE mark_id=%s
                """,
                (
                    marks_obtained,
                    details.correct_answers,
                    details.wrong_answers,
                    details.attempted_questions,
                    details.time_taken,
                    status.value,
                    details.remarks,
                    now,
                    now,
                    int(mark_id),
                ),
            )
            cur.execute(f"SELECT {_MARK_COLUMNS} FROM test_marks WHERE mark_id=%s", (int(mark_id),))
            r = fetchone(cur)
            if not r:
                raise NotFoundError("Test marks not found")
            return _to_mark(r)

    def list_for_test(self, coach_id: int, test_id: int) -> Sequence[TestMark]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MARK_COLUMNS} FROM test_marks
                WHERE coach_id=%s AND test_id=%s
                ORDER BY mark_id ASC
                """,
                (int(coach_id), int(test_id)),
            )
            return [_to_mark(r) for r in fetchall(cur)]

    def list_for_tests(self, coach_id: int, test_ids: Iterable[int]) -> Sequence[TestMark]:
        ids = sorted({int(x) for x in test_ids})
        if not ids:
            return []
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MARK_COLUMNS} FROM test_marks
                WHERE coach_id=%s AND test_id IN ({placeholders})
                ORDER BY mark_id ASC
                """,
                (int(coach_id), *params),
            )
            return [_to_mark(r) for r in fetchall(cur)]

    def list_for_student(self, coach_id: int, student_id: int) -> Sequence[TestMark]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MARK_COLUMNS} FROM test_marks
                WHERE coach_id=%s AND student_id=%s
                ORDER BY created_at DESC, mark_id DESC
                """,
                (int(coach_id), int(student_id)),
            )
            return [_to_mark(r) for r in fetchall(cur)]

    def save_rankings(self, coach_id: int, test_id: int, rankings: Sequence[RankSnapshot]) -> None:
        if not rankings:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                UPDATE test_marks SET `rank`=%s, percentile=%s
                WHERE coach_id=%s AND test_id=%s AND student_id=%s
                """,
                [(r.rank, r.percentile, int(coach_id), int(test_id), int(r.student_id)) for r in rankings],
            )

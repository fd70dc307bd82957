from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Batch, Student
from .repository import TenantDirectory

_STUDENT_COLUMNS = """
    s.student_id, s.coach_id, s.student_code, s.first_name, s.last_name,
    s.mobile_number, s.father_mobile_number, s.status,
    (SELECT GROUP_CONCAT(sb2.batch_id ORDER BY sb2.batch_id)
     FROM student_batches sb2 WHERE sb2.student_id = s.student_id) AS batch_ids
"""


def _to_student(r: dict) -> Student:
    raw_batches = r.get("batch_ids") or ""
    return Student(
        student_id=int(r["student_id"]),
        coach_id=int(r["coach_id"]),
        student_code=r.get("student_code"),
        first_name=r["first_name"],
        last_name=r["last_name"],
        mobile_number=r.get("mobile_number"),
        father_mobile_number=r.get("father_mobile_number"),
        status=StudentStatus(r["status"]),
        batch_ids=tuple(int(x) for x in str(raw_batches).split(",") if x),
    )


class MySQLTenantDirectory(TenantDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_batch(self, coach_id: int, batch_id: int) -> Optional[Batch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT batch_id, coach_id, batch_name, subject, status
                FROM batches
                WHERE batch_id=%s AND coach_id=%s
                """,
                (int(batch_id), int(coach_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Batch(
                batch_id=int(r["batch_id"]),
                coach_id=int(r["coach_id"]),
                batch_name=r["batch_name"],
                subject=r.get("subject"),
                status=r.get("status") or "Active",
            )

    def find_active_students(self, coach_id: int, batch_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                JOIN student_batches sb ON sb.student_id = s.student_id
                WHERE s.coach_id=%s AND sb.batch_id=%s AND s.status=%s
                ORDER BY s.student_id ASC
                """,
                (int(coach_id), int(batch_id), StudentStatus.ACTIVE.value),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def get_student(self, coach_id: int, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                WHERE s.student_id=%s AND s.coach_id=%s
                """,
                (int(student_id), int(coach_id)),
            )
            r = fetchone(cur)
            return _to_student(r) if r else None

    def get_students(self, coach_id: int, student_ids: Iterable[int]) -> Sequence[Student]:
        ids = [int(x) for x in student_ids]
        if not ids:
            return []
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                WHERE s.coach_id=%s AND s.student_id IN ({placeholders})
                ORDER BY s.student_id ASC
                """,
                (int(coach_id), *params),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def count_active_members(self, coach_id: int, batch_id: int, student_ids: Iterable[int]) -> int:
        ids = sorted({int(x) for x in student_ids})
        if not ids:
            return 0
        placeholders, params = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(DISTINCT s.student_id) AS n
                FROM students s
                JOIN student_batches sb ON sb.student_id = s.student_id
                WHERE s.coach_id=%s AND sb.batch_id=%s AND s.status=%s
                  AND s.student_id IN ({placeholders})
                """,
                (int(coach_id), int(batch_id), StudentStatus.ACTIVE.value, *params),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

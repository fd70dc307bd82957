from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceDay, AttendanceEntry
from .repository import AttendanceRepository

_DAY_COLUMNS = """
    d.attendance_id, d.coach_id, d.batch_id, d.attendance_date, d.is_holiday,
    d.holiday_reason, d.marked_by, d.created_at, d.updated_at
"""


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _load_days(cur, rows: list[dict]) -> list[AttendanceDay]:
        if not rows:
            return []
        ids = [int(r["attendance_id"]) for r in rows]
        placeholders, params = in_clause(ids)
        cur.execute(
            f"""
            SELECT attendance_id, student_id, status
            FROM attendance_entries
            WHERE attendance_id IN ({placeholders})
            ORDER BY attendance_id ASC, position ASC
            """,
            params,
        )
        by_day: dict[int, list[AttendanceEntry]] = {i: [] for i in ids}
        for e in fetchall(cur):
            by_day[int(e["attendance_id"])].append(
                AttendanceEntry(student_id=int(e["student_id"]), status=AttendanceStatus(e["status"]))
            )

        return [
            AttendanceDay(
                attendance_id=int(r["attendance_id"]),
                coach_id=int(r["coach_id"]),
                batch_id=int(r["batch_id"]),
                attendance_date=r["attendance_date"],
                entries=tuple(by_day[int(r["attendance_id"])]),
                is_holiday=bool(r["is_holiday"]),
                holiday_reason=r.get("holiday_reason"),
                marked_by=int(r["marked_by"]),
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def _fetch_by_id(self, cur, attendance_id: int) -> AttendanceDay:
        cur.execute(f"SELECT {_DAY_COLUMNS} FROM attendance_days d WHERE d.attendance_id=%s", (int(attendance_id),))
        r = fetchone(cur)
        if not r:
            raise NotFoundError("Attendance record not found")
        return self._load_days(cur, [r])[0]

    @staticmethod
    def _insert_entries(cur, attendance_id: int, entries: Sequence[AttendanceEntry], *, start_position: int) -> None:
        if not entries:
            return
        cur.executemany(
            """
            INSERT INTO attendance_entries(attendance_id, student_id, status, position)
            VALUES(%s,%s,%s,%s)
            ON DUPLICATE KEY UPDATE status=VALUES(status)
            """,
            [
                (int(attendance_id), int(e.student_id), e.status.value, start_position + i)
                for i, e in enumerate(entries)
            ],
        )

    def get_day(self, coach_id: int, batch_id: int, attendance_date: date) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DAY_COLUMNS}
                FROM attendance_days d
                WHERE d.coach_id=%s AND d.batch_id=%s AND d.attendance_date=%s
                """,
                (int(coach_id), int(batch_id), attendance_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._load_days(cur, [r])[0]

    def create_day(
        self,
        *,
        coach_id: int,
        batch_id: int,
        attendance_date: date,
        entries: Sequence[AttendanceEntry],
        is_holiday: bool,
        holiday_reason: Optional[str],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_days(
                    coach_id, batch_id, attendance_date, is_holiday, holiday_reason, marked_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(coach_id), int(batch_id), attendance_date, int(is_holiday), holiday_reason, int(marked_by), now, now),
            )
            attendance_id = int(cur.lastrowid)
            self._insert_entries(cur, attendance_id, entries, start_position=0)
            return self._fetch_by_id(cur, attendance_id)

    def merge_entries(
        self,
        *,
        attendance_id: int,
        entries: Sequence[AttendanceEntry],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 AS next_pos FROM attendance_entries WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            next_pos = int(r["next_pos"]) if r else 0

            # Existing rows keep their position; only the status is overwritten.
            self._insert_entries(cur, attendance_id, entries, start_position=next_pos)
            cur.execute(
                """
                UPDATE attendance_days
                SET is_holiday=0, holiday_reason=NULL, marked_by=%s, updated_at=%s
                WHERE attendance_id=%s
                """,
                (int(marked_by), now, int(attendance_id)),
            )
            return self._fetch_by_id(cur, attendance_id)

    def replace_entries(
        self,
        *,
        attendance_id: int,
        entries: Sequence[AttendanceEntry],
        is_holiday: bool,
        holiday_reason: Optional[str],
        marked_by: int,
        now: datetime,
    ) -> AttendanceDay:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_entries WHERE attendance_id=%s", (int(attendance_id),))
            self._insert_entries(cur, attendance_id, entries, start_position=0)
            cur.execute(
                """
                UPDATE attendance_days
                SET is_holiday=%s, holiday_reason=%s, marked_by=%s, updated_at=%s
                WHERE attendance_id=%s
                """,
                (int(is_holiday), holiday_reason, int(marked_by), now, int(attendance_id)),
            )
            return self._fetch_by_id(cur, attendance_id)

    def list_for_batch(self, coach_id: int, batch_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DAY_COLUMNS}
                FROM attendance_days d
                WHERE d.coach_id=%s AND d.batch_id=%s AND d.attendance_date BETWEEN %s AND %s
                ORDER BY d.attendance_date ASC
                """,
                (int(coach_id), int(batch_id), start, end),
            )
            return self._load_days(cur, fetchall(cur))

    def list_for_student(self, coach_id: int, student_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DAY_COLUMNS}
                FROM attendance_days d
                JOIN attendance_entries e ON e.attendance_id = d.attendance_id
                WHERE d.coach_id=%s AND e.student_id=%s AND d.attendance_date BETWEEN %s AND %s
                ORDER BY d.attendance_date ASC, d.attendance_id ASC
                """,
                (int(coach_id), int(student_id), start, end),
            )
            return self._load_days(cur, fetchall(cur))

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from src.coaching_center.coaching_center.attendance.model import AttendanceDay
from src.coaching_center.coaching_center.core.context import TenantContext
from src.coaching_center.coaching_center.core.enums import StudentStatus, TestStatus
from src.coaching_center.coaching_center.core.exceptions import DuplicateKeyError
from src.coaching_center.coaching_center.directory.model import Batch, Student
from src.coaching_center.coaching_center.marks.model import Test, TestMark

COACH_ID = 1
OTHER_COACH_ID = 2


class FakeDirectory:
    def __init__(self):
        self._batches: dict[int, Batch] = {}
        self._students: dict[int, Student] = {}

    def add_batch(self, batch_id, *, coach_id=COACH_ID, name=None, subject=None):
        b = Batch(batch_id=batch_id, coach_id=coach_id, batch_name=name or f"Batch {batch_id}", subject=subject)
        self._batches[batch_id] = b
        return b

    def add_student(self, student_id, *, batch_ids=(), coach_id=COACH_ID, status=StudentStatus.ACTIVE, first_name=None):
        s = Student(
            student_id=student_id,
            coach_id=coach_id,
            student_code=f"STU{student_id:03d}",
            first_name=first_name or f"First{student_id}",
            last_name=f"Last{student_id}",
            mobile_number=f"90000000{student_id:02d}",
            father_mobile_number=f"80000000{student_id:02d}",
            status=status,
            batch_ids=tuple(batch_ids),
        )
        self._students[student_id] = s
        return s

    def get_batch(self, coach_id, batch_id):
        b = self._batches.get(int(batch_id))
        return b if b and b.coach_id == coach_id else None

    def find_active_students(self, coach_id, batch_id):
        return [
            s
            for s in self._students.values()
            if s.coach_id == coach_id and s.is_active and int(batch_id) in s.batch_ids
        ]

    def get_student(self, coach_id, student_id):
        s = self._students.get(int(student_id))
        return s if s and s.coach_id == coach_id else None

    def get_students(self, coach_id, student_ids):
        ids = {int(x) for x in student_ids}
        return [s for sid, s in self._students.items() if sid in ids and s.coach_id == coach_id]

    def count_active_members(self, coach_id, batch_id, student_ids):
        members = {s.student_id for s in self.find_active_students(coach_id, batch_id)}
        return len({int(x) for x in student_ids} & members)


class FakeAttendanceRepo:
    def __init__(self):
        self._next_id = 1
        self.days: dict[int, AttendanceDay] = {}
        self.create_calls = 0
        # When set, the next create_day behaves as if a concurrent request inserted this day first.
        self.race_with: AttendanceDay | None = None

    def _key(self, d: AttendanceDay):
        return (d.coach_id, d.batch_id, d.attendance_date)

    def get_day(self, coach_id, batch_id, attendance_date):
        for d in self.days.values():
            if self._key(d) == (coach_id, int(batch_id), attendance_date):
                return d
        return None

    def create_day(self, *, coach_id, batch_id, attendance_date, entries, is_holiday, holiday_reason, marked_by, now):
        self.create_calls += 1
        if self.race_with is not None:
            competitor, self.race_with = self.race_with, None
            self.days[competitor.attendance_id] = competitor
            self._next_id = max(self._next_id, competitor.attendance_id + 1)
        if self.get_day(coach_id, batch_id, attendance_date) is not None:
            raise DuplicateKeyError("Duplicate attendance day")

        day = AttendanceDay(
            attendance_id=self._next_id,
            coach_id=coach_id,
            batch_id=batch_id,
            attendance_date=attendance_date,
            entries=tuple(entries),
            is_holiday=is_holiday,
            holiday_reason=holiday_reason,
            marked_by=marked_by,
            created_at=now,
            updated_at=now,
        )
        self.days[day.attendance_id] = day
        self._next_id += 1
        return day

    def merge_entries(self, *, attendance_id, entries, marked_by, now):
        day = self.days[attendance_id].merged_with(entries, marked_by=marked_by, updated_at=now)
        self.days[attendance_id] = day
        return day

    def replace_entries(self, *, attendance_id, entries, is_holiday, holiday_reason, marked_by, now):
        day = self.days[attendance_id].replaced_with(
            entries, is_holiday=is_holiday, holiday_reason=holiday_reason, marked_by=marked_by, updated_at=now
        )
        self.days[attendance_id] = day
        return day

    def list_for_batch(self, coach_id, batch_id, start: date, end: date):
        return sorted(
            (
                d
                for d in self.days.values()
                if d.coach_id == coach_id and d.batch_id == int(batch_id) and start <= d.attendance_date <= end
            ),
            key=lambda d: d.attendance_date,
        )

    def list_for_student(self, coach_id, student_id, start: date, end: date):
        return sorted(
            (
                d
                for d in self.days.values()
                if d.coach_id == coach_id
                and start <= d.attendance_date <= end
                and d.status_for(int(student_id)) is not None
            ),
            key=lambda d: d.attendance_date,
        )


class FakeTestRepo:
    def __init__(self):
        self._next_id = 1
        self.tests: dict[int, Test] = {}

    def create(self, *, coach_id, batch_id, definition, created_by, now):
        t = Test(
            test_id=self._next_id,
            coach_id=coach_id,
            batch_id=batch_id,
            test_name=definition.test_name,
            subject=definition.subject,
            test_date=definition.test_date,
            total_marks=definition.total_marks,
            passing_marks=definition.passing_marks,
            has_negative_marking=definition.has_negative_marking,
            negative_mark_per_wrong_answer=definition.negative_mark_per_wrong_answer,
            description=definition.description,
            status=TestStatus.ACTIVE,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.tests[t.test_id] = t
        self._next_id += 1
        return t

    def get(self, coach_id, test_id):
        t = self.tests.get(int(test_id))
        return t if t and t.coach_id == coach_id else None

    def get_many(self, coach_id, test_ids):
        ids = {int(x) for x in test_ids}
        return [t for tid, t in self.tests.items() if tid in ids and t.coach_id == coach_id]

    def list_for_batch(self, coach_id, batch_id, *, subject=None):
        rows = [
            t
            for t in self.tests.values()
            if t.coach_id == coach_id and t.batch_id == int(batch_id) and (subject is None or t.subject == subject)
        ]
        return sorted(rows, key=lambda t: (t.test_date, t.test_id), reverse=True)


class FakeMarkRepo:
    def __init__(self):
        self._next_id = 1
        self.marks: dict[int, TestMark] = {}
        self.rankings: dict[int, list] = {}
        self.race_with: TestMark | None = None

    def get(self, coach_id, test_id, student_id):
        for m in self.marks.values():
            if (m.coach_id, m.test_id, m.student_id) == (coach_id, int(test_id), int(student_id)):
                return m
        return None

    def create(self, *, coach_id, test_id, student_id, batch_id, marks_obtained, status, details, now):
        if self.race_with is not None:
            competitor, self.race_with = self.race_with, None
            self.marks[competitor.mark_id] = competitor
            self._next_id = max(self._next_id, competitor.mark_id + 1)
        if self.get(coach_id, test_id, student_id) is not None:
            raise DuplicateKeyError("Duplicate test marks")

        m = TestMark(
            mark_id=self._next_id,
            coach_id=coach_id,
            test_id=test_id,
            student_id=student_id,
            batch_id=batch_id,
            marks_obtained=marks_obtained,
            status=status,
            submitted_at=now,
            created_at=now,
            updated_at=now,
            correct_answers=details.correct_answers,
            wrong_answers=details.wrong_answers,
            attempted_questions=details.attempted_questions,
            time_taken=details.time_taken,
            remarks=details.remarks,
        )
        self.marks[m.mark_id] = m
        self._next_id += 1
        return m

    def update(self, *, mark_id, marks_obtained, status, details, now):
        m = replace(
            self.marks[mark_id],
            marks_obtained=marks_obtained,
            status=status,
            correct_answers=details.correct_answers,
            wrong_answers=details.wrong_answers,
            attempted_questions=details.attempted_questions,
            time_taken=details.time_taken,
            remarks=details.remarks,
            submitted_at=now,
            updated_at=now,
        )
        self.marks[mark_id] = m
        return m

    def list_for_test(self, coach_id, test_id):
        return [m for m in self.marks.values() if m.coach_id == coach_id and m.test_id == int(test_id)]

    def list_for_tests(self, coach_id, test_ids):
        ids = {int(x) for x in test_ids}
        return [m for m in self.marks.values() if m.coach_id == coach_id and m.test_id in ids]

    def list_for_student(self, coach_id, student_id):
        rows = [m for m in self.marks.values() if m.coach_id == coach_id and m.student_id == int(student_id)]
        return sorted(rows, key=lambda m: (m.created_at, m.mark_id), reverse=True)

    def save_rankings(self, coach_id, test_id, rankings):
        self.rankings[int(test_id)] = list(rankings)
        for r in rankings:
            m = self.get(coach_id, test_id, r.student_id)
            if m:
                self.marks[m.mark_id] = replace(m, rank=r.rank, percentile=r.percentile)


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture
def ctx():
    return TenantContext(coach_id=COACH_ID)


@pytest.fixture
def other_ctx():
    return TenantContext(coach_id=OTHER_COACH_ID)


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def attendance_repo():
    return FakeAttendanceRepo()


@pytest.fixture
def tests_repo():
    return FakeTestRepo()


@pytest.fixture
def marks_repo():
    return FakeMarkRepo()

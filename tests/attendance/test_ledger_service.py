from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.coaching_center.coaching_center.attendance.model import AttendanceDay, AttendanceEntry
from src.coaching_center.coaching_center.attendance.service import AttendanceLedgerService
from src.coaching_center.coaching_center.core.context import TenantContext
from src.coaching_center.coaching_center.core.enums import AttendanceStatus, StudentStatus
from src.coaching_center.coaching_center.core.exceptions import NotFoundError, ValidationError

P = AttendanceStatus.PRESENT
A = AttendanceStatus.ABSENT
H = AttendanceStatus.HOLIDAY

DAY = date(2026, 3, 2)


@pytest.fixture
def ledger(attendance_repo, directory):
    directory.add_batch(10)
    for sid in (101, 102, 103):
        directory.add_student(sid, batch_ids=[10])
    return AttendanceLedgerService(attendance_repo, directory)


def _mark(ledger, ctx, now, **statuses):
    entries = [{"studentId": int(k[1:]), "status": v.value} for k, v in statuses.items()]
    return ledger.mark_attendance(ctx, batch_id=10, date=DAY, entries=entries, now=now)


def test_first_mark_creates_record_with_only_supplied_entries(ledger, ctx, fixed_now):
    record = _mark(ledger, ctx, fixed_now, s101=P, s102=A)

    assert record.entries == (AttendanceEntry(101, P), AttendanceEntry(102, A))
    assert record.status_for(103) is None
    assert record.marked_by == ctx.coach_id
    assert record.created_at == record.updated_at == fixed_now


def test_disjoint_marks_merge_into_union(ledger, ctx, fixed_now, attendance_repo):
    _mark(ledger, ctx, fixed_now, s101=P)
    record = _mark(ledger, ctx, fixed_now + timedelta(minutes=5), s102=A, s103=P)

    assert record.status_map() == {101: P, 102: A, 103: P}
    assert [e.student_id for e in record.entries] == [101, 102, 103]
    assert len(attendance_repo.days) == 1


def test_overlapping_mark_keeps_latest_status_in_place(ledger, ctx, fixed_now):
    _mark(ledger, ctx, fixed_now, s101=P, s102=P)
    record = _mark(ledger, ctx, fixed_now, s102=A, s103=P)

    assert record.entries == (AttendanceEntry(101, P), AttendanceEntry(102, A), AttendanceEntry(103, P))


def test_duplicate_student_in_one_call_last_one_wins(ledger, ctx, fixed_now):
    record = ledger.mark_attendance(
        ctx,
        batch_id=10,
        date=DAY,
        entries=[{"studentId": 101, "status": "present"}, {"studentId": 101, "status": "absent"}],
        now=fixed_now,
    )

    assert record.entries == (AttendanceEntry(101, A),)


def test_remark_is_idempotent_but_advances_updated_at(ledger, ctx, fixed_now):
    first = _mark(ledger, ctx, fixed_now, s101=P, s102=A)
    later = fixed_now + timedelta(hours=1)
    second = _mark(ledger, ctx, later, s101=P, s102=A)

    assert second.entries == first.entries
    assert second.is_holiday == first.is_holiday
    assert second.updated_at == later
    assert second.created_at == fixed_now


def test_datetime_input_is_normalized_to_calendar_day(ledger, ctx, fixed_now, attendance_repo):
    ledger.mark_attendance(ctx, batch_id=10, date=datetime(2026, 3, 2, 8, 15), entries=[AttendanceEntry(101, P)], now=fixed_now)
    ledger.mark_attendance(ctx, batch_id=10, date="2026-03-02T18:40:00", entries=[AttendanceEntry(102, A)], now=fixed_now)

    assert len(attendance_repo.days) == 1
    assert attendance_repo.get_day(ctx.coach_id, 10, DAY).status_map() == {101: P, 102: A}


def test_holiday_replaces_entries_with_all_active_students(ledger, ctx, fixed_now, directory):
    directory.add_student(104, batch_ids=[10], status=StudentStatus.INACTIVE)
    _mark(ledger, ctx, fixed_now, s101=P)

    record = ledger.mark_holiday(ctx, batch_id=10, date=DAY, holiday_reason="Holi", now=fixed_now)

    assert record.is_holiday is True
    assert record.holiday_reason == "Holi"
    assert record.status_map() == {101: H, 102: H, 103: H}


def test_blank_holiday_reason_is_stored_as_none(ledger, ctx, fixed_now):
    record = ledger.mark_holiday(ctx, batch_id=10, date=DAY, holiday_reason="   ", now=fixed_now)

    assert record.holiday_reason is None


def test_mark_after_holiday_clears_flag_and_keeps_unmentioned_students_on_holiday(ledger, ctx, fixed_now):
    ledger.mark_holiday(ctx, batch_id=10, date=DAY, holiday_reason="Festival", now=fixed_now)

    record = _mark(ledger, ctx, fixed_now + timedelta(minutes=1), s102=P)

    assert record.is_holiday is False
    assert record.holiday_reason is None
    assert record.status_map() == {101: H, 102: P, 103: H}


def test_holiday_on_batch_without_active_students_is_rejected(attendance_repo, directory, ctx, fixed_now):
    directory.add_batch(20)
    ledger = AttendanceLedgerService(attendance_repo, directory)

    with pytest.raises(ValidationError):
        ledger.mark_holiday(ctx, batch_id=20, date=DAY, now=fixed_now)
    assert attendance_repo.days == {}


def test_unknown_batch_is_not_found(ledger, ctx, fixed_now):
    with pytest.raises(NotFoundError):
        ledger.mark_attendance(ctx, batch_id=99, date=DAY, entries=[AttendanceEntry(101, P)], now=fixed_now)


def test_other_coach_cannot_mark_batch(ledger, other_ctx, fixed_now):
    with pytest.raises(NotFoundError):
        ledger.mark_attendance(other_ctx, batch_id=10, date=DAY, entries=[AttendanceEntry(101, P)], now=fixed_now)


def test_student_outside_batch_rejects_whole_call(ledger, ctx, fixed_now, directory, attendance_repo):
    directory.add_student(201, batch_ids=[11])

    with pytest.raises(ValidationError):
        ledger.mark_attendance(
            ctx,
            batch_id=10,
            date=DAY,
            entries=[AttendanceEntry(101, P), AttendanceEntry(201, P)],
            now=fixed_now,
        )
    assert attendance_repo.days == {}


def test_empty_entries_rejected(ledger, ctx, fixed_now):
    with pytest.raises(ValidationError):
        ledger.mark_attendance(ctx, batch_id=10, date=DAY, entries=[], now=fixed_now)


def test_invalid_status_rejected(ledger, ctx, fixed_now):
    with pytest.raises(ValidationError):
        ledger.mark_attendance(ctx, batch_id=10, date=DAY, entries=[{"studentId": 101, "status": "late"}], now=fixed_now)


def test_concurrent_create_is_retried_as_merge(ledger, ctx, fixed_now, attendance_repo):
    attendance_repo.race_with = AttendanceDay(
        attendance_id=7,
        coach_id=ctx.coach_id,
        batch_id=10,
        attendance_date=DAY,
        entries=(AttendanceEntry(101, A),),
        is_holiday=False,
        holiday_reason=None,
        marked_by=ctx.coach_id,
        created_at=fixed_now,
        updated_at=fixed_now,
    )

    record = _mark(ledger, ctx, fixed_now + timedelta(seconds=1), s102=P)

    assert record.attendance_id == 7
    assert record.status_map() == {101: A, 102: P}
    assert len(attendance_repo.days) == 1


def test_actor_defaults_to_context_actor(ledger, fixed_now):
    assistant = TenantContext(coach_id=1, actor_id=55)
    record = ledger.mark_attendance(assistant, batch_id=10, date=DAY, entries=[AttendanceEntry(101, P)], now=fixed_now)

    assert record.marked_by == 55

from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import iso
from ..common.validators import require_int
from ..common.web import arg_int, arg_str, coach_required, current_context, json_body, ok
from ..core.constants import DEFAULT_DATE_VIEW_LIMIT, DEFAULT_PAGE, DEFAULT_REPORT_LIMIT
from ..container import Container
from .model import AttendanceDay


def _record_payload(record: AttendanceDay) -> dict:
    return {
        "attendanceId": record.attendance_id,
        "batchId": record.batch_id,
        "date": iso(record.attendance_date),
        "isHoliday": record.is_holiday,
        "holidayReason": record.holiday_reason,
        "totalStudents": len(record.entries),
        "attendance": [{"studentId": e.student_id, "status": e.status.value} for e in record.entries],
        "markedBy": record.marked_by,
        "markedAt": iso(record.updated_at),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @coach_required
    def attendance_mark():
        data = json_body()
        record = container.attendance_service.mark_attendance(
            current_context(),
            batch_id=require_int(data.get("batchId"), "batchId"),
            date=data.get("date"),
            entries=data.get("attendance") or [],
        )
        return ok({"message": "Attendance marked successfully", "attendance": _record_payload(record)})

    @app.route("/api/attendance/holiday", methods=["POST"], endpoint="attendance_holiday")
    @coach_required
    def attendance_holiday():
        data = json_body()
        record = container.attendance_service.mark_holiday(
            current_context(),
            batch_id=require_int(data.get("batchId"), "batchId"),
            date=data.get("date"),
            holiday_reason=data.get("holidayReason"),
        )
        return ok({"message": "Holiday marked successfully", "attendance": _record_payload(record)})

    @app.route("/api/attendance/date", methods=["GET"], endpoint="attendance_by_date")
    @coach_required
    def attendance_by_date():
        view = container.attendance_stats_service.get_date_view(
            current_context(),
            batch_id=arg_int("batchId"),
            date=arg_str("date", required=True),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_DATE_VIEW_LIMIT),
        )
        return ok(view.to_dict())

    @app.route("/api/attendance/absent-list", methods=["GET"], endpoint="attendance_absent_list")
    @coach_required
    def attendance_absent_list():
        absent = container.attendance_stats_service.get_absent_students(
            current_context(),
            batch_id=arg_int("batchId"),
            date=arg_str("date", required=True),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_DATE_VIEW_LIMIT),
        )
        return ok(absent.to_dict())

    @app.route("/api/attendance/student/monthly-count", methods=["GET"], endpoint="attendance_student_monthly")
    @coach_required
    def attendance_student_monthly():
        summary = container.attendance_stats_service.get_monthly_absent_count(
            current_context(),
            student_id=arg_int("studentId"),
            year=arg_int("year"),
            month=arg_int("month"),
        )
        return ok(summary.to_dict())

    @app.route("/api/attendance/monthly-report", methods=["GET"], endpoint="attendance_monthly_report")
    @coach_required
    def attendance_monthly_report():
        report = container.attendance_stats_service.get_monthly_report(
            current_context(),
            batch_id=arg_int("batchId"),
            year=arg_int("year"),
            month=arg_int("month"),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_REPORT_LIMIT),
        )
        return ok(report.to_dict())

    @app.route("/api/attendance/range", methods=["GET"], endpoint="attendance_range")
    @coach_required
    def attendance_range():
        result = container.attendance_stats_service.get_attendance_range(
            current_context(),
            batch_id=arg_int("batchId"),
            start_date=arg_str("startDate", required=True),
            end_date=arg_str("endDate", required=True),
        )
        return ok(result.to_dict())

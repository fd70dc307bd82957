from __future__ import annotations

import csv
import io
from typing import Optional

from flask import Flask, request

from ..common.web import arg_int, coach_required, current_context, ok
from ..container import Container
from .service import MonthlyExport

ATTENDANCE_FIELDS = [
    "studentId",
    "studentCode",
    "name",
    "mobile",
    "totalDays",
    "presentDays",
    "absentDays",
    "holidayDays",
    "attendancePercentage",
]

MARKS_FIELDS = [
    "studentId",
    "studentCode",
    "name",
    "testName",
    "subject",
    "date",
    "marksObtained",
    "totalMarks",
    "percentage",
]


def register(app: Flask, container: Container) -> None:
    def _optional_student() -> Optional[int]:
        return arg_int("studentId") if request.args.get("studentId") else None

    def _write_export_csv(*, export: MonthlyExport, filename: str):
        """Attendance section, blank line, then marks section."""

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=ATTENDANCE_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in export.attendance:
            writer.writerow(row)

        out.write("\r\n")
        writer = csv.DictWriter(out, fieldnames=MARKS_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in export.marks:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/reports/monthly-attendance", methods=["GET"], endpoint="reports_monthly_attendance")
    @coach_required
    def reports_monthly_attendance():
        report = container.report_service.monthly_attendance_report(
            current_context(),
            batch_id=arg_int("batchId"),
            year=arg_int("year"),
            month=arg_int("month"),
        )
        return ok({"report": report.to_dict()})

    @app.route("/api/reports/test-analysis", methods=["GET"], endpoint="reports_test_analysis")
    @coach_required
    def reports_test_analysis():
        analysis = container.report_service.test_analysis(current_context(), test_id=arg_int("testId"))
        return ok({"report": analysis.to_dict()})

    @app.route("/api/reports/monthly-export.csv", methods=["GET"], endpoint="reports_monthly_export_csv")
    @coach_required
    def reports_monthly_export_csv():
        export = container.report_service.monthly_export(
            current_context(),
            batch_id=arg_int("batchId"),
            year=arg_int("year"),
            month=arg_int("month"),
            student_id=_optional_student(),
        )
        filename = f"monthly_export_{export.batch_id}_{export.month.replace('-', '')}.csv"
        return _write_export_csv(export=export, filename=filename)

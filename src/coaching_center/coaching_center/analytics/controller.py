from __future__ import annotations

from flask import Flask

from ..common.web import arg_int, arg_str, coach_required, current_context, ok
from ..core.constants import DEFAULT_DATE_VIEW_LIMIT, DEFAULT_PAGE, DEFAULT_REPORT_LIMIT, DEFAULT_TIMESERIES_LIMIT
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/marks/history", methods=["GET"], endpoint="marks_history")
    @coach_required
    def marks_history():
        history = container.analytics_service.get_test_history(
            current_context(),
            student_id=arg_int("studentId"),
            subject=arg_str("subject"),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_DATE_VIEW_LIMIT),
        )
        return ok(history.to_dict())

    @app.route("/api/marks/subject-performance", methods=["GET"], endpoint="marks_subject_performance")
    @coach_required
    def marks_subject_performance():
        data = container.analytics_service.get_subject_performance(
            current_context(),
            student_id=arg_int("studentId"),
            subject=arg_str("subject", required=True),
        )
        return ok(data)

    @app.route("/api/marks/test", methods=["GET"], endpoint="marks_test_detail")
    @coach_required
    def marks_test_detail():
        analysis, page = container.analytics_service.get_test_results(
            current_context(),
            test_id=arg_int("testId"),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_REPORT_LIMIT),
        )
        return ok(analysis.to_dict(page))

    @app.route("/api/marks/batch-analysis", methods=["GET"], endpoint="marks_batch_analysis")
    @coach_required
    def marks_batch_analysis():
        analysis, page = container.analytics_service.get_batch_test_analysis(
            current_context(),
            batch_id=arg_int("batchId"),
            test_id=arg_int("testId"),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_REPORT_LIMIT),
        )
        return ok(analysis.to_dict(page))

    @app.route("/api/marks/subject-analysis", methods=["GET"], endpoint="marks_subject_analysis")
    @coach_required
    def marks_subject_analysis():
        analysis = container.analytics_service.get_subject_analysis(
            current_context(),
            batch_id=arg_int("batchId"),
            subject=arg_str("subject", required=True),
        )
        return ok(analysis.to_dict())

    # Student dashboard charts.

    @app.route("/api/performance/attendance-monthly", methods=["GET"], endpoint="performance_attendance_monthly")
    @coach_required
    def performance_attendance_monthly():
        data = container.attendance_stats_service.get_monthly_attendance_percentage(
            current_context(),
            student_id=arg_int("studentId"),
            year=arg_int("year"),
            month=arg_int("month"),
        )
        return ok({"data": data})

    @app.route("/api/performance/marks-over-time", methods=["GET"], endpoint="performance_marks_over_time")
    @coach_required
    def performance_marks_over_time():
        data = container.analytics_service.get_marks_over_time(
            current_context(),
            student_id=arg_int("studentId"),
            limit=arg_int("limit", default=DEFAULT_TIMESERIES_LIMIT),
        )
        return ok({"data": data})

    @app.route("/api/performance/subject-wise", methods=["GET"], endpoint="performance_subject_wise")
    @coach_required
    def performance_subject_wise():
        summary = container.analytics_service.get_subject_wise_marks(
            current_context(),
            student_id=arg_int("studentId"),
        )
        return ok({"summary": summary})

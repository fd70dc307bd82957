from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import Flask

from src.coaching_center.coaching_center.analytics.controller import register as register_analytics
from src.coaching_center.coaching_center.analytics.service import ScoringAnalyticsService
from src.coaching_center.coaching_center.attendance.controller import register as register_attendance
from src.coaching_center.coaching_center.attendance.service import AttendanceLedgerService
from src.coaching_center.coaching_center.attendance.stats_service import AttendanceStatsService
from src.coaching_center.coaching_center.marks.controller import register as register_marks
from src.coaching_center.coaching_center.marks.service import MarksService
from src.coaching_center.coaching_center.reports.controller import register as register_reports
from src.coaching_center.coaching_center.reports.service import ReportService


@pytest.fixture
def app(attendance_repo, tests_repo, marks_repo, directory):
    directory.add_batch(10)
    directory.add_student(101, batch_ids=[10], first_name="Asha")
    directory.add_student(102, batch_ids=[10], first_name="Ravi")

    stats = AttendanceStatsService(attendance_repo, directory)
    analytics = ScoringAnalyticsService(tests_repo, marks_repo, directory)
    container = SimpleNamespace(
        directory=directory,
        tests_repo=tests_repo,
        marks_repo=marks_repo,
        attendance_service=AttendanceLedgerService(attendance_repo, directory),
        attendance_stats_service=stats,
        marks_service=MarksService(tests_repo, marks_repo, directory),
        analytics_service=analytics,
        report_service=ReportService(stats, analytics, tests_repo, marks_repo, directory),
    )

    app = Flask(__name__)
    app.secret_key = "test"
    app.config["TESTING"] = True
    register_attendance(app, container)
    register_marks(app, container)
    register_analytics(app, container)
    register_reports(app, container)
    return app


@pytest.fixture
def client(app):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["coach_id"] = 1
    return c


def _create_test(client, **overrides):
    body = {"batchId": 10, "testName": "Mock 1", "subject": "Physics", "testDate": "2026-03-05", "totalMarks": 100, "passingMarks": 40}
    body.update(overrides)
    return client.post("/api/marks/test", json=body)


def test_requests_without_coach_are_unauthorized(app):
    resp = app.test_client().get("/api/attendance/date?batchId=10&date=2026-03-02")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_mark_then_read_date_view(client):
    resp = client.post(
        "/api/attendance/mark",
        json={"batchId": 10, "date": "2026-03-02", "attendance": [{"studentId": 101, "status": "present"}]},
    )
    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["attendance"] == [{"studentId": 101, "status": "present"}]

    view = client.get("/api/attendance/date?batchId=10&date=2026-03-02").get_json()

    assert view["success"] is True
    assert view["marked"] is True
    assert view["attendance"][0]["studentId"] == 101


def test_holiday_then_monthly_report(client):
    client.post("/api/attendance/holiday", json={"batchId": 10, "date": "2026-03-03", "holidayReason": "Holi"})

    body = client.get("/api/attendance/monthly-report?batchId=10&year=2026&month=3").get_json()

    assert body["batchStatistics"]["totalDays"] == 1
    assert {r["holidayDays"] for r in body["studentAttendance"]} == {1}


def test_unknown_batch_maps_to_404(client):
    resp = client.post(
        "/api/attendance/mark",
        json={"batchId": 99, "date": "2026-03-02", "attendance": [{"studentId": 101, "status": "present"}]},
    )

    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Batch not found"


def test_validation_error_maps_to_400(client):
    resp = client.post(
        "/api/attendance/mark",
        json={"batchId": 10, "date": "2026-03-02", "attendance": [{"studentId": 101, "status": "late"}]},
    )

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_missing_query_parameter_maps_to_400(client):
    resp = client.get("/api/attendance/date?date=2026-03-02")

    assert resp.status_code == 400
    assert "batchId" in resp.get_json()["message"]


def test_create_test_and_add_marks(client):
    created = _create_test(client)
    assert created.status_code == 201
    test_id = created.get_json()["test"]["testId"]

    saved = client.post("/api/marks/add", json={"testId": test_id, "studentId": 101, "marksObtained": 72})
    marks = saved.get_json()["marks"]

    assert marks["status"] == "passed"
    assert marks["percentage"] == 72.0


def test_batch_analysis_endpoint(client):
    test_id = _create_test(client).get_json()["test"]["testId"]
    client.post("/api/marks/add", json={"testId": test_id, "studentId": 101, "marksObtained": 30})
    client.post("/api/marks/add", json={"testId": test_id, "studentId": 102, "marksObtained": 90})

    body = client.get(f"/api/marks/batch-analysis?batchId=10&testId={test_id}").get_json()

    assert body["statistics"]["averageScore"] == 60.0
    assert body["statistics"]["passPercentage"] == 50.0
    assert [r["studentId"] for r in body["results"]] == [102, 101]


def test_monthly_export_is_csv(client):
    client.post(
        "/api/attendance/mark",
        json={"batchId": 10, "date": "2026-03-02", "attendance": [{"studentId": 101, "status": "present"}]},
    )

    resp = client.get("/api/reports/monthly-export.csv?batchId=10&year=2026&month=3")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attachment" in resp.headers["Content-Disposition"]
    text = resp.data.decode("utf-8-sig")
    assert text.startswith("studentId,studentCode,name")
    assert "testName" in text


@pytest.mark.parametrize("record", [101, "101", None, [101, "present"]])
def test_attendance_record_that_is_not_an_object_maps_to_400(client, record):
    resp = client.post("/api/attendance/mark", json={"batchId": 10, "date": "2026-03-02", "attendance": [record]})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Each attendance record must be an object"


def test_non_integer_student_id_is_reported_as_such(client):
    resp = client.post(
        "/api/attendance/mark",
        json={"batchId": 10, "date": "2026-03-02", "attendance": [{"studentId": "abc", "status": "present"}]},
    )

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Student ID must be an integer"


def test_negative_marking_flag_must_be_boolean(client, tests_repo):
    off = _create_test(client, hasNegativeMarking="false", negativeMarkPerWrongAnswer=0.25)
    on = _create_test(client, hasNegativeMarking=True, negativeMarkPerWrongAnswer=0.25)
    bad = _create_test(client, hasNegativeMarking="maybe")

    assert bad.status_code == 400
    off_test = tests_repo.tests[off.get_json()["test"]["testId"]]
    on_test = tests_repo.tests[on.get_json()["test"]["testId"]]
    assert (off_test.has_negative_marking, off_test.negative_mark_per_wrong_answer) == (False, None)
    assert (on_test.has_negative_marking, on_test.negative_mark_per_wrong_answer) == (True, 0.25)

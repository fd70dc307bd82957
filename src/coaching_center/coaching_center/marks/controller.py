from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import iso
from ..common.numbers import percentage
from ..common.validators import optional_bool, require_int
from ..common.web import arg_int, coach_required, current_context, json_body, ok
from ..core.constants import DEFAULT_PAGE, DEFAULT_REPORT_LIMIT
from ..container import Container
from .model import NewTest


def register(app: Flask, container: Container) -> None:
    @app.route("/api/marks/test", methods=["POST"], endpoint="marks_add_test")
    @coach_required
    def marks_add_test():
        data = json_body()
        definition = NewTest(
            test_name=data.get("testName") or "",
            subject=data.get("subject") or "",
            test_date=data.get("testDate"),
            total_marks=data.get("totalMarks"),
            passing_marks=data.get("passingMarks"),
            has_negative_marking=optional_bool(data.get("hasNegativeMarking"), "hasNegativeMarking"),
            negative_mark_per_wrong_answer=data.get("negativeMarkPerWrongAnswer"),
            description=data.get("description"),
        )
        test = container.marks_service.add_test(
            current_context(),
            batch_id=require_int(data.get("batchId"), "batchId"),
            definition=definition,
        )
        return ok({"message": "Test created successfully", "test": test.summary()}, 201)

    @app.route("/api/marks/add", methods=["POST"], endpoint="marks_add")
    @coach_required
    def marks_add():
        data = json_body()
        mark = container.marks_service.add_marks(
            current_context(),
            test_id=require_int(data.get("testId"), "testId"),
            student_id=require_int(data.get("studentId"), "studentId"),
            marks_obtained=data.get("marksObtained"),
            status=data.get("status"),
            correct_answers=data.get("correctAnswers"),
            wrong_answers=data.get("wrongAnswers"),
            attempted_questions=data.get("attemptedQuestions"),
            time_taken=data.get("timeTaken"),
            remarks=data.get("remarks"),
        )
        test = container.tests_repo.get(mark.coach_id, mark.test_id)
        total = test.total_marks if test else 0
        return ok(
            {
                "message": "Marks saved successfully",
                "marks": {
                    "markId": mark.mark_id,
                    "testId": mark.test_id,
                    "studentId": mark.student_id,
                    "marksObtained": mark.marks_obtained,
                    "totalMarks": total,
                    "percentage": percentage(mark.marks_obtained, total),
                    "status": mark.status.value,
                    "savedAt": iso(mark.updated_at),
                },
            }
        )

    @app.route("/api/marks/batch-tests", methods=["GET"], endpoint="marks_batch_tests")
    @coach_required
    def marks_batch_tests():
        batch, page = container.marks_service.list_batch_tests(
            current_context(),
            batch_id=arg_int("batchId"),
            page=arg_int("page", default=DEFAULT_PAGE),
            limit=arg_int("limit", default=DEFAULT_REPORT_LIMIT),
        )
        return ok(
            {
                "batch": {"batchId": batch.batch_id, "batchName": batch.batch_name},
                "tests": [t.summary() for t in page.items],
                "totalTests": page.total,
                **page.meta(),
            }
        )


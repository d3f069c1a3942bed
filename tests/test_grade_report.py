from __future__ import annotations

import pytest

from conftest import enroll, make_question, make_quiz
from classroom_app.constants import store_constants
from classroom_app.constants.ui_constants import GRADE_REPORT_FAILED_MESSAGE
from classroom_app.core.errors import CollaboratorFailure, NotFoundError
from classroom_app.core.models import QuizResultKey
from classroom_app.core.services.grade_report import ASCENDING, DESCENDING, GradeReport

CLASS_ID = "class-1"


def _add_assignment(store, title: str, points: float) -> str:
    return store.add_document(
        store_constants.ASSIGNMENTS,
        {"class_id": CLASS_ID, "title": title, "points": points},
    )


def _grade(store, student_id: str, assignment_id: str, grade: float | None) -> None:
    store.add_document(
        store_constants.SUBMISSIONS,
        {
            "class_id": CLASS_ID,
            "student_id": student_id,
            "assignment_id": assignment_id,
            "grade": grade,
            "status": "graded" if grade is not None else "submitted",
        },
    )


def _quiz_result(store, quiz_id: str, student_id: str, score: int, total: int) -> None:
    store.set_document(
        store_constants.QUIZ_RESULTS,
        QuizResultKey(quiz_id, student_id).document_id,
        {
            "quiz_id": quiz_id,
            "user_id": student_id,
            "score": score,
            "total_questions": total,
            "answers": {},
        },
    )


@pytest.fixture
def populated(store, services):
    enroll(store, CLASS_ID, "a", "Ada", "Lovelace")
    enroll(store, CLASS_ID, "b", "Blaise", "Pascal")
    enroll(store, CLASS_ID, "c", "Carl", "Gauss")
    essay = _add_assignment(store, "Essay", 20)
    _grade(store, "a", essay, 12)
    _grade(store, "b", essay, 6)
    _grade(store, "c", essay, 15)
    quiz = services.quizzes.create_quiz(make_quiz(class_id=CLASS_ID))
    _quiz_result(store, quiz.id, "a", 3, 3)
    _quiz_result(store, quiz.id, "b", 3, 3)
    return {"essay": essay, "quiz": quiz.id}


def test_totals_and_max_score(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    assert report.compute_total_score("a") == 15
    assert report.compute_total_score("b") == 9
    assert report.compute_total_score("c") == 15
    assert report.compute_max_score() == 23


def test_descending_sort_is_stable_for_ties(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    ordered = [s.id for s in report.sort_by_total(DESCENDING)]
    assert ordered == ["a", "c", "b"]

    ordered = [s.id for s in report.sort_by_total(ASCENDING)]
    assert ordered == ["b", "a", "c"]


def test_unknown_sort_direction_is_rejected(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    with pytest.raises(ValueError):
        report.sort_by_total("sideways")


def test_search_matches_full_name_case_insensitively(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    assert [s.id for s in report.filter_by_search_term("ADA LOVE")] == ["a"]
    assert [s.id for s in report.filter_by_search_term("a")] == ["a", "b", "c"]
    assert report.filter_by_search_term("zzz") == []
    assert len(report.filter_by_search_term("  ")) == 3


def test_missing_grade_displays_differently_from_zero(store, populated):
    homework = _add_assignment(store, "Homework", 5)
    _grade(store, "a", homework, 0)
    _grade(store, "b", homework, None)
    report = GradeReport.load(store, CLASS_ID)

    assert report.assignment_grade("a", homework).display == "0"
    assert report.assignment_grade("b", homework).display == "-"
    assert report.assignment_grade("c", homework).display == "-"
    assert report.quiz_score("c", populated["quiz"]).display == "-"
    assert report.compute_total_score("b") == 9


def test_rows_combine_search_and_sort(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    rows = report.rows(search_term="a", direction=DESCENDING)

    assert [row.student_id for row in rows] == ["a", "c", "b"]
    assert rows[0].student_name == "Ada Lovelace"
    assert rows[0].max_score == 23
    assert rows[0].percentage == pytest.approx(15 / 23 * 100)
    assert rows[0].quiz_cells[populated["quiz"]].value == 3


def test_empty_class_has_no_percentage(store):
    report = GradeReport.load(store, "empty-class")

    assert report.students == []
    assert report.compute_max_score() == 0
    assert report.rows() == []


def test_delete_requires_confirmation(store, populated):
    report = GradeReport.load(store, CLASS_ID)
    seen = []

    def decline(warning: str) -> bool:
        seen.append(warning)
        return False

    assert report.delete_quiz_result("a", populated["quiz"], confirm=decline) is False
    assert "Ada Lovelace" in seen[0]
    assert "Fractions" in seen[0]
    document_id = QuizResultKey(populated["quiz"], "a").document_id
    assert store.get_document(store_constants.QUIZ_RESULTS, document_id) is not None


def test_confirmed_delete_removes_result(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    assert report.delete_quiz_result("a", populated["quiz"], confirm=lambda _: True)

    document_id = QuizResultKey(populated["quiz"], "a").document_id
    assert store.get_document(store_constants.QUIZ_RESULTS, document_id) is None
    assert report.quiz_score("a", populated["quiz"]).value is None
    assert report.compute_total_score("a") == 12


def test_delete_for_unknown_student_is_not_found(store, populated):
    report = GradeReport.load(store, CLASS_ID)

    with pytest.raises(NotFoundError):
        report.delete_quiz_result("ghost", populated["quiz"], confirm=lambda _: True)


def test_max_score_counts_one_point_per_question(store, services):
    services.quizzes.create_quiz(
        make_quiz(class_id=CLASS_ID, questions=[make_question("only")])
    )
    _add_assignment(store, "Lab", 7.5)

    assert GradeReport.load(store, CLASS_ID).compute_max_score() == 8.5


def test_load_failure_is_reported(failing_store):
    failing_store.failing.add("query")

    with pytest.raises(CollaboratorFailure) as excinfo:
        GradeReport.load(failing_store, CLASS_ID)

    assert str(excinfo.value) == GRADE_REPORT_FAILED_MESSAGE

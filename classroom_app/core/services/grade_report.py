"""Per-classroom grade aggregation over assignments and quizzes."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from classroom_app.constants import store_constants
from classroom_app.constants.ui_constants import (
    CONFIRM_DELETE_RESULT_TEMPLATE,
    GRADE_REPORT_FAILED_MESSAGE,
    NOT_GRADED_PLACEHOLDER,
)
from classroom_app.core.document_mapping import (
    assignment_from_document,
    quiz_from_document,
    student_from_document,
)
from classroom_app.core.errors import CollaboratorFailure, NotFoundError
from classroom_app.core.models import Assignment, Quiz, QuizResultKey, Student
from classroom_app.core.quiz_review import percentage
from classroom_app.core.services.document_store import DocumentStore, Where

logger = logging.getLogger(__name__)

ASCENDING = "ascending"
DESCENDING = "descending"


@dataclass(slots=True)
class GradeCell:
    """One assignment grade or quiz score; ``None`` means nothing recorded."""

    value: float | None

    @property
    def display(self) -> str:
        if self.value is None:
            return NOT_GRADED_PLACEHOLDER
        return f"{self.value:g}"


@dataclass(slots=True)
class GradeRow:
    """Immutable snapshot of one student's line in the report."""

    student_id: str
    student_name: str
    assignment_cells: dict[str, GradeCell]
    quiz_cells: dict[str, GradeCell]
    total_score: float
    max_score: float
    percentage: float | None


class GradeReport:
    """Aggregates every student's assignment grades and quiz scores.

    The report is a snapshot taken by :meth:`load`. All derivations are pure
    reads over that snapshot; :meth:`delete_quiz_result` is the only write.
    A missing grade or quiz attempt aggregates as 0, yet its cell keeps
    ``None`` so it displays differently from a recorded 0.
    """

    def __init__(
        self,
        store: DocumentStore,
        class_id: str,
        students: list[Student],
        assignments: list[Assignment],
        quizzes: list[Quiz],
        grades: dict[str, dict[str, float | None]],
        quiz_scores: dict[str, dict[str, int]],
    ) -> None:
        self._store = store
        self.class_id = class_id
        self.students = students
        self.assignments = assignments
        self.quizzes = quizzes
        self._grades = grades
        self._quiz_scores = quiz_scores

    @classmethod
    def load(cls, store: DocumentStore, class_id: str) -> "GradeReport":
        """Fetch everything the report needs; any failure aborts the whole load."""
        try:
            students = _fetch_students(store, class_id)
            assignments = [
                assignment_from_document(document)
                for document in store.query(
                    store_constants.ASSIGNMENTS, [Where("class_id", "==", class_id)]
                )
            ]
            quizzes = [
                quiz_from_document(document)
                for document in store.query(
                    store_constants.QUIZZES,
                    [Where("class_id", "==", class_id)],
                    order_by="order",
                )
            ]
            grades = _fetch_grades(store, class_id)
            quiz_scores = _fetch_quiz_scores(store, [quiz.id for quiz in quizzes])
        except CollaboratorFailure as exc:
            logger.error("Failed to load grade report for class %s: %s", class_id, exc)
            raise CollaboratorFailure(GRADE_REPORT_FAILED_MESSAGE) from exc
        return cls(store, class_id, students, assignments, quizzes, grades, quiz_scores)

    # --- Derivations ---

    def assignment_grade(self, student_id: str, assignment_id: str) -> GradeCell:
        return GradeCell(self._grades.get(student_id, {}).get(assignment_id))

    def quiz_score(self, student_id: str, quiz_id: str) -> GradeCell:
        return GradeCell(self._quiz_scores.get(student_id, {}).get(quiz_id))

    def compute_total_score(self, student_id: str) -> float:
        student_grades = self._grades.get(student_id, {})
        student_scores = self._quiz_scores.get(student_id, {})
        assignment_total = sum(
            student_grades.get(assignment.id) or 0 for assignment in self.assignments
        )
        quiz_total = sum(student_scores.get(quiz.id) or 0 for quiz in self.quizzes)
        return assignment_total + quiz_total

    def compute_max_score(self) -> float:
        """Every assignment's points plus one point per quiz question."""
        assignment_max = sum(assignment.points for assignment in self.assignments)
        quiz_max = sum(len(quiz.questions) for quiz in self.quizzes)
        return assignment_max + quiz_max

    def filter_by_search_term(self, term: str) -> list[Student]:
        needle = term.strip().lower()
        if not needle:
            return list(self.students)
        return [
            student
            for student in self.students
            if needle in f"{student.first_name} {student.last_name}".lower()
        ]

    def sort_by_total(
        self,
        direction: str = ASCENDING,
        students: list[Student] | None = None,
    ) -> list[Student]:
        """Stable sort by total score; ties keep their relative order."""
        if direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unknown sort direction '{direction}'.")
        candidates = self.students if students is None else students
        return sorted(
            candidates,
            key=lambda student: self.compute_total_score(student.id),
            reverse=direction == DESCENDING,
        )

    def rows(self, search_term: str = "", direction: str | None = None) -> list[GradeRow]:
        students = self.filter_by_search_term(search_term)
        if direction is not None:
            students = self.sort_by_total(direction, students)
        max_score = self.compute_max_score()
        rows: list[GradeRow] = []
        for student in students:
            total = self.compute_total_score(student.id)
            rows.append(
                GradeRow(
                    student_id=student.id,
                    student_name=student.full_name,
                    assignment_cells={
                        a.id: self.assignment_grade(student.id, a.id) for a in self.assignments
                    },
                    quiz_cells={q.id: self.quiz_score(student.id, q.id) for q in self.quizzes},
                    total_score=total,
                    max_score=max_score,
                    percentage=percentage(total, max_score),
                )
            )
        return rows

    # --- Mutation ---

    def delete_warning(self, student_id: str, quiz_id: str) -> str:
        student = next((s for s in self.students if s.id == student_id), None)
        quiz = next((q for q in self.quizzes if q.id == quiz_id), None)
        if student is None:
            raise NotFoundError("Student", student_id)
        if quiz is None:
            raise NotFoundError("Quiz", quiz_id)
        return CONFIRM_DELETE_RESULT_TEMPLATE.format(
            quiz_title=quiz.title, student_name=student.full_name
        )

    def delete_quiz_result(
        self,
        student_id: str,
        quiz_id: str,
        confirm: Callable[[str], bool],
    ) -> bool:
        """Void a quiz attempt so the student can retake it.

        ``confirm`` receives the warning text and must return True before the
        result is deleted. Returns whether the deletion happened.
        """
        warning = self.delete_warning(student_id, quiz_id)
        if not confirm(warning):
            return False
        self._store.delete_document(
            store_constants.QUIZ_RESULTS, QuizResultKey(quiz_id, student_id).document_id
        )
        self._quiz_scores.get(student_id, {}).pop(quiz_id, None)
        logger.info("Voided quiz %s result for student %s", quiz_id, student_id)
        return True


def _fetch_students(store: DocumentStore, class_id: str) -> list[Student]:
    enrollments = store.query(
        store_constants.CLASS_ENROLLMENTS, [Where("class_id", "==", class_id)]
    )
    student_ids = [enrollment["student_id"] for enrollment in enrollments]
    if not student_ids:
        return []
    documents = store.query(store_constants.STUDENTS, [Where("id", "in", student_ids)])
    by_id = {document["id"]: student_from_document(document) for document in documents}
    return [by_id[student_id] for student_id in student_ids if student_id in by_id]


def _fetch_grades(store: DocumentStore, class_id: str) -> dict[str, dict[str, float | None]]:
    grades: dict[str, dict[str, float | None]] = {}
    for submission in store.query(
        store_constants.SUBMISSIONS, [Where("class_id", "==", class_id)]
    ):
        grade = submission.get("grade")
        grades.setdefault(submission["student_id"], {})[submission["assignment_id"]] = (
            float(grade) if grade is not None else None
        )
    return grades


def _fetch_quiz_scores(store: DocumentStore, quiz_ids: list[str]) -> dict[str, dict[str, int]]:
    if not quiz_ids:
        return {}
    scores: dict[str, dict[str, int]] = {}
    for result in store.query(store_constants.QUIZ_RESULTS, [Where("quiz_id", "in", quiz_ids)]):
        scores.setdefault(result["user_id"], {})[result["quiz_id"]] = int(result["score"])
    return scores

"""Assignments, student submissions and teacher grading."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable

from classroom_app.constants import store_constants
from classroom_app.constants.ui_constants import (
    RETURNED_FOR_REVISION_MESSAGE,
    SUBMISSION_LOCKED_MESSAGE,
)
from classroom_app.core.document_mapping import (
    assignment_from_document,
    assignment_to_document,
    submission_from_document,
)
from classroom_app.core.errors import NotFoundError, ValidationFailure
from classroom_app.core.models import Assignment, Submission, SubmissionStatus
from classroom_app.core.quiz_review import percentage
from classroom_app.core.services.blob_store import BlobStore
from classroom_app.core.services.document_store import Document, DocumentStore, Where

logger = logging.getLogger(__name__)


class AssignmentService:
    def __init__(
        self,
        store: DocumentStore,
        blobs: BlobStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._blobs = blobs
        self._clock = clock

    # --- Assignments ---

    def create_assignment(self, assignment: Assignment) -> Assignment:
        title = assignment.title.strip()
        if not title:
            raise ValidationFailure("Assignment title must not be empty.")
        if assignment.points <= 0:
            raise ValidationFailure("Assignment points must be greater than zero.")
        assignment.title = title
        assignment.created_at = self._clock()
        assignment.id = self._store.add_document(
            store_constants.ASSIGNMENTS, assignment_to_document(assignment)
        )
        logger.info("Created assignment %s in class %s", assignment.id, assignment.class_id)
        return assignment

    def get_assignment(self, assignment_id: str, class_id: str | None = None) -> Assignment:
        """Return the assignment, treating one of another class as missing."""
        document = self._store.get_document(store_constants.ASSIGNMENTS, assignment_id)
        if document is None or (class_id is not None and document.get("class_id") != class_id):
            raise NotFoundError("Assignment", assignment_id)
        return assignment_from_document(document)

    def list_assignments(self, class_id: str) -> list[Assignment]:
        documents = self._store.query(
            store_constants.ASSIGNMENTS,
            [Where("class_id", "==", class_id)],
            order_by="created_at",
            descending=True,
        )
        return [assignment_from_document(document) for document in documents]

    def delete_assignment(self, assignment_id: str, class_id: str | None = None) -> None:
        if class_id is not None:
            self.get_assignment(assignment_id, class_id)
        self._store.delete_document(store_constants.ASSIGNMENTS, assignment_id)

    # --- Submissions ---

    def find_submission(self, assignment_id: str, student_id: str) -> Submission | None:
        matches = self._store.query(
            store_constants.SUBMISSIONS,
            [
                Where("assignment_id", "==", assignment_id),
                Where("student_id", "==", student_id),
            ],
        )
        return submission_from_document(matches[0]) if matches else None

    def list_submissions(self, assignment_id: str) -> list[Submission]:
        documents = self._store.query(
            store_constants.SUBMISSIONS, [Where("assignment_id", "==", assignment_id)]
        )
        return [submission_from_document(document) for document in documents]

    def submit_assignment(
        self,
        student_id: str,
        assignment_id: str,
        file_name: str | None = None,
        data: bytes | None = None,
        note: str | None = None,
        class_id: str | None = None,
    ) -> Submission:
        """Create the student's submission, or replace the one already handed in.

        Graded work is locked until the teacher returns it for revision.
        """
        note = note.strip() if note else None
        if data is None and not note:
            raise ValidationFailure("Please attach a file or write a note.")
        if data is not None and not (file_name and file_name.strip()):
            raise ValidationFailure("An uploaded file needs a name.")
        assignment = self.get_assignment(assignment_id, class_id)
        existing = self.find_submission(assignment.id, student_id)
        if existing is not None and existing.status is SubmissionStatus.GRADED:
            raise ValidationFailure(SUBMISSION_LOCKED_MESSAGE)

        fields: Document = {
            "assignment_id": assignment.id,
            "student_id": student_id,
            "class_id": assignment.class_id,
            "note": note,
            "status": SubmissionStatus.SUBMITTED.value,
            "submitted_at": self._clock(),
        }
        if data is not None:
            path = (
                f"submissions/{assignment.class_id}/{assignment.id}/{student_id}/"
                f"{file_name.strip()}"
            )
            fields["file_url"] = self._blobs.upload(path, data)
            fields["file_name"] = file_name.strip()

        if existing is None:
            submission_id = self._store.add_document(store_constants.SUBMISSIONS, fields)
        else:
            submission_id = existing.id
            self._store.update_document(store_constants.SUBMISSIONS, submission_id, fields)
        logger.info("Student %s submitted assignment %s", student_id, assignment.id)
        return self._require_submission(submission_id)

    def grade_submission(
        self,
        submission_id: str,
        grade: float,
        feedback: str | None = None,
    ) -> Submission:
        """Record a grade between 0 and the assignment's points.

        Grade, feedback and status go out in a single document update so a
        failure never leaves a graded value with a stale status.
        """
        submission = self._require_submission(submission_id)
        assignment = self.get_assignment(submission.assignment_id)
        if not 0 <= grade <= assignment.points:
            raise ValidationFailure(
                f"Please enter a valid grade between 0 and {assignment.points:g}."
            )
        self._store.update_document(
            store_constants.SUBMISSIONS,
            submission_id,
            {
                "grade": grade,
                "feedback": (feedback or "").strip(),
                "status": SubmissionStatus.GRADED.value,
            },
        )
        return self._require_submission(submission_id)

    def return_submission(self, submission_id: str) -> Submission:
        """Send work back for revision; the grade is cleared so it no longer counts."""
        self._require_submission(submission_id)
        self._store.update_document(
            store_constants.SUBMISSIONS,
            submission_id,
            {
                "status": SubmissionStatus.RETURNED.value,
                "grade": None,
                "feedback": RETURNED_FOR_REVISION_MESSAGE,
            },
        )
        return self._require_submission(submission_id)

    def grading_progress(self, assignment_id: str) -> float | None:
        """Percentage of submissions that are graded, or None without submissions."""
        submissions = self.list_submissions(assignment_id)
        graded = sum(1 for s in submissions if s.status is SubmissionStatus.GRADED)
        return percentage(graded, len(submissions))

    def _require_submission(self, submission_id: str) -> Submission:
        document = self._store.get_document(store_constants.SUBMISSIONS, submission_id)
        if document is None:
            raise NotFoundError("Submission", submission_id)
        return submission_from_document(document)

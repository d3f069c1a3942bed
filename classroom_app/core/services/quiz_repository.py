"""Service for managing the quizzes of a classroom and their questions."""

from __future__ import annotations

import logging

from classroom_app.constants import store_constants
from classroom_app.constants.quiz_constants import (
    MAX_OPTIONS_PER_QUESTION,
    MIN_OPTIONS_PER_QUESTION,
)
from classroom_app.core.document_mapping import (
    question_to_document,
    quiz_from_document,
    quiz_to_document,
)
from classroom_app.core.errors import NotFoundError, ValidationFailure
from classroom_app.core.models import Quiz, QuizOption, QuizQuestion
from classroom_app.core.services.document_store import BatchUpdate, DocumentStore, Where

logger = logging.getLogger(__name__)


class QuizRepository:
    """Validates and persists quizzes in the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_quiz(self, quiz_id: str) -> Quiz | None:
        document = self._store.get_document(store_constants.QUIZZES, quiz_id)
        return quiz_from_document(document) if document is not None else None

    def require_quiz(self, quiz_id: str, class_id: str | None = None) -> Quiz:
        """Return the quiz, treating a quiz of another class as missing."""
        quiz = self.get_quiz(quiz_id)
        if quiz is None or (class_id is not None and quiz.class_id != class_id):
            raise NotFoundError("Quiz", quiz_id)
        return quiz

    def list_quizzes(self, class_id: str) -> list[Quiz]:
        documents = self._store.query(
            store_constants.QUIZZES,
            [Where("class_id", "==", class_id)],
            order_by="order",
        )
        return [quiz_from_document(document) for document in documents]

    def create_quiz(self, quiz: Quiz) -> Quiz:
        prepared = self._prepare_quiz(quiz)
        quiz_id = self._store.add_document(store_constants.QUIZZES, quiz_to_document(prepared))
        prepared.id = quiz_id
        logger.info("Created quiz %s in class %s", quiz_id, prepared.class_id)
        return prepared

    def update_quiz(self, quiz: Quiz) -> Quiz:
        self.require_quiz(quiz.id, quiz.class_id)
        prepared = self._prepare_quiz(quiz)
        self._store.update_document(store_constants.QUIZZES, quiz.id, quiz_to_document(prepared))
        return prepared

    def delete_quiz(self, quiz_id: str, class_id: str | None = None) -> None:
        if class_id is not None:
            self.require_quiz(quiz_id, class_id)
        self._store.delete_document(store_constants.QUIZZES, quiz_id)
        logger.info("Deleted quiz %s", quiz_id)

    def add_question(
        self, quiz_id: str, question: QuizQuestion, class_id: str | None = None
    ) -> Quiz:
        quiz = self.require_quiz(quiz_id, class_id)
        quiz.questions.append(self._prepare_question(question))
        return self._save_questions(quiz)

    def update_question(
        self,
        quiz_id: str,
        index: int,
        question: QuizQuestion,
        class_id: str | None = None,
    ) -> Quiz:
        quiz = self.require_quiz(quiz_id, class_id)
        self._check_index(quiz, index)
        quiz.questions[index] = self._prepare_question(question)
        return self._save_questions(quiz)

    def delete_question(self, quiz_id: str, index: int, class_id: str | None = None) -> Quiz:
        quiz = self.require_quiz(quiz_id, class_id)
        self._check_index(quiz, index)
        quiz.questions.pop(index)
        return self._save_questions(quiz)

    def move_quiz(self, class_id: str, quiz_id: str, direction: str) -> list[Quiz]:
        """Swap a quiz with its neighbour and rewrite every order index."""
        if direction not in ("up", "down"):
            raise ValidationFailure("Direction must be 'up' or 'down'.")
        quizzes = self.list_quizzes(class_id)
        current_index = next((i for i, q in enumerate(quizzes) if q.id == quiz_id), -1)
        if current_index < 0:
            raise NotFoundError("Quiz", quiz_id)

        swap_index = current_index - 1 if direction == "up" else current_index + 1
        if not 0 <= swap_index < len(quizzes):
            return quizzes

        quizzes[current_index], quizzes[swap_index] = quizzes[swap_index], quizzes[current_index]
        for order, quiz in enumerate(quizzes):
            quiz.order = order
        self._store.batch_update(
            BatchUpdate(store_constants.QUIZZES, quiz.id, {"order": quiz.order})
            for quiz in quizzes
        )
        return quizzes

    def _save_questions(self, quiz: Quiz) -> Quiz:
        self._store.update_document(
            store_constants.QUIZZES,
            quiz.id,
            {"questions": [question_to_document(question) for question in quiz.questions]},
        )
        return quiz

    def _prepare_quiz(self, quiz: Quiz) -> Quiz:
        title = quiz.title.strip()
        if not title:
            raise ValidationFailure("Quiz title must not be empty.")
        if not quiz.questions:
            raise ValidationFailure("Quiz must contain at least one question.")
        return Quiz(
            id=quiz.id,
            title=title,
            class_id=quiz.class_id,
            description=quiz.description.strip(),
            order=quiz.order,
            time_limit=self._normalize_time_limit(quiz.time_limit),
            questions=[self._prepare_question(question) for question in quiz.questions],
        )

    def _prepare_question(self, question: QuizQuestion) -> QuizQuestion:
        """Validate and normalize a question before storage."""
        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise ValidationFailure("Question text must not be empty.")

        options = self._validate_options(question.options)
        if not 0 <= question.correct_answer < len(options):
            raise ValidationFailure(
                f"Correct answer must be between 0 and {len(options) - 1}."
            )

        return QuizQuestion(
            text=cleaned_text,
            options=options,
            correct_answer=question.correct_answer,
            image=question.image,
        )

    @staticmethod
    def _validate_options(options: list[QuizOption]) -> list[QuizOption]:
        if not MIN_OPTIONS_PER_QUESTION <= len(options) <= MAX_OPTIONS_PER_QUESTION:
            raise ValidationFailure(
                f"Each question must have between {MIN_OPTIONS_PER_QUESTION} and "
                f"{MAX_OPTIONS_PER_QUESTION} options."
            )
        cleaned = [QuizOption(text=option.text.strip(), image=option.image) for option in options]
        if any(not option.text for option in cleaned):
            raise ValidationFailure("Option text cannot be empty.")
        return cleaned

    @staticmethod
    def _normalize_time_limit(time_limit: int | None) -> int | None:
        if time_limit is None:
            return None
        if not isinstance(time_limit, int):
            raise ValidationFailure("Time limit must be provided as a whole number of minutes.")
        if time_limit <= 0:
            raise ValidationFailure("Time limit must be a positive integer.")
        return time_limit

    @staticmethod
    def _check_index(quiz: Quiz, index: int) -> None:
        if not 0 <= index < len(quiz.questions):
            raise IndexError(f"Question index {index} out of range")

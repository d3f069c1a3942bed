"""State of one student's attempt at one quiz."""

from __future__ import annotations

from enum import Enum
from threading import RLock

from classroom_app.core.models import Quiz, QuizQuestion, QuizResult
from classroom_app.core.services.countdown import Countdown


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SCORING = "scoring"
    REVIEWING = "reviewing"
    NOT_FOUND = "not_found"
    ERROR = "error"


class QuizSession:
    """Tracks navigation, selections and the outcome of a quiz attempt.

    Only the IN_PROGRESS state accepts selections and navigation. REVIEWING,
    NOT_FOUND and ERROR are terminal for the session.
    """

    def __init__(self, quiz_id: str, user_id: str, class_id: str) -> None:
        self._lock = RLock()
        self.quiz_id = quiz_id
        self.user_id = user_id
        self.class_id = class_id
        self._state = SessionState.LOADING
        self._quiz: Quiz | None = None
        self._total_questions: int = 0
        self._current_question_index: int = 0
        self._answers: dict[int, int] = {}
        self._awaiting_confirmation: bool = False
        self._result: QuizResult | None = None
        self._error_message: str | None = None
        self._countdown: Countdown | None = None

    # --- Transitions driven by the engine ---

    def start(self, quiz: Quiz, countdown: Countdown | None = None) -> None:
        with self._lock:
            self._require(SessionState.LOADING)
            self._quiz = quiz
            self._total_questions = len(quiz.questions)
            self._current_question_index = 0
            self._answers = {}
            self._countdown = countdown
            self._state = SessionState.IN_PROGRESS

    def show_existing_result(self, quiz: Quiz, result: QuizResult) -> None:
        with self._lock:
            self._require(SessionState.LOADING)
            self._quiz = quiz
            self._total_questions = result.total_questions
            self._answers = dict(result.answers)
            self._result = result
            self._state = SessionState.REVIEWING

    def mark_not_found(self, message: str) -> None:
        with self._lock:
            self._error_message = message
            self._state = SessionState.NOT_FOUND

    def mark_error(self, message: str) -> None:
        with self._lock:
            self._error_message = message
            self._state = SessionState.ERROR
            self._cancel_countdown()

    def begin_scoring(self) -> dict[int, int] | None:
        """Move to SCORING and return a snapshot of the answers.

        Returns ``None`` when the session is no longer in progress, which
        makes a late timer expiry or a duplicate confirmation a no-op.
        """
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return None
            self._state = SessionState.SCORING
            self._awaiting_confirmation = False
            self._error_message = None
            return dict(self._answers)

    def finish_scoring(self, result: QuizResult) -> None:
        with self._lock:
            self._require(SessionState.SCORING)
            self._result = result
            self._state = SessionState.REVIEWING
            self._cancel_countdown()

    def abort_scoring(self, message: str) -> None:
        """Return to IN_PROGRESS after a failed write so the student can retry."""
        with self._lock:
            self._require(SessionState.SCORING)
            self._error_message = message
            self._state = SessionState.IN_PROGRESS

    def close(self) -> None:
        with self._lock:
            self._cancel_countdown()

    # --- Student actions ---

    def select_option(self, question_index: int, option_index: int) -> None:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            question = self._question_at(question_index)
            if not 0 <= option_index < len(question.options):
                raise IndexError(f"Option index {option_index} out of range")
            self._answers[question_index] = option_index

    def next(self) -> int:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if self._current_question_index < self._total_questions - 1:
                self._current_question_index += 1
            return self._current_question_index

    def previous(self) -> int:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if self._current_question_index > 0:
                self._current_question_index -= 1
            return self._current_question_index

    def request_submit(self) -> None:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            self._awaiting_confirmation = True

    def cancel_submit(self) -> None:
        with self._lock:
            self._awaiting_confirmation = False

    # --- Read access ---

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def quiz(self) -> Quiz | None:
        with self._lock:
            return self._quiz

    @property
    def total_questions(self) -> int:
        with self._lock:
            return self._total_questions

    @property
    def current_question_index(self) -> int:
        with self._lock:
            return self._current_question_index

    @property
    def answers(self) -> dict[int, int]:
        with self._lock:
            return dict(self._answers)

    @property
    def awaiting_confirmation(self) -> bool:
        with self._lock:
            return self._awaiting_confirmation

    @property
    def result(self) -> QuizResult | None:
        with self._lock:
            return self._result

    @property
    def error_message(self) -> str | None:
        with self._lock:
            return self._error_message

    @property
    def countdown(self) -> Countdown | None:
        with self._lock:
            return self._countdown

    @property
    def time_left_seconds(self) -> int | None:
        countdown = self.countdown
        return countdown.remaining_seconds if countdown is not None else None

    # --- Internals ---

    def _require(self, expected: SessionState) -> None:
        if self._state is not expected:
            raise RuntimeError(
                f"Quiz session is {self._state.value}, expected {expected.value}."
            )

    def _question_at(self, question_index: int) -> QuizQuestion:
        if self._quiz is None:
            raise RuntimeError("Quiz session has no quiz loaded.")
        if not 0 <= question_index < self._total_questions:
            raise IndexError(f"Question index {question_index} out of range")
        return self._quiz.questions[question_index]

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()

"""Administers quiz attempts and persists exactly one result per student."""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from threading import Lock
from typing import Callable

from classroom_app.constants import store_constants
from classroom_app.constants.quiz_constants import SECONDS_PER_MINUTE
from classroom_app.constants.ui_constants import (
    QUIZ_LOAD_FAILED_MESSAGE,
    QUIZ_NOT_FOUND_MESSAGE,
    QUIZ_SUBMIT_FAILED_MESSAGE,
)
from classroom_app.core.document_mapping import result_from_document, result_to_document
from classroom_app.core.errors import CollaboratorFailure, NotFoundError
from classroom_app.core.models import CurrentUser, QuizResult, QuizResultKey
from classroom_app.core.quiz_review import QuizReview, build_review, score_answers
from classroom_app.core.services.attendance_recorder import AttendanceRecorder
from classroom_app.core.services.countdown import Countdown
from classroom_app.core.services.document_store import DocumentStore
from classroom_app.core.services.quiz_repository import QuizRepository
from classroom_app.core.services.quiz_session import QuizSession, SessionState

logger = logging.getLogger(__name__)

_LIVE_STATES = (SessionState.IN_PROGRESS, SessionState.SCORING)


class QuizEngine:
    """Facade over quiz sessions, scoring and quiz-result storage."""

    def __init__(
        self,
        store: DocumentStore,
        attendance: AttendanceRecorder,
        repository: QuizRepository | None = None,
        clock: Callable[[], datetime] = datetime.now,
        start_timers: bool = True,
    ) -> None:
        self._store = store
        self._attendance = attendance
        self._repository = repository or QuizRepository(store)
        self._clock = clock
        self._start_timers = start_timers
        self._lock = Lock()
        self._sessions: dict[QuizResultKey, QuizSession] = {}
        self._deadlines: dict[QuizResultKey, datetime] = {}

    # --- Sessions ---

    def open_session(self, quiz_id: str, user: CurrentUser, class_id: str) -> QuizSession:
        """Load a quiz for ``user`` and register the resulting session.

        A previously stored result sends the session straight to REVIEWING
        without scoring again. An attempt that is still running is returned
        unchanged, so reopening never restarts its countdown or clears answers.
        """
        key = QuizResultKey(quiz_id, user.user_id)
        with self._lock:
            current = self._sessions.get(key)
            if current is not None and current.state in _LIVE_STATES:
                if current.class_id == class_id:
                    return current
                stray = QuizSession(quiz_id, user.user_id, class_id)
                stray.mark_not_found(QUIZ_NOT_FOUND_MESSAGE)
                return stray
        self.close_session(quiz_id, user)
        session = QuizSession(quiz_id, user.user_id, class_id)
        expired = False

        try:
            quiz = self._repository.get_quiz(quiz_id)
            if quiz is None or quiz.class_id != class_id:
                session.mark_not_found(QUIZ_NOT_FOUND_MESSAGE)
            else:
                prior = self.get_result(quiz_id, user.user_id)
                if prior is not None:
                    session.show_existing_result(quiz, prior)
                elif not quiz.questions:
                    session.mark_error("This quiz has no questions yet.")
                else:
                    remaining = self._remaining_seconds(key, quiz.time_limit)
                    expired = remaining is not None and remaining <= 0
                    countdown = None
                    if remaining is not None and remaining > 0:
                        countdown = Countdown(
                            remaining, on_expire=lambda: self._submit_on_expiry(session)
                        )
                    session.start(quiz, countdown)
        except CollaboratorFailure:
            logger.exception("Failed to load quiz %s for %s", quiz_id, user.user_id)
            session.mark_error(QUIZ_LOAD_FAILED_MESSAGE)

        with self._lock:
            self._sessions[key] = session
        if expired:
            self._submit_on_expiry(session)
        countdown = session.countdown
        if countdown is not None and self._start_timers:
            countdown.start()
        return session

    def get_session(
        self, quiz_id: str, user: CurrentUser, class_id: str | None = None
    ) -> QuizSession:
        with self._lock:
            session = self._sessions.get(QuizResultKey(quiz_id, user.user_id))
        if session is None or (class_id is not None and session.class_id != class_id):
            raise NotFoundError("Quiz session", quiz_id)
        return session

    def close_session(
        self, quiz_id: str, user: CurrentUser, class_id: str | None = None
    ) -> None:
        """Tear a session down and cancel its countdown."""
        key = QuizResultKey(quiz_id, user.user_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is None or (class_id is not None and session.class_id != class_id):
                return
            del self._sessions[key]
        if session is not None:
            session.close()

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    # --- Submission ---

    def confirm_submit(self, session: QuizSession) -> QuizResult | None:
        """Submit once the student has confirmed a pending submit request."""
        if not session.awaiting_confirmation:
            raise RuntimeError("Submission must be requested before it can be confirmed.")
        return self._submit(session)

    def _submit_on_expiry(self, session: QuizSession) -> None:
        logger.info("Time limit reached for quiz %s (user %s)", session.quiz_id, session.user_id)
        try:
            self._submit(session)
        except CollaboratorFailure:
            logger.error("Automatic submission failed for quiz %s", session.quiz_id)

    def _submit(self, session: QuizSession) -> QuizResult | None:
        answers = session.begin_scoring()
        if answers is None:
            return None
        quiz = session.quiz
        if quiz is None:
            raise RuntimeError("Quiz session has no quiz loaded.")

        result = QuizResult(
            quiz_id=session.quiz_id,
            user_id=session.user_id,
            score=score_answers(quiz.questions, answers),
            total_questions=session.total_questions,
            answers=answers,
            submitted_at=self._clock(),
        )
        try:
            self.save_result(result)
        except CollaboratorFailure:
            logger.exception("Failed to store result for quiz %s", session.quiz_id)
            session.abort_scoring(QUIZ_SUBMIT_FAILED_MESSAGE)
            raise

        with self._lock:
            self._deadlines.pop(result.key, None)

        self._attendance.record_quiz_attempt(session.user_id, session.class_id, session.quiz_id)
        session.finish_scoring(result)
        logger.info(
            "Quiz %s submitted by %s: %s/%s",
            result.quiz_id,
            result.user_id,
            result.score,
            result.total_questions,
        )
        return result

    def review(self, session: QuizSession) -> QuizReview:
        result = session.result
        if session.state is not SessionState.REVIEWING or result is None:
            raise RuntimeError("Quiz session has no result to review yet.")
        quiz = session.quiz
        if quiz is None:
            raise RuntimeError("Quiz session has no quiz loaded.")
        return build_review(quiz, result.answers, result.score, result.total_questions)

    # --- Result storage ---

    def save_result(self, result: QuizResult) -> None:
        """Write ``result`` under its composite key, replacing any earlier one."""
        self._store.set_document(
            store_constants.QUIZ_RESULTS, result.key.document_id, result_to_document(result)
        )

    def get_result(self, quiz_id: str, user_id: str) -> QuizResult | None:
        document = self._store.get_document(
            store_constants.QUIZ_RESULTS, QuizResultKey(quiz_id, user_id).document_id
        )
        return result_from_document(document) if document is not None else None

    def _remaining_seconds(self, key: QuizResultKey, time_limit: int | None) -> int | None:
        """Seconds left on the attempt's deadline, fixed when the attempt first starts."""
        if not time_limit:
            return None
        now = self._clock()
        with self._lock:
            deadline = self._deadlines.setdefault(
                key, now + timedelta(seconds=time_limit * SECONDS_PER_MINUTE)
            )
        return max(0, int((deadline - now).total_seconds()))

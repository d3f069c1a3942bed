"""Best-effort recording of lesson views and quiz attempts."""

from __future__ import annotations

from datetime import datetime
import logging
from threading import Lock
from typing import Callable

from classroom_app.constants import store_constants
from classroom_app.core.models import ActivityType
from classroom_app.core.services.document_store import Document, DocumentStore, Where

logger = logging.getLogger(__name__)


def start_of_day(moment: datetime) -> datetime:
    """Return local midnight of the day containing ``moment``."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class AttendanceRecorder:
    """Upserts at most one attendance record per activity, student and day.

    Failures are logged and swallowed: recording engagement must never block
    the lesson view or quiz submission that triggered it.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._lock = Lock()

    def record_lesson_view(
        self,
        student_id: str,
        class_id: str,
        lesson_id: str,
        duration_seconds: float,
    ) -> None:
        try:
            with self._lock:
                existing = self._find_today(
                    student_id, class_id, ActivityType.LESSON_VIEW, lesson_id
                )
                if existing is None:
                    self._store.add_document(
                        store_constants.ATTENDANCES,
                        self._new_record(
                            student_id,
                            class_id,
                            ActivityType.LESSON_VIEW,
                            lesson_id,
                            duration=duration_seconds,
                        ),
                    )
                else:
                    self._store.increment(
                        store_constants.ATTENDANCES, existing["id"], "duration", duration_seconds
                    )
        except Exception:
            logger.exception(
                "Failed to record lesson view (student=%s, class=%s, lesson=%s)",
                student_id,
                class_id,
                lesson_id,
            )

    def record_quiz_attempt(self, student_id: str, class_id: str, quiz_id: str) -> None:
        try:
            with self._lock:
                existing = self._find_today(
                    student_id, class_id, ActivityType.QUIZ_ATTEMPT, quiz_id
                )
                if existing is None:
                    self._store.add_document(
                        store_constants.ATTENDANCES,
                        self._new_record(
                            student_id, class_id, ActivityType.QUIZ_ATTEMPT, quiz_id
                        ),
                    )
        except Exception:
            logger.exception(
                "Failed to record quiz attempt (student=%s, class=%s, quiz=%s)",
                student_id,
                class_id,
                quiz_id,
            )

    def _find_today(
        self,
        student_id: str,
        class_id: str,
        activity_type: ActivityType,
        activity_id: str,
    ) -> Document | None:
        matches = self._store.query(
            store_constants.ATTENDANCES,
            [
                Where("student_id", "==", student_id),
                Where("class_id", "==", class_id),
                Where("date", ">=", start_of_day(self._clock())),
                Where("activity_type", "==", activity_type.value),
                Where("activity_id", "==", activity_id),
            ],
        )
        return matches[0] if matches else None

    def _new_record(
        self,
        student_id: str,
        class_id: str,
        activity_type: ActivityType,
        activity_id: str,
        duration: float | None = None,
    ) -> Document:
        record: Document = {
            "student_id": student_id,
            "class_id": class_id,
            "date": self._clock(),
            "activity_type": activity_type.value,
            "activity_id": activity_id,
        }
        if duration is not None:
            record["duration"] = duration
        return record

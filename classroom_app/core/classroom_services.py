"""Wiring of the classroom services around one document store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from classroom_app.core.quiz_engine import QuizEngine
from classroom_app.core.services.assignment_service import AssignmentService
from classroom_app.core.services.attendance_recorder import AttendanceRecorder
from classroom_app.core.services.blob_store import BlobStore, LocalBlobStore
from classroom_app.core.services.classroom_service import ClassroomService
from classroom_app.core.services.document_store import DocumentStore, InMemoryDocumentStore
from classroom_app.core.services.quiz_repository import QuizRepository


@dataclass(slots=True)
class ClassroomServices:
    store: DocumentStore
    blobs: BlobStore
    attendance: AttendanceRecorder
    quizzes: QuizRepository
    quiz_engine: QuizEngine
    assignments: AssignmentService
    classrooms: ClassroomService

    @classmethod
    def create(
        cls,
        store: DocumentStore | None = None,
        blobs: BlobStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
        start_timers: bool = True,
    ) -> "ClassroomServices":
        store = store or InMemoryDocumentStore()
        blobs = blobs or LocalBlobStore(Path("uploads"))
        attendance = AttendanceRecorder(store, clock=clock)
        quizzes = QuizRepository(store)
        return cls(
            store=store,
            blobs=blobs,
            attendance=attendance,
            quizzes=quizzes,
            quiz_engine=QuizEngine(
                store, attendance, repository=quizzes, clock=clock, start_timers=start_timers
            ),
            assignments=AssignmentService(store, blobs, clock=clock),
            classrooms=ClassroomService(store, clock=clock),
        )

    def shutdown(self) -> None:
        self.quiz_engine.close_all()

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from classroom_app.constants import store_constants
from classroom_app.core.classroom_services import ClassroomServices
from classroom_app.core.errors import CollaboratorFailure
from classroom_app.core.models import CurrentUser, Quiz, QuizOption, QuizQuestion
from classroom_app.core.services.blob_store import LocalBlobStore
from classroom_app.core.services.document_store import InMemoryDocumentStore


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FailingStore(InMemoryDocumentStore):
    """In-memory store whose selected operations raise CollaboratorFailure."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise CollaboratorFailure(f"{operation} unavailable")

    def get_document(self, collection, document_id):
        self._check("get_document")
        return super().get_document(collection, document_id)

    def query(self, collection, predicates=(), order_by=None, descending=False):
        self._check("query")
        return super().query(collection, predicates, order_by, descending)

    def set_document(self, collection, document_id, fields):
        self._check("set_document")
        super().set_document(collection, document_id, fields)

    def add_document(self, collection, fields):
        self._check("add_document")
        return super().add_document(collection, fields)

    def update_document(self, collection, document_id, fields):
        self._check("update_document")
        super().update_document(collection, document_id, fields)

    def increment(self, collection, document_id, field, amount):
        self._check("increment")
        super().increment(collection, document_id, field, amount)


def make_question(text: str, correct: int = 0, option_count: int = 3) -> QuizQuestion:
    return QuizQuestion(
        text=text,
        options=[QuizOption(text=f"{text} option {i}") for i in range(option_count)],
        correct_answer=correct,
    )


def make_quiz(class_id: str = "class-1", title: str = "Fractions", **kwargs) -> Quiz:
    questions = kwargs.pop(
        "questions",
        [make_question("Q1", 0), make_question("Q2", 1), make_question("Q3", 2)],
    )
    return Quiz(id="", title=title, class_id=class_id, questions=questions, **kwargs)


def enroll(store, class_id: str, student_id: str, first_name: str, last_name: str) -> None:
    store.set_document(
        store_constants.STUDENTS,
        student_id,
        {"first_name": first_name, "last_name": last_name},
    )
    store.add_document(
        store_constants.CLASS_ENROLLMENTS, {"class_id": class_id, "student_id": student_id}
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 4, 10, 0, 0))


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def services(store, clock, tmp_path) -> ClassroomServices:
    built = ClassroomServices.create(
        store=store,
        blobs=LocalBlobStore(tmp_path / "uploads"),
        clock=clock,
        start_timers=False,
    )
    yield built
    built.shutdown()


@pytest.fixture
def student() -> CurrentUser:
    return CurrentUser(user_id="student-1")


@pytest.fixture
def teacher() -> CurrentUser:
    return CurrentUser(user_id="teacher-1", role="teacher")

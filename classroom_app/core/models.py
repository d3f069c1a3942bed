"""Domain models for the classroom application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


class ActivityType(str, Enum):
    LESSON_VIEW = "lesson_view"
    QUIZ_ATTEMPT = "quiz_attempt"


@dataclass(slots=True)
class QuizOption:
    """One selectable answer of a question."""

    text: str
    image: str | None = None


@dataclass(slots=True)
class QuizQuestion:
    """Multiple-choice question with two to four options."""

    text: str
    options: list[QuizOption]
    correct_answer: int = 0
    image: str | None = None


@dataclass(slots=True)
class Quiz:
    """Ordered list of questions published inside a classroom."""

    id: str
    title: str
    class_id: str
    questions: list[QuizQuestion] = field(default_factory=list)
    description: str = ""
    order: int = 0
    time_limit: int | None = None  # minutes


@dataclass(frozen=True, slots=True)
class QuizResultKey:
    """Composite identity of a quiz result: one per student per quiz."""

    quiz_id: str
    user_id: str

    @property
    def document_id(self) -> str:
        # Length prefix keeps ids containing "_" from colliding.
        return f"{len(self.quiz_id)}:{self.quiz_id}_{self.user_id}"


@dataclass(slots=True)
class QuizResult:
    """The single recorded outcome of one student taking one quiz."""

    quiz_id: str
    user_id: str
    score: int
    total_questions: int
    answers: dict[int, int]
    submitted_at: datetime

    @property
    def key(self) -> QuizResultKey:
        return QuizResultKey(self.quiz_id, self.user_id)


@dataclass(slots=True)
class Assignment:
    """Gradable task with a due date and point value."""

    id: str
    class_id: str
    title: str
    points: float
    due_date: datetime | None = None
    description: str = ""
    file_url: str | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class Submission:
    """A student's response to an assignment."""

    id: str
    assignment_id: str
    student_id: str
    class_id: str
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    file_url: str | None = None
    file_name: str | None = None
    note: str | None = None
    grade: float | None = None
    feedback: str | None = None
    submitted_at: datetime | None = None


@dataclass(slots=True)
class AttendanceRecord:
    """Per-day log entry of a lesson view or quiz attempt."""

    student_id: str
    class_id: str
    activity_type: ActivityType
    activity_id: str
    date: datetime
    duration: float | None = None
    id: str | None = None


@dataclass(slots=True)
class Student:
    id: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class Classroom:
    """A class a teacher runs; its id doubles as the code students join with."""

    id: str
    name: str
    teacher_id: str
    description: str = ""

    @property
    def class_code(self) -> str:
        return self.id


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """Authenticated user passed explicitly into every entry point."""

    user_id: str
    role: str = "student"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

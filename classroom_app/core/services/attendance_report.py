"""Summaries of the attendance records of one classroom."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from classroom_app.constants import store_constants
from classroom_app.constants.ui_constants import UNKNOWN_STUDENT_NAME
from classroom_app.core.document_mapping import attendance_from_document, student_from_document
from classroom_app.core.models import ActivityType, AttendanceRecord
from classroom_app.core.services.document_store import DocumentStore, Where


@dataclass(slots=True)
class AttendanceOverview:
    total_lesson_views: int
    total_quiz_attempts: int
    average_lesson_duration: float


@dataclass(slots=True)
class DailyActivity:
    day: date
    lesson_views: int = 0
    quiz_attempts: int = 0


@dataclass(slots=True)
class AttendanceRow:
    date: datetime
    activity_type: ActivityType
    student_name: str
    duration: float | None


class AttendanceReport:
    def __init__(self, records: list[AttendanceRecord], student_names: dict[str, str]) -> None:
        self.records = records
        self._student_names = student_names

    @classmethod
    def load(cls, store: DocumentStore, class_id: str) -> "AttendanceReport":
        records = [
            attendance_from_document(document)
            for document in store.query(
                store_constants.ATTENDANCES,
                [Where("class_id", "==", class_id)],
                order_by="date",
            )
        ]
        student_ids = sorted({record.student_id for record in records})
        names: dict[str, str] = {}
        if student_ids:
            for document in store.query(
                store_constants.STUDENTS, [Where("id", "in", student_ids)]
            ):
                names[document["id"]] = student_from_document(document).full_name
        return cls(records, names)

    def overview(self) -> AttendanceOverview:
        lesson_views = [r for r in self.records if r.activity_type is ActivityType.LESSON_VIEW]
        quiz_attempts = sum(
            1 for r in self.records if r.activity_type is ActivityType.QUIZ_ATTEMPT
        )
        total_duration = sum(r.duration or 0 for r in lesson_views)
        average = total_duration / len(lesson_views) if lesson_views else 0.0
        return AttendanceOverview(
            total_lesson_views=len(lesson_views),
            total_quiz_attempts=quiz_attempts,
            average_lesson_duration=average,
        )

    def daily_counts(self) -> list[DailyActivity]:
        days: dict[date, DailyActivity] = {}
        for record in self.records:
            day = record.date.date()
            entry = days.setdefault(day, DailyActivity(day=day))
            if record.activity_type is ActivityType.LESSON_VIEW:
                entry.lesson_views += 1
            else:
                entry.quiz_attempts += 1
        return [days[day] for day in sorted(days)]

    def rows(self) -> list[AttendanceRow]:
        return [
            AttendanceRow(
                date=record.date,
                activity_type=record.activity_type,
                student_name=self._student_names.get(record.student_id, UNKNOWN_STUDENT_NAME),
                duration=record.duration,
            )
            for record in self.records
        ]

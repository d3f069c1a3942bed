"""Classrooms, their join codes and student enrollment."""

from __future__ import annotations

from datetime import datetime
import logging
from threading import Lock
from typing import Callable

from classroom_app.constants import store_constants
from classroom_app.constants.ui_constants import ALREADY_ENROLLED_MESSAGE
from classroom_app.core.class_code_generator import ClassCodeGenerator
from classroom_app.core.document_mapping import (
    classroom_from_document,
    classroom_to_document,
)
from classroom_app.core.errors import NotFoundError, ValidationFailure
from classroom_app.core.models import Classroom, Student
from classroom_app.core.services.document_store import DocumentStore, Where

logger = logging.getLogger(__name__)


class ClassroomService:
    """Creates classrooms under a fresh join code and enrolls students into them."""

    def __init__(
        self,
        store: DocumentStore,
        class_codes: ClassCodeGenerator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._class_codes = class_codes or ClassCodeGenerator()
        self._clock = clock
        self._lock = Lock()

    def create_classroom(self, teacher_id: str, name: str, description: str = "") -> Classroom:
        name = name.strip()
        if not name:
            raise ValidationFailure("Class name must not be empty.")
        with self._lock:
            code = self._class_codes.generate_unique(self._store)
            classroom = Classroom(
                id=code,
                name=name,
                teacher_id=teacher_id,
                description=description.strip(),
            )
            self._store.set_document(
                store_constants.CLASSROOMS, code, classroom_to_document(classroom)
            )
        logger.info("Teacher %s created class %s", teacher_id, code)
        return classroom

    def get_classroom(self, class_id: str) -> Classroom:
        document = self._store.get_document(store_constants.CLASSROOMS, class_id)
        if document is None:
            raise NotFoundError("Classroom", class_id)
        return classroom_from_document(document)

    def list_teacher_classrooms(self, teacher_id: str) -> list[Classroom]:
        documents = self._store.query(
            store_constants.CLASSROOMS, [Where("teacher_id", "==", teacher_id)], order_by="name"
        )
        return [classroom_from_document(document) for document in documents]

    def join_class(self, student_id: str, class_code: str) -> Classroom:
        """Enroll ``student_id`` in the classroom with ``class_code``."""
        code = class_code.strip().upper()
        matches = self._store.query(
            store_constants.CLASSROOMS, [Where("class_code", "==", code)]
        )
        if not matches:
            raise NotFoundError("Classroom", code)
        classroom = classroom_from_document(matches[0])

        with self._lock:
            if self._is_enrolled(classroom.id, student_id):
                raise ValidationFailure(ALREADY_ENROLLED_MESSAGE)
            self._store.add_document(
                store_constants.CLASS_ENROLLMENTS,
                {
                    "class_id": classroom.id,
                    "student_id": student_id,
                    "enrolled_at": self._clock(),
                },
            )
        logger.info("Student %s joined class %s", student_id, classroom.id)
        return classroom

    def list_student_classrooms(self, student_id: str) -> list[Classroom]:
        enrollments = self._store.query(
            store_constants.CLASS_ENROLLMENTS, [Where("student_id", "==", student_id)]
        )
        classrooms = []
        for enrollment in enrollments:
            document = self._store.get_document(
                store_constants.CLASSROOMS, enrollment["class_id"]
            )
            if document is not None:
                classrooms.append(classroom_from_document(document))
        return sorted(classrooms, key=lambda classroom: classroom.name)

    def register_student(self, student_id: str, first_name: str, last_name: str) -> Student:
        """Store the name shown for a student in grade and attendance reports."""
        first_name = first_name.strip()
        last_name = last_name.strip()
        if not first_name:
            raise ValidationFailure("First name must not be empty.")
        self._store.set_document(
            store_constants.STUDENTS,
            student_id,
            {"first_name": first_name, "last_name": last_name},
        )
        return Student(id=student_id, first_name=first_name, last_name=last_name)

    def _is_enrolled(self, class_id: str, student_id: str) -> bool:
        return bool(
            self._store.query(
                store_constants.CLASS_ENROLLMENTS,
                [Where("class_id", "==", class_id), Where("student_id", "==", student_id)],
            )
        )

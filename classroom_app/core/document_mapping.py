"""Conversion between stored documents and domain models.

Documents keep only JSON-friendly values so every store backend can hold
them: enums become their string values and the answers of a quiz result
are keyed by the question index as a string.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from classroom_app.core.models import (
    ActivityType,
    Assignment,
    AttendanceRecord,
    Classroom,
    Quiz,
    QuizOption,
    QuizQuestion,
    QuizResult,
    Student,
    Submission,
    SubmissionStatus,
)
from classroom_app.core.services.document_store import Document


def quiz_to_document(quiz: Quiz) -> Document:
    return {
        "title": quiz.title,
        "description": quiz.description,
        "class_id": quiz.class_id,
        "order": quiz.order,
        "time_limit": quiz.time_limit,
        "questions": [question_to_document(question) for question in quiz.questions],
    }


def question_to_document(question: QuizQuestion) -> Document:
    return {
        "text": question.text,
        "image": question.image,
        "correct_answer": question.correct_answer,
        "options": [{"text": option.text, "image": option.image} for option in question.options],
    }


def quiz_from_document(document: Document) -> Quiz:
    return Quiz(
        id=document["id"],
        title=document.get("title", ""),
        class_id=document.get("class_id", ""),
        description=document.get("description") or "",
        order=int(document.get("order") or 0),
        time_limit=document.get("time_limit"),
        questions=[question_from_document(raw) for raw in document.get("questions", [])],
    )


def question_from_document(raw: Document) -> QuizQuestion:
    return QuizQuestion(
        text=raw.get("text", ""),
        image=raw.get("image"),
        correct_answer=int(raw.get("correct_answer", 0)),
        options=[_option_from_raw(option) for option in raw.get("options", [])],
    )


def _option_from_raw(raw: Any) -> QuizOption:
    # Older quizzes stored options as bare strings.
    if isinstance(raw, str):
        return QuizOption(text=raw)
    return QuizOption(text=raw.get("text", ""), image=raw.get("image"))


def result_to_document(result: QuizResult) -> Document:
    return {
        "quiz_id": result.quiz_id,
        "user_id": result.user_id,
        "score": result.score,
        "total_questions": result.total_questions,
        "answers": {str(index): option for index, option in result.answers.items()},
        "submitted_at": result.submitted_at,
    }


def result_from_document(document: Document) -> QuizResult:
    return QuizResult(
        quiz_id=document["quiz_id"],
        user_id=document["user_id"],
        score=int(document.get("score", 0)),
        total_questions=int(document.get("total_questions", 0)),
        answers={
            int(index): int(option) for index, option in (document.get("answers") or {}).items()
        },
        submitted_at=document.get("submitted_at") or datetime.min,
    )


def assignment_to_document(assignment: Assignment) -> Document:
    return {
        "class_id": assignment.class_id,
        "title": assignment.title,
        "description": assignment.description,
        "points": assignment.points,
        "due_date": assignment.due_date,
        "file_url": assignment.file_url,
        "created_at": assignment.created_at,
    }


def assignment_from_document(document: Document) -> Assignment:
    return Assignment(
        id=document["id"],
        class_id=document.get("class_id", ""),
        title=document.get("title", ""),
        points=float(document.get("points") or 0),
        due_date=document.get("due_date"),
        description=document.get("description") or "",
        file_url=document.get("file_url"),
        created_at=document.get("created_at"),
    )


def submission_from_document(document: Document) -> Submission:
    grade = document.get("grade")
    return Submission(
        id=document["id"],
        assignment_id=document["assignment_id"],
        student_id=document["student_id"],
        class_id=document.get("class_id", ""),
        status=SubmissionStatus(document.get("status", SubmissionStatus.SUBMITTED.value)),
        file_url=document.get("file_url"),
        file_name=document.get("file_name"),
        note=document.get("note"),
        grade=float(grade) if grade is not None else None,
        feedback=document.get("feedback"),
        submitted_at=document.get("submitted_at"),
    )


def attendance_from_document(document: Document) -> AttendanceRecord:
    return AttendanceRecord(
        id=document.get("id"),
        student_id=document["student_id"],
        class_id=document["class_id"],
        activity_type=ActivityType(document["activity_type"]),
        activity_id=document.get("activity_id", ""),
        date=document["date"],
        duration=document.get("duration"),
    )


def student_from_document(document: Document) -> Student:
    return Student(
        id=document["id"],
        first_name=document.get("first_name", ""),
        last_name=document.get("last_name", ""),
    )


def classroom_to_document(classroom: Classroom) -> Document:
    return {
        "class_code": classroom.class_code,
        "name": classroom.name,
        "description": classroom.description,
        "teacher_id": classroom.teacher_id,
    }


def classroom_from_document(document: Document) -> Classroom:
    return Classroom(
        id=document["id"],
        name=document.get("name", ""),
        teacher_id=document.get("teacher_id", ""),
        description=document.get("description") or "",
    )

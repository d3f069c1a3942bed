"""FastAPI server exposing the classroom endpoints to the browser client."""

from __future__ import annotations

import base64
import binascii
from contextlib import asynccontextmanager, contextmanager
from dataclasses import asdict
from datetime import datetime
import logging
from typing import Iterator

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
import uvicorn

from classroom_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from classroom_app.constants.network_constants import (
    CURRENT_ROLE_HEADER,
    CURRENT_USER_HEADER,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from classroom_app.constants.ui_constants import (
    CONFIRM_SUBMIT_MESSAGE,
    RESULT_DELETED_MESSAGE,
)
from classroom_app.core.classroom_services import ClassroomServices
from classroom_app.core.errors import CollaboratorFailure, NotFoundError
from classroom_app.core.markdown_math_renderer import renderer
from classroom_app.core.models import (
    Assignment,
    Classroom,
    CurrentUser,
    Quiz,
    QuizOption,
    QuizQuestion,
)
from classroom_app.core.quiz_review import render_review_html
from classroom_app.core.services.attendance_report import AttendanceReport
from classroom_app.core.services.grade_report import ASCENDING, DESCENDING, GradeReport
from classroom_app.core.services.quiz_session import QuizSession, SessionState

logger = logging.getLogger(__name__)


class OptionPayload(BaseModel):
    text: str
    image: str | None = None


class QuestionPayload(BaseModel):
    text: str
    options: list[OptionPayload]
    correct_answer: int = 0
    image: str | None = None

    def to_model(self) -> QuizQuestion:
        return QuizQuestion(
            text=self.text,
            image=self.image,
            correct_answer=self.correct_answer,
            options=[QuizOption(text=option.text, image=option.image) for option in self.options],
        )


class QuizPayload(BaseModel):
    title: str
    description: str = ""
    questions: list[QuestionPayload] = Field(default_factory=list)
    order: int = 0
    time_limit: int | None = Field(default=None, description="Minutes")


class MovePayload(BaseModel):
    direction: str


class SelectPayload(BaseModel):
    question_index: int
    option_index: int


class AssignmentPayload(BaseModel):
    title: str
    points: float
    description: str = ""
    due_date: datetime | None = None


class SubmissionPayload(BaseModel):
    file_name: str | None = None
    content_base64: str | None = None
    note: str | None = None


class GradePayload(BaseModel):
    grade: float
    feedback: str | None = None


class ClassroomPayload(BaseModel):
    name: str
    description: str = ""


class JoinClassPayload(BaseModel):
    class_code: str


class StudentProfilePayload(BaseModel):
    first_name: str
    last_name: str = ""


class LessonViewPayload(BaseModel):
    duration_seconds: float = Field(ge=0)


@contextmanager
def _service_errors() -> Iterator[None]:
    """Translate service exceptions into HTTP errors at the request boundary."""
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (ValueError, IndexError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except CollaboratorFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def get_current_user(
    x_user_id: str | None = Header(default=None, alias=CURRENT_USER_HEADER),
    x_user_role: str = Header(default="student", alias=CURRENT_ROLE_HEADER),
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(status_code=401, detail=f"Missing {CURRENT_USER_HEADER} header.")
    return CurrentUser(user_id=x_user_id, role=x_user_role.lower())


def require_teacher(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_teacher:
        raise HTTPException(status_code=403, detail="Only teachers can do this.")
    return user


def _classroom_payload(classroom: Classroom) -> dict[str, object]:
    return {**asdict(classroom), "class_code": classroom.class_code}


def _quiz_summary(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "order": quiz.order,
        "time_limit": quiz.time_limit,
        "total_questions": len(quiz.questions),
    }


def _session_payload(services: ClassroomServices, session: QuizSession) -> dict[str, object]:
    state = session.state
    quiz = session.quiz
    answers = session.answers
    payload: dict[str, object] = {
        "quiz_id": session.quiz_id,
        "quiz_title": quiz.title if quiz else None,
        "state": state.value,
        "error": session.error_message,
        "total_questions": session.total_questions,
        "current_question_index": session.current_question_index,
        "answers": {str(index): option for index, option in answers.items()},
        "awaiting_confirmation": session.awaiting_confirmation,
        "confirmation_message": CONFIRM_SUBMIT_MESSAGE if session.awaiting_confirmation else None,
        "time_left_seconds": session.time_left_seconds,
        "question": None,
        "review": None,
    }
    if state is SessionState.IN_PROGRESS and quiz is not None:
        index = session.current_question_index
        question = quiz.questions[index]
        payload["question"] = {
            "index": index,
            "html": renderer.render_fragment(question.text),
            "image": question.image,
            "options": [{"text": o.text, "image": o.image} for o in question.options],
            "selected_option": answers.get(index),
        }
    elif state is SessionState.REVIEWING:
        payload["review"] = asdict(services.quiz_engine.review(session))
    return payload


def _grade_report_payload(
    report: GradeReport, search: str, sort: str | None
) -> dict[str, object]:
    return {
        "class_id": report.class_id,
        "assignments": [
            {"id": a.id, "title": a.title, "points": a.points} for a in report.assignments
        ],
        "quizzes": [
            {"id": q.id, "title": q.title, "total_questions": len(q.questions)}
            for q in report.quizzes
        ],
        "max_score": report.compute_max_score(),
        "rows": [
            {
                "student_id": row.student_id,
                "student_name": row.student_name,
                "assignments": {
                    key: {"value": cell.value, "display": cell.display}
                    for key, cell in row.assignment_cells.items()
                },
                "quizzes": {
                    key: {"value": cell.value, "display": cell.display}
                    for key, cell in row.quiz_cells.items()
                },
                "total_score": row.total_score,
                "percentage": row.percentage,
            }
            for row in report.rows(search_term=search, direction=sort)
        ],
    }


def _get_services_dependency(services: ClassroomServices):
    def dependency() -> ClassroomServices:
        return services

    return dependency


def create_api_app(services: ClassroomServices) -> FastAPI:
    """Create a FastAPI application wired to the provided services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s API", APP_NAME)
        yield
        logger.info("Shutting down %s API", APP_NAME)
        services.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} API",
        description=APP_ABOUT_TEXT,
        version=APP_VERSION,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    services_dep = _get_services_dependency(services)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": APP_NAME, "version": APP_VERSION}

    # --- Classrooms ---

    @app.get("/classes")
    def list_classrooms(
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> list[dict[str, object]]:
        with _service_errors():
            if user.is_teacher:
                classrooms = svc.classrooms.list_teacher_classrooms(user.user_id)
            else:
                classrooms = svc.classrooms.list_student_classrooms(user.user_id)
        return [_classroom_payload(classroom) for classroom in classrooms]

    @app.post("/classes", status_code=201)
    def create_classroom(
        payload: ClassroomPayload,
        user: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            classroom = svc.classrooms.create_classroom(
                user.user_id, payload.name, payload.description
            )
        return _classroom_payload(classroom)

    @app.post("/classes/join", status_code=201)
    def join_classroom(
        payload: JoinClassPayload,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            classroom = svc.classrooms.join_class(user.user_id, payload.class_code)
        return _classroom_payload(classroom)

    @app.put("/students/me")
    def update_student_profile(
        payload: StudentProfilePayload,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            student = svc.classrooms.register_student(
                user.user_id, payload.first_name, payload.last_name
            )
        return {**asdict(student), "full_name": student.full_name}

    # --- Quiz management ---

    @app.get("/classes/{class_id}/quizzes")
    def list_quizzes(
        class_id: str,
        _: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> list[dict[str, object]]:
        with _service_errors():
            return [_quiz_summary(quiz) for quiz in svc.quizzes.list_quizzes(class_id)]

    @app.post("/classes/{class_id}/quizzes", status_code=201)
    def create_quiz(
        class_id: str,
        payload: QuizPayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        quiz = Quiz(
            id="",
            title=payload.title,
            class_id=class_id,
            description=payload.description,
            order=payload.order,
            time_limit=payload.time_limit,
            questions=[question.to_model() for question in payload.questions],
        )
        with _service_errors():
            return asdict(svc.quizzes.create_quiz(quiz))

    @app.get("/classes/{class_id}/quizzes/{quiz_id}")
    def get_quiz(
        class_id: str,
        quiz_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            return asdict(svc.quizzes.require_quiz(quiz_id, class_id))

    @app.put("/classes/{class_id}/quizzes/{quiz_id}")
    def update_quiz(
        class_id: str,
        quiz_id: str,
        payload: QuizPayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        quiz = Quiz(
            id=quiz_id,
            title=payload.title,
            class_id=class_id,
            description=payload.description,
            order=payload.order,
            time_limit=payload.time_limit,
            questions=[question.to_model() for question in payload.questions],
        )
        with _service_errors():
            return asdict(svc.quizzes.update_quiz(quiz))

    @app.delete("/classes/{class_id}/quizzes/{quiz_id}", status_code=204)
    def delete_quiz(
        class_id: str,
        quiz_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> Response:
        with _service_errors():
            svc.quizzes.delete_quiz(quiz_id, class_id=class_id)
        return Response(status_code=204)

    @app.post("/classes/{class_id}/quizzes/{quiz_id}/questions", status_code=201)
    def add_question(
        class_id: str,
        quiz_id: str,
        payload: QuestionPayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            quiz = svc.quizzes.add_question(quiz_id, payload.to_model(), class_id=class_id)
        return asdict(quiz)

    @app.put("/classes/{class_id}/quizzes/{quiz_id}/questions/{index}")
    def update_question(
        class_id: str,
        quiz_id: str,
        index: int,
        payload: QuestionPayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            quiz = svc.quizzes.update_question(
                quiz_id, index, payload.to_model(), class_id=class_id
            )
        return asdict(quiz)

    @app.delete("/classes/{class_id}/quizzes/{quiz_id}/questions/{index}")
    def delete_question(
        class_id: str,
        quiz_id: str,
        index: int,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            quiz = svc.quizzes.delete_question(quiz_id, index, class_id=class_id)
        return asdict(quiz)

    @app.post("/classes/{class_id}/quizzes/{quiz_id}/move")
    def move_quiz(
        class_id: str,
        quiz_id: str,
        payload: MovePayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> list[dict[str, object]]:
        with _service_errors():
            quizzes = svc.quizzes.move_quiz(class_id, quiz_id, payload.direction)
        return [_quiz_summary(quiz) for quiz in quizzes]

    # --- Quiz taking ---

    session_path = "/classes/{class_id}/quizzes/{quiz_id}/session"

    @app.post(session_path)
    def open_session(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        session = svc.quiz_engine.open_session(quiz_id, user, class_id)
        return _session_payload(svc, session)

    @app.get(session_path)
    def get_session(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
        return _session_payload(svc, session)

    @app.delete(session_path, status_code=204)
    def close_session(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> Response:
        svc.quiz_engine.close_session(quiz_id, user, class_id)
        return Response(status_code=204)

    @app.post(session_path + "/select")
    def select_option(
        class_id: str,
        quiz_id: str,
        payload: SelectPayload,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            session.select_option(payload.question_index, payload.option_index)
        return _session_payload(svc, session)

    @app.post(session_path + "/next")
    def next_question(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            session.next()
        return _session_payload(svc, session)

    @app.post(session_path + "/previous")
    def previous_question(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            session.previous()
        return _session_payload(svc, session)

    @app.post(session_path + "/submit")
    def request_submit(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            session.request_submit()
        return _session_payload(svc, session)

    @app.post(session_path + "/cancel")
    def cancel_submit(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            session.cancel_submit()
        return _session_payload(svc, session)

    @app.post(session_path + "/confirm")
    def confirm_submit(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            svc.quiz_engine.confirm_submit(session)
        return _session_payload(svc, session)

    @app.get(session_path + "/review", response_class=HTMLResponse)
    def review_page(
        class_id: str,
        quiz_id: str,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> str:
        with _service_errors():
            session = svc.quiz_engine.get_session(quiz_id, user, class_id)
            review = svc.quiz_engine.review(session)
        return render_review_html(review, classroom_url=f"/classes/{class_id}")

    # --- Grades ---

    @app.get("/classes/{class_id}/grades")
    def grade_report(
        class_id: str,
        search: str = "",
        sort: str | None = Query(default=None, pattern=f"^({ASCENDING}|{DESCENDING})$"),
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            report = GradeReport.load(svc.store, class_id)
        return _grade_report_payload(report, search, sort)

    @app.delete("/classes/{class_id}/grades/{student_id}/quizzes/{quiz_id}")
    def delete_quiz_result(
        class_id: str,
        student_id: str,
        quiz_id: str,
        confirm: bool = False,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            report = GradeReport.load(svc.store, class_id)
            deleted = report.delete_quiz_result(
                student_id, quiz_id, confirm=lambda warning: confirm
            )
            if not deleted:
                raise HTTPException(
                    status_code=409,
                    detail=report.delete_warning(student_id, quiz_id),
                )
        return {"deleted": True, "message": RESULT_DELETED_MESSAGE}

    # --- Assignments ---

    @app.get("/classes/{class_id}/assignments")
    def list_assignments(
        class_id: str,
        _: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> list[dict[str, object]]:
        with _service_errors():
            return [asdict(a) for a in svc.assignments.list_assignments(class_id)]

    @app.post("/classes/{class_id}/assignments", status_code=201)
    def create_assignment(
        class_id: str,
        payload: AssignmentPayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        assignment = Assignment(
            id="",
            class_id=class_id,
            title=payload.title,
            points=payload.points,
            due_date=payload.due_date,
            description=payload.description,
        )
        with _service_errors():
            return asdict(svc.assignments.create_assignment(assignment))

    @app.delete("/classes/{class_id}/assignments/{assignment_id}", status_code=204)
    def delete_assignment(
        class_id: str,
        assignment_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> Response:
        with _service_errors():
            svc.assignments.delete_assignment(assignment_id, class_id=class_id)
        return Response(status_code=204)

    @app.post("/classes/{class_id}/assignments/{assignment_id}/submissions", status_code=201)
    def submit_assignment(
        class_id: str,
        assignment_id: str,
        payload: SubmissionPayload,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        data = None
        if payload.content_base64 is not None:
            try:
                data = base64.b64decode(payload.content_base64, validate=True)
            except binascii.Error as exc:
                raise HTTPException(
                    status_code=422, detail="File content is not valid base64."
                ) from exc
        with _service_errors():
            submission = svc.assignments.submit_assignment(
                user.user_id,
                assignment_id,
                file_name=payload.file_name,
                data=data,
                note=payload.note,
                class_id=class_id,
            )
        return asdict(submission)

    @app.get("/classes/{class_id}/assignments/{assignment_id}/submissions")
    def list_submissions(
        class_id: str,
        assignment_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            svc.assignments.get_assignment(assignment_id, class_id)
            submissions = svc.assignments.list_submissions(assignment_id)
            progress = svc.assignments.grading_progress(assignment_id)
        return {"progress": progress, "submissions": [asdict(s) for s in submissions]}

    @app.post("/submissions/{submission_id}/grade")
    def grade_submission(
        submission_id: str,
        payload: GradePayload,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            submission = svc.assignments.grade_submission(
                submission_id, payload.grade, payload.feedback
            )
        return asdict(submission)

    @app.post("/submissions/{submission_id}/return")
    def return_submission(
        submission_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            return asdict(svc.assignments.return_submission(submission_id))

    # --- Attendance ---

    @app.post("/classes/{class_id}/lessons/{lesson_id}/views", status_code=202)
    def record_lesson_view(
        class_id: str,
        lesson_id: str,
        payload: LessonViewPayload,
        user: CurrentUser = Depends(get_current_user),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, str]:
        svc.attendance.record_lesson_view(
            user.user_id, class_id, lesson_id, payload.duration_seconds
        )
        return {"status": "accepted"}

    @app.get("/classes/{class_id}/attendance")
    def attendance_report(
        class_id: str,
        _: CurrentUser = Depends(require_teacher),
        svc: ClassroomServices = Depends(services_dep),
    ) -> dict[str, object]:
        with _service_errors():
            report = AttendanceReport.load(svc.store, class_id)
        return {
            "overview": asdict(report.overview()),
            "daily": [asdict(day) for day in report.daily_counts()],
            "rows": [asdict(row) for row in report.rows()],
        }

    return app


def run_api_server(
    services: ClassroomServices,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(services)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    uvicorn.Server(config).run()

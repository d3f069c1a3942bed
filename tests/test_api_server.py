from __future__ import annotations

import base64

from fastapi.testclient import TestClient
import pytest

from conftest import enroll
from classroom_app.constants.ui_constants import CONFIRM_SUBMIT_MESSAGE
from classroom_app.server.api_server import create_api_app

TEACHER = {"X-User-Id": "teacher-1", "X-User-Role": "teacher"}
STUDENT = {"X-User-Id": "s1"}

QUIZ_PAYLOAD = {
    "title": "Powers",
    "time_limit": 10,
    "questions": [
        {"text": "What is $2^3$?", "options": [{"text": "8"}, {"text": "6"}], "correct_answer": 0},
        {"text": "What is $3^2$?", "options": [{"text": "6"}, {"text": "9"}], "correct_answer": 1},
    ],
}


@pytest.fixture
def client(services):
    with TestClient(create_api_app(services)) as test_client:
        yield test_client


def _create_quiz(client) -> str:
    response = client.post("/classes/class-1/quizzes", json=QUIZ_PAYLOAD, headers=TEACHER)
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_need_a_user(client):
    assert client.get("/classes/class-1/quizzes").status_code == 401


def test_management_routes_need_a_teacher(client):
    response = client.post("/classes/class-1/quizzes", json=QUIZ_PAYLOAD, headers=STUDENT)

    assert response.status_code == 403


def test_invalid_quiz_is_unprocessable(client):
    payload = dict(QUIZ_PAYLOAD, title="  ")

    response = client.post("/classes/class-1/quizzes", json=payload, headers=TEACHER)

    assert response.status_code == 422
    assert "title" in response.json()["detail"]


def test_quiz_listing_hides_answers(client):
    quiz_id = _create_quiz(client)

    listing = client.get("/classes/class-1/quizzes", headers=STUDENT).json()

    assert listing == [
        {
            "id": quiz_id,
            "title": "Powers",
            "description": "",
            "order": 0,
            "time_limit": 10,
            "total_questions": 2,
        }
    ]


def test_take_quiz_end_to_end(client):
    quiz_id = _create_quiz(client)
    base = f"/classes/class-1/quizzes/{quiz_id}/session"

    opened = client.post(base, headers=STUDENT).json()
    assert opened["state"] == "in_progress"
    assert opened["time_left_seconds"] == 600
    assert "correct_answer" not in opened["question"]
    assert "<p>" in opened["question"]["html"]

    client.post(f"{base}/select", json={"question_index": 0, "option_index": 0}, headers=STUDENT)
    moved = client.post(f"{base}/next", headers=STUDENT).json()
    assert moved["current_question_index"] == 1
    client.post(f"{base}/select", json={"question_index": 1, "option_index": 0}, headers=STUDENT)

    early = client.post(f"{base}/confirm", headers=STUDENT)
    assert early.status_code == 409

    requested = client.post(f"{base}/submit", headers=STUDENT).json()
    assert requested["confirmation_message"] == CONFIRM_SUBMIT_MESSAGE

    reviewed = client.post(f"{base}/confirm", headers=STUDENT).json()
    assert reviewed["state"] == "reviewing"
    assert reviewed["review"]["score"] == 1
    assert reviewed["review"]["total_questions"] == 2

    page = client.get(f"{base}/review", headers=STUDENT)
    assert page.status_code == 200
    assert "selected_incorrect" in page.text
    assert "/classes/class-1" in page.text

    again = client.post(base, headers=STUDENT).json()
    assert again["state"] == "reviewing"


def test_out_of_range_selection_is_unprocessable(client):
    quiz_id = _create_quiz(client)
    base = f"/classes/class-1/quizzes/{quiz_id}/session"
    client.post(base, headers=STUDENT)

    response = client.post(
        f"{base}/select", json={"question_index": 0, "option_index": 5}, headers=STUDENT
    )

    assert response.status_code == 422


def test_missing_session_is_not_found(client):
    response = client.get("/classes/class-1/quizzes/nope/session", headers=STUDENT)

    assert response.status_code == 404


def test_unknown_quiz_session_reports_not_found_state(client):
    response = client.post("/classes/class-1/quizzes/nope/session", headers=STUDENT)

    assert response.json()["state"] == "not_found"


def test_grade_report_and_result_deletion(client, store):
    enroll(store, "class-1", "s1", "Ada", "Lovelace")
    quiz_id = _create_quiz(client)
    base = f"/classes/class-1/quizzes/{quiz_id}/session"
    client.post(base, headers=STUDENT)
    client.post(f"{base}/select", json={"question_index": 0, "option_index": 0}, headers=STUDENT)
    client.post(f"{base}/submit", headers=STUDENT)
    client.post(f"{base}/confirm", headers=STUDENT)

    report = client.get("/classes/class-1/grades?sort=descending", headers=TEACHER).json()
    assert report["max_score"] == 2
    assert report["rows"][0]["quizzes"][quiz_id]["display"] == "1"

    delete_url = f"/classes/class-1/grades/s1/quizzes/{quiz_id}"
    refused = client.delete(delete_url, headers=TEACHER)
    assert refused.status_code == 409
    assert "Ada Lovelace" in refused.json()["detail"]

    deleted = client.delete(f"{delete_url}?confirm=true", headers=TEACHER)
    assert deleted.status_code == 200
    report = client.get("/classes/class-1/grades", headers=TEACHER).json()
    assert report["rows"][0]["quizzes"][quiz_id]["display"] == "-"

    reopened = client.post(base, headers=STUDENT).json()
    assert reopened["state"] == "in_progress"


def test_bad_sort_direction_is_rejected(client):
    response = client.get("/classes/class-1/grades?sort=sideways", headers=TEACHER)

    assert response.status_code == 422


def test_assignment_submission_and_grading(client):
    created = client.post(
        "/classes/class-1/assignments",
        json={"title": "Essay", "points": 10},
        headers=TEACHER,
    )
    assert created.status_code == 201
    assignment_id = created.json()["id"]

    content = base64.b64encode(b"my essay").decode()
    submitted = client.post(
        f"/classes/class-1/assignments/{assignment_id}/submissions",
        json={"file_name": "essay.txt", "content_base64": content},
        headers=STUDENT,
    )
    assert submitted.status_code == 201
    submission_id = submitted.json()["id"]

    too_high = client.post(
        f"/submissions/{submission_id}/grade", json={"grade": 11}, headers=TEACHER
    )
    assert too_high.status_code == 422
    assert too_high.json()["detail"] == "Please enter a valid grade between 0 and 10."

    graded = client.post(
        f"/submissions/{submission_id}/grade",
        json={"grade": 9, "feedback": "Nice"},
        headers=TEACHER,
    )
    assert graded.json()["status"] == "graded"

    listing = client.get(
        f"/classes/class-1/assignments/{assignment_id}/submissions", headers=TEACHER
    ).json()
    assert listing["progress"] == 100


def test_invalid_base64_is_rejected(client):
    created = client.post(
        "/classes/class-1/assignments", json={"title": "Essay", "points": 10}, headers=TEACHER
    ).json()

    response = client.post(
        f"/classes/class-1/assignments/{created['id']}/submissions",
        json={"file_name": "x.txt", "content_base64": "***"},
        headers=STUDENT,
    )

    assert response.status_code == 422


def test_lesson_views_feed_attendance_report(client, store):
    enroll(store, "class-1", "s1", "Ada", "Lovelace")
    url = "/classes/class-1/lessons/lesson-1/views"

    assert client.post(url, json={"duration_seconds": 30}, headers=STUDENT).status_code == 202
    client.post(url, json={"duration_seconds": 15}, headers=STUDENT)

    report = client.get("/classes/class-1/attendance", headers=TEACHER).json()
    assert report["overview"]["total_lesson_views"] == 1
    assert report["rows"][0]["duration"] == 45
    assert report["rows"][0]["student_name"] == "Ada Lovelace"


def test_create_and_join_classroom(client):
    created = client.post("/classes", json={"name": "Maths 7B"}, headers=TEACHER)
    assert created.status_code == 201
    code = created.json()["class_code"]
    assert len(code) == 6
    assert created.json()["id"] == code

    assert client.post("/classes", json={"name": "Nope"}, headers=STUDENT).status_code == 403

    profile = client.put(
        "/students/me", json={"first_name": "Ada", "last_name": "Lovelace"}, headers=STUDENT
    )
    assert profile.json()["full_name"] == "Ada Lovelace"

    joined = client.post("/classes/join", json={"class_code": code.lower()}, headers=STUDENT)
    assert joined.status_code == 201
    assert joined.json()["name"] == "Maths 7B"
    again = client.post("/classes/join", json={"class_code": code}, headers=STUDENT)
    assert again.status_code == 422
    unknown = client.post("/classes/join", json={"class_code": "ZZZ000"}, headers=STUDENT)
    assert unknown.status_code == 404

    assert [c["id"] for c in client.get("/classes", headers=STUDENT).json()] == [code]
    assert [c["id"] for c in client.get("/classes", headers=TEACHER).json()] == [code]

    report = client.get(f"/classes/{code}/grades", headers=TEACHER).json()
    assert report["rows"][0]["student_name"] == "Ada Lovelace"


def test_quiz_routes_are_scoped_to_their_class(client):
    quiz_id = _create_quiz(client)
    other = f"/classes/class-2/quizzes/{quiz_id}"

    assert client.get(other, headers=TEACHER).status_code == 404
    moved = client.put(other, json=dict(QUIZ_PAYLOAD, title="Moved"), headers=TEACHER)
    assert moved.status_code == 404
    assert client.delete(other, headers=TEACHER).status_code == 404
    assert client.delete(f"{other}/questions/0", headers=TEACHER).status_code == 404
    assert client.post(f"{other}/session", headers=STUDENT).json()["state"] == "not_found"

    kept = client.get(f"/classes/class-1/quizzes/{quiz_id}", headers=TEACHER).json()
    assert kept["title"] == "Powers"
    assert kept["class_id"] == "class-1"
    assert len(kept["questions"]) == 2
    assert client.get("/classes/class-2/quizzes", headers=STUDENT).json() == []


def test_assignment_routes_are_scoped_to_their_class(client):
    created = client.post(
        "/classes/class-1/assignments", json={"title": "Essay", "points": 10}, headers=TEACHER
    ).json()
    other = f"/classes/class-2/assignments/{created['id']}"

    submitted = client.post(f"{other}/submissions", json={"note": "hi"}, headers=STUDENT)
    assert submitted.status_code == 404
    assert client.get(f"{other}/submissions", headers=TEACHER).status_code == 404
    assert client.delete(other, headers=TEACHER).status_code == 404

    listing = client.get("/classes/class-1/assignments", headers=STUDENT).json()
    assert [a["id"] for a in listing] == [created["id"]]

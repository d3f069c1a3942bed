from __future__ import annotations

import pytest

from conftest import make_question, make_quiz
from classroom_app.core.errors import NotFoundError, ValidationFailure
from classroom_app.core.models import QuizOption, QuizQuestion
from classroom_app.core.services.quiz_repository import QuizRepository


@pytest.fixture
def repository(store) -> QuizRepository:
    return QuizRepository(store)


def test_create_and_fetch_quiz(repository):
    created = repository.create_quiz(make_quiz(title="  Algebra  ", time_limit=5))

    fetched = repository.require_quiz(created.id)
    assert fetched.title == "Algebra"
    assert fetched.time_limit == 5
    assert [q.correct_answer for q in fetched.questions] == [0, 1, 2]


@pytest.mark.parametrize(
    "quiz_kwargs",
    [
        {"title": "   "},
        {"questions": []},
        {"questions": [QuizQuestion(text=" ", options=[QuizOption("a"), QuizOption("b")])]},
        {"questions": [QuizQuestion(text="Q", options=[QuizOption("a")])]},
        {"questions": [make_question("Q", option_count=5)]},
        {"questions": [QuizQuestion(text="Q", options=[QuizOption("a"), QuizOption(" ")])]},
        {"questions": [make_question("Q", correct=3)]},
        {"time_limit": 0},
    ],
)
def test_invalid_quizzes_are_rejected(repository, store, quiz_kwargs):
    with pytest.raises(ValidationFailure):
        repository.create_quiz(make_quiz(**quiz_kwargs))
    assert store.query("quizzes") == []


def test_question_editing(repository):
    quiz = repository.create_quiz(make_quiz())

    repository.add_question(quiz.id, make_question("Q4", correct=1))
    repository.update_question(quiz.id, 0, make_question("Q1 revised"))
    updated = repository.delete_question(quiz.id, 1)

    stored = repository.require_quiz(quiz.id)
    assert [q.text for q in stored.questions] == ["Q1 revised", "Q3", "Q4"]
    assert [q.text for q in updated.questions] == ["Q1 revised", "Q3", "Q4"]
    with pytest.raises(IndexError):
        repository.delete_question(quiz.id, 7)


def test_list_is_ordered_and_move_swaps_neighbours(repository):
    first = repository.create_quiz(make_quiz(title="First", order=0))
    second = repository.create_quiz(make_quiz(title="Second", order=1))
    third = repository.create_quiz(make_quiz(title="Third", order=2))
    repository.create_quiz(make_quiz(class_id="other", title="Elsewhere"))

    moved = repository.move_quiz("class-1", third.id, "up")

    assert [q.id for q in moved] == [first.id, third.id, second.id]
    assert [q.title for q in repository.list_quizzes("class-1")] == ["First", "Third", "Second"]
    assert [q.order for q in repository.list_quizzes("class-1")] == [0, 1, 2]


def test_move_at_edge_is_a_no_op(repository):
    first = repository.create_quiz(make_quiz(title="First", order=0))
    repository.create_quiz(make_quiz(title="Second", order=1))

    moved = repository.move_quiz("class-1", first.id, "up")

    assert [q.title for q in moved] == ["First", "Second"]


def test_move_rejects_unknown_quiz_and_direction(repository):
    quiz = repository.create_quiz(make_quiz())

    with pytest.raises(NotFoundError):
        repository.move_quiz("class-1", "missing", "down")
    with pytest.raises(ValidationFailure):
        repository.move_quiz("class-1", quiz.id, "sideways")


def test_delete_quiz(repository):
    quiz = repository.create_quiz(make_quiz())

    repository.delete_quiz(quiz.id)

    assert repository.get_quiz(quiz.id) is None
    with pytest.raises(NotFoundError):
        repository.require_quiz(quiz.id)


def test_quiz_of_another_class_is_treated_as_missing(repository):
    quiz = repository.create_quiz(make_quiz(class_id="class-1"))
    moved = make_quiz(class_id="class-2", title="Hijacked")
    moved.id = quiz.id

    with pytest.raises(NotFoundError):
        repository.require_quiz(quiz.id, "class-2")
    with pytest.raises(NotFoundError):
        repository.update_quiz(moved)
    with pytest.raises(NotFoundError):
        repository.add_question(quiz.id, make_question("Q4"), class_id="class-2")
    with pytest.raises(NotFoundError):
        repository.update_question(quiz.id, 0, make_question("Q0"), class_id="class-2")
    with pytest.raises(NotFoundError):
        repository.delete_question(quiz.id, 0, class_id="class-2")
    with pytest.raises(NotFoundError):
        repository.delete_quiz(quiz.id, class_id="class-2")

    kept = repository.require_quiz(quiz.id, "class-1")
    assert kept.title == "Fractions"
    assert len(kept.questions) == 3

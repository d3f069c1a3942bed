"""Scoring and the per-question review shown after a quiz is submitted."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from html import escape
from typing import Mapping, Sequence

from classroom_app.constants.ui_constants import (
    BACK_TO_CLASSROOM_LABEL,
    NOT_AVAILABLE_PLACEHOLDER,
)
from classroom_app.core.markdown_math_renderer import renderer
from classroom_app.core.models import Quiz, QuizQuestion


class OptionState(str, Enum):
    SELECTED_CORRECT = "selected_correct"
    CORRECT_NOT_SELECTED = "correct_not_selected"
    SELECTED_INCORRECT = "selected_incorrect"
    NEUTRAL = "neutral"


@dataclass(slots=True)
class OptionReview:
    text: str
    image: str | None
    state: OptionState


@dataclass(slots=True)
class QuestionReview:
    index: int
    text: str
    image: str | None
    selected_option: int | None
    correct_option: int
    is_correct: bool
    options: list[OptionReview]


@dataclass(slots=True)
class QuizReview:
    quiz_title: str
    score: int
    total_questions: int
    percentage: float | None
    questions: list[QuestionReview]


def score_answers(questions: Sequence[QuizQuestion], answers: Mapping[int, int]) -> int:
    """Count the questions whose selected option equals the correct answer.

    Unanswered questions count as incorrect.
    """
    return sum(
        1
        for index, question in enumerate(questions)
        if answers.get(index) == question.correct_answer
    )


def percentage(score: float, total: float) -> float | None:
    """Return ``score / total * 100``, or ``None`` when there is nothing to score."""
    if total <= 0:
        return None
    return score / total * 100


def format_percentage(value: float | None) -> str:
    if value is None:
        return NOT_AVAILABLE_PLACEHOLDER
    return f"{value:.0f}%"


def option_state(option_index: int, selected: int | None, correct: int) -> OptionState:
    if option_index == selected and option_index == correct:
        return OptionState.SELECTED_CORRECT
    if option_index == correct:
        return OptionState.CORRECT_NOT_SELECTED
    if option_index == selected:
        return OptionState.SELECTED_INCORRECT
    return OptionState.NEUTRAL


def build_review(
    quiz: Quiz,
    answers: Mapping[int, int],
    score: int,
    total_questions: int,
) -> QuizReview:
    questions: list[QuestionReview] = []
    for index, question in enumerate(quiz.questions):
        selected = answers.get(index)
        questions.append(
            QuestionReview(
                index=index,
                text=question.text,
                image=question.image,
                selected_option=selected,
                correct_option=question.correct_answer,
                is_correct=selected == question.correct_answer,
                options=[
                    OptionReview(
                        text=option.text,
                        image=option.image,
                        state=option_state(option_index, selected, question.correct_answer),
                    )
                    for option_index, option in enumerate(question.options)
                ],
            )
        )
    return QuizReview(
        quiz_title=quiz.title,
        score=score,
        total_questions=total_questions,
        percentage=percentage(score, total_questions),
        questions=questions,
    )


def render_review_html(review: QuizReview, classroom_url: str) -> str:
    """Render the review as a standalone HTML page."""
    parts = [
        f"<h1>{escape(review.quiz_title)}</h1>",
        f"<p class=\"score\">{review.score} / {review.total_questions} "
        f"({format_percentage(review.percentage)})</p>",
    ]
    for question in review.questions:
        verdict = "correct" if question.is_correct else "incorrect"
        parts.append(f"<section class=\"question {verdict}\">")
        parts.append(f"<h2>Question {question.index + 1}</h2>")
        parts.append(renderer.render_fragment(question.text))
        if question.image:
            parts.append(f"<img src=\"{escape(question.image)}\" alt=\"\" />")
        for option in question.options:
            parts.append(
                f"<div class=\"option {option.state.value}\">"
                f"{renderer.render_inline(option.text)}</div>"
            )
        parts.append("</section>")
    parts.append(f"<a href=\"{escape(classroom_url)}\">{BACK_TO_CLASSROOM_LABEL}</a>")
    return renderer.wrap_with_mathjax("\n".join(parts), title=review.quiz_title)

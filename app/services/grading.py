from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID

from app.models.attempt import AnswerRecord
from app.models.question import ChoiceQuestion, EssayQuestion, Question, TextQuestion
from app.models.quiz import Quiz
from app.services.answer_evaluator import AnswerEvaluator

NO_ANSWER = "No answer provided"


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: int  # percent
    points_earned: float
    total_points: float
    passed: bool
    results: tuple[AnswerRecord, ...]


def score_percent(points_earned: float, total_points: float) -> int:
    """Round half up; 0 for a quiz worth nothing."""
    if total_points <= 0:
        return 0
    return math.floor(100 * points_earned / total_points + 0.5)


def _grade_choice(q: ChoiceQuestion, value: str) -> AnswerRecord:
    option = q.find_option(value)
    if option is not None and option.is_correct:
        return AnswerRecord(
            question_id=q.id, value=value, is_correct=True, points_awarded=q.points,
            feedback="Correct!",
        )
    return AnswerRecord(
        question_id=q.id,
        value=value,
        is_correct=False,
        points_awarded=0,
        feedback=f"Incorrect. {q.explanation or ''}".strip(),
    )


async def grade_question(
    q: Question, value: str | None, evaluator: AnswerEvaluator
) -> AnswerRecord:
    if isinstance(q, EssayQuestion):
        # Manual grading only.
        return AnswerRecord(
            question_id=q.id, value=value, is_correct=None, points_awarded=0,
            feedback="Awaiting manual review",
        )
    if value is None or not value.strip():
        return AnswerRecord(
            question_id=q.id, value=value, is_correct=False, points_awarded=0,
            feedback=NO_ANSWER,
        )
    if isinstance(q, ChoiceQuestion):
        return _grade_choice(q, value)
    if isinstance(q, TextQuestion):
        evaluation = await evaluator.evaluate(q.prompt, q.correct_answer, value)
        return AnswerRecord(
            question_id=q.id,
            value=value,
            is_correct=evaluation.is_correct,
            points_awarded=evaluation.score * q.points,
            feedback=evaluation.feedback,
        )
    raise TypeError(f"unsupported question type: {type(q).__name__}")


async def grade(
    quiz: Quiz,
    answers: Mapping[UUID, str | None],
    evaluator: AnswerEvaluator,
) -> GradeResult:
    """Score every quiz question against ``answers``.

    Answers for ids that are not questions of this quiz are ignored;
    questions without an answer score zero.
    """
    results = []
    for q in quiz.questions:
        results.append(await grade_question(q, answers.get(q.id), evaluator))
    earned = sum(r.points_awarded for r in results)
    total = quiz.total_points
    score = score_percent(earned, total)
    return GradeResult(
        score=score,
        points_earned=earned,
        total_points=total,
        passed=score >= quiz.settings.passing_score,
        results=tuple(results),
    )

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.models.question import EssayQuestion, TextQuestion
from app.models.quiz import QuizSettings
from app.services.answer_evaluator import AnswerEvaluator
from app.services.grading import NO_ANSWER, grade, grade_question, score_percent
from app.services.text_generator import NullTextGenerator
from tests.conftest import choice, correct_answers, make_quiz

_EVALUATOR = AnswerEvaluator(NullTextGenerator())


def test_score_percent_rounds_half_up() -> None:
    assert score_percent(34.5, 100) == 35
    assert score_percent(34.49, 100) == 34
    assert score_percent(1, 3) == 33
    assert score_percent(2, 3) == 67


def test_score_percent_of_zero_point_quiz_is_zero() -> None:
    assert score_percent(0, 0) == 0


def test_perfect_answers_score_one_hundred() -> None:
    quiz = make_quiz()
    result = asyncio.run(grade(quiz, correct_answers(quiz), _EVALUATOR))
    assert result.score == 100
    assert result.passed is True
    assert all(r.feedback == "Correct!" for r in result.results)


def test_choice_matches_option_text_case_insensitively() -> None:
    q = choice("Capital of France?", "Paris", "Lyon")
    quiz = make_quiz(q)
    result = asyncio.run(grade(quiz, {q.id: " paris "}, _EVALUATOR))
    assert result.results[0].is_correct is True


def test_wrong_choice_feedback_carries_explanation() -> None:
    q = choice("Capital of France?", "Paris", "Lyon")
    quiz = make_quiz(q)
    result = asyncio.run(grade(quiz, {q.id: "Lyon"}, _EVALUATOR))
    record = result.results[0]
    assert record.is_correct is False
    assert record.points_awarded == 0
    assert record.feedback == "Incorrect. The answer is Paris."


def test_missing_and_blank_answers_score_zero() -> None:
    quiz = make_quiz()
    first, second = quiz.questions
    result = asyncio.run(grade(quiz, {first.id: "   "}, _EVALUATOR))
    assert result.score == 0
    assert [r.feedback for r in result.results] == [NO_ANSWER, NO_ANSWER]
    assert result.results[1].question_id == second.id


def test_answers_for_unknown_questions_are_ignored() -> None:
    quiz = make_quiz()
    answers = {**correct_answers(quiz), uuid4(): "anything"}
    result = asyncio.run(grade(quiz, answers, _EVALUATOR))
    assert result.score == 100
    assert len(result.results) == 2


def test_passing_boundary_thirty_five_passes() -> None:
    right = choice("right", "yes", "no", points=7)
    wrong = choice("wrong", "yes", "no", points=13, position=1)
    quiz = make_quiz(right, wrong, settings=QuizSettings(passing_score=35))
    result = asyncio.run(grade(quiz, {right.id: "yes", wrong.id: "no"}, _EVALUATOR))
    assert result.score == 35
    assert result.passed is True


def test_passing_boundary_thirty_four_fails() -> None:
    right = choice("right", "yes", "no", points=34)
    wrong = choice("wrong", "yes", "no", points=66, position=1)
    quiz = make_quiz(right, wrong, settings=QuizSettings(passing_score=35))
    result = asyncio.run(grade(quiz, {right.id: "yes", wrong.id: "no"}, _EVALUATOR))
    assert result.score == 34
    assert result.passed is False


def test_objective_grading_is_deterministic() -> None:
    quiz = make_quiz()
    first, _ = quiz.questions
    answers = {first.id: "4"}
    runs = {asyncio.run(grade(quiz, answers, _EVALUATOR)).score for _ in range(5)}
    assert runs == {50}


def test_text_question_partial_credit_scales_points() -> None:
    q = TextQuestion(prompt="Recursion uses which structure?", correct_answer="stack", points=2)
    quiz = make_quiz(q)
    result = asyncio.run(grade(quiz, {q.id: "call stack"}, _EVALUATOR))
    assert result.points_earned == 1.6
    assert result.score == 80


def test_essay_is_left_for_manual_review() -> None:
    essay = EssayQuestion(prompt="Explain closures.", points=5)
    quiz = make_quiz(essay, choice("ok?", "yes", "no", position=1))
    result = asyncio.run(grade(quiz, {essay.id: "A closure captures..."}, _EVALUATOR))
    record = result.results[0]
    assert record.is_correct is None
    assert record.points_awarded == 0
    assert result.total_points == 6


def test_unknown_question_variant_is_rejected() -> None:
    stray = SimpleNamespace(id=uuid4(), prompt="Draw a diagram")
    with pytest.raises(TypeError, match="unsupported question type: SimpleNamespace"):
        asyncio.run(grade_question(stray, "a box", _EVALUATOR))

from __future__ import annotations

import asyncio
import json

import pytest

from app.models.question import ChoiceQuestion, TextQuestion
from app.services.question_bank import REACT_BANK
from app.services.question_generator import (
    QuestionGenerator,
    build_generation_prompt,
    distribution_for,
    parse_generated_questions,
)
from app.services.text_generator import DegradationReason, NullTextGenerator
from tests.conftest import ScriptedTextGenerator, make_course

_GENERATED = [
    {
        "type": "multiple-choice",
        "question": "What does the virtual DOM optimise?",
        "options": [
            {"text": "Network calls", "isCorrect": False},
            {"text": "DOM updates", "isCorrect": True},
            {"text": "CSS parsing", "isCorrect": False},
            {"text": "Bundle size", "isCorrect": False},
        ],
        "explanation": "It batches and diffs DOM writes.",
        "points": 2,
        "difficulty": "medium",
    },
    {
        "type": "true-false",
        "question": "Props are mutable inside the child component.",
        "options": [
            {"text": "True", "isCorrect": False},
            {"text": "False", "isCorrect": True},
        ],
        "difficulty": "easy",
    },
    {
        "type": "short-answer",
        "question": "Which hook stores local state?",
        "correctAnswer": "useState",
        "points": 2,
        "difficulty": "hard",
    },
]


def test_distribution_for_ten_matches_reference_mix() -> None:
    d = distribution_for(10)
    assert (d.multiple_choice, d.true_false, d.short_answer) == (5, 2, 3)
    assert (d.easy, d.medium, d.hard) == (2, 5, 3)


def test_distribution_always_sums_to_count() -> None:
    for n in range(1, 25):
        d = distribution_for(n)
        assert d.multiple_choice + d.true_false + d.short_answer == n
        assert d.easy + d.medium + d.hard == n


@pytest.mark.parametrize(
    ("count", "kinds", "difficulty"),
    [(1, (1, 0, 0), (0, 1, 0)), (3, (1, 1, 1), (1, 1, 1)), (5, (3, 1, 1), (1, 3, 1))],
)
def test_distribution_gives_leftovers_to_largest_remainders(count, kinds, difficulty) -> None:
    d = distribution_for(count)
    assert (d.multiple_choice, d.true_false, d.short_answer) == kinds
    assert (d.easy, d.medium, d.hard) == difficulty


def test_prompt_mentions_course_and_lecture_titles() -> None:
    course = make_course("Intro to React")
    prompt = build_generation_prompt(course, 10)
    assert "Intro to React" in prompt
    assert "Lecture 1, Lecture 2, Lecture 3" in prompt
    assert "Generate 10 challenging quiz questions" in prompt


def test_parse_generated_questions_builds_typed_variants() -> None:
    questions = parse_generated_questions(json.dumps(_GENERATED), 10)

    assert questions is not None
    mc, tf, sa = questions
    assert isinstance(mc, ChoiceQuestion) and mc.points == 2
    assert isinstance(tf, ChoiceQuestion) and tf.kind == "true-false"
    assert isinstance(sa, TextQuestion) and sa.correct_answer == "useState"
    assert [q.position for q in questions] == [0, 1, 2]


def test_parse_accepts_code_fenced_json() -> None:
    fenced = "```json\n" + json.dumps(_GENERATED) + "\n```"
    assert parse_generated_questions(fenced, 10) is not None


def test_parse_truncates_to_count() -> None:
    questions = parse_generated_questions(json.dumps(_GENERATED), 2)
    assert questions is not None
    assert len(questions) == 2


@pytest.mark.parametrize(
    "text",
    [
        "Sure! Here are your questions.",
        "[]",
        '{"type": "multiple-choice"}',
        json.dumps([{"type": "essay", "question": "Discuss."}]),
        # A choice question with no correct option is not a usable question.
        json.dumps(
            [
                {
                    "type": "multiple-choice",
                    "question": "Pick one",
                    "options": [{"text": "a"}, {"text": "b"}],
                }
            ]
        ),
        json.dumps([{"type": "short-answer", "question": "Name it"}]),
    ],
)
def test_parse_rejects_unusable_output(text: str) -> None:
    assert parse_generated_questions(text, 10) is None


def test_generate_without_generator_uses_react_bank() -> None:
    course = make_course("Intro to React")
    result = asyncio.run(QuestionGenerator(NullTextGenerator()).generate(course, 10))

    assert result.source == "fallback"
    assert result.degraded == DegradationReason.UNCONFIGURED
    assert len(result.questions) == 10
    assert {q.prompt for q in result.questions} <= {t.prompt for t in REACT_BANK}


def test_generate_uses_generated_questions_when_valid() -> None:
    generator = ScriptedTextGenerator(json.dumps(_GENERATED))
    course = make_course("Intro to React")
    result = asyncio.run(QuestionGenerator(generator).generate(course, 3))

    assert result.source == "ai"
    assert result.degraded is None
    assert [q.prompt for q in result.questions] == [g["question"] for g in _GENERATED]
    assert len(generator.prompts) == 1


def test_generate_falls_back_on_unparseable_output() -> None:
    generator = ScriptedTextGenerator("I cannot help with that.")
    course = make_course("Intro to React")
    result = asyncio.run(QuestionGenerator(generator).generate(course, 10))

    assert result.source == "fallback"
    assert result.degraded == DegradationReason.UNPARSEABLE
    assert len(result.questions) == 10


def test_generate_requires_title() -> None:
    course = make_course("   ")
    with pytest.raises(ValueError, match="title"):
        asyncio.run(QuestionGenerator(NullTextGenerator()).generate(course, 10))


def test_generate_requires_positive_count() -> None:
    with pytest.raises(ValueError, match="count"):
        asyncio.run(QuestionGenerator(NullTextGenerator()).generate(make_course(), 0))

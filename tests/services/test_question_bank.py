from __future__ import annotations

import random

import pytest

from app.models.question import ChoiceQuestion, TextQuestion
from app.services.question_bank import (
    BANKS,
    JAVASCRIPT_BANK,
    REACT_BANK,
    default_bank,
    detect_topic,
    fallback_questions,
)


@pytest.mark.parametrize(
    ("title", "category", "topic"),
    [
        ("Modern JavaScript", "", "javascript"),
        ("JS Basics", "", "javascript"),
        ("Node.js in Practice", "", "javascript"),
        ("Frontend Basics", "JavaScript", "javascript"),
        ("Intro to React", "", "react"),
        ("Hooks Deep Dive", "React", "react"),
        ("Data Structures 101", "", "dsa"),
        ("Graph Algorithms", "", "dsa"),
        ("DSA Interview Prep", "", "dsa"),
        ("Python for Analysts", "", "python"),
        ("HTML & CSS Foundations", "", "webdev"),
        ("Site Building", "Web Development", "webdev"),
        ("Pottery for Beginners", "Arts", "default"),
    ],
)
def test_detect_topic(title: str, category: str, topic: str) -> None:
    assert detect_topic(title, category) == topic


def test_detect_topic_does_not_match_js_inside_words() -> None:
    assert detect_topic("JSON Web APIs") == "webdev"
    assert detect_topic("Adjsutment Strategies") == "default"


def test_javascript_wins_over_react_when_both_match() -> None:
    assert detect_topic("React for JavaScript developers") == "javascript"


def test_every_curated_bank_has_ten_valid_templates() -> None:
    for name, bank in BANKS.items():
        assert len(bank) == 10, name
        for i, template in enumerate(bank):
            question = template.build(position=i)
            assert question.prompt
            if isinstance(question, ChoiceQuestion):
                assert sum(o.is_correct for o in question.options) == 1


def test_fallback_react_returns_ten_questions_from_react_bank() -> None:
    questions = fallback_questions("Intro to React", count=10)

    react_prompts = {t.prompt for t in REACT_BANK}
    js_only_prompts = {t.prompt for t in JAVASCRIPT_BANK} - react_prompts
    assert len(questions) == 10
    assert {q.prompt for q in questions} == react_prompts
    assert not {q.prompt for q in questions} & js_only_prompts


def test_fallback_positions_are_sequential() -> None:
    questions = fallback_questions("Intro to React", count=10)
    assert [q.position for q in questions] == list(range(10))


def test_fallback_builds_fresh_ids_each_call() -> None:
    first = fallback_questions("Intro to React")
    second = fallback_questions("Intro to React")
    assert not {q.id for q in first} & {q.id for q in second}


def test_fallback_truncates_to_count() -> None:
    assert len(fallback_questions("Python for Analysts", count=4)) == 4


def test_fallback_shuffle_is_seedable() -> None:
    a = fallback_questions("Intro to React", rng=random.Random(7))
    b = fallback_questions("Intro to React", rng=random.Random(7))
    assert [q.prompt for q in a] == [q.prompt for q in b]


def test_default_bank_uses_title_and_category() -> None:
    questions = fallback_questions("Pottery for Beginners", "Arts", count=10)

    assert len(questions) == 3
    text = next(q for q in questions if isinstance(q, TextQuestion))
    assert text.correct_answer == "Pottery for Beginners"
    focus = next(q for q in questions if q.kind == "multiple-choice")
    assert isinstance(focus, ChoiceQuestion)
    assert next(o.text for o in focus.options if o.is_correct) == "Arts"


def test_default_bank_without_category_names_main_subject() -> None:
    template = default_bank("Pottery")[0]
    assert template.options[template.answer] == "Main Subject"

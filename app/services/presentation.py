"""Student-facing ordering of a quiz.

When the quiz asks for shuffling, each attempt sees its own order, seeded
by the attempt id so a reload shows the same order again.  Answer keys are
dropped by the API schemas, not here.
"""

from __future__ import annotations

import random
from dataclasses import replace
from uuid import UUID

from app.models.question import ChoiceQuestion, Question
from app.models.quiz import Quiz


def ordered_questions(quiz: Quiz, seed: UUID | None = None) -> list[Question]:
    questions = sorted(quiz.questions, key=lambda q: q.position)
    if seed is None:
        return questions
    rng = random.Random(seed.int)
    if quiz.settings.shuffle_questions:
        rng.shuffle(questions)
    if quiz.settings.shuffle_options:
        questions = [_shuffle_options(q, rng) for q in questions]
    return questions


def _shuffle_options(q: Question, rng: random.Random) -> Question:
    # True/false keeps its natural order.
    if not isinstance(q, ChoiceQuestion) or q.kind == "true-false":
        return q
    options = list(q.options)
    rng.shuffle(options)
    return replace(q, options=tuple(options))

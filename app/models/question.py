"""Question variants.

A question's payload depends on its kind, so each kind family gets its
own frozen dataclass and ``Question`` is the union of them:

  ChoiceQuestion  multiple-choice, true-false   → options with is_correct flags
  TextQuestion    short-answer, fill-blank      → canonical correct_answer
  EssayQuestion   essay                         → no automatic answer key
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID, uuid4

QuestionKind = Literal[
    "multiple-choice", "true-false", "short-answer", "fill-blank", "essay"
]
ChoiceKind = Literal["multiple-choice", "true-false"]
TextKind = Literal["short-answer", "fill-blank"]
Difficulty = Literal["easy", "medium", "hard"]

CHOICE_KINDS: frozenset[str] = frozenset({"multiple-choice", "true-false"})
TEXT_KINDS: frozenset[str] = frozenset({"short-answer", "fill-blank"})


@dataclass(frozen=True, slots=True)
class QuestionOption:
    id: UUID
    text: str
    is_correct: bool = False

    @staticmethod
    def new(*, text: str, is_correct: bool = False) -> QuestionOption:
        return QuestionOption(id=uuid4(), text=text, is_correct=is_correct)


@dataclass(frozen=True, slots=True, kw_only=True)
class _QuestionBase:
    id: UUID = field(default_factory=uuid4)
    prompt: str
    points: float = 1
    description: str | None = None
    media_url: str | None = None
    explanation: str | None = None
    difficulty: Difficulty = "medium"  # generation balance only, never graded on
    position: int = 0

    def __post_init__(self) -> None:
        if not self.prompt.strip():
            raise ValueError("question prompt must be non-empty")
        if self.points < 0:
            raise ValueError(f"question points must be >= 0 (got {self.points})")


@dataclass(frozen=True, slots=True, kw_only=True)
class ChoiceQuestion(_QuestionBase):
    kind: ChoiceKind = "multiple-choice"
    options: tuple[QuestionOption, ...] = ()

    def __post_init__(self) -> None:
        super(ChoiceQuestion, self).__post_init__()
        if len(self.options) < 2:
            raise ValueError("choice questions need at least two options")
        if not any(o.is_correct for o in self.options):
            raise ValueError("choice questions need a correct option")

    def find_option(self, value: str) -> QuestionOption | None:
        """Match a submitted value against an option id or its text."""
        needle = value.strip()
        for option in self.options:
            if str(option.id) == needle:
                return option
        folded = needle.casefold()
        for option in self.options:
            if option.text.strip().casefold() == folded:
                return option
        return None


@dataclass(frozen=True, slots=True, kw_only=True)
class TextQuestion(_QuestionBase):
    kind: TextKind = "short-answer"
    correct_answer: str

    def __post_init__(self) -> None:
        super(TextQuestion, self).__post_init__()
        if not self.correct_answer.strip():
            raise ValueError("text questions need a non-empty correct_answer")


@dataclass(frozen=True, slots=True, kw_only=True)
class EssayQuestion(_QuestionBase):
    kind: Literal["essay"] = "essay"


Question = ChoiceQuestion | TextQuestion | EssayQuestion

"""Completion-quiz question generation.

Two paths, decided explicitly:

  1. Ask the TextGenerator for a JSON array of questions and validate it.
  2. Otherwise draw from the curated topic banks in question_bank.

The caller always gets a non-empty list; generation problems are logged
and counted, never raised.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from app.core.metrics import QUESTION_SETS_GENERATED
from app.models.course import Course
from app.models.question import ChoiceQuestion, Question, QuestionOption, TextQuestion
from app.services import question_bank
from app.services.text_generator import (
    DegradationReason,
    GenerationOutcome,
    TextGenerator,
    record_degradation,
    strip_code_fences,
    try_generate,
)

logger = logging.getLogger(__name__)

GENERATION_SYSTEM_PROMPT = (
    "You are an expert exam creator who writes challenging, professional-level "
    "quiz questions similar to certification exams and technical interviews. "
    "Always respond with valid JSON only, no markdown formatting."
)
GENERATION_TEMPERATURE = 0.8
GENERATION_MAX_TOKENS = 4000


# ---------------------------------------------------------------------------
# Shape of one generated question (camelCase on the wire)
# ---------------------------------------------------------------------------


class GeneratedOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str = Field(min_length=1)
    is_correct: bool = Field(default=False, alias="isCorrect")


class GeneratedQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["multiple-choice", "true-false", "short-answer", "fill-blank"]
    question: str = Field(min_length=1)
    options: list[GeneratedOption] = Field(default_factory=list)
    correct_answer: str | None = Field(default=None, alias="correctAnswer")
    explanation: str | None = None
    points: float = Field(default=1, ge=0)
    difficulty: Literal["easy", "medium", "hard"] = "medium"

    def to_question(self, position: int) -> Question:
        if self.type in ("short-answer", "fill-blank"):
            return TextQuestion(
                kind=self.type,
                prompt=self.question,
                correct_answer=self.correct_answer or "",
                explanation=self.explanation,
                points=self.points,
                difficulty=self.difficulty,
                position=position,
            )
        return ChoiceQuestion(
            kind=self.type,
            prompt=self.question,
            options=tuple(
                QuestionOption.new(text=o.text, is_correct=o.is_correct)
                for o in self.options
            ),
            explanation=self.explanation,
            points=self.points,
            difficulty=self.difficulty,
            position=position,
        )


_GENERATED_LIST = TypeAdapter(list[GeneratedQuestion])


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Distribution:
    multiple_choice: int
    true_false: int
    short_answer: int
    easy: int
    medium: int
    hard: int


def _apportion(count: int, weights: tuple[int, ...]) -> list[int]:
    """Largest-remainder split of count by weights out of 10; ties go left."""
    shares = [count * w // 10 for w in weights]
    by_remainder = sorted(
        range(len(weights)), key=lambda i: (-(count * weights[i] % 10), i)
    )
    for i in by_remainder[: count - sum(shares)]:
        shares[i] += 1
    return shares


def distribution_for(count: int) -> Distribution:
    """5:2:3 kinds and 2:5:3 difficulty, scaled from a 10-question set."""
    mc, tf, sa = _apportion(count, (5, 2, 3))
    easy, medium, hard = _apportion(count, (2, 5, 3))
    return Distribution(
        multiple_choice=mc,
        true_false=tf,
        short_answer=sa,
        easy=easy,
        medium=medium,
        hard=hard,
    )


def build_generation_prompt(course: Course, count: int) -> str:
    d = distribution_for(count)
    topics = ", ".join(lecture.title for lecture in course.lectures)
    return f"""You are an expert exam creator for professional certification tests. Generate {count} challenging quiz questions for a course completion assessment.

Course Details:
- Title: {course.title}
- Category: {course.category or "N/A"}
- Description: {course.description or "N/A"}
- Learning Objectives: {course.objectives or "N/A"}
- Topics Covered: {topics}

CRITICAL REQUIREMENTS:

1. **Question Types Distribution:**
   - {d.multiple_choice} multiple-choice questions (4 options each, only ONE correct)
   - {d.true_false} true/false questions
   - {d.short_answer} short-answer questions (technical terms, 1-3 words max)

2. **Difficulty Distribution (MUST FOLLOW):**
   - {d.easy} EASY questions (basic recall, definitions)
   - {d.medium} MEDIUM questions (application, understanding concepts)
   - {d.hard} HARD questions (analysis, tricky scenarios, edge cases)

3. **Question Quality Standards:**
   - Questions must read like real certification, interview or university exam questions
   - Include practical scenarios and code-related questions for technical courses
   - Use plausible distractors based on common misconceptions
   - Hard questions should test deep understanding, not memorization

Return ONLY a valid JSON array with this exact structure (no markdown, no code blocks, no explanations outside JSON):
[
  {{
    "type": "multiple-choice",
    "question": "In JavaScript, what is the output of: console.log(typeof null)?",
    "options": [
      {{"text": "null", "isCorrect": false}},
      {{"text": "undefined", "isCorrect": false}},
      {{"text": "object", "isCorrect": true}},
      {{"text": "NullType", "isCorrect": false}}
    ],
    "explanation": "typeof null returns 'object' due to a legacy bug in the language.",
    "points": 2,
    "difficulty": "hard"
  }},
  {{
    "type": "true-false",
    "question": "In React, useEffect with an empty dependency array runs on every render.",
    "options": [
      {{"text": "True", "isCorrect": false}},
      {{"text": "False", "isCorrect": true}}
    ],
    "explanation": "useEffect with [] runs only once on mount, not on every render.",
    "points": 1,
    "difficulty": "medium"
  }},
  {{
    "type": "short-answer",
    "question": "What Big O notation represents constant time complexity?",
    "correctAnswer": "O(1)",
    "explanation": "O(1) takes the same time regardless of input size.",
    "points": 2,
    "difficulty": "easy"
  }}
]

Generate questions that would genuinely test if someone learned from the "{course.title}" course."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_generated_questions(text: str, count: int) -> list[Question] | None:
    """Validate generator output.  None when it is not a usable question set."""
    try:
        raw = json.loads(strip_code_fences(text))
        generated = _GENERATED_LIST.validate_python(raw)
        questions = [g.to_question(position=i) for i, g in enumerate(generated[:count])]
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        logger.debug("Generated question set rejected: %s", e)
        return None
    return questions or None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GeneratedSet:
    questions: list[Question]
    source: Literal["ai", "fallback"]
    degraded: DegradationReason | None = None


class QuestionGenerator:
    def __init__(self, text_generator: TextGenerator, *, rng: random.Random | None = None) -> None:
        self._text_generator = text_generator
        self._rng = rng

    async def generate(self, course: Course, count: int = 10) -> GeneratedSet:
        if not course.title.strip():
            raise ValueError("course title is required for question generation")
        if count < 1:
            raise ValueError(f"count must be >= 1 (got {count})")

        outcome: GenerationOutcome = await try_generate(
            self._text_generator,
            build_generation_prompt(course, count),
            operation="generate",
            system=GENERATION_SYSTEM_PROMPT,
            temperature=GENERATION_TEMPERATURE,
            max_tokens=GENERATION_MAX_TOKENS,
        )
        reason = outcome.reason
        if outcome.text is not None:
            questions = parse_generated_questions(outcome.text, count)
            if questions is not None:
                QUESTION_SETS_GENERATED.labels(source="ai").inc()
                logger.info(
                    "Generated %d questions for course %s",
                    len(questions),
                    course.id,
                    extra={"course_id": str(course.id)},
                )
                return GeneratedSet(questions=questions, source="ai")
            reason = DegradationReason.UNPARSEABLE

        record_degradation("generate", reason, course_id=str(course.id))
        questions = question_bank.fallback_questions(
            course.title, course.category, count, rng=self._rng
        )
        QUESTION_SETS_GENERATED.labels(source="fallback").inc()
        logger.info(
            "Using %s fallback bank (%d questions) for course %s",
            question_bank.detect_topic(course.title, course.category),
            len(questions),
            course.id,
            extra={"course_id": str(course.id)},
        )
        return GeneratedSet(questions=questions, source="fallback", degraded=reason)

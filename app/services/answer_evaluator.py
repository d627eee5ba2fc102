"""Free-text answer evaluation.

Tiers, first match wins:

  empty            → incorrect, 0, "No answer provided"
  exact (casefold) → correct, 1.0
  containment      → correct, 0.8 (either string inside the other)
  generator        → its JSON verdict {isCorrect, score, feedback}
  similarity       → normalized Levenshtein; threshold 0.7 when no generator
                     is configured, 0.6 when a configured one failed

``score`` is a fraction of the question's points.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.metrics import ANSWER_EVALUATIONS
from app.services.text_generator import (
    DegradationReason,
    TextGenerator,
    record_degradation,
    strip_code_fences,
    try_generate,
)

logger = logging.getLogger(__name__)

CONTAINMENT_SCORE = 0.8
SIMILARITY_THRESHOLD = 0.7
DEGRADED_SIMILARITY_THRESHOLD = 0.6

EVALUATION_SYSTEM_PROMPT = "You are a fair and accurate grader. Respond only with valid JSON."
EVALUATION_TEMPERATURE = 0.3
EVALUATION_MAX_TOKENS = 200


@dataclass(frozen=True, slots=True)
class Evaluation:
    is_correct: bool
    score: float
    feedback: str
    method: str


class _Verdict(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_correct: bool = Field(alias="isCorrect")
    score: float = Field(ge=0, le=1)
    feedback: str = ""


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance / len(longer); two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(a, b)) / longest


def _normalize(value: str) -> str:
    return value.strip().lower()


def build_evaluation_prompt(question: str, expected: str, answer: str) -> str:
    return f"""Evaluate this student answer:

Question: {question}
Expected Answer: {expected}
Student Answer: {answer}

Evaluate if the student's answer is correct, partially correct, or incorrect.
Consider synonyms, different phrasings, and semantic meaning.

Respond with ONLY valid JSON (no markdown):
{{
  "isCorrect": true/false,
  "score": 0.0 to 1.0,
  "feedback": "Brief feedback explaining the evaluation"
}}"""


def _parse_verdict(text: str) -> _Verdict | None:
    try:
        return _Verdict.model_validate(json.loads(strip_code_fences(text)))
    except (json.JSONDecodeError, ValidationError):
        return None


def _by_similarity(expected: str, answer: str, *, degraded: bool) -> Evaluation:
    score = similarity(expected, answer)
    if degraded:
        return Evaluation(
            is_correct=score > DEGRADED_SIMILARITY_THRESHOLD,
            score=score,
            feedback="Auto-evaluated based on text similarity",
            method="similarity",
        )
    accepted = score > SIMILARITY_THRESHOLD
    return Evaluation(
        is_correct=accepted,
        score=score,
        feedback="Answer accepted" if accepted else "Answer does not match expected response",
        method="similarity",
    )


class AnswerEvaluator:
    def __init__(self, text_generator: TextGenerator) -> None:
        self._text_generator = text_generator

    async def evaluate(self, question: str, expected: str, answer: str | None) -> Evaluation:
        result = await self._evaluate(question, expected, answer)
        ANSWER_EVALUATIONS.labels(method=result.method).inc()
        return result

    async def _evaluate(self, question: str, expected: str, answer: str | None) -> Evaluation:
        if answer is None or not answer.strip():
            return Evaluation(False, 0.0, "No answer provided", "empty")

        want = _normalize(expected)
        got = _normalize(answer)
        if got == want:
            return Evaluation(True, 1.0, "Correct!", "exact")
        if got in want or want in got:
            return Evaluation(True, CONTAINMENT_SCORE, "Mostly correct!", "contains")

        outcome = await try_generate(
            self._text_generator,
            build_evaluation_prompt(question, expected, answer),
            operation="evaluate",
            system=EVALUATION_SYSTEM_PROMPT,
            temperature=EVALUATION_TEMPERATURE,
            max_tokens=EVALUATION_MAX_TOKENS,
        )
        if outcome.reason == DegradationReason.UNCONFIGURED:
            record_degradation("evaluate", outcome.reason)
            return _by_similarity(want, got, degraded=False)

        reason = outcome.reason
        if outcome.text is not None:
            verdict = _parse_verdict(outcome.text)
            if verdict is not None:
                return Evaluation(
                    is_correct=verdict.is_correct,
                    score=verdict.score,
                    feedback=verdict.feedback,
                    method="ai",
                )
            reason = DegradationReason.UNPARSEABLE

        record_degradation("evaluate", reason)
        return _by_similarity(want, got, degraded=True)

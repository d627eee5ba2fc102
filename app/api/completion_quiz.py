"""Completion quiz and attempt endpoints.

  GET  /v1/courses/{course_id}/completion-quiz           quiz, or already-passed summary
  GET  /v1/courses/{course_id}/completion-quiz/attempts  caller's attempt history
  POST /v1/completion-quiz/{quiz_id}/attempts            start or resume an attempt
  GET  /v1/attempts/{attempt_id}                         resume view
  PUT  /v1/attempts/{attempt_id}/answers/{question_id}   save one answer
  POST /v1/attempts/{attempt_id}/submit                  grade and maybe certify
  POST /v1/attempts/{attempt_id}/abandon                 give up an open attempt
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.dependencies import get_completion_service, require_user
from app.api.errors import to_http_exception
from app.api.schemas import (
    CertificateRefOut,
    QuestionOut,
    QuizOut,
    certificate_ref,
    question_out,
    quiz_out,
)
from app.models.attempt import Attempt
from app.models.principal import Principal
from app.models.question import ChoiceQuestion, TextQuestion
from app.models.quiz import Quiz
from app.services.cache import COMPLETION_QUIZ_TTL, cache_service, completion_quiz_key
from app.services.completion import AlreadyPassed, CompletionService
from app.services.errors import AssessmentError
from app.services.presentation import ordered_questions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["completion-quiz"])

Service = Annotated[CompletionService, Depends(get_completion_service)]
CurrentUser = Annotated[Principal, Depends(require_user)]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class CompletionQuizOut(BaseModel):
    status: Literal["available", "passed"]
    quiz: QuizOut
    passing_score: int
    attempts_remaining: int | None = None
    open_attempt_id: str | None = None
    score: int | None = None
    certificate: CertificateRefOut | None = None


class StartAttemptIn(BaseModel):
    restart: bool = False


class AttemptStartOut(BaseModel):
    attempt_id: str
    attempt_number: int
    status: str
    started_at: int
    time_limit_minutes: int | None


class SavedAnswerOut(BaseModel):
    question_id: str
    answer: str | None
    time_spent_seconds: int


class AttemptDetailOut(BaseModel):
    attempt_id: str
    quiz_id: str
    attempt_number: int
    status: str
    started_at: int
    time_limit_minutes: int | None
    questions: list[QuestionOut]
    answers: list[SavedAnswerOut]


class SaveAnswerIn(BaseModel):
    answer: str | None = None
    time_spent_seconds: int = Field(default=0, ge=0)


class SubmittedAnswerIn(BaseModel):
    question_id: str
    answer: str | None = None


class SubmitIn(BaseModel):
    answers: list[SubmittedAnswerIn] = Field(default_factory=list)


class QuestionResultOut(BaseModel):
    question_id: str
    answer: str | None
    is_correct: bool | None
    points_awarded: float
    feedback: str
    correct_answer: str | None = None
    explanation: str | None = None


class SubmitOut(BaseModel):
    attempt_id: str
    status: str
    passed: bool
    score: int
    points_earned: float
    total_points: float
    passing_score: int
    feedback: str
    attempts_remaining: int
    results: list[QuestionResultOut] | None = None
    certificate: CertificateRefOut | None = None


class AttemptSummaryOut(BaseModel):
    attempt_id: str
    attempt_number: int
    status: str
    score: int
    started_at: int
    submitted_at: int | None
    passed: bool


class AttemptHistoryOut(BaseModel):
    quiz_exists: bool
    quiz_id: str | None = None
    passing_score: int | None = None
    attempts_remaining: int
    attempts: list[AttemptSummaryOut]


def _summary(attempt: Attempt, passing_score: int) -> AttemptSummaryOut:
    return AttemptSummaryOut(
        attempt_id=str(attempt.id),
        attempt_number=attempt.attempt_number,
        status=attempt.status.value,
        score=attempt.score,
        started_at=attempt.started_at,
        submitted_at=attempt.submitted_at,
        passed=attempt.submitted_at is not None and attempt.score >= passing_score,
    )


def _correct_answer(quiz: Quiz, question_id: UUID) -> str | None:
    q = quiz.question(question_id)
    if isinstance(q, ChoiceQuestion):
        return next((o.text for o in q.options if o.is_correct), None)
    if isinstance(q, TextQuestion):
        return q.correct_answer
    return None


def _parse_answers(body: SubmitIn) -> dict[UUID, str | None]:
    answers: dict[UUID, str | None] = {}
    for item in body.answers:
        try:
            answers[UUID(item.question_id)] = item.answer
        except ValueError:
            continue  # not a question of any quiz; ignored like unknown ids
    return answers


async def _cached_quiz_view(quiz: Quiz) -> QuizOut:
    """Read-through cache of the unshuffled student view of a quiz."""
    key = completion_quiz_key(quiz.course_id)
    cached = await cache_service.get(key)
    if cached is not None:
        view = QuizOut(**json.loads(cached))
        if view.id == str(quiz.id):
            return view
    view = quiz_out(quiz)
    await cache_service.set(key, view.model_dump_json(), COMPLETION_QUIZ_TTL)
    return view


# ---------------------------------------------------------------------------
# Completion quiz
# ---------------------------------------------------------------------------


@router.get("/courses/{course_id}/completion-quiz", response_model=CompletionQuizOut)
async def get_completion_quiz(
    course_id: UUID, principal: CurrentUser, service: Service
) -> CompletionQuizOut:
    try:
        result = await service.completion_quiz(principal.student_id, course_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None

    view = await _cached_quiz_view(result.quiz)
    if isinstance(result, AlreadyPassed):
        return CompletionQuizOut(
            status="passed",
            quiz=view,
            passing_score=result.quiz.settings.passing_score,
            score=result.score,
            certificate=certificate_ref(result.certificate),
        )
    return CompletionQuizOut(
        status="available",
        quiz=view,
        passing_score=result.quiz.settings.passing_score,
        attempts_remaining=result.attempts_remaining,
        open_attempt_id=str(result.open_attempt.id) if result.open_attempt else None,
    )


@router.get(
    "/courses/{course_id}/completion-quiz/attempts", response_model=AttemptHistoryOut
)
async def list_completion_attempts(
    course_id: UUID, principal: CurrentUser, service: Service
) -> AttemptHistoryOut:
    try:
        history = await service.attempt_history(principal.student_id, course_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    if history.quiz is None:
        return AttemptHistoryOut(quiz_exists=False, attempts_remaining=0, attempts=[])
    passing = history.quiz.settings.passing_score
    return AttemptHistoryOut(
        quiz_exists=True,
        quiz_id=str(history.quiz.id),
        passing_score=passing,
        attempts_remaining=history.attempts_remaining,
        attempts=[_summary(a, passing) for a in history.attempts],
    )


@router.post("/completion-quiz/{quiz_id}/attempts", response_model=AttemptStartOut)
async def start_attempt(
    quiz_id: UUID,
    principal: CurrentUser,
    service: Service,
    body: StartAttemptIn | None = None,
) -> AttemptStartOut:
    try:
        attempt, quiz = await service.start_attempt(
            principal.student_id, quiz_id, restart=body.restart if body else False
        )
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return AttemptStartOut(
        attempt_id=str(attempt.id),
        attempt_number=attempt.attempt_number,
        status=attempt.status.value,
        started_at=attempt.started_at,
        time_limit_minutes=quiz.settings.time_limit_minutes,
    )


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------


@router.get("/attempts/{attempt_id}", response_model=AttemptDetailOut)
async def get_attempt(
    attempt_id: UUID, principal: CurrentUser, service: Service
) -> AttemptDetailOut:
    try:
        attempt, quiz = await service.resume_attempt(principal.student_id, attempt_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return AttemptDetailOut(
        attempt_id=str(attempt.id),
        quiz_id=str(quiz.id),
        attempt_number=attempt.attempt_number,
        status=attempt.status.value,
        started_at=attempt.started_at,
        time_limit_minutes=quiz.settings.time_limit_minutes,
        questions=[question_out(q) for q in ordered_questions(quiz, attempt.id)],
        answers=[
            SavedAnswerOut(
                question_id=str(a.question_id),
                answer=a.value,
                time_spent_seconds=a.time_spent_seconds,
            )
            for a in attempt.answers
            if a.value is not None
        ],
    )


@router.put(
    "/attempts/{attempt_id}/answers/{question_id}", response_model=SavedAnswerOut
)
async def save_answer(
    attempt_id: UUID,
    question_id: UUID,
    body: SaveAnswerIn,
    principal: CurrentUser,
    service: Service,
) -> SavedAnswerOut:
    try:
        await service.save_answer(
            principal.student_id,
            attempt_id,
            question_id,
            body.answer,
            body.time_spent_seconds,
        )
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return SavedAnswerOut(
        question_id=str(question_id),
        answer=body.answer,
        time_spent_seconds=body.time_spent_seconds,
    )


@router.post("/attempts/{attempt_id}/submit", response_model=SubmitOut)
async def submit_attempt(
    attempt_id: UUID,
    body: SubmitIn,
    principal: CurrentUser,
    service: Service,
) -> SubmitOut:
    try:
        result = await service.submit_attempt(
            principal.student_id, attempt_id, _parse_answers(body)
        )
    except AssessmentError as e:
        raise to_http_exception(e) from None

    outcome = result.outcome
    quiz = outcome.quiz
    results = None
    if quiz.settings.show_correct_answers:
        results = [
            QuestionResultOut(
                question_id=str(r.question_id),
                answer=r.value,
                is_correct=r.is_correct,
                points_awarded=r.points_awarded,
                feedback=r.feedback,
                correct_answer=_correct_answer(quiz, r.question_id),
                explanation=getattr(quiz.question(r.question_id), "explanation", None),
            )
            for r in outcome.attempt.answers
        ]
    return SubmitOut(
        attempt_id=str(outcome.attempt.id),
        status=outcome.attempt.status.value,
        passed=outcome.passed,
        score=outcome.grade.score,
        points_earned=outcome.grade.points_earned,
        total_points=outcome.grade.total_points,
        passing_score=quiz.settings.passing_score,
        feedback=outcome.attempt.feedback,
        attempts_remaining=outcome.attempts_remaining,
        results=results,
        certificate=certificate_ref(result.certificate),
    )


@router.post("/attempts/{attempt_id}/abandon", response_model=AttemptSummaryOut)
async def abandon_attempt(
    attempt_id: UUID, principal: CurrentUser, service: Service
) -> AttemptSummaryOut:
    try:
        attempt = await service.abandon_attempt(principal.student_id, attempt_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return _summary(attempt, passing_score=0)

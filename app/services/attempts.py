"""Attempt lifecycle.

    in_progress ──submit──▶ graded        (submitted when any answer needs
         │                                 manual review, e.g. essays)
         └──abandon / restart──▶ abandoned

Only in_progress attempts accept answers or a submission.  Every
transition out of in_progress is a conditional write guarded on that
status, so two racing submits grade once and the loser gets InvalidState.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from uuid import UUID

from app.core.metrics import ATTEMPTS_SUBMITTED
from app.models.attempt import AnswerRecord, Attempt, AttemptStatus
from app.models.quiz import Quiz
from app.repos.attempt_repo import AttemptRepo
from app.repos.errors import DuplicateKeyError
from app.repos.quiz_repo import QuizRepo
from app.services.answer_evaluator import AnswerEvaluator
from app.services.errors import AttemptLimitExceeded, InvalidState, NotFound
from app.services.grading import GradeResult, grade

logger = logging.getLogger(__name__)

# A lost creation race is retried this many times before giving up.
_START_RETRIES = 3


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def attempt_feedback(score: int, passing_score: int, passed: bool) -> str:
    if passed:
        return f"Congratulations! You passed with {score}%!"
    return f"You scored {score}%. You need {passing_score}% to pass. Try again!"


@dataclass(frozen=True, slots=True)
class SubmitOutcome:
    attempt: Attempt
    quiz: Quiz
    grade: GradeResult
    attempts_remaining: int

    @property
    def passed(self) -> bool:
        return self.grade.passed


class AttemptService:
    def __init__(
        self, attempts: AttemptRepo, quizzes: QuizRepo, evaluator: AnswerEvaluator
    ) -> None:
        self._attempts = attempts
        self._quizzes = quizzes
        self._evaluator = evaluator

    # ---- reads ----

    async def get_owned(self, attempt_id: UUID, student_id: UUID) -> Attempt:
        """Other students' attempts are reported as missing, not forbidden."""
        attempt = await self._attempts.get(attempt_id)
        if attempt is None or attempt.student_id != student_id:
            raise NotFound("attempt", attempt_id)
        return attempt

    async def history(self, quiz_id: UUID, student_id: UUID) -> list[Attempt]:
        """Newest first."""
        attempts = await self._attempts.list_for(quiz_id, student_id)
        return sorted(attempts, key=lambda a: a.attempt_number, reverse=True)

    async def attempts_remaining(self, quiz: Quiz, student_id: UUID) -> int:
        used = await self._attempts.count_for(quiz.id, student_id)
        return max(0, quiz.settings.attempt_limit - used)

    # ---- transitions ----

    async def start(self, quiz: Quiz, student_id: UUID, *, restart: bool = False) -> Attempt:
        """Resume the open attempt, or create the next one within the limit.

        With ``restart`` the open attempt is abandoned first; the new one
        still counts against the limit, so a restart with no attempts left
        is rejected and the open attempt is kept.
        """
        if not quiz.settings.is_available(_now()):
            raise InvalidState("unavailable", "quiz is not open for attempts")

        for _ in range(_START_RETRIES):
            current = await self._attempts.get_open(quiz.id, student_id)
            if current is not None and not restart:
                return current

            used = await self._attempts.count_for(quiz.id, student_id)
            if used >= quiz.settings.attempt_limit:
                logger.warning(
                    "Attempt limit reached for student %s on quiz %s (%d/%d)",
                    student_id,
                    quiz.id,
                    used,
                    quiz.settings.attempt_limit,
                    extra={"quiz_id": str(quiz.id)},
                )
                raise AttemptLimitExceeded(used, quiz.settings.attempt_limit)

            if current is not None:
                await self._abandon(current)
                restart = False

            attempt = Attempt.new(
                quiz_id=quiz.id,
                student_id=student_id,
                course_id=quiz.course_id,
                attempt_number=used + 1,
                question_ids=tuple(q.id for q in quiz.questions),
                total_points=quiz.total_points,
                started_at=_now(),
            )
            try:
                await self._attempts.add(attempt)
            except DuplicateKeyError:
                # A concurrent start took this number or opened an attempt.
                logger.info(
                    "Attempt start race for student %s on quiz %s, re-reading",
                    student_id,
                    quiz.id,
                    extra={"quiz_id": str(quiz.id)},
                )
                continue
            logger.info(
                "Started attempt %d for student %s",
                attempt.attempt_number,
                student_id,
                extra={"quiz_id": str(quiz.id), "attempt_id": str(attempt.id)},
            )
            return attempt

        raise RuntimeError(f"could not start attempt on quiz {quiz.id}")

    async def save_answer(
        self,
        attempt_id: UUID,
        student_id: UUID,
        question_id: UUID,
        value: str | None,
        time_spent_seconds: int = 0,
    ) -> Attempt:
        attempt = await self.get_owned(attempt_id, student_id)
        if not attempt.is_open:
            raise InvalidState(attempt.status.value)
        quiz = await self._require_quiz(attempt.quiz_id)
        if quiz.question(question_id) is None:
            raise NotFound("question", question_id)

        updated = await self._attempts.save_answer(
            attempt_id,
            AnswerRecord(
                question_id=question_id,
                value=value,
                time_spent_seconds=max(0, time_spent_seconds),
            ),
        )
        if updated is None:
            # Closed between the read and the write.
            current = await self._attempts.get(attempt_id)
            raise InvalidState(current.status.value if current else "missing")
        return updated

    async def submit(
        self,
        attempt_id: UUID,
        student_id: UUID,
        answers: Mapping[UUID, str | None],
    ) -> SubmitOutcome:
        attempt = await self.get_owned(attempt_id, student_id)
        if not attempt.is_open:
            logger.warning(
                "Submit rejected: attempt is %s",
                attempt.status.value,
                extra={"attempt_id": str(attempt.id)},
            )
            raise InvalidState(attempt.status.value)
        quiz = await self._require_quiz(attempt.quiz_id)

        # Answers saved during the attempt fill in what the submission omits.
        merged: dict[UUID, str | None] = {
            a.question_id: a.value for a in attempt.answers if a.value is not None
        }
        merged.update(answers)

        # Grade fully in memory before anything is written.
        result = await grade(quiz, merged, self._evaluator)
        now = _now()
        needs_review = any(r.is_correct is None for r in result.results)
        finished = replace(
            attempt,
            status=AttemptStatus.SUBMITTED if needs_review else AttemptStatus.GRADED,
            answers=tuple(_with_time_spent(r, attempt) for r in result.results),
            submitted_at=now,
            graded_at=None if needs_review else now,
            score=result.score,
            points_earned=result.points_earned,
            total_points=result.total_points,
            feedback=attempt_feedback(result.score, quiz.settings.passing_score, result.passed),
            time_spent_seconds=max(0, now - attempt.started_at),
        )
        if not await self._attempts.finalize(finished):
            current = await self._attempts.get(attempt_id)
            logger.warning(
                "Submit lost to a concurrent submission",
                extra={"attempt_id": str(attempt.id)},
            )
            raise InvalidState(current.status.value if current else "missing")

        ATTEMPTS_SUBMITTED.labels(outcome="passed" if result.passed else "failed").inc()
        logger.info(
            "Attempt %d graded: %d%% (%s)",
            finished.attempt_number,
            result.score,
            "passed" if result.passed else "failed",
            extra={"quiz_id": str(quiz.id), "attempt_id": str(finished.id)},
        )
        return SubmitOutcome(
            attempt=finished,
            quiz=quiz,
            grade=result,
            attempts_remaining=await self.attempts_remaining(quiz, student_id),
        )

    async def abandon(self, attempt_id: UUID, student_id: UUID) -> Attempt:
        attempt = await self.get_owned(attempt_id, student_id)
        if not attempt.is_open:
            raise InvalidState(attempt.status.value)
        return await self._abandon(attempt)

    async def _abandon(self, attempt: Attempt) -> Attempt:
        moved = await self._attempts.transition(
            attempt.id, AttemptStatus.IN_PROGRESS, AttemptStatus.ABANDONED
        )
        if not moved:
            current = await self._attempts.get(attempt.id)
            raise InvalidState(current.status.value if current else "missing")
        logger.info("Attempt abandoned", extra={"attempt_id": str(attempt.id)})
        return replace(attempt, status=AttemptStatus.ABANDONED)

    async def _require_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self._quizzes.get(quiz_id)
        if quiz is None:
            raise NotFound("quiz", quiz_id)
        return quiz


def _with_time_spent(record: AnswerRecord, attempt: Attempt) -> AnswerRecord:
    saved = attempt.answer_for(record.question_id)
    if saved is None or not saved.time_spent_seconds:
        return record
    return replace(record, time_spent_seconds=saved.time_spent_seconds)

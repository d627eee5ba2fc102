"""Course completion flow.

Ties the collaborators (catalog, progress) to the assessment engine:
lectures viewed → completion quiz → attempts → certificate.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID

from app.models.attempt import Attempt
from app.models.certificate import Certificate
from app.models.course import Course, CourseProgress
from app.models.quiz import Quiz
from app.repos.course_repo import CourseCatalog, ProgressTracker
from app.repos.quiz_repo import QuizRepo
from app.services.attempts import AttemptService, SubmitOutcome
from app.services.certificates import CertificateService
from app.services.errors import AttemptLimitExceeded, NotFound, PrerequisiteNotMet
from app.services.quiz_assembler import QuizAssembler

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class QuizAvailable:
    quiz: Quiz
    attempts_remaining: int
    open_attempt: Attempt | None = None


@dataclass(frozen=True, slots=True)
class AlreadyPassed:
    quiz: Quiz
    score: int
    certificate: Certificate | None


@dataclass(frozen=True, slots=True)
class SubmitResult:
    outcome: SubmitOutcome
    certificate: Certificate | None


@dataclass(frozen=True, slots=True)
class AttemptHistory:
    quiz: Quiz | None
    attempts: list[Attempt]
    attempts_remaining: int


class CompletionService:
    def __init__(
        self,
        *,
        courses: CourseCatalog,
        progress: ProgressTracker,
        quizzes: QuizRepo,
        assembler: QuizAssembler,
        attempts: AttemptService,
        certificates: CertificateService,
    ) -> None:
        self._courses = courses
        self._progress = progress
        self._quizzes = quizzes
        self._assembler = assembler
        self._attempts = attempts
        self._certificates = certificates

    async def require_course(self, course_id: UUID) -> Course:
        course = await self._courses.get(course_id)
        if course is None:
            raise NotFound("course", course_id)
        return course

    async def check_prerequisites(self, student_id: UUID, course: Course) -> None:
        progress = await self._progress.get(student_id, course.id)
        viewed = progress.viewed_count(course) if progress else 0
        total = len(course.lectures)
        if viewed < total:
            logger.warning(
                "Completion quiz requested with %d/%d lectures viewed",
                viewed,
                total,
                extra={"course_id": str(course.id)},
            )
            raise PrerequisiteNotMet(viewed, total)

    async def completion_quiz(
        self, student_id: UUID, course_id: UUID
    ) -> QuizAvailable | AlreadyPassed:
        """Quiz for a student who finished the lectures.

        Raises PrerequisiteNotMet with lecture counters, or
        AttemptLimitExceeded once every attempt is used without a pass.
        """
        course = await self.require_course(course_id)
        await self.check_prerequisites(student_id, course)
        quiz = await self._assembler.get_or_create_completion_quiz(course)

        history = await self._attempts.history(quiz.id, student_id)
        passing = [
            a for a in history
            if a.submitted_at is not None and a.score >= quiz.settings.passing_score
        ]
        if passing:
            best = max(passing, key=lambda a: a.score)
            # Repairs a pass whose certificate write never landed.
            certificate = await self._certificates.issue_if_passed(
                student_id, course, best, quiz.settings.passing_score
            )
            return AlreadyPassed(quiz=quiz, score=best.score, certificate=certificate)

        open_attempt = next((a for a in history if a.is_open), None)
        remaining = max(0, quiz.settings.attempt_limit - len(history))
        if remaining == 0 and open_attempt is None:
            raise AttemptLimitExceeded(len(history), quiz.settings.attempt_limit)
        return QuizAvailable(
            quiz=quiz, attempts_remaining=remaining, open_attempt=open_attempt
        )

    async def start_attempt(
        self, student_id: UUID, quiz_id: UUID, *, restart: bool = False
    ) -> tuple[Attempt, Quiz]:
        quiz = await self._quizzes.get(quiz_id)
        if quiz is None or not quiz.is_published:
            raise NotFound("quiz", quiz_id)
        if quiz.completion_key is not None:
            course = await self.require_course(quiz.course_id)
            await self.check_prerequisites(student_id, course)
        attempt = await self._attempts.start(quiz, student_id, restart=restart)
        return attempt, quiz

    async def submit_attempt(
        self,
        student_id: UUID,
        attempt_id: UUID,
        answers: Mapping[UUID, str | None],
    ) -> SubmitResult:
        outcome = await self._attempts.submit(attempt_id, student_id, answers)
        certificate = None
        if outcome.passed and outcome.quiz.completion_key is not None:
            course = await self.require_course(outcome.quiz.course_id)
            certificate = await self._certificates.issue_if_passed(
                student_id,
                course,
                outcome.attempt,
                outcome.quiz.settings.passing_score,
            )
        return SubmitResult(outcome=outcome, certificate=certificate)

    async def attempt_history(self, student_id: UUID, course_id: UUID) -> AttemptHistory:
        await self.require_course(course_id)
        quiz = await self._assembler.find_completion_quiz(course_id)
        if quiz is None:
            return AttemptHistory(quiz=None, attempts=[], attempts_remaining=0)
        attempts = await self._attempts.history(quiz.id, student_id)
        return AttemptHistory(
            quiz=quiz,
            attempts=attempts,
            attempts_remaining=max(0, quiz.settings.attempt_limit - len(attempts)),
        )

    # ---- in-progress attempt ----

    async def resume_attempt(self, student_id: UUID, attempt_id: UUID) -> tuple[Attempt, Quiz]:
        attempt = await self._attempts.get_owned(attempt_id, student_id)
        quiz = await self._quizzes.get(attempt.quiz_id)
        if quiz is None:
            raise NotFound("quiz", attempt.quiz_id)
        return attempt, quiz

    async def save_answer(
        self,
        student_id: UUID,
        attempt_id: UUID,
        question_id: UUID,
        value: str | None,
        time_spent_seconds: int = 0,
    ) -> Attempt:
        return await self._attempts.save_answer(
            attempt_id, student_id, question_id, value, time_spent_seconds
        )

    async def abandon_attempt(self, student_id: UUID, attempt_id: UUID) -> Attempt:
        return await self._attempts.abandon(attempt_id, student_id)

    # ---- lecture progress ----

    async def lecture_progress(self, student_id: UUID, course_id: UUID) -> tuple[Course, CourseProgress]:
        course = await self.require_course(course_id)
        progress = await self._progress.get(student_id, course_id)
        return course, progress or CourseProgress(student_id=student_id, course_id=course_id)

    async def view_lecture(
        self, student_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> tuple[Course, CourseProgress]:
        course = await self.require_course(course_id)
        if course.lecture(lecture_id) is None:
            raise NotFound("lecture", lecture_id)
        progress = await self._progress.mark_lecture_viewed(
            student_id, course_id, lecture_id, _now()
        )
        return course, progress

"""Lazily created, per-course completion quiz."""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from app.models.course import Course
from app.models.quiz import COMPLETION_QUIZ_SUFFIX, Quiz, QuizSettings, completion_key_for
from app.repos.errors import DuplicateKeyError
from app.repos.quiz_repo import QuizRepo
from app.services.question_generator import QuestionGenerator

logger = logging.getLogger(__name__)

COMPLETION_QUESTION_COUNT = 10
COMPLETION_PASSING_SCORE = 35

COMPLETION_SETTINGS = QuizSettings(
    time_limit_minutes=30,
    attempt_limit=3,
    passing_score=COMPLETION_PASSING_SCORE,
    show_correct_answers=True,
    shuffle_questions=True,
    shuffle_options=True,
)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


class QuizAssembler:
    def __init__(self, quizzes: QuizRepo, generator: QuestionGenerator) -> None:
        self._quizzes = quizzes
        self._generator = generator

    async def find_completion_quiz(self, course_id: UUID) -> Quiz | None:
        return await self._quizzes.get_by_completion_key(completion_key_for(course_id))

    async def get_or_create_completion_quiz(self, course: Course) -> Quiz:
        key = completion_key_for(course.id)
        existing = await self._quizzes.get_by_completion_key(key)
        if existing is not None:
            return existing

        generated = await self._generator.generate(course, COMPLETION_QUESTION_COUNT)
        quiz = Quiz.new(
            title=f"{course.title} - {COMPLETION_QUIZ_SUFFIX}",
            description=(
                "Complete this quiz to earn your certificate. "
                f"You need {COMPLETION_PASSING_SCORE}% to pass."
            ),
            course_id=course.id,
            instructor_id=course.instructor_id,
            questions=tuple(generated.questions),
            settings=COMPLETION_SETTINGS,
            is_published=True,
            is_required=True,
            completion_key=key,
            created_at=_now(),
        )
        try:
            await self._quizzes.add(quiz)
        except DuplicateKeyError:
            # Another request created it first; its questions win.
            winner = await self._quizzes.get_by_completion_key(key)
            if winner is None:
                raise
            logger.info(
                "Completion quiz race lost for course %s, using %s",
                course.id,
                winner.id,
                extra={"course_id": str(course.id), "quiz_id": str(winner.id)},
            )
            return winner

        logger.info(
            "Created completion quiz %s for course %s (%d questions, %s)",
            quiz.id,
            course.id,
            len(quiz.questions),
            generated.source,
            extra={"course_id": str(course.id), "quiz_id": str(quiz.id)},
        )
        return quiz

from __future__ import annotations

from dataclasses import dataclass, replace
from uuid import UUID, uuid4

from app.models.question import Question

COMPLETION_QUIZ_SUFFIX = "Completion Quiz"


def completion_key_for(course_id: UUID) -> str:
    """Stable lookup key for a course's single completion quiz."""
    return f"{course_id}:completion-quiz"


@dataclass(frozen=True, slots=True)
class QuizSettings:
    time_limit_minutes: int | None = None  # None = unlimited
    attempt_limit: int = 1
    passing_score: int = 70  # percent
    show_correct_answers: bool = True
    shuffle_questions: bool = False
    shuffle_options: bool = False
    allow_review: bool = True
    available_from: int | None = None
    available_until: int | None = None

    def __post_init__(self) -> None:
        if self.attempt_limit < 1:
            raise ValueError(f"attempt_limit must be >= 1 (got {self.attempt_limit})")
        if not 0 <= self.passing_score <= 100:
            raise ValueError(
                f"passing_score must be within 0..100 (got {self.passing_score})"
            )

    def is_available(self, now: int) -> bool:
        if self.available_from is not None and now < self.available_from:
            return False
        return self.available_until is None or now <= self.available_until


@dataclass(frozen=True, slots=True)
class Quiz:
    """A course-scoped assessment with its questions populated.

    ``total_points`` is derived from the questions on every access, so it
    can never drift from the question list.
    """

    id: UUID
    title: str
    course_id: UUID
    instructor_id: UUID | None
    questions: tuple[Question, ...]
    settings: QuizSettings
    description: str = ""
    lecture_id: UUID | None = None
    is_published: bool = False
    is_required: bool = False
    completion_key: str | None = None
    created_at: int = 0

    @property
    def total_points(self) -> float:
        return sum(q.points for q in self.questions)

    def question(self, question_id: UUID) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def with_questions(self, questions: tuple[Question, ...]) -> Quiz:
        return replace(self, questions=questions)

    @staticmethod
    def new(
        *,
        title: str,
        course_id: UUID,
        instructor_id: UUID | None,
        questions: tuple[Question, ...],
        settings: QuizSettings,
        description: str = "",
        is_published: bool = False,
        is_required: bool = False,
        completion_key: str | None = None,
        created_at: int = 0,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            title=title,
            course_id=course_id,
            instructor_id=instructor_id,
            questions=questions,
            settings=settings,
            description=description,
            is_published=is_published,
            is_required=is_required,
            completion_key=completion_key,
            created_at=created_at,
        )

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class AttemptStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    ABANDONED = "abandoned"


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    question_id: UUID
    value: str | None = None
    is_correct: bool | None = None  # None = not automatically gradable yet
    points_awarded: float = 0
    feedback: str = ""
    time_spent_seconds: int = 0


@dataclass(frozen=True, slots=True)
class Attempt:
    id: UUID
    quiz_id: UUID
    student_id: UUID
    course_id: UUID
    attempt_number: int
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    answers: tuple[AnswerRecord, ...] = ()
    started_at: int = 0
    submitted_at: int | None = None
    graded_at: int | None = None
    score: int = 0  # percent
    points_earned: float = 0
    total_points: float = 0
    feedback: str = ""
    time_spent_seconds: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS

    def answer_for(self, question_id: UUID) -> AnswerRecord | None:
        for a in self.answers:
            if a.question_id == question_id:
                return a
        return None

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        student_id: UUID,
        course_id: UUID,
        attempt_number: int,
        question_ids: tuple[UUID, ...],
        total_points: float,
        started_at: int,
    ) -> Attempt:
        if attempt_number < 1:
            raise ValueError(f"attempt_number must be >= 1 (got {attempt_number})")
        return Attempt(
            id=uuid4(),
            quiz_id=quiz_id,
            student_id=student_id,
            course_id=course_id,
            attempt_number=attempt_number,
            answers=tuple(AnswerRecord(question_id=qid) for qid in question_ids),
            started_at=started_at,
            total_points=total_points,
        )

"""PostgreSQL implementation of AttemptRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import AttemptAnswerRow, QuizAttemptRow
from app.models.attempt import AnswerRecord, Attempt, AttemptStatus
from app.repos.errors import DuplicateKeyError


class PgAttemptRepo:
    """Satisfies the AttemptRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, attempt_id: UUID) -> Attempt | None:
        stmt = select(QuizAttemptRow).where(QuizAttemptRow.id == attempt_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def list_for(self, quiz_id: UUID, student_id: UUID) -> list[Attempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.quiz_id == quiz_id)
            .where(QuizAttemptRow.student_id == student_id)
            .order_by(QuizAttemptRow.attempt_number)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [await self._hydrate(r) for r in rows]

    async def list_for_course(self, student_id: UUID, course_id: UUID) -> list[Attempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.course_id == course_id)
            .where(QuizAttemptRow.student_id == student_id)
            .order_by(QuizAttemptRow.attempt_number)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [await self._hydrate(r) for r in rows]

    async def count_for(self, quiz_id: UUID, student_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizAttemptRow)
            .where(QuizAttemptRow.quiz_id == quiz_id)
            .where(QuizAttemptRow.student_id == student_id)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def get_open(self, quiz_id: UUID, student_id: UUID) -> Attempt | None:
        stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.quiz_id == quiz_id)
            .where(QuizAttemptRow.student_id == student_id)
            .where(QuizAttemptRow.status == AttemptStatus.IN_PROGRESS.value)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def add(self, attempt: Attempt) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    QuizAttemptRow(
                        id=attempt.id,
                        quiz_id=attempt.quiz_id,
                        student_id=attempt.student_id,
                        course_id=attempt.course_id,
                        attempt_number=attempt.attempt_number,
                        status=attempt.status.value,
                        started_at=attempt.started_at,
                        total_points=attempt.total_points,
                    )
                )
                await self._session.flush()
                self._session.add_all(_answer_rows(attempt))
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError("quiz_attempts") from e

    async def save_answer(self, attempt_id: UUID, record: AnswerRecord) -> Attempt | None:
        async with self._session.begin_nested():
            # Row lock: a concurrent submit must not interleave with intake.
            stmt = (
                select(QuizAttemptRow)
                .where(QuizAttemptRow.id == attempt_id)
                .where(QuizAttemptRow.status == AttemptStatus.IN_PROGRESS.value)
                .with_for_update()
            )
            row = (await self._session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None
            existing = await self._session.get(
                AttemptAnswerRow, (attempt_id, record.question_id)
            )
            if existing is None:
                self._session.add(
                    AttemptAnswerRow(
                        attempt_id=attempt_id,
                        question_id=record.question_id,
                        value=record.value,
                        time_spent_seconds=record.time_spent_seconds,
                    )
                )
            else:
                existing.value = record.value
                existing.time_spent_seconds = record.time_spent_seconds
            await self._session.flush()
        return await self.get(attempt_id)

    async def finalize(self, attempt: Attempt) -> bool:
        async with self._session.begin_nested():
            stmt = (
                update(QuizAttemptRow)
                .where(QuizAttemptRow.id == attempt.id)
                .where(QuizAttemptRow.status == AttemptStatus.IN_PROGRESS.value)
                .values(
                    status=attempt.status.value,
                    submitted_at=attempt.submitted_at,
                    graded_at=attempt.graded_at,
                    score=attempt.score,
                    points_earned=attempt.points_earned,
                    total_points=attempt.total_points,
                    feedback=attempt.feedback,
                    time_spent_seconds=attempt.time_spent_seconds,
                )
            )
            result = await self._session.execute(stmt)
            if result.rowcount == 0:
                return False  # already submitted elsewhere

            await self._session.execute(
                delete(AttemptAnswerRow).where(AttemptAnswerRow.attempt_id == attempt.id)
            )
            self._session.add_all(_answer_rows(attempt))
            await self._session.flush()
        return True

    async def transition(
        self, attempt_id: UUID, from_status: AttemptStatus, to_status: AttemptStatus
    ) -> bool:
        stmt = (
            update(QuizAttemptRow)
            .where(QuizAttemptRow.id == attempt_id)
            .where(QuizAttemptRow.status == from_status.value)
            .values(status=to_status.value)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def _hydrate(self, row: QuizAttemptRow) -> Attempt:
        stmt = (
            select(AttemptAnswerRow)
            .where(AttemptAnswerRow.attempt_id == row.id)
            .order_by(AttemptAnswerRow.position)
        )
        answer_rows = (await self._session.execute(stmt)).scalars().all()
        return Attempt(
            id=row.id,
            quiz_id=row.quiz_id,
            student_id=row.student_id,
            course_id=row.course_id,
            attempt_number=row.attempt_number,
            status=AttemptStatus(row.status),
            answers=tuple(
                AnswerRecord(
                    question_id=a.question_id,
                    value=a.value,
                    is_correct=a.is_correct,
                    points_awarded=a.points_awarded,
                    feedback=a.feedback,
                    time_spent_seconds=a.time_spent_seconds,
                )
                for a in answer_rows
            ),
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            graded_at=row.graded_at,
            score=row.score,
            points_earned=row.points_earned,
            total_points=row.total_points,
            feedback=row.feedback,
            time_spent_seconds=row.time_spent_seconds,
        )


def _answer_rows(attempt: Attempt) -> list[AttemptAnswerRow]:
    return [
        AttemptAnswerRow(
            attempt_id=attempt.id,
            question_id=a.question_id,
            position=i,
            value=a.value,
            is_correct=a.is_correct,
            points_awarded=a.points_awarded,
            feedback=a.feedback,
            time_spent_seconds=a.time_spent_seconds,
        )
        for i, a in enumerate(attempt.answers)
    ]

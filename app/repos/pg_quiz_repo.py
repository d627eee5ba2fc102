"""PostgreSQL implementation of QuizRepo."""

from __future__ import annotations

import dataclasses
import json
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import QuestionRow, QuizRow
from app.models.question import (
    ChoiceQuestion,
    EssayQuestion,
    Question,
    QuestionOption,
    TextQuestion,
)
from app.models.quiz import Quiz, QuizSettings
from app.repos.errors import DuplicateKeyError


class PgQuizRepo:
    """Satisfies the QuizRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, quiz_id: UUID) -> Quiz | None:
        stmt = select(QuizRow).where(QuizRow.id == quiz_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def get_by_completion_key(self, completion_key: str) -> Quiz | None:
        stmt = select(QuizRow).where(QuizRow.completion_key == completion_key)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def add(self, quiz: Quiz) -> None:
        # Quiz row and its questions commit together or not at all.  The
        # SAVEPOINT keeps a lost completion_key race from poisoning the
        # request's outer transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(
                    QuizRow(
                        id=quiz.id,
                        title=quiz.title,
                        description=quiz.description,
                        course_id=quiz.course_id,
                        instructor_id=quiz.instructor_id,
                        lecture_id=quiz.lecture_id,
                        completion_key=quiz.completion_key,
                        settings_json=json.dumps(dataclasses.asdict(quiz.settings)),
                        total_points=quiz.total_points,
                        is_published=quiz.is_published,
                        is_required=quiz.is_required,
                        created_at=quiz.created_at,
                    )
                )
                await self._session.flush()
                self._session.add_all(
                    _question_to_row(quiz.id, q) for q in quiz.questions
                )
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError("quizzes_completion_key_key") from e

    async def _hydrate(self, row: QuizRow) -> Quiz:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.quiz_id == row.id)
            .order_by(QuestionRow.position)
        )
        question_rows = (await self._session.execute(stmt)).scalars().all()
        return Quiz(
            id=row.id,
            title=row.title,
            description=row.description,
            course_id=row.course_id,
            instructor_id=row.instructor_id,
            lecture_id=row.lecture_id,
            questions=tuple(_row_to_question(q) for q in question_rows),
            settings=QuizSettings(**json.loads(row.settings_json)),
            is_published=row.is_published,
            is_required=row.is_required,
            completion_key=row.completion_key,
            created_at=row.created_at,
        )


def _question_to_row(quiz_id: UUID, q: Question) -> QuestionRow:
    options_json = None
    correct_answer = None
    if isinstance(q, ChoiceQuestion):
        options_json = json.dumps(
            [{"id": str(o.id), "text": o.text, "is_correct": o.is_correct} for o in q.options]
        )
    elif isinstance(q, TextQuestion):
        correct_answer = q.correct_answer
    return QuestionRow(
        id=q.id,
        quiz_id=quiz_id,
        kind=q.kind,
        prompt=q.prompt,
        description=q.description,
        media_url=q.media_url,
        options_json=options_json,
        correct_answer=correct_answer,
        points=q.points,
        explanation=q.explanation,
        difficulty=q.difficulty,
        position=q.position,
    )


def _row_to_question(row: QuestionRow) -> Question:
    common = {
        "id": row.id,
        "prompt": row.prompt,
        "points": row.points,
        "description": row.description,
        "media_url": row.media_url,
        "explanation": row.explanation,
        "difficulty": row.difficulty,
        "position": row.position,
    }
    if row.kind in ("multiple-choice", "true-false"):
        options = tuple(
            QuestionOption(id=UUID(o["id"]), text=o["text"], is_correct=o["is_correct"])
            for o in json.loads(row.options_json or "[]")
        )
        return ChoiceQuestion(kind=row.kind, options=options, **common)  # type: ignore[arg-type]
    if row.kind in ("short-answer", "fill-blank"):
        return TextQuestion(
            kind=row.kind,  # type: ignore[arg-type]
            correct_answer=row.correct_answer or "",
            **common,
        )
    return EssayQuestion(**common)

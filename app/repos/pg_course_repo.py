"""PostgreSQL implementations of CourseCatalog and ProgressTracker."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseProgressRow, CourseRow, LectureRow, LectureViewRow
from app.models.course import Course, CourseProgress, Lecture


class PgCourseCatalog:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return await self._hydrate(row)

    async def list_all(self) -> list[Course]:
        rows = (await self._session.execute(select(CourseRow))).scalars().all()
        return [await self._hydrate(r) for r in rows]

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                description=course.description,
                category=course.category,
                objectives=course.objectives,
                instructor_id=course.instructor_id,
                instructor_name=course.instructor_name,
            )
        )
        await self._session.flush()
        self._session.add_all(
            LectureRow(
                id=lecture.id,
                course_id=course.id,
                title=lecture.title,
                duration_minutes=lecture.duration_minutes,
                position=lecture.position,
            )
            for lecture in course.lectures
        )
        await self._session.flush()

    async def _hydrate(self, row: CourseRow) -> Course:
        stmt = (
            select(LectureRow)
            .where(LectureRow.course_id == row.id)
            .order_by(LectureRow.position)
        )
        lectures = (await self._session.execute(stmt)).scalars().all()
        return Course(
            id=row.id,
            title=row.title,
            description=row.description or "",
            category=row.category or "",
            objectives=row.objectives or "",
            instructor_id=row.instructor_id,
            instructor_name=row.instructor_name or "",
            lectures=tuple(
                Lecture(
                    id=lr.id,
                    title=lr.title,
                    duration_minutes=lr.duration_minutes,
                    position=lr.position,
                )
                for lr in lectures
            ),
        )


class PgProgressTracker:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, student_id: UUID, course_id: UUID) -> CourseProgress | None:
        row = await self._session.get(CourseProgressRow, (student_id, course_id))
        views = await self._viewed(student_id, course_id)
        if row is None and not views:
            return None
        return CourseProgress(
            student_id=student_id,
            course_id=course_id,
            viewed_lecture_ids=views,
            completed=row.completed if row is not None else False,
            completed_at=row.completed_at if row is not None else None,
        )

    async def mark_lecture_viewed(
        self, student_id: UUID, course_id: UUID, lecture_id: UUID, at: int
    ) -> CourseProgress:
        # Re-viewing a lecture keeps the first view timestamp.
        await self._session.execute(
            insert(LectureViewRow)
            .values(
                student_id=student_id,
                course_id=course_id,
                lecture_id=lecture_id,
                viewed_at=at,
            )
            .on_conflict_do_nothing()
        )
        await self._ensure_row(student_id, course_id)
        return await self._require(student_id, course_id)

    async def mark_completed(
        self, student_id: UUID, course_id: UUID, at: int
    ) -> CourseProgress:
        await self._ensure_row(student_id, course_id)
        await self._session.execute(
            update(CourseProgressRow)
            .where(CourseProgressRow.student_id == student_id)
            .where(CourseProgressRow.course_id == course_id)
            .where(CourseProgressRow.completed.is_(False))
            .values(completed=True, completed_at=at)
        )
        return await self._require(student_id, course_id)

    async def _require(self, student_id: UUID, course_id: UUID) -> CourseProgress:
        progress = await self.get(student_id, course_id)
        if progress is None:
            raise RuntimeError(f"no progress row for student {student_id} in course {course_id}")
        return progress

    async def _ensure_row(self, student_id: UUID, course_id: UUID) -> None:
        await self._session.execute(
            insert(CourseProgressRow)
            .values(student_id=student_id, course_id=course_id, completed=False)
            .on_conflict_do_nothing()
        )

    async def _viewed(self, student_id: UUID, course_id: UUID) -> frozenset[UUID]:
        stmt = (
            select(LectureViewRow.lecture_id)
            .where(LectureViewRow.student_id == student_id)
            .where(LectureViewRow.course_id == course_id)
        )
        return frozenset((await self._session.execute(stmt)).scalars().all())

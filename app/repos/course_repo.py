from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.course import Course, CourseProgress


class CourseCatalog(Protocol):
    async def get(self, course_id: UUID) -> Course | None: ...
    async def list_all(self) -> list[Course]: ...
    async def add(self, course: Course) -> None: ...


class ProgressTracker(Protocol):
    async def get(self, student_id: UUID, course_id: UUID) -> CourseProgress | None: ...
    async def mark_lecture_viewed(
        self, student_id: UUID, course_id: UUID, lecture_id: UUID, at: int
    ) -> CourseProgress: ...
    async def mark_completed(
        self, student_id: UUID, course_id: UUID, at: int
    ) -> CourseProgress: ...


class InMemoryCourseCatalog:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def list_all(self) -> list[Course]:
        return list(self._by_id.values())

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course


class InMemoryProgressTracker:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], CourseProgress] = {}

    async def get(self, student_id: UUID, course_id: UUID) -> CourseProgress | None:
        return self._store.get((student_id, course_id))

    def _current(self, student_id: UUID, course_id: UUID) -> CourseProgress:
        return self._store.get(
            (student_id, course_id),
            CourseProgress(student_id=student_id, course_id=course_id),
        )

    async def mark_lecture_viewed(
        self, student_id: UUID, course_id: UUID, lecture_id: UUID, at: int
    ) -> CourseProgress:
        current = self._current(student_id, course_id)
        updated = replace(
            current, viewed_lecture_ids=current.viewed_lecture_ids | {lecture_id}
        )
        self._store[(student_id, course_id)] = updated
        return updated

    async def mark_completed(
        self, student_id: UUID, course_id: UUID, at: int
    ) -> CourseProgress:
        current = self._current(student_id, course_id)
        if current.completed:
            return current
        updated = replace(current, completed=True, completed_at=at)
        self._store[(student_id, course_id)] = updated
        return updated

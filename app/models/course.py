from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Lecture:
    id: UUID
    title: str
    duration_minutes: int = 0
    position: int = 0

    @staticmethod
    def new(*, title: str, duration_minutes: int = 0, position: int = 0) -> Lecture:
        return Lecture(
            id=uuid4(), title=title, duration_minutes=duration_minutes, position=position
        )


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    description: str = ""
    category: str = ""
    objectives: str = ""
    instructor_id: UUID | None = None
    instructor_name: str = ""
    lectures: tuple[Lecture, ...] = ()

    @property
    def total_duration_minutes(self) -> int:
        return sum(lecture.duration_minutes for lecture in self.lectures)

    def lecture(self, lecture_id: UUID) -> Lecture | None:
        for lecture in self.lectures:
            if lecture.id == lecture_id:
                return lecture
        return None

    @staticmethod
    def new(
        *,
        title: str,
        description: str = "",
        category: str = "",
        objectives: str = "",
        instructor_id: UUID | None = None,
        instructor_name: str = "",
        lectures: tuple[Lecture, ...] = (),
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            description=description,
            category=category,
            objectives=objectives,
            instructor_id=instructor_id,
            instructor_name=instructor_name,
            lectures=lectures,
        )


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Which lectures a student has viewed, and whether the course is done."""

    student_id: UUID
    course_id: UUID
    viewed_lecture_ids: frozenset[UUID] = frozenset()
    completed: bool = False
    completed_at: int | None = None

    def viewed_count(self, course: Course) -> int:
        return sum(1 for lecture in course.lectures if lecture.id in self.viewed_lecture_ids)

    def has_viewed_all(self, course: Course) -> bool:
        return self.viewed_count(course) >= len(course.lectures)

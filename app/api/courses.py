"""Lecture progress endpoints.

Viewing every lecture of a course unlocks its completion quiz:
  Client -> POST /v1/courses/{course_id}/lectures/{lecture_id}/view
  -> record lecture view (idempotent)
  -> 200 progress counters
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_completion_service, require_user
from app.api.errors import to_http_exception
from app.models.course import Course, CourseProgress
from app.models.principal import Principal
from app.services.completion import CompletionService
from app.services.errors import AssessmentError

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class ProgressOut(BaseModel):
    course_id: str
    completed_lectures: int
    total_lectures: int
    all_lectures_viewed: bool
    completed: bool
    completed_at: int | None


def _progress_out(course: Course, progress: CourseProgress) -> ProgressOut:
    return ProgressOut(
        course_id=str(course.id),
        completed_lectures=progress.viewed_count(course),
        total_lectures=len(course.lectures),
        all_lectures_viewed=progress.has_viewed_all(course),
        completed=progress.completed,
        completed_at=progress.completed_at,
    )


@router.get("/{course_id}/progress", response_model=ProgressOut)
async def get_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[CompletionService, Depends(get_completion_service)],
) -> ProgressOut:
    try:
        course, progress = await service.lecture_progress(principal.student_id, course_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return _progress_out(course, progress)


@router.post("/{course_id}/lectures/{lecture_id}/view", response_model=ProgressOut)
async def view_lecture(
    course_id: UUID,
    lecture_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[CompletionService, Depends(get_completion_service)],
) -> ProgressOut:
    try:
        course, progress = await service.view_lecture(
            principal.student_id, course_id, lecture_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return _progress_out(course, progress)

"""Translation of domain errors to HTTP responses.

Every ``detail`` is an object with a ``code`` plus the structured data
the client needs to render the situation (progress counters, attempts
used, current status).
"""

from __future__ import annotations

from fastapi import HTTPException, status

from app.services.errors import (
    AssessmentError,
    AttemptLimitExceeded,
    InvalidState,
    NotFound,
    PrerequisiteNotMet,
)


def to_http_exception(exc: AssessmentError) -> HTTPException:
    if isinstance(exc, PrerequisiteNotMet):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "prerequisite_not_met",
                "message": "Complete all lectures to unlock the completion quiz",
                "progress": {"completed": exc.completed, "total": exc.total},
            },
        )
    if isinstance(exc, AttemptLimitExceeded):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "attempt_limit_exceeded",
                "message": f"You have used all {exc.attempt_limit} attempts",
                "attempts_used": exc.attempts_used,
                "attempt_limit": exc.attempt_limit,
            },
        )
    if isinstance(exc, InvalidState):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "invalid_state", "message": str(exc), "status": exc.current_status},
        )
    if isinstance(exc, NotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": "not_found",
                "message": f"{exc.entity} not found",
                "entity": exc.entity,
            },
        )
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "assessment_error", "message": str(exc)},
    )

"""Domain errors raised by the assessment services.

Routers translate each of these to a specific HTTP status with a
structured ``detail`` body; nothing here knows about HTTP.
"""

from __future__ import annotations


class AssessmentError(Exception):
    """Root of every expected, client-renderable failure."""


class PrerequisiteNotMet(AssessmentError):
    def __init__(self, completed: int, total: int) -> None:
        super().__init__(f"viewed {completed} of {total} lectures")
        self.completed = completed
        self.total = total


class AttemptLimitExceeded(AssessmentError):
    def __init__(self, attempts_used: int, attempt_limit: int) -> None:
        super().__init__(f"all {attempt_limit} attempts used ({attempts_used})")
        self.attempts_used = attempts_used
        self.attempt_limit = attempt_limit


class InvalidState(AssessmentError):
    def __init__(self, current_status: str, message: str = "") -> None:
        super().__init__(message or f"operation not allowed while {current_status}")
        self.current_status = current_status


class NotFound(AssessmentError):
    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = str(entity_id)

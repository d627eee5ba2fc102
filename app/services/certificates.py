"""Certificate issuance and verification.

Issuance is idempotent per (student, course): the storage layer holds a
unique constraint on the pair, and a lost insert race re-reads and
returns the winner's certificate.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from uuid import UUID

from app.core.metrics import CERTIFICATES_ISSUED
from app.models.attempt import Attempt
from app.models.certificate import Certificate, CertificateStatus
from app.models.course import Course
from app.repos.attempt_repo import AttemptRepo
from app.repos.certificate_repo import CertificateRepo
from app.repos.course_repo import ProgressTracker
from app.repos.errors import DuplicateKeyError
from app.repos.user_repo import UserDirectory
from app.services.errors import InvalidState, NotFound

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTOR_NAME = "EduCore Instructor"
DEFAULT_STUDENT_NAME = "Student"


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def format_duration(total_minutes: int) -> str:
    """'3h 20m', or 'N minutes' under an hour."""
    hours, minutes = divmod(max(0, total_minutes), 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes} minutes"


@dataclass(frozen=True, slots=True)
class Verification:
    certificate: Certificate
    valid: bool
    score: int | None  # best passing score, when one is on record


class CertificateService:
    def __init__(
        self,
        certificates: CertificateRepo,
        users: UserDirectory,
        progress: ProgressTracker,
        attempts: AttemptRepo,
    ) -> None:
        self._certificates = certificates
        self._users = users
        self._progress = progress
        self._attempts = attempts

    async def issue_if_passed(
        self, student_id: UUID, course: Course, attempt: Attempt, passing_score: int
    ) -> Certificate | None:
        """Issue (or return the existing) certificate for a passing attempt.

        Returns None when the attempt did not pass.
        """
        if attempt.score < passing_score:
            return None

        existing = await self._certificates.get_for(student_id, course.id)
        if existing is not None:
            CERTIFICATES_ISSUED.labels(result="existing").inc()
            return existing

        student = await self._users.get(student_id)
        progress = await self._progress.get(student_id, course.id)
        now = _now()
        certificate = Certificate.new(
            student_id=student_id,
            course_id=course.id,
            student_name=student.user_name if student else DEFAULT_STUDENT_NAME,
            course_name=course.title,
            instructor_name=await self._instructor_name(course),
            issued_at=now,
            completed_at=progress.completed_at if progress else None,
            course_duration=format_duration(course.total_duration_minutes),
        )
        try:
            await self._certificates.add(certificate)
        except DuplicateKeyError:
            winner = await self._certificates.get_for(student_id, course.id)
            if winner is None:
                raise
            logger.info(
                "Concurrent issuance for student %s, returning existing certificate",
                student_id,
                extra={"course_id": str(course.id), "certificate_id": winner.certificate_id},
            )
            CERTIFICATES_ISSUED.labels(result="existing").inc()
            return winner

        await self._progress.mark_completed(student_id, course.id, now)
        CERTIFICATES_ISSUED.labels(result="created").inc()
        logger.info(
            "Issued certificate to student %s",
            student_id,
            extra={
                "course_id": str(course.id),
                "attempt_id": str(attempt.id),
                "certificate_id": certificate.certificate_id,
            },
        )
        return certificate

    async def _instructor_name(self, course: Course) -> str:
        if course.instructor_name:
            return course.instructor_name
        if course.instructor_id is not None:
            instructor = await self._users.get(course.instructor_id)
            if instructor is not None:
                return instructor.user_name
        return DEFAULT_INSTRUCTOR_NAME

    # ---- reads ----

    async def verify(self, certificate_id: str) -> Verification:
        """Pure read; never changes the certificate."""
        certificate = await self._certificates.get(certificate_id)
        if certificate is None:
            raise NotFound("certificate", certificate_id)
        attempts = await self._attempts.list_for_course(
            certificate.student_id, certificate.course_id
        )
        graded = [a.score for a in attempts if a.submitted_at is not None]
        return Verification(
            certificate=certificate,
            valid=certificate.is_valid(_now()),
            score=max(graded) if graded else None,
        )

    async def for_course(self, student_id: UUID, course_id: UUID) -> Certificate:
        certificate = await self._certificates.get_for(student_id, course_id)
        if certificate is None:
            raise NotFound("certificate", course_id)
        return certificate

    async def list_active(self, student_id: UUID) -> list[Certificate]:
        return await self._certificates.list_for_student(
            student_id, CertificateStatus.ACTIVE
        )

    # ---- status transitions ----

    async def revoke(self, certificate_id: str) -> Certificate:
        return await self._transition(certificate_id, CertificateStatus.REVOKED)

    async def expire(self, certificate_id: str) -> Certificate:
        return await self._transition(certificate_id, CertificateStatus.EXPIRED)

    async def _transition(self, certificate_id: str, to_status: CertificateStatus) -> Certificate:
        updated = await self._certificates.update_status(
            certificate_id, CertificateStatus.ACTIVE, to_status
        )
        if updated is not None:
            logger.info(
                "Certificate moved to %s",
                to_status.value,
                extra={"certificate_id": certificate_id},
            )
            return updated
        current = await self._certificates.get(certificate_id)
        if current is None:
            raise NotFound("certificate", certificate_id)
        raise InvalidState(current.status.value)

from __future__ import annotations

import secrets
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class CertificateStatus(StrEnum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


def new_certificate_id() -> str:
    """Opaque, unguessable token used in public verification links."""
    return secrets.token_hex(16)


@dataclass(frozen=True, slots=True)
class Certificate:
    """Issued proof of completion.

    Display names are captured at issuance so later profile or course
    edits never rewrite a historical certificate.
    """

    certificate_id: str
    student_id: UUID
    course_id: UUID
    student_name: str
    course_name: str
    instructor_name: str
    completion_date: int
    issue_date: int
    course_duration: str = ""
    expiry_date: int | None = None
    status: CertificateStatus = CertificateStatus.ACTIVE

    @property
    def share_path(self) -> str:
        return f"/certificate/verify/{self.certificate_id}"

    def is_valid(self, now: int) -> bool:
        if self.status != CertificateStatus.ACTIVE:
            return False
        return self.expiry_date is None or self.expiry_date > now

    @staticmethod
    def new(
        *,
        student_id: UUID,
        course_id: UUID,
        student_name: str,
        course_name: str,
        instructor_name: str,
        issued_at: int,
        completed_at: int | None = None,
        course_duration: str = "",
        expiry_date: int | None = None,
    ) -> Certificate:
        return Certificate(
            certificate_id=new_certificate_id(),
            student_id=student_id,
            course_id=course_id,
            student_name=student_name,
            course_name=course_name,
            instructor_name=instructor_name,
            completion_date=issued_at if completed_at is None else completed_at,
            issue_date=issued_at,
            course_duration=course_duration,
            expiry_date=expiry_date,
        )

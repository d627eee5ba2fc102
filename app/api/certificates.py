"""Certificate endpoints.

The verification endpoint is public: anyone holding a share link can
check a certificate without an account.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_certificate_service, require_role, require_user
from app.api.errors import to_http_exception
from app.api.schemas import CertificateOut, certificate_out
from app.models.principal import Principal
from app.services.certificates import CertificateService
from app.services.errors import AssessmentError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["certificates"])

Service = Annotated[CertificateService, Depends(get_certificate_service)]


class VerificationOut(BaseModel):
    certificate: CertificateOut
    valid: bool
    score: int | None


@router.get("/certificates/mine", response_model=list[CertificateOut])
async def list_my_certificates(
    principal: Annotated[Principal, Depends(require_user)], service: Service
) -> list[CertificateOut]:
    certificates = await service.list_active(principal.student_id)
    return [certificate_out(c) for c in certificates]


@router.get("/certificates/{certificate_id}", response_model=VerificationOut)
async def verify_certificate(certificate_id: str, service: Service) -> VerificationOut:
    try:
        verification = await service.verify(certificate_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return VerificationOut(
        certificate=certificate_out(verification.certificate),
        valid=verification.valid,
        score=verification.score,
    )


@router.post("/certificates/{certificate_id}/revoke", response_model=CertificateOut)
async def revoke_certificate(
    certificate_id: str,
    principal: Annotated[Principal, Depends(require_role("admin"))],
    service: Service,
) -> CertificateOut:
    try:
        certificate = await service.revoke(certificate_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    logger.info(
        "Certificate revoked by admin=%s",
        principal.user_id,
        extra={"certificate_id": certificate_id},
    )
    return certificate_out(certificate)


@router.get("/courses/{course_id}/certificate", response_model=CertificateOut)
async def get_course_certificate(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    service: Service,
) -> CertificateOut:
    try:
        certificate = await service.for_course(principal.student_id, course_id)
    except AssessmentError as e:
        raise to_http_exception(e) from None
    return certificate_out(certificate)

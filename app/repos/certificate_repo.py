from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.certificate import Certificate, CertificateStatus
from app.repos.errors import DuplicateKeyError


class CertificateRepo(Protocol):
    async def get(self, certificate_id: str) -> Certificate | None: ...
    async def get_for(self, student_id: UUID, course_id: UUID) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def list_for_student(
        self, student_id: UUID, status: CertificateStatus | None = None
    ) -> list[Certificate]: ...
    async def update_status(
        self,
        certificate_id: str,
        from_status: CertificateStatus,
        to_status: CertificateStatus,
    ) -> Certificate | None: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Certificate] = {}
        self._by_pair: dict[tuple[UUID, UUID], str] = {}

    async def get(self, certificate_id: str) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def get_for(self, student_id: UUID, course_id: UUID) -> Certificate | None:
        certificate_id = self._by_pair.get((student_id, course_id))
        return self._by_id.get(certificate_id) if certificate_id is not None else None

    async def add(self, certificate: Certificate) -> None:
        pair = (certificate.student_id, certificate.course_id)
        if pair in self._by_pair:
            raise DuplicateKeyError("certificates_student_id_course_id_key")
        if certificate.certificate_id in self._by_id:
            raise DuplicateKeyError("certificates_pkey")
        self._by_pair[pair] = certificate.certificate_id
        self._by_id[certificate.certificate_id] = certificate

    async def list_for_student(
        self, student_id: UUID, status: CertificateStatus | None = None
    ) -> list[Certificate]:
        found = [
            c
            for c in self._by_id.values()
            if c.student_id == student_id and (status is None or c.status == status)
        ]
        return sorted(found, key=lambda c: c.issue_date, reverse=True)

    async def update_status(
        self,
        certificate_id: str,
        from_status: CertificateStatus,
        to_status: CertificateStatus,
    ) -> Certificate | None:
        current = self._by_id.get(certificate_id)
        if current is None or current.status != from_status:
            return None
        updated = replace(current, status=to_status)
        self._by_id[certificate_id] = updated
        return updated

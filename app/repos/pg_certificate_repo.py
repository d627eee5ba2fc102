"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CertificateRow
from app.models.certificate import Certificate, CertificateStatus
from app.repos.errors import DuplicateKeyError


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, certificate_id: str) -> Certificate | None:
        row = await self._session.get(CertificateRow, certificate_id)
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_for(self, student_id: UUID, course_id: UUID) -> Certificate | None:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.student_id == student_id)
            .where(CertificateRow.course_id == course_id)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def add(self, certificate: Certificate) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    CertificateRow(
                        certificate_id=certificate.certificate_id,
                        student_id=certificate.student_id,
                        course_id=certificate.course_id,
                        student_name=certificate.student_name,
                        course_name=certificate.course_name,
                        instructor_name=certificate.instructor_name,
                        completion_date=certificate.completion_date,
                        issue_date=certificate.issue_date,
                        expiry_date=certificate.expiry_date,
                        course_duration=certificate.course_duration,
                        status=certificate.status.value,
                    )
                )
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError("certificates_student_id_course_id_key") from e

    async def list_for_student(
        self, student_id: UUID, status: CertificateStatus | None = None
    ) -> list[Certificate]:
        stmt = select(CertificateRow).where(CertificateRow.student_id == student_id)
        if status is not None:
            stmt = stmt.where(CertificateRow.status == status.value)
        stmt = stmt.order_by(CertificateRow.issue_date.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(r) for r in rows]

    async def update_status(
        self,
        certificate_id: str,
        from_status: CertificateStatus,
        to_status: CertificateStatus,
    ) -> Certificate | None:
        stmt = (
            update(CertificateRow)
            .where(CertificateRow.certificate_id == certificate_id)
            .where(CertificateRow.status == from_status.value)
            .values(status=to_status.value)
            .returning(CertificateRow)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        certificate_id=row.certificate_id,
        student_id=row.student_id,
        course_id=row.course_id,
        student_name=row.student_name,
        course_name=row.course_name,
        instructor_name=row.instructor_name,
        completion_date=row.completion_date,
        issue_date=row.issue_date,
        course_duration=row.course_duration or "",
        expiry_date=row.expiry_date,
        status=CertificateStatus(row.status),
    )

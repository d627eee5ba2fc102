"""PostgreSQL implementation of UserDirectory."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import UserRow
from app.models.user import UserProfile


class PgUserDirectory:
    """Satisfies the UserDirectory Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> UserProfile | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_profile(row)

    async def add(self, profile: UserProfile) -> None:
        self._session.add(
            UserRow(id=profile.id, user_name=profile.user_name, email=profile.email)
        )
        await self._session.flush()


def _row_to_profile(row: UserRow) -> UserProfile:
    return UserProfile(id=row.id, user_name=row.user_name, email=row.email or "")

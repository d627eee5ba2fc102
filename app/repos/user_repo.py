from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.user import UserProfile


class UserDirectory(Protocol):
    async def get(self, user_id: UUID) -> UserProfile | None: ...
    async def add(self, profile: UserProfile) -> None: ...


class InMemoryUserDirectory:
    def __init__(self) -> None:
        self._by_id: dict[UUID, UserProfile] = {}

    async def get(self, user_id: UUID) -> UserProfile | None:
        return self._by_id.get(user_id)

    async def add(self, profile: UserProfile) -> None:
        if profile.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[profile.id] = profile

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Display identity of a student or instructor."""

    id: UUID
    user_name: str
    email: str = ""

    @staticmethod
    def new(*, user_name: str, email: str = "") -> UserProfile:
        return UserProfile(id=uuid4(), user_name=user_name, email=email)

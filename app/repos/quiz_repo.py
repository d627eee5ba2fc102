from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.quiz import Quiz
from app.repos.errors import DuplicateKeyError


class QuizRepo(Protocol):
    async def get(self, quiz_id: UUID) -> Quiz | None: ...
    async def get_by_completion_key(self, completion_key: str) -> Quiz | None: ...
    async def add(self, quiz: Quiz) -> None: ...


class InMemoryQuizRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Quiz] = {}
        self._by_completion_key: dict[str, UUID] = {}

    async def get(self, quiz_id: UUID) -> Quiz | None:
        return self._by_id.get(quiz_id)

    async def get_by_completion_key(self, completion_key: str) -> Quiz | None:
        quiz_id = self._by_completion_key.get(completion_key)
        return self._by_id.get(quiz_id) if quiz_id is not None else None

    async def add(self, quiz: Quiz) -> None:
        # No await between check and insert: atomic on the event loop.
        if quiz.id in self._by_id:
            raise DuplicateKeyError("quizzes_pkey")
        if quiz.completion_key is not None:
            if quiz.completion_key in self._by_completion_key:
                raise DuplicateKeyError("quizzes_completion_key_key")
            self._by_completion_key[quiz.completion_key] = quiz.id
        self._by_id[quiz.id] = quiz

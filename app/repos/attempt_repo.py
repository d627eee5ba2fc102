from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.attempt import AnswerRecord, Attempt, AttemptStatus
from app.repos.errors import DuplicateKeyError


class AttemptRepo(Protocol):
    async def get(self, attempt_id: UUID) -> Attempt | None: ...
    async def list_for(self, quiz_id: UUID, student_id: UUID) -> list[Attempt]: ...
    async def list_for_course(
        self, student_id: UUID, course_id: UUID
    ) -> list[Attempt]: ...
    async def count_for(self, quiz_id: UUID, student_id: UUID) -> int: ...
    async def get_open(self, quiz_id: UUID, student_id: UUID) -> Attempt | None: ...
    async def add(self, attempt: Attempt) -> None: ...
    async def save_answer(
        self, attempt_id: UUID, record: AnswerRecord
    ) -> Attempt | None: ...
    async def finalize(self, attempt: Attempt) -> bool: ...
    async def transition(
        self, attempt_id: UUID, from_status: AttemptStatus, to_status: AttemptStatus
    ) -> bool: ...


class InMemoryAttemptRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Attempt] = {}

    async def get(self, attempt_id: UUID) -> Attempt | None:
        return self._by_id.get(attempt_id)

    async def list_for(self, quiz_id: UUID, student_id: UUID) -> list[Attempt]:
        found = [
            a
            for a in self._by_id.values()
            if a.quiz_id == quiz_id and a.student_id == student_id
        ]
        return sorted(found, key=lambda a: a.attempt_number)

    async def list_for_course(self, student_id: UUID, course_id: UUID) -> list[Attempt]:
        found = [
            a
            for a in self._by_id.values()
            if a.course_id == course_id and a.student_id == student_id
        ]
        return sorted(found, key=lambda a: a.attempt_number)

    async def count_for(self, quiz_id: UUID, student_id: UUID) -> int:
        return len(await self.list_for(quiz_id, student_id))

    async def get_open(self, quiz_id: UUID, student_id: UUID) -> Attempt | None:
        for a in self._by_id.values():
            if a.quiz_id == quiz_id and a.student_id == student_id and a.is_open:
                return a
        return None

    async def add(self, attempt: Attempt) -> None:
        for a in self._by_id.values():
            if a.quiz_id != attempt.quiz_id or a.student_id != attempt.student_id:
                continue
            if a.attempt_number == attempt.attempt_number:
                raise DuplicateKeyError(
                    "quiz_attempts_quiz_id_student_id_attempt_number_key"
                )
            if a.is_open and attempt.is_open:
                raise DuplicateKeyError("uq_quiz_attempts_one_open")
        self._by_id[attempt.id] = attempt

    async def save_answer(self, attempt_id: UUID, record: AnswerRecord) -> Attempt | None:
        current = self._by_id.get(attempt_id)
        if current is None or not current.is_open:
            return None
        answers = tuple(
            record if a.question_id == record.question_id else a for a in current.answers
        )
        if all(a.question_id != record.question_id for a in current.answers):
            answers = (*answers, record)
        updated = replace(current, answers=answers)
        self._by_id[attempt_id] = updated
        return updated

    async def finalize(self, attempt: Attempt) -> bool:
        current = self._by_id.get(attempt.id)
        if current is None or not current.is_open:
            return False
        self._by_id[attempt.id] = attempt
        return True

    async def transition(
        self, attempt_id: UUID, from_status: AttemptStatus, to_status: AttemptStatus
    ) -> bool:
        current = self._by_id.get(attempt_id)
        if current is None or current.status != from_status:
            return False
        self._by_id[attempt_id] = replace(current, status=to_status)
        return True

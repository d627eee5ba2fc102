from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterator
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.api.dependencies import get_text_generator, in_memory_repositories
from app.main import app
from app.models.course import Course, Lecture
from app.models.question import ChoiceQuestion, Question, QuestionOption, TextQuestion
from app.models.quiz import Quiz, QuizSettings
from app.models.user import UserProfile
from app.services import token_service
from app.services.cache import cache_service
from app.services.text_generator import NullTextGenerator

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ScriptedTextGenerator:
    """Configured generator that replays canned replies in order.

    A reply may be a string or an exception instance to raise.  The last
    reply repeats once the script runs out.
    """

    configured = True

    def __init__(self, *replies: str | BaseException) -> None:
        self._replies = list(replies) or [""]
        self.prompts: list[str] = []

    async def generate(
        self, prompt: str, *, system: str, temperature: float, max_tokens: int
    ) -> str:
        self.prompts.append(prompt)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def reset_repositories() -> None:
    """Fresh in-memory stores for every test."""
    dependencies.memory_repos = in_memory_repositories()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def null_text_generator() -> Iterator[None]:
    """Requests run on the deterministic paths unless a test overrides this."""
    app.dependency_overrides[get_text_generator] = NullTextGenerator
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    student_id: UUID | str | None = None,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(student_id or uuid4()), roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def token(student_id: UUID) -> str:
    """Token with the default role (student)."""
    return mint_token(student_id)


@pytest.fixture
def admin_token() -> str:
    return mint_token(roles=["admin"])


# ---------------------------------------------------------------------------
# Course helpers
# ---------------------------------------------------------------------------


def make_course(
    title: str = "React Fundamentals",
    *,
    category: str = "Web Development",
    lecture_minutes: tuple[int, ...] = (45, 60, 95),
    instructor_name: str = "Ada Lovelace",
) -> Course:
    return Course.new(
        title=title,
        description=f"An introduction to {title}",
        category=category,
        instructor_name=instructor_name,
        lectures=tuple(
            Lecture.new(title=f"Lecture {i + 1}", duration_minutes=m, position=i)
            for i, m in enumerate(lecture_minutes)
        ),
    )


def seed_course(course: Course | None = None) -> Course:
    """Register a course in the in-memory catalog."""
    course = course or make_course()
    asyncio.run(dependencies.memory_repos.courses.add(course))
    return course


def seed_student(student_id: UUID, name: str = "Grace Hopper") -> UserProfile:
    profile = UserProfile(id=student_id, user_name=name)
    asyncio.run(dependencies.memory_repos.users.add(profile))
    return profile


def view_all_lectures(student_id: UUID, course: Course) -> None:
    async def _view() -> None:
        for lecture in course.lectures:
            await dependencies.memory_repos.progress.mark_lecture_viewed(
                student_id, course.id, lecture.id, 1_700_000_000
            )

    asyncio.run(_view())


# ---------------------------------------------------------------------------
# Quiz helpers
# ---------------------------------------------------------------------------


def choice(prompt: str, correct: str, *wrong: str, points: float = 1, position: int = 0) -> ChoiceQuestion:
    return ChoiceQuestion(
        prompt=prompt,
        options=(
            QuestionOption.new(text=correct, is_correct=True),
            *(QuestionOption.new(text=w) for w in wrong or ("None of these",)),
        ),
        points=points,
        explanation=f"The answer is {correct}.",
        position=position,
    )


def make_quiz(
    *questions: Question,
    course_id: UUID | None = None,
    settings: QuizSettings | None = None,
) -> Quiz:
    return Quiz.new(
        title="Checkpoint",
        course_id=course_id or uuid4(),
        instructor_id=None,
        questions=questions or (choice("2 + 2?", "4", "5"), choice("3 * 3?", "9", "6", position=1)),
        settings=settings or QuizSettings(attempt_limit=3, passing_score=35),
        is_published=True,
    )


def correct_answers(quiz: Quiz) -> dict[UUID, str]:
    """Answer key a perfect student would submit."""
    answers: dict[UUID, str] = {}
    for q in quiz.questions:
        if isinstance(q, ChoiceQuestion):
            answers[q.id] = str(next(o.id for o in q.options if o.is_correct))
        elif isinstance(q, TextQuestion):
            answers[q.id] = q.correct_answer
    return answers

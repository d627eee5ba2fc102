from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.db import engine as db
from app.middleware.request_context import user_id_var
from app.models.principal import Principal
from app.repos.attempt_repo import AttemptRepo, InMemoryAttemptRepo
from app.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from app.repos.course_repo import (
    CourseCatalog,
    InMemoryCourseCatalog,
    InMemoryProgressTracker,
    ProgressTracker,
)
from app.repos.pg_attempt_repo import PgAttemptRepo
from app.repos.pg_certificate_repo import PgCertificateRepo
from app.repos.pg_course_repo import PgCourseCatalog, PgProgressTracker
from app.repos.pg_quiz_repo import PgQuizRepo
from app.repos.pg_user_repo import PgUserDirectory
from app.repos.quiz_repo import InMemoryQuizRepo, QuizRepo
from app.repos.user_repo import InMemoryUserDirectory, UserDirectory
from app.services import token_service
from app.services import text_generator as text_generator_module
from app.services.answer_evaluator import AnswerEvaluator
from app.services.attempts import AttemptService
from app.services.certificates import CertificateService
from app.services.completion import CompletionService
from app.services.question_generator import QuestionGenerator
from app.services.quiz_assembler import QuizAssembler
from app.services.text_generator import TextGenerator

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    try:
        UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a user id: %r", claims["sub"])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    user_id_var.set(principal.user_id)
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("admin"))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Repositories:
    quizzes: QuizRepo
    attempts: AttemptRepo
    certificates: CertificateRepo
    courses: CourseCatalog
    progress: ProgressTracker
    users: UserDirectory


def in_memory_repositories() -> Repositories:
    return Repositories(
        quizzes=InMemoryQuizRepo(),
        attempts=InMemoryAttemptRepo(),
        certificates=InMemoryCertificateRepo(),
        courses=InMemoryCourseCatalog(),
        progress=InMemoryProgressTracker(),
        users=InMemoryUserDirectory(),
    )


# Process-wide stores used when DATABASE_URL is unset.  Tests reset it
# through conftest.py.
memory_repos = in_memory_repositories()


async def get_repositories() -> AsyncGenerator[Repositories, None]:
    """Request-scoped repositories: one DB transaction per request."""
    if db.async_session_factory is None:
        yield memory_repos
        return
    async with db.session_scope() as session:
        yield Repositories(
            quizzes=PgQuizRepo(session),
            attempts=PgAttemptRepo(session),
            certificates=PgCertificateRepo(session),
            courses=PgCourseCatalog(session),
            progress=PgProgressTracker(session),
            users=PgUserDirectory(session),
        )


def get_text_generator() -> TextGenerator:
    return text_generator_module.text_generator


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def build_certificate_service(repos: Repositories) -> CertificateService:
    return CertificateService(
        certificates=repos.certificates,
        users=repos.users,
        progress=repos.progress,
        attempts=repos.attempts,
    )


def build_completion_service(
    repos: Repositories, generator: TextGenerator
) -> CompletionService:
    return CompletionService(
        courses=repos.courses,
        progress=repos.progress,
        quizzes=repos.quizzes,
        assembler=QuizAssembler(repos.quizzes, QuestionGenerator(generator)),
        attempts=AttemptService(repos.attempts, repos.quizzes, AnswerEvaluator(generator)),
        certificates=build_certificate_service(repos),
    )


def get_completion_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
    generator: Annotated[TextGenerator, Depends(get_text_generator)],
) -> CompletionService:
    return build_completion_service(repos, generator)


def get_certificate_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> CertificateService:
    return build_certificate_service(repos)

"""Response models shared by more than one router.

Student-facing question models never carry answer keys: options expose
id and text only, and text questions expose no correct answer.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from app.models.certificate import Certificate
from app.models.question import ChoiceQuestion, Question
from app.models.quiz import Quiz
from app.services.presentation import ordered_questions


class OptionOut(BaseModel):
    id: str
    text: str


class QuestionOut(BaseModel):
    id: str
    kind: str
    prompt: str
    description: str | None = None
    media_url: str | None = None
    points: float
    options: list[OptionOut] | None = None


class QuizOut(BaseModel):
    id: str
    title: str
    description: str
    course_id: str
    time_limit_minutes: int | None
    attempt_limit: int
    passing_score: int
    total_points: float
    question_count: int
    questions: list[QuestionOut]


class CertificateRefOut(BaseModel):
    certificate_id: str
    url: str


class CertificateOut(BaseModel):
    certificate_id: str
    course_id: str
    student_name: str
    course_name: str
    instructor_name: str
    course_duration: str
    completion_date: int
    issue_date: int
    expiry_date: int | None
    status: str
    url: str


def question_out(q: Question) -> QuestionOut:
    options = None
    if isinstance(q, ChoiceQuestion):
        options = [OptionOut(id=str(o.id), text=o.text) for o in q.options]
    return QuestionOut(
        id=str(q.id),
        kind=q.kind,
        prompt=q.prompt,
        description=q.description,
        media_url=q.media_url,
        points=q.points,
        options=options,
    )


def quiz_out(quiz: Quiz, seed: UUID | None = None) -> QuizOut:
    return QuizOut(
        id=str(quiz.id),
        title=quiz.title,
        description=quiz.description,
        course_id=str(quiz.course_id),
        time_limit_minutes=quiz.settings.time_limit_minutes,
        attempt_limit=quiz.settings.attempt_limit,
        passing_score=quiz.settings.passing_score,
        total_points=quiz.total_points,
        question_count=len(quiz.questions),
        questions=[question_out(q) for q in ordered_questions(quiz, seed)],
    )


def certificate_ref(certificate: Certificate | None) -> CertificateRefOut | None:
    if certificate is None:
        return None
    return CertificateRefOut(
        certificate_id=certificate.certificate_id, url=certificate.share_path
    )


def certificate_out(c: Certificate) -> CertificateOut:
    return CertificateOut(
        certificate_id=c.certificate_id,
        course_id=str(c.course_id),
        student_name=c.student_name,
        course_name=c.course_name,
        instructor_name=c.instructor_name,
        course_duration=c.course_duration,
        completion_date=c.completion_date,
        issue_date=c.issue_date,
        expiry_date=c.expiry_date,
        status=c.status.value,
        url=c.share_path,
    )

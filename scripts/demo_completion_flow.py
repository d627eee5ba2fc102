"""Demo: walk one student through the completion quiz using FastAPI TestClient.

Runs on the in-memory repositories (leave DATABASE_URL unset).  With
LLM_API_KEY set the quiz is generated; otherwise it comes from the
built-in question banks.

Run with:
    python scripts/demo_completion_flow.py
"""

from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from app.api import dependencies
from app.main import app
from app.models.course import Course, Lecture
from app.models.question import ChoiceQuestion, TextQuestion
from app.models.user import UserProfile
from app.services import token_service

STUDENT_NAME = "Grace Hopper"


def _seed() -> tuple[Course, UUID]:
    course = Course.new(
        title="JavaScript Essentials",
        category="Programming",
        instructor_name="Brendan Eich",
        lectures=tuple(
            Lecture.new(title=title, duration_minutes=minutes, position=i)
            for i, (title, minutes) in enumerate(
                [("Values and types", 40), ("Functions", 55), ("Async", 70)]
            )
        ),
    )
    student_id = uuid4()
    repos = dependencies.memory_repos
    asyncio.run(repos.courses.add(course))
    asyncio.run(repos.users.add(UserProfile(id=student_id, user_name=STUDENT_NAME)))
    return course, student_id


def _answer_key(quiz_id: str) -> list[dict[str, str]]:
    quiz = asyncio.run(dependencies.memory_repos.quizzes.get(UUID(quiz_id)))
    answers = []
    for q in quiz.questions:
        if isinstance(q, ChoiceQuestion):
            value = str(next(o.id for o in q.options if o.is_correct))
        elif isinstance(q, TextQuestion):
            value = q.correct_answer
        else:
            continue
        answers.append({"question_id": str(q.id), "answer": value})
    return answers


def main() -> None:
    client = TestClient(app)
    course, student_id = _seed()
    headers = {
        "Authorization": f"Bearer {token_service.create_access_token(sub=str(student_id))}"
    }

    # ── Step 1: quiz is locked until the lectures are viewed ────────
    r = client.get(f"/v1/courses/{course.id}/completion-quiz", headers=headers)
    print(f"1. GET  completion-quiz (locked)  → {r.status_code}  {r.json()['detail']['progress']}")

    # ── Step 2: view every lecture ──────────────────────────────────
    for lecture in course.lectures:
        r = client.post(
            f"/v1/courses/{course.id}/lectures/{lecture.id}/view", headers=headers
        )
    print(f"2. POST lectures/*/view           → {r.status_code}  {r.json()['completed_lectures']} viewed")

    # ── Step 3: fetch the quiz ──────────────────────────────────────
    r = client.get(f"/v1/courses/{course.id}/completion-quiz", headers=headers)
    quiz = r.json()["quiz"]
    print(f"3. GET  completion-quiz           → {r.status_code}  {quiz['question_count']} questions")

    # ── Step 4: fail once ───────────────────────────────────────────
    attempt = client.post(f"/v1/completion-quiz/{quiz['id']}/attempts", headers=headers).json()
    r = client.post(
        f"/v1/attempts/{attempt['attempt_id']}/submit", json={"answers": []}, headers=headers
    )
    print(f"4. POST submit (blank)            → {r.status_code}  {r.json()['feedback']}")

    # ── Step 5: pass on the second attempt ──────────────────────────
    attempt = client.post(f"/v1/completion-quiz/{quiz['id']}/attempts", headers=headers).json()
    r = client.post(
        f"/v1/attempts/{attempt['attempt_id']}/submit",
        json={"answers": _answer_key(quiz["id"])},
        headers=headers,
    )
    result = r.json()
    certificate_id = result["certificate"]["certificate_id"]
    print(f"5. POST submit (answer key)       → {r.status_code}  {result['feedback']}")

    # ── Step 6: public verification ─────────────────────────────────
    r = client.get(f"/v1/certificates/{certificate_id}")
    body = r.json()
    print(
        f"6. GET  certificates/{certificate_id[:8]}…     → {r.status_code}  "
        f"valid={body['valid']} {body['certificate']['student_name']} "
        f"({body['certificate']['course_duration']})"
    )

    # ── Step 7: resubmitting is rejected ────────────────────────────
    r = client.post(
        f"/v1/attempts/{attempt['attempt_id']}/submit", json={"answers": []}, headers=headers
    )
    print(f"7. POST submit (again)            → {r.status_code}  {r.json()['detail']['code']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()

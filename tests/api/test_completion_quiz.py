"""End-to-end completion flow through the HTTP API.

Runs on the in-memory repositories with no generative service, so every
completion quiz comes from the fallback question banks.
"""

from __future__ import annotations

import asyncio
import json
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from app.api import dependencies
from app.api.dependencies import get_text_generator
from app.main import app
from app.models.question import ChoiceQuestion, TextQuestion
from app.models.quiz import Quiz, completion_key_for
from app.services.cache import cache_service, completion_quiz_key
from app.services.grading import score_percent
from tests.conftest import (
    ScriptedTextGenerator,
    auth,
    correct_answers,
    make_course,
    mint_token,
    seed_course,
    seed_student,
    view_all_lectures,
)


def _js_course():
    return seed_course(make_course("JS Basics", category="Programming"))


def _stored_quiz(quiz_id: str) -> Quiz:
    quiz = asyncio.run(dependencies.memory_repos.quizzes.get(UUID(quiz_id)))
    assert quiz is not None
    return quiz


def _open_quiz(client: TestClient, token: str, course_id) -> dict:
    resp = client.get(f"/v1/courses/{course_id}/completion-quiz", headers=auth(token))
    assert resp.status_code == 200, resp.text
    return resp.json()


def _start(client: TestClient, token: str, quiz_id: str, **body) -> dict:
    resp = client.post(
        f"/v1/completion-quiz/{quiz_id}/attempts", json=body or None, headers=auth(token)
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def _submit(client: TestClient, token: str, attempt_id: str, answers: dict):
    return client.post(
        f"/v1/attempts/{attempt_id}/submit",
        json={"answers": [{"question_id": str(k), "answer": v} for k, v in answers.items()]},
        headers=auth(token),
    )


def _ready_student(student_id: UUID):
    course = _js_course()
    seed_student(student_id)
    view_all_lectures(student_id, course)
    return course


# ---------------------------------------------------------------------------
# Prerequisites
# ---------------------------------------------------------------------------


def test_quiz_requires_authentication(client: TestClient) -> None:
    resp = client.get(f"/v1/courses/{uuid4()}/completion-quiz")
    assert resp.status_code == 401


def test_quiz_for_unknown_course_is_404(client: TestClient, token: str) -> None:
    resp = client.get(f"/v1/courses/{uuid4()}/completion-quiz", headers=auth(token))
    assert resp.status_code == 404
    assert resp.json()["detail"]["entity"] == "course"


def test_lectures_not_viewed_reports_progress(client: TestClient, token: str) -> None:
    course = _js_course()

    resp = client.get(f"/v1/courses/{course.id}/completion-quiz", headers=auth(token))

    assert resp.status_code == 403
    detail = resp.json()["detail"]
    assert detail["code"] == "prerequisite_not_met"
    assert detail["progress"] == {"completed": 0, "total": 3}
    # No quiz is generated for a student who cannot take it yet.
    stored = dependencies.memory_repos.quizzes.get_by_completion_key(completion_key_for(course.id))
    assert asyncio.run(stored) is None


def test_partially_viewed_course_counts_viewed_lectures(
    client: TestClient, token: str
) -> None:
    course = _js_course()
    client.post(
        f"/v1/courses/{course.id}/lectures/{course.lectures[0].id}/view", headers=auth(token)
    )

    resp = client.get(f"/v1/courses/{course.id}/completion-quiz", headers=auth(token))

    assert resp.json()["detail"]["progress"] == {"completed": 1, "total": 3}


# ---------------------------------------------------------------------------
# Quiz view
# ---------------------------------------------------------------------------


def test_quiz_view_hides_answer_keys(client: TestClient, token: str, student_id: UUID) -> None:
    course = _ready_student(student_id)

    body = _open_quiz(client, token, course.id)

    assert body["status"] == "available"
    assert body["attempts_remaining"] == 3
    assert body["passing_score"] == 35
    assert body["open_attempt_id"] is None
    quiz = body["quiz"]
    assert quiz["title"] == "JS Basics - Completion Quiz"
    assert quiz["question_count"] == 10
    assert quiz["time_limit_minutes"] == 30
    raw = json.dumps(quiz)
    assert "is_correct" not in raw
    assert "correct_answer" not in raw
    for question in quiz["questions"]:
        if question["options"] is not None:
            assert all(set(o) == {"id", "text"} for o in question["options"])


def test_quiz_is_created_once_per_course(client: TestClient, student_id: UUID) -> None:
    course = _ready_student(student_id)
    other = uuid4()
    view_all_lectures(other, course)

    first = _open_quiz(client, mint_token(student_id), course.id)
    second = _open_quiz(client, mint_token(other), course.id)

    assert first["quiz"]["id"] == second["quiz"]["id"]


def test_quiz_view_is_cached_per_course(client: TestClient, token: str, student_id: UUID) -> None:
    course = _ready_student(student_id)

    body = _open_quiz(client, token, course.id)

    cached = asyncio.run(cache_service.get(completion_quiz_key(course.id)))
    assert cached is not None
    assert json.loads(cached)["id"] == body["quiz"]["id"]
    assert _open_quiz(client, token, course.id)["quiz"] == body["quiz"]


def test_generated_questions_are_used_when_generator_answers(
    client: TestClient, token: str, student_id: UUID
) -> None:
    generated = [
        {
            "type": "multiple-choice",
            "question": f"Generated question {i}?",
            "options": [
                {"text": "right", "isCorrect": True},
                {"text": "wrong", "isCorrect": False},
            ],
        }
        for i in range(10)
    ]
    generator = ScriptedTextGenerator(json.dumps(generated))
    app.dependency_overrides[get_text_generator] = lambda: generator
    course = _ready_student(student_id)

    body = _open_quiz(client, token, course.id)

    prompts = {q["prompt"] for q in body["quiz"]["questions"]}
    assert prompts == {f"Generated question {i}?" for i in range(10)}
    assert "JS Basics" in generator.prompts[0]


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------


def test_start_returns_attempt_and_time_limit(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]

    started = _start(client, token, quiz_id)
    resumed = _start(client, token, quiz_id)

    assert started["attempt_number"] == 1
    assert started["status"] == "in_progress"
    assert started["time_limit_minutes"] == 30
    assert resumed["attempt_id"] == started["attempt_id"]
    assert _open_quiz(client, token, course.id)["open_attempt_id"] == started["attempt_id"]


def test_start_requires_prerequisites(client: TestClient, student_id: UUID) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, mint_token(student_id), course.id)["quiz"]["id"]

    resp = client.post(f"/v1/completion-quiz/{quiz_id}/attempts", headers=auth(mint_token()))

    assert resp.status_code == 403


def test_start_unknown_quiz_is_404(client: TestClient, token: str) -> None:
    resp = client.post(f"/v1/completion-quiz/{uuid4()}/attempts", headers=auth(token))
    assert resp.status_code == 404


def test_choice_only_answers_score_choice_points(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    quiz = _stored_quiz(quiz_id)
    attempt = _start(client, token, quiz_id)
    key = correct_answers(quiz)
    choice_answers = {q.id: key[q.id] for q in quiz.questions if isinstance(q, ChoiceQuestion)}
    choice_points = sum(q.points for q in quiz.questions if isinstance(q, ChoiceQuestion))

    resp = _submit(client, token, attempt["attempt_id"], choice_answers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["score"] == score_percent(choice_points, quiz.total_points)
    assert body["points_earned"] == choice_points
    assert body["total_points"] == quiz.total_points
    assert body["passed"] is (body["score"] >= 35)
    assert body["attempts_remaining"] == 2
    text_ids = {str(q.id) for q in quiz.questions if isinstance(q, TextQuestion)}
    blanks = [r for r in body["results"] if r["question_id"] in text_ids]
    assert len(blanks) == 2
    assert all(r["feedback"] == "No answer provided" for r in blanks)
    assert all(r["correct_answer"] for r in body["results"])


def test_failing_submission_issues_no_certificate(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt = _start(client, token, quiz_id)

    body = _submit(client, token, attempt["attempt_id"], {}).json()

    assert body["passed"] is False
    assert body["score"] == 0
    assert body["status"] == "graded"
    assert body["certificate"] is None
    assert body["attempts_remaining"] == 2
    assert body["feedback"] == "You scored 0%. You need 35% to pass. Try again!"


def test_perfect_submission_issues_certificate(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt = _start(client, token, quiz_id)

    resp = _submit(client, token, attempt["attempt_id"], correct_answers(_stored_quiz(quiz_id)))

    body = resp.json()
    assert body["score"] == 100
    assert body["passed"] is True
    assert body["feedback"] == "Congratulations! You passed with 100%!"
    certificate = body["certificate"]
    assert len(certificate["certificate_id"]) == 32
    assert certificate["url"] == f"/certificate/verify/{certificate['certificate_id']}"
    progress = client.get(f"/v1/courses/{course.id}/progress", headers=auth(token)).json()
    assert progress["completed"] is True


def test_submit_on_graded_attempt_is_rejected(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt = _start(client, token, quiz_id)
    first = _submit(client, token, attempt["attempt_id"], correct_answers(_stored_quiz(quiz_id)))

    second = _submit(client, token, attempt["attempt_id"], {})

    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "invalid_state"
    assert second.json()["detail"]["status"] == "graded"
    history = client.get(
        f"/v1/courses/{course.id}/completion-quiz/attempts", headers=auth(token)
    ).json()
    assert history["attempts"][0]["score"] == first.json()["score"]


def test_passed_student_gets_summary_and_no_new_attempt(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt = _start(client, token, quiz_id)
    issued = _submit(
        client, token, attempt["attempt_id"], correct_answers(_stored_quiz(quiz_id))
    ).json()["certificate"]

    body = _open_quiz(client, token, course.id)

    assert body["status"] == "passed"
    assert body["score"] == 100
    assert body["certificate"] == issued
    history = client.get(
        f"/v1/courses/{course.id}/completion-quiz/attempts", headers=auth(token)
    ).json()
    assert len(history["attempts"]) == 1


def test_attempt_limit_is_enforced(client: TestClient, token: str, student_id: UUID) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    for _ in range(3):
        attempt = _start(client, token, quiz_id)
        assert _submit(client, token, attempt["attempt_id"], {}).status_code == 200

    view = client.get(f"/v1/courses/{course.id}/completion-quiz", headers=auth(token))
    start = client.post(f"/v1/completion-quiz/{quiz_id}/attempts", headers=auth(token))

    assert view.status_code == 409
    assert view.json()["detail"]["attempts_used"] == 3
    assert start.status_code == 409
    assert start.json()["detail"]["code"] == "attempt_limit_exceeded"


def test_unparseable_question_ids_are_ignored(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt = _start(client, token, quiz_id)

    resp = client.post(
        f"/v1/attempts/{attempt['attempt_id']}/submit",
        json={"answers": [{"question_id": "q-1", "answer": "x"}, {"question_id": str(uuid4())}]},
        headers=auth(token),
    )

    assert resp.status_code == 200
    assert resp.json()["score"] == 0


# ---------------------------------------------------------------------------
# In-progress attempt
# ---------------------------------------------------------------------------


def test_resume_view_is_stable_and_owner_only(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt_id = _start(client, token, quiz_id)["attempt_id"]

    first = client.get(f"/v1/attempts/{attempt_id}", headers=auth(token)).json()
    second = client.get(f"/v1/attempts/{attempt_id}", headers=auth(token)).json()
    stranger = client.get(f"/v1/attempts/{attempt_id}", headers=auth(mint_token()))

    assert len(first["questions"]) == 10
    assert first["questions"] == second["questions"]
    assert "is_correct" not in json.dumps(first)
    assert stranger.status_code == 404


def test_saved_answers_appear_in_resume_and_count_at_submit(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    quiz = _stored_quiz(quiz_id)
    attempt_id = _start(client, token, quiz_id)["attempt_id"]
    key = correct_answers(quiz)

    for question_id, answer in key.items():
        resp = client.put(
            f"/v1/attempts/{attempt_id}/answers/{question_id}",
            json={"answer": answer, "time_spent_seconds": 5},
            headers=auth(token),
        )
        assert resp.status_code == 200

    resumed = client.get(f"/v1/attempts/{attempt_id}", headers=auth(token)).json()
    assert {a["question_id"] for a in resumed["answers"]} == {str(k) for k in key}

    body = _submit(client, token, attempt_id, {}).json()
    assert body["score"] == 100


def test_save_answer_for_unknown_question_is_404(
    client: TestClient, token: str, student_id: UUID
) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    attempt_id = _start(client, token, quiz_id)["attempt_id"]

    resp = client.put(
        f"/v1/attempts/{attempt_id}/answers/{uuid4()}",
        json={"answer": "x"},
        headers=auth(token),
    )

    assert resp.status_code == 404
    assert resp.json()["detail"]["entity"] == "question"


def test_abandon_and_restart(client: TestClient, token: str, student_id: UUID) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    first = _start(client, token, quiz_id)

    abandoned = client.post(f"/v1/attempts/{first['attempt_id']}/abandon", headers=auth(token))
    second = _start(client, token, quiz_id)
    third = _start(client, token, quiz_id, restart=True)

    assert abandoned.status_code == 200
    assert abandoned.json()["status"] == "abandoned"
    assert abandoned.json()["passed"] is False
    assert second["attempt_number"] == 2
    assert third["attempt_number"] == 3
    again = client.post(f"/v1/attempts/{first['attempt_id']}/abandon", headers=auth(token))
    assert again.status_code == 409


def test_history_before_quiz_exists(client: TestClient, token: str) -> None:
    course = _js_course()

    body = client.get(
        f"/v1/courses/{course.id}/completion-quiz/attempts", headers=auth(token)
    ).json()

    assert body == {
        "quiz_exists": False,
        "quiz_id": None,
        "passing_score": None,
        "attempts_remaining": 0,
        "attempts": [],
    }


def test_history_lists_newest_first(client: TestClient, token: str, student_id: UUID) -> None:
    course = _ready_student(student_id)
    quiz_id = _open_quiz(client, token, course.id)["quiz"]["id"]
    first = _start(client, token, quiz_id)
    _submit(client, token, first["attempt_id"], {})
    _start(client, token, quiz_id)

    body = client.get(
        f"/v1/courses/{course.id}/completion-quiz/attempts", headers=auth(token)
    ).json()

    assert body["quiz_exists"] is True
    assert body["attempts_remaining"] == 1
    assert [a["attempt_number"] for a in body["attempts"]] == [2, 1]
    assert [a["status"] for a in body["attempts"]] == ["in_progress", "graded"]
    assert body["attempts"][1]["passed"] is False

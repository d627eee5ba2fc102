"""Assert that bearer tokens and the LLM API key never appear in log output."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from app.services.text_generator import OpenAIChatGenerator, try_generate
from tests.conftest import auth, seed_course

_API_KEY = "sk-super-s3cret-key"


def _generator(handler) -> OpenAIChatGenerator:
    return OpenAIChatGenerator(
        api_key=_API_KEY,
        base_url="https://llm.example.com/v1",
        model="gpt-4o-mini",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )


def test_valid_token_is_not_logged(
    client: TestClient, token: str, caplog: pytest.LogCaptureFixture
) -> None:
    course = seed_course()
    with caplog.at_level(logging.DEBUG):
        client.get(f"/v1/courses/{course.id}/completion-quiz", headers=auth(token))

    assert token not in caplog.text


def test_rejected_token_is_not_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    bogus = "eyJhbGciOiJFUzI1NiJ9.bogus-payload.bogus-signature"
    with caplog.at_level(logging.DEBUG):
        resp = client.get("/v1/certificates/mine", headers=auth(bogus))

    assert resp.status_code == 401
    assert "bogus-payload" not in caplog.text


def _overloaded(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, json={"error": "overloaded"})


def _refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


@pytest.mark.parametrize("handler", [_overloaded, _refused], ids=["bad-status", "transport-error"])
def test_api_key_is_not_logged_on_failure(
    handler, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        outcome = asyncio.run(
            try_generate(_generator(handler), "Say hi", operation="question_generation")
        )

    assert not outcome.ok
    assert _API_KEY not in caplog.text

"""Generative text capability.

Question generation and free-text evaluation depend on a ``TextGenerator``
passed in at construction time.  Without a credential the service is wired
with ``NullTextGenerator``, so the fallback paths run on every call instead
of being reached through an exception.

Callers never invoke ``generate()`` directly; they go through
``try_generate()``, which bounds the call with a timeout, retries
infrastructure failures once, and returns a ``GenerationOutcome`` whose
``reason`` says exactly why no text came back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import httpx

from app.core.config import SETTINGS, Settings
from app.core.metrics import GENERATION_DEGRADED

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert educational content creator. "
    "Always respond with valid JSON only."
)


class TextGenerator(Protocol):
    configured: bool

    async def generate(
        self, prompt: str, *, system: str, temperature: float, max_tokens: int
    ) -> str: ...


class NullTextGenerator:
    """No credential: every caller takes its deterministic path."""

    configured = False

    async def generate(
        self, prompt: str, *, system: str, temperature: float, max_tokens: int
    ) -> str:
        return ""


class OpenAIChatGenerator:
    """OpenAI-compatible ``/chat/completions`` client over httpx."""

    configured = True

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout_seconds
        self._transport = transport

    async def generate(
        self, prompt: str, *, system: str, temperature: float, max_tokens: int
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            resp = await client.post(
                f"{self._base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            resp.raise_for_status()
            data = resp.json()
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""


# ---------------------------------------------------------------------------
# Outcome of one bounded call
# ---------------------------------------------------------------------------


class DegradationReason(StrEnum):
    UNCONFIGURED = "unconfigured"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"
    BAD_STATUS = "bad_status"
    EMPTY_RESPONSE = "empty_response"
    UNPARSEABLE = "unparseable"


# Worth a second try; a bad status or empty answer will not improve.
_RETRYABLE = frozenset({DegradationReason.TIMEOUT, DegradationReason.TRANSPORT_ERROR})


@dataclass(frozen=True, slots=True)
class GenerationOutcome:
    text: str | None = None
    reason: DegradationReason | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @staticmethod
    def success(text: str) -> GenerationOutcome:
        return GenerationOutcome(text=text)

    @staticmethod
    def degraded(reason: DegradationReason) -> GenerationOutcome:
        return GenerationOutcome(reason=reason)


def record_degradation(operation: str, reason: DegradationReason, **context) -> None:
    """Log and count a fallback.  Never raises."""
    GENERATION_DEGRADED.labels(operation=operation, reason=reason.value).inc()
    if reason == DegradationReason.UNCONFIGURED:
        logger.debug("Generative %s skipped: no generator configured", operation)
        return
    logger.warning(
        "Generative %s degraded to fallback: %s",
        operation,
        reason.value,
        extra={"reason": reason.value, **context},
    )


async def _call_once(
    generator: TextGenerator,
    prompt: str,
    *,
    system: str,
    temperature: float,
    max_tokens: int,
    timeout_seconds: float,
) -> GenerationOutcome:
    try:
        text = await asyncio.wait_for(
            generator.generate(
                prompt, system=system, temperature=temperature, max_tokens=max_tokens
            ),
            timeout=timeout_seconds,
        )
    except (TimeoutError, httpx.TimeoutException):
        return GenerationOutcome.degraded(DegradationReason.TIMEOUT)
    except httpx.HTTPStatusError as e:
        logger.debug("Generator returned HTTP %s", e.response.status_code)
        return GenerationOutcome.degraded(DegradationReason.BAD_STATUS)
    except (httpx.TransportError, ValueError):
        # ValueError: the body was not JSON.
        return GenerationOutcome.degraded(DegradationReason.TRANSPORT_ERROR)
    if not text or not text.strip():
        return GenerationOutcome.degraded(DegradationReason.EMPTY_RESPONSE)
    return GenerationOutcome.success(text)


async def try_generate(
    generator: TextGenerator,
    prompt: str,
    *,
    operation: str,
    system: str = SYSTEM_PROMPT,
    temperature: float = 0.7,
    max_tokens: int = 1000,
    timeout_seconds: float | None = None,
) -> GenerationOutcome:
    """Run one generative call with a timeout and a single retry.

    Degraded outcomes are not logged here: the caller may still reject a
    successful outcome as unparseable, and records the final reason itself
    via ``record_degradation``.
    """
    if not generator.configured:
        return GenerationOutcome.degraded(DegradationReason.UNCONFIGURED)

    timeout = timeout_seconds if timeout_seconds is not None else SETTINGS.llm_timeout_seconds
    outcome = await _call_once(
        generator,
        prompt,
        system=system,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_seconds=timeout,
    )
    if outcome.reason in _RETRYABLE:
        logger.info("Generative %s failed (%s), retrying once", operation, outcome.reason)
        outcome = await _call_once(
            generator,
            prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=timeout,
        )
    return outcome


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper that chat models like to add."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def build_text_generator(settings: Settings = SETTINGS) -> TextGenerator:
    if settings.llm_api_key is None:
        logger.info("No LLM_API_KEY configured: question generation uses topic banks")
        return NullTextGenerator()
    return OpenAIChatGenerator(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        timeout_seconds=settings.llm_timeout_seconds,
    )


text_generator: TextGenerator = build_text_generator()

from __future__ import annotations

import json
import logging
import re
from uuid import uuid4

import pytest

from app.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.attempts",
        level=level,
        pathname="attempts.py",
        lineno=120,
        msg="Attempt %d graded",
        args=(2,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_picks_formatter_from_json_flag() -> None:
    setup_logging("info", json_format=True)
    assert isinstance(logging.getLogger().handlers[0].formatter, _JsonFormatter)

    setup_logging("info", json_format=False)
    assert isinstance(logging.getLogger().handlers[0].formatter, _ContainerFormatter)
    assert len(logging.getLogger().handlers) == 1


@pytest.mark.parametrize("name", ["httpx", "httpcore", "uvicorn.access"])
def test_chatty_libraries_stay_at_warning_during_debugging(name: str) -> None:
    setup_logging("debug")
    assert logging.getLogger(name).level == logging.WARNING


def test_chatty_libraries_follow_a_stricter_root_level() -> None:
    setup_logging("critical")
    assert logging.getLogger("httpx").level == logging.CRITICAL


def test_container_timestamp_carries_milliseconds() -> None:
    output = _ContainerFormatter().format(_record())
    assert re.match(r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}[+-]\d{4} ", output)
    assert "Attempt 2 graded" in output


def test_container_format_ignores_domain_extras() -> None:
    output = _ContainerFormatter().format(_record(attempt_id=str(uuid4())))
    assert "attempt_id" not in output


def test_json_line_for_a_graded_attempt() -> None:
    quiz_id, attempt_id = str(uuid4()), str(uuid4())
    record = _record(
        logging.WARNING,
        quiz_id=quiz_id,
        attempt_id=attempt_id,
        reason="timeout",
        user_id="-",
    )

    entry = json.loads(_JsonFormatter().format(record))

    assert entry["message"] == "Attempt 2 graded"
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "app.services.attempts"
    assert (entry["quiz_id"], entry["attempt_id"]) == (quiz_id, attempt_id)
    assert entry["reason"] == "timeout"
    assert "user_id" not in entry
    assert "course_id" not in entry

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEFAULT_LLM_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_LLM_MODEL = "gpt-4o-mini"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    llm_api_key: str | None
    llm_base_url: str
    llm_model: str
    llm_timeout_seconds: float
    cors_origins: tuple[str, ...]

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def llm_configured(self) -> bool:
        return self.llm_api_key is not None

    def __repr__(self) -> str:
        # Keep the API key out of logs and tracebacks.
        return (
            f"Settings(app_env={self.app_env!r}, log_level={self.log_level!r}, "
            f"port={self.port}, database={'on' if self.database_url else 'off'}, "
            f"redis={'on' if self.redis_url else 'off'}, "
            f"llm={'on' if self.llm_configured else 'off'}, "
            f"llm_model={self.llm_model!r})"
        )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("LLM_TIMEOUT_SECONDS", "20")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        llm_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"LLM_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if llm_timeout <= 0:
        raise ValueError(f"LLM_TIMEOUT_SECONDS must be positive (got {llm_timeout})")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    # OPENAI_API_KEY is accepted for compatibility with existing deployments.
    llm_api_key = _getenv("LLM_API_KEY", "") or _getenv("OPENAI_API_KEY", "") or None

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        llm_api_key=llm_api_key,
        llm_base_url=(_getenv("LLM_BASE_URL", "") or _DEFAULT_LLM_BASE_URL).rstrip("/"),
        llm_model=_getenv("LLM_MODEL", "") or _DEFAULT_LLM_MODEL,
        llm_timeout_seconds=llm_timeout,
        cors_origins=cors_origins,
    )


SETTINGS = load_settings()

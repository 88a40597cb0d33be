# config.py
# Settings loading and validation.
#
# load_config() only reads the environment and never fails.
# validate_config() collects every problem it finds and raises once.

import os
from collections.abc import Mapping

from pydantic import AnyUrl, TypeAdapter, ValidationError

from agent_relay.errors import ConfigError
from agent_relay.models import (
    CODE_KEYWORDS,
    DEFAULT_CODER_MODEL,
    DEFAULT_PLANNER_MODEL,
    ChatProviderSettings,
    ExecutionProviderSettings,
    Settings,
)

_URL = TypeAdapter(AnyUrl)


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def _str_env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name, "").strip()
    return value or None


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _str_env(environ, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _keywords_env(environ: Mapping[str, str], name: str) -> tuple[str, ...]:
    raw = _str_env(environ, name)
    if raw is None:
        return CODE_KEYWORDS
    keywords = tuple(k.strip().lower() for k in raw.split(",") if k.strip())
    return keywords or CODE_KEYWORDS


def is_valid_url(value: str) -> bool:
    try:
        _URL.validate_python(value)
    except ValidationError:
        return False
    return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from `environ` (default: os.environ), applying defaults."""
    env = os.environ if environ is None else environ

    return Settings(
        planner=ChatProviderSettings(
            base_url=_str_env(env, "OPENAI_BASE_URL"),
            api_key=_str_env(env, "OPENAI_API_KEY"),
            model=_str_env(env, "OPENAI_MODEL") or DEFAULT_PLANNER_MODEL,
        ),
        coder=ChatProviderSettings(
            base_url=_str_env(env, "DEEPSEA_BASE_URL"),
            api_key=_str_env(env, "DEEPSEA_API_KEY"),
            model=_str_env(env, "DEEPSEA_MODEL") or DEFAULT_CODER_MODEL,
        ),
        executor=ExecutionProviderSettings(
            base_url=_str_env(env, "REPLIT_BASE_URL"),
            api_key=_str_env(env, "REPLIT_API_KEY"),
            repl_id=_str_env(env, "REPLIT_REPL_ID"),
        ),
        http_timeout_ms=_int_env(env, "HTTP_TIMEOUT_MS", 30000),
        max_retries=_int_env(env, "AGENT_MAX_RETRIES", 2),
        max_steps=_int_env(env, "AGENT_MAX_STEPS", 8),
        retry_delay_ms=_int_env(env, "AGENT_RETRY_DELAY_MS", 400),
        # Only the exact string "true" enables the execution phase.
        enable_execution_step=env.get("EXECUTE_REPLIT_STEP") == "true",
        code_keywords=_keywords_env(env, "AGENT_CODE_KEYWORDS"),
    )


def validate_config(settings: Settings) -> None:
    """
    Raise ConfigError listing every missing or malformed setting.

    Execution-provider settings are only checked when the execution
    phase is enabled.
    """
    problems: list[str] = []

    required = [
        ("OPENAI_API_KEY", settings.planner.api_key),
        ("OPENAI_BASE_URL", settings.planner.base_url),
        ("DEEPSEA_API_KEY", settings.coder.api_key),
        ("DEEPSEA_BASE_URL", settings.coder.base_url),
    ]
    missing = [name for name, value in required if not value]
    if missing:
        problems.append(f"Missing required environment variables: {', '.join(missing)}")

    for name, value in (
        ("OPENAI_BASE_URL", settings.planner.base_url),
        ("DEEPSEA_BASE_URL", settings.coder.base_url),
    ):
        if value and not is_valid_url(value):
            problems.append(f"{name} must be a valid URL. Received: {value}")

    if settings.enable_execution_step:
        executor = settings.executor
        replit_missing = [
            name
            for name, value in (
                ("REPLIT_API_KEY", executor.api_key),
                ("REPLIT_BASE_URL", executor.base_url),
                ("REPLIT_REPL_ID", executor.repl_id),
            )
            if not value
        ]
        if replit_missing:
            problems.append(
                "EXECUTE_REPLIT_STEP=true, but required Replit variables are missing: "
                + ", ".join(replit_missing)
            )
        if executor.base_url and not is_valid_url(executor.base_url):
            problems.append(f"REPLIT_BASE_URL must be a valid URL. Received: {executor.base_url}")

    if settings.http_timeout_ms < 1:
        problems.append(f"HTTP_TIMEOUT_MS must be positive. Received: {settings.http_timeout_ms}")
    if settings.max_retries < 0:
        problems.append(f"AGENT_MAX_RETRIES must not be negative. Received: {settings.max_retries}")
    if settings.max_steps < 1:
        problems.append(f"AGENT_MAX_STEPS must be at least 1. Received: {settings.max_steps}")
    if settings.retry_delay_ms < 0:
        problems.append(f"AGENT_RETRY_DELAY_MS must not be negative. Received: {settings.retry_delay_ms}")

    if problems:
        raise ConfigError(problems)

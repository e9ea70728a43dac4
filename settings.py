from __future__ import annotations

import os
from dataclasses import dataclass


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    advisor_model: str = os.getenv("ADVISOR_MODEL", "gpt-4o-mini")
    advisor_max_tokens: int = _int("ADVISOR_MAX_TOKENS", 500)
    llm_timeout_seconds: int = _int("LLM_TIMEOUT_SECONDS", 25)

    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    supabase_feedback_table: str = os.getenv("SUPABASE_FEEDBACK_TABLE", "feedback")

    feedback_log_path: str = os.getenv("FEEDBACK_LOG_PATH", "./data/feedback.log.jsonl")
    typing_delay_ms: int = _int("TYPING_DELAY_MS", 1500)
    session_ttl_seconds: int = _int("SESSION_TTL_SECONDS", 2 * 60 * 60)

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = _bool("DEBUG", True)


SETTINGS = Settings()

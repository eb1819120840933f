from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

STORE_BACKENDS = {"sqlite", "json", "memory"}


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    log_level: str
    sentry_dsn: str | None
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    contract_store_backend: str
    contract_db_path: str
    contract_json_path: str
    max_upload_bytes: int
    openai_api_key: str | None
    openai_base_url: str | None
    analysis_model: str
    analysis_timeout_s: float
    openai_max_retries: int
    tavily_api_key: str | None
    tavily_base_url: str
    search_max_results: int
    search_timeout_s: float
    extraction_excerpt_chars: int


settings = Settings(
    api_key=_get_env("API_KEY"),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
    ),
    contract_store_backend=(_get_env("CONTRACT_STORE_BACKEND", "sqlite") or "sqlite").strip().lower(),
    contract_db_path=_get_env("CONTRACT_DB_PATH", "data/contracts.db") or "data/contracts.db",
    contract_json_path=_get_env("CONTRACT_JSON_PATH", "data/contracts.json") or "data/contracts.json",
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 20 * 1024 * 1024),
    openai_api_key=_get_env("OPENAI_API_KEY"),
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    analysis_model=_get_env("ANALYSIS_MODEL", "gpt-4.1") or "gpt-4.1",
    analysis_timeout_s=_get_env_float("ANALYSIS_TIMEOUT_S", 120.0),
    openai_max_retries=_get_env_int("OPENAI_MAX_RETRIES", 2),
    tavily_api_key=_get_env("TAVILY_API_KEY"),
    tavily_base_url=_get_env("TAVILY_BASE_URL", "https://api.tavily.com") or "https://api.tavily.com",
    search_max_results=_get_env_int("SEARCH_MAX_RESULTS", 5),
    search_timeout_s=_get_env_float("SEARCH_TIMEOUT_S", 30.0),
    extraction_excerpt_chars=_get_env_int("EXTRACTION_EXCERPT_CHARS", 1000),
)

if settings.contract_store_backend not in STORE_BACKENDS:
    raise RuntimeError(
        f"CONTRACT_STORE_BACKEND must be one of: {', '.join(sorted(STORE_BACKENDS))}."
    )

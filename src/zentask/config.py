# src/zentask/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

- One Settings object for the whole app, built once at startup.
- No secrets required at import time; the AI assistant is simply off without a key.
- The storage backend is chosen here, never at call sites.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "ZEN"

STORE_BACKENDS = ("local", "table")

DEFAULT_STORAGE_KEY = "zentask_ai_data"

DEFAULT_LLM_MODELS = [
    "google/gemini-2.0-flash-001",
    "openai/gpt-4o-mini",
]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _store_backend(raw: str) -> str:
    backend = (raw or "").strip().lower()
    if backend in STORE_BACKENDS:
        return backend
    logger.warning("Unknown %s=%r, falling back to 'local'", _k("STORE_BACKEND"), raw)
    return "local"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    store_backend: str
    data_dir: Path
    storage_key: str
    tasks_db_path: Path
    db_timeout_seconds: float

    # ---- AI assistant (OpenAI-compatible endpoint) ----
    llm_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float
    extra_headers: dict[str, str]

    @property
    def ai_configured(self) -> bool:
        return bool(self.llm_api_key and self.llm_api_key.strip())

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "zentask") or "zentask"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        store_backend = _store_backend(_env(_k("STORE_BACKEND"), "local"))
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/zentask"))
        storage_key = _env(_k("STORAGE_KEY"), DEFAULT_STORAGE_KEY).strip() or DEFAULT_STORAGE_KEY
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        db_timeout_seconds = _env_float(_k("DB_TIMEOUT_SECONDS"), 30.0)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", "API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(_k("LLM_MODELS"), DEFAULT_LLM_MODELS)
        llm_connect_timeout_seconds = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout_seconds = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0)

        # OpenRouter attribution headers; harmless for other OpenAI-compatible hosts.
        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        return Settings(
            app_name=app_name,
            log_level=log_level,
            store_backend=store_backend,
            data_dir=data_dir,
            storage_key=storage_key,
            tasks_db_path=tasks_db_path,
            db_timeout_seconds=db_timeout_seconds,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            llm_connect_timeout_seconds=llm_connect_timeout_seconds,
            llm_read_timeout_seconds=llm_read_timeout_seconds,
            extra_headers=extra_headers,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS

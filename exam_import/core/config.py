"""Runtime configuration sourced from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "")
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or list(default)


@dataclass(frozen=True, slots=True)
class Settings:
    """Tunables for upload limits, the AI backend and the HTTP surface."""

    max_file_size_mb: float = 10.0
    max_pages: int = 50
    enforce_page_limit: bool = True
    background_processing: bool = False
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5:32b"
    ollama_timeout: float = 600.0
    ollama_temperature: float = 0.3
    ollama_max_tokens: int = 8192
    chunk_max_chars: int = 10000
    log_level: str = "INFO"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            max_file_size_mb=_env_float("IMPORT_MAX_FILE_SIZE_MB", defaults.max_file_size_mb),
            max_pages=_env_int("IMPORT_MAX_PAGES", defaults.max_pages),
            enforce_page_limit=_env_bool("IMPORT_ENFORCE_PAGE_LIMIT", defaults.enforce_page_limit),
            background_processing=_env_bool("IMPORT_BACKGROUND", defaults.background_processing),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL") or defaults.ollama_base_url,
            ollama_model=os.getenv("OLLAMA_MODEL") or defaults.ollama_model,
            ollama_timeout=_env_float("OLLAMA_TIMEOUT", defaults.ollama_timeout),
            ollama_temperature=_env_float("OLLAMA_TEMPERATURE", defaults.ollama_temperature),
            ollama_max_tokens=_env_int("OLLAMA_MAX_TOKENS", defaults.ollama_max_tokens),
            chunk_max_chars=_env_int("IMPORT_CHUNK_MAX_CHARS", defaults.chunk_max_chars),
            log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
            cors_origins=_env_list("API_CORS_ORIGINS", defaults.cors_origins),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""

    return Settings.from_env()

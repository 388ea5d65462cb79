"""Centralized application configuration.

This module provides a single source of truth for all configurable values,
loaded from environment variables with sensible defaults.

Usage:
    from config import settings
    print(settings.llm.default_model)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.getenv(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable with default."""
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable with default."""
    return float(os.getenv(key, str(default)))


def _get_env_list(key: str, default: str, separator: str = ",") -> List[str]:
    """Get list environment variable with default."""
    value = os.getenv(key, default)
    return [item.strip() for item in value.split(separator) if item.strip()]


@dataclass(frozen=True)
class LLMSettings:
    """Interpretation model configuration (OpenRouter)."""
    api_key: str = field(default_factory=lambda: _get_env("OPENROUTER_API_KEY"))
    base_url: str = field(default_factory=lambda: _get_env("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"))
    default_model: str = field(default_factory=lambda: _get_env("DEFAULT_LLM_MODEL", "meta-llama/llama-3.3-70b-instruct:free"))
    temperature: float = field(default_factory=lambda: _get_env_float("LLM_TEMPERATURE", 0.1))
    max_tokens: int = field(default_factory=lambda: _get_env_int("LLM_MAX_TOKENS", 1500))


@dataclass(frozen=True)
class DataSettings:
    """Dataset handling configuration."""
    preview_page_size: int = field(default_factory=lambda: _get_env_int("PREVIEW_PAGE_SIZE", 50))
    max_page_size: int = field(default_factory=lambda: _get_env_int("MAX_PAGE_SIZE", 500))
    sample_size: int = 5


@dataclass(frozen=True)
class CORSSettings:
    """CORS configuration."""
    allowed_origins: List[str] = field(
        default_factory=lambda: _get_env_list("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )


@dataclass(frozen=True)
class LoggingSettings:
    """Logging configuration."""
    level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))


@dataclass(frozen=True)
class Settings:
    """Application settings container."""
    llm: LLMSettings = field(default_factory=LLMSettings)
    data: DataSettings = field(default_factory=DataSettings)
    cors: CORSSettings = field(default_factory=CORSSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()


# Convenience alias for direct import
settings = get_settings()

"""
Engine Configuration

Settings are read from the environment (and a local .env file, if present).
Thresholds that define the dialogue rules themselves live with the
components; only operational knobs are configurable here.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class EngineConfig:
    """Operational settings for the dialogue engine and its completion backend."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.75
    max_tokens: int = 100
    presence_penalty: float = 0.7
    frequency_penalty: float = 0.4
    completion_timeout_seconds: float = 20.0
    understanding_check_interval: int = 4
    difficulty_window: int = 5
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables, falling back to defaults."""
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            temperature=_env_float("TUTOR_TEMPERATURE", cls.temperature),
            max_tokens=_env_int("TUTOR_MAX_TOKENS", cls.max_tokens),
            presence_penalty=_env_float("TUTOR_PRESENCE_PENALTY", cls.presence_penalty),
            frequency_penalty=_env_float("TUTOR_FREQUENCY_PENALTY", cls.frequency_penalty),
            completion_timeout_seconds=_env_float(
                "COMPLETION_TIMEOUT_SECONDS", cls.completion_timeout_seconds
            ),
            understanding_check_interval=_env_int(
                "UNDERSTANDING_CHECK_INTERVAL", cls.understanding_check_interval
            ),
            difficulty_window=_env_int("DIFFICULTY_WINDOW", cls.difficulty_window),
            log_level=getattr(logging, level_name, logging.INFO),
        )

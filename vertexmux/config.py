"""
Gateway settings, read from the environment (and a local `.env` file).
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SERVICE_NAME = "vertexmux"
VERSION = "2.0.0"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    project_id: Optional[str] = None
    location: str = "us-central1"
    host: str = "localhost"
    port: int = 5001
    log_level: str = "info"
    log_format: str = "rich"
    cors_enabled: bool = True
    allowed_origins: Tuple[str, ...] = field(default=("*",))
    stream_word_delay: float = 0.05
    stream_split_words: bool = True
    task_continuation: bool = True


_DEFAULTS = Settings()


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using %s", key, raw, default)
        return default


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r, using %s", key, raw, default)
        return default
    if value < 0:
        logger.warning("Negative value for %s=%r, using %s", key, raw, default)
        return default
    return value


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    logger.warning("Invalid boolean for %s=%r, using %s", key, raw, default)
    return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables.

    Args:
        env (Mapping[str, str], optional): Variables to read instead of
            `os.environ`. When omitted, a `.env` file in the working directory
            is loaded first.

    Returns:
        Settings: The resolved configuration.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    log_format = env.get("LOG_FORMAT", _DEFAULTS.log_format).strip().lower()
    if log_format not in ("rich", "json"):
        logger.warning("Invalid LOG_FORMAT=%r, using %s", log_format, _DEFAULTS.log_format)
        log_format = _DEFAULTS.log_format

    origins = tuple(
        origin.strip() for origin in env.get("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
    ) or _DEFAULTS.allowed_origins

    return Settings(
        project_id=env.get("GOOGLE_CLOUD_PROJECT_ID") or None,
        location=env.get("VERTEX_AI_LOCATION") or _DEFAULTS.location,
        host=env.get("HOST") or _DEFAULTS.host,
        port=_get_int(env, "PORT", _DEFAULTS.port),
        log_level=(env.get("LOG_LEVEL") or _DEFAULTS.log_level).lower(),
        log_format=log_format,
        cors_enabled=_get_bool(env, "CORS_ENABLED", _DEFAULTS.cors_enabled),
        allowed_origins=origins,
        stream_word_delay=_get_float(env, "STREAM_WORD_DELAY", _DEFAULTS.stream_word_delay),
        stream_split_words=_get_bool(env, "STREAM_SPLIT_WORDS", _DEFAULTS.stream_split_words),
        task_continuation=_get_bool(env, "TASK_CONTINUATION", _DEFAULTS.task_continuation),
    )

"""
Request Context and Configuration State for Logging.

The request ID lives in a ContextVar so every log line emitted while a
request is being admitted, validated or streamed carries the same ID,
including lines logged from threadpool workers (Starlette copies the
context into them).

Environment Variables:
    - TTS_PROXY_LOG_LEVEL: Override log level (1-4)
    - TTS_PROXY_LOG_DIR: Override log directory
    - TTS_PROXY_JSONL_FILE: Override JSONL filename
    - TTS_PROXY_LOG_ROTATE_BYTES: Max log file size
    - TTS_PROXY_LOG_ROTATE_BACKUP: Number of backup files
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" for log messages outside request context
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get current request ID from context, or "-" if not set."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """
    Set request ID in context for log correlation.

    Args:
        rid: Request identifier string (12 char UUID prefix).
    """
    _request_id.set(rid)


def get_level() -> LogLevel:
    """Get current log level."""
    return _current_level


def set_level(level: LogLevel) -> None:
    """Set current log level."""
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Get current log level as human-readable name."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    """Check if configure_logging() has run."""
    return _configured


def set_configured(value: bool) -> None:
    """Set the configured flag."""
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    """Get current log configuration dictionary."""
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    """Set log configuration dictionary."""
    global _log_config
    _log_config = config


def _env_int(cfg: Dict[str, Any], key: str, env: str) -> None:
    value = os.getenv(env)
    if not value:
        return
    try:
        cfg[key] = int(value)
    except ValueError:
        pass  # Keep the file/default value


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from settings file and environment.

    Configuration priority (highest to lowest):
        1. Environment variables (TTS_PROXY_LOG_LEVEL, etc.)
        2. settings.yaml logging section
        3. Default values

    Returns:
        Dictionary with resolved logging configuration.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TTS_PROXY_SETTINGS", "config/settings.yaml")
    try:
        from tts_proxy.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except FileNotFoundError:
        pass  # No settings file: defaults + env

    if os.getenv("TTS_PROXY_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_PROXY_LOG_LEVEL"]
    if os.getenv("TTS_PROXY_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_PROXY_LOG_DIR"]
    if os.getenv("TTS_PROXY_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_PROXY_JSONL_FILE"]
    _env_int(cfg, "rotate_max_bytes", "TTS_PROXY_LOG_ROTATE_BYTES")
    _env_int(cfg, "rotate_backup_count", "TTS_PROXY_LOG_ROTATE_BACKUP")

    return cfg

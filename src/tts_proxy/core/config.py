"""
Configuration Management for tts-proxy.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (TTS_PROXY_DAILY_LIMIT, AWS_REGION, PORT, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    quota:
      daily_limit: 12
      window_seconds: 86400

    provider:
      region: us-east-1
      default_voice: Joanna

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    All default values are defined here to ensure consistency across
    the codebase. These values are used when no override is provided
    via YAML config or environment variables.

    Sections:
        - Quota: Per-client admission window
        - Provider: External speech provider call
        - Server: Listening address and CORS
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Quota Settings
    # ─────────────────────────────────────────────────────────────────────────
    QUOTA_DAILY_LIMIT = 12              # Admitted synthesis requests per window
    QUOTA_WINDOW_SECONDS = 86400        # Window length (24 hours)
    QUOTA_TRUST_PROXY = False           # Use X-Forwarded-For for client identity
    QUOTA_SWEEP_INTERVAL_SECONDS = 3600 # Expired record cleanup interval

    # ─────────────────────────────────────────────────────────────────────────
    # Speech Provider
    # ─────────────────────────────────────────────────────────────────────────
    PROVIDER_NAME = "polly"
    PROVIDER_REGION = "us-east-1"
    PROVIDER_DEFAULT_VOICE = "Joanna"
    PROVIDER_ENGINE = "neural"          # Highest quality Polly engine
    PROVIDER_OUTPUT_FORMAT = "mp3"
    PROVIDER_CHUNK_SIZE = 4096          # Bytes pulled per stream read
    PROVIDER_CONNECT_TIMEOUT_S = 5.0
    PROVIDER_READ_TIMEOUT_S = 30.0
    PROVIDER_STREAM_TIMEOUT_S = 120.0   # Total time budget for one stream

    # ─────────────────────────────────────────────────────────────────────────
    # Text Limits
    # ─────────────────────────────────────────────────────────────────────────
    TEXT_MAX_CHARS = 3000

    # ─────────────────────────────────────────────────────────────────────────
    # Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "0.0.0.0"
    SERVER_PORT = 3001
    SERVER_CORS_ORIGINS = ("*",)

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class QuotaConfig:
    """
    Per-client admission quota.

    Every client identity may make daily_limit synthesis requests per
    window_seconds. The window starts at the client's first request.
    """
    daily_limit: int = Defaults.QUOTA_DAILY_LIMIT
    window_seconds: float = Defaults.QUOTA_WINDOW_SECONDS
    trust_proxy: bool = Defaults.QUOTA_TRUST_PROXY
    sweep_interval_seconds: float = Defaults.QUOTA_SWEEP_INTERVAL_SECONDS


@dataclass
class ProviderConfig:
    """
    External speech provider configuration.

    Region and timeouts are passed to the boto3 client; AWS credentials
    are resolved by boto3's own credential chain.
    """
    name: str = Defaults.PROVIDER_NAME
    region: str = Defaults.PROVIDER_REGION
    default_voice: str = Defaults.PROVIDER_DEFAULT_VOICE
    engine: str = Defaults.PROVIDER_ENGINE
    output_format: str = Defaults.PROVIDER_OUTPUT_FORMAT
    chunk_size: int = Defaults.PROVIDER_CHUNK_SIZE
    connect_timeout_s: float = Defaults.PROVIDER_CONNECT_TIMEOUT_S
    read_timeout_s: float = Defaults.PROVIDER_READ_TIMEOUT_S
    stream_timeout_s: float = Defaults.PROVIDER_STREAM_TIMEOUT_S
    max_text_chars: int = Defaults.TEXT_MAX_CHARS


@dataclass
class ServerConfig:
    """Listening address and browser access."""
    host: str = Defaults.SERVER_HOST
    port: int = Defaults.SERVER_PORT
    cors_origins: List[str] = field(default_factory=lambda: list(Defaults.SERVER_CORS_ORIGINS))


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, quota rejections (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class AppConfig:
    """
    Validated configuration for the whole service.

    This is the main configuration object created from Settings.
    It validates all values and provides typed access to configuration.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = AppConfig.from_settings(settings)
        print(config.quota.daily_limit)  # Typed access
    """
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AppConfig":
        """
        Create AppConfig from Settings with validation.

        Reads raw configuration dictionary, applies defaults for missing
        values, validates constraints, and returns typed configuration.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated AppConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Quota configuration
        # ─────────────────────────────────────────────────────────────────────
        quota_raw = raw.get("quota", {}) or {}
        quota = QuotaConfig(
            daily_limit=int(quota_raw.get("daily_limit", Defaults.QUOTA_DAILY_LIMIT)),
            window_seconds=float(quota_raw.get("window_seconds", Defaults.QUOTA_WINDOW_SECONDS)),
            trust_proxy=_as_bool(quota_raw.get("trust_proxy", Defaults.QUOTA_TRUST_PROXY)),
            sweep_interval_seconds=float(
                quota_raw.get("sweep_interval_seconds", Defaults.QUOTA_SWEEP_INTERVAL_SECONDS)
            ),
        )
        cls._validate_positive("quota.daily_limit", quota.daily_limit)
        cls._validate_positive("quota.window_seconds", quota.window_seconds)
        cls._validate_non_negative("quota.sweep_interval_seconds", quota.sweep_interval_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # Provider configuration
        # ─────────────────────────────────────────────────────────────────────
        provider_raw = raw.get("provider", {}) or {}
        provider = ProviderConfig(
            name=str(provider_raw.get("name", Defaults.PROVIDER_NAME)).strip().lower(),
            region=str(provider_raw.get("region", Defaults.PROVIDER_REGION)),
            default_voice=str(provider_raw.get("default_voice", Defaults.PROVIDER_DEFAULT_VOICE)),
            engine=str(provider_raw.get("engine", Defaults.PROVIDER_ENGINE)),
            output_format=str(provider_raw.get("output_format", Defaults.PROVIDER_OUTPUT_FORMAT)),
            chunk_size=int(provider_raw.get("chunk_size", Defaults.PROVIDER_CHUNK_SIZE)),
            connect_timeout_s=float(provider_raw.get("connect_timeout_s", Defaults.PROVIDER_CONNECT_TIMEOUT_S)),
            read_timeout_s=float(provider_raw.get("read_timeout_s", Defaults.PROVIDER_READ_TIMEOUT_S)),
            stream_timeout_s=float(provider_raw.get("stream_timeout_s", Defaults.PROVIDER_STREAM_TIMEOUT_S)),
            max_text_chars=int(provider_raw.get("max_text_chars", Defaults.TEXT_MAX_CHARS)),
        )
        cls._validate_positive("provider.chunk_size", provider.chunk_size)
        cls._validate_positive("provider.connect_timeout_s", provider.connect_timeout_s)
        cls._validate_positive("provider.read_timeout_s", provider.read_timeout_s)
        cls._validate_positive("provider.stream_timeout_s", provider.stream_timeout_s)
        cls._validate_positive("provider.max_text_chars", provider.max_text_chars)
        if not provider.default_voice:
            raise ConfigValidationError("provider.default_voice must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Server configuration
        # ─────────────────────────────────────────────────────────────────────
        server_raw = raw.get("server", {}) or {}
        origins = server_raw.get("cors_origins", list(Defaults.SERVER_CORS_ORIGINS))
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(",") if o.strip()]
        server = ServerConfig(
            host=str(server_raw.get("host", Defaults.SERVER_HOST)),
            port=int(server_raw.get("port", Defaults.SERVER_PORT)),
            cors_origins=list(origins),
        )
        cls._validate_range("server.port", server.port, 1, 65535)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            quota=quota,
            provider=provider,
            server=server,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


def _as_bool(value: Any) -> bool:
    """Interpret YAML/env flag values ("1", "true", "yes", True)."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_app_config() to get validated AppConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    def get_app_config(self) -> AppConfig:
        """
        Get validated AppConfig from these settings.

        Returns:
            Validated configuration object.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return AppConfig.from_settings(self)


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to a raw settings dict.

    Environment variables:
        - TTS_PROXY_DAILY_LIMIT: quota.daily_limit
        - TTS_PROXY_WINDOW_SECONDS: quota.window_seconds
        - TTS_PROXY_TRUST_PROXY: quota.trust_proxy
        - AWS_REGION: provider.region
        - HOST / PORT: server.host / server.port
    """
    overrides = {
        ("quota", "daily_limit"): os.getenv("TTS_PROXY_DAILY_LIMIT"),
        ("quota", "window_seconds"): os.getenv("TTS_PROXY_WINDOW_SECONDS"),
        ("quota", "trust_proxy"): os.getenv("TTS_PROXY_TRUST_PROXY"),
        ("provider", "region"): os.getenv("AWS_REGION"),
        ("server", "host"): os.getenv("HOST"),
        ("server", "port"): os.getenv("PORT"),
    }
    for (section, key), value in overrides.items():
        if value:
            raw.setdefault(section, {})[key] = value
    return raw


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration and env overrides.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=apply_env_overrides(raw))

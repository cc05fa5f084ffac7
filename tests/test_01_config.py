"""
Tests for configuration validation and defaults.

Tests cover:
- AppConfig.from_settings() - all sections
- Defaults class values
- ConfigValidationError on invalid values
- String log level coercion ("DEBUG" -> 4)
- Environment overrides
- load_settings() file handling
"""

import pytest

from tts_proxy.core.config import (
    AppConfig,
    ConfigValidationError,
    Defaults,
    Settings,
    apply_env_overrides,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_quota_defaults(self):
        """Twelve requests per rolling 24 hours."""
        assert Defaults.QUOTA_DAILY_LIMIT == 12
        assert Defaults.QUOTA_WINDOW_SECONDS == 86400
        assert Defaults.QUOTA_TRUST_PROXY is False

    def test_provider_defaults(self):
        assert Defaults.PROVIDER_NAME == "polly"
        assert Defaults.PROVIDER_DEFAULT_VOICE == "Joanna"
        assert Defaults.PROVIDER_ENGINE == "neural"
        assert Defaults.PROVIDER_OUTPUT_FORMAT == "mp3"

    def test_text_limit(self):
        assert Defaults.TEXT_MAX_CHARS == 3000

    def test_server_defaults(self):
        assert Defaults.SERVER_PORT == 3001

    def test_logging_defaults(self):
        assert Defaults.LOGGING_TEXT_PREVIEW_CHARS == 80
        assert Defaults.LOGGING_LEVEL == 2


class TestAppConfigFromSettings:
    """Tests for AppConfig.from_settings()."""

    def test_from_settings_with_empty_raw(self):
        """from_settings should use defaults for empty raw dict."""
        config = AppConfig.from_settings(Settings(raw={}))

        assert config.quota.daily_limit == Defaults.QUOTA_DAILY_LIMIT
        assert config.quota.window_seconds == Defaults.QUOTA_WINDOW_SECONDS
        assert config.provider.default_voice == Defaults.PROVIDER_DEFAULT_VOICE
        assert config.provider.max_text_chars == Defaults.TEXT_MAX_CHARS
        assert config.server.cors_origins == ["*"]
        assert config.logging.level == Defaults.LOGGING_LEVEL

    def test_quota_section(self):
        config = AppConfig.from_settings(Settings(raw={
            "quota": {"daily_limit": 5, "window_seconds": 60, "trust_proxy": "true"},
        }))
        assert config.quota.daily_limit == 5
        assert config.quota.window_seconds == 60
        assert config.quota.trust_proxy is True

    def test_provider_section(self):
        config = AppConfig.from_settings(Settings(raw={
            "provider": {"name": "Polly", "region": "eu-west-1", "default_voice": "Amy"},
        }))
        assert config.provider.name == "polly"
        assert config.provider.region == "eu-west-1"
        assert config.provider.default_voice == "Amy"

    def test_cors_origins_from_string(self):
        config = AppConfig.from_settings(Settings(raw={
            "server": {"cors_origins": "http://a.example, http://b.example"},
        }))
        assert config.server.cors_origins == ["http://a.example", "http://b.example"]

    def test_none_sections_use_defaults(self):
        """A YAML section left empty loads as None."""
        config = AppConfig.from_settings(Settings(raw={"quota": None, "provider": None}))
        assert config.quota.daily_limit == 12

    @pytest.mark.parametrize("level,expected", [("DEBUG", 4), ("verbose", 3), ("INFO", 2), ("MINIMAL", 1), (3, 3)])
    def test_log_level_coercion(self, level, expected):
        config = AppConfig.from_settings(Settings(raw={"logging": {"level": level}}))
        assert config.logging.level == expected


class TestValidation:
    """ConfigValidationError on out-of-range values."""

    @pytest.mark.parametrize("raw", [
        {"quota": {"daily_limit": 0}},
        {"quota": {"daily_limit": -3}},
        {"quota": {"window_seconds": 0}},
        {"quota": {"sweep_interval_seconds": -1}},
        {"provider": {"chunk_size": 0}},
        {"provider": {"read_timeout_s": 0}},
        {"provider": {"max_text_chars": 0}},
        {"provider": {"default_voice": ""}},
        {"server": {"port": 0}},
        {"server": {"port": 70000}},
        {"logging": {"level": 9}},
    ])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ConfigValidationError):
            AppConfig.from_settings(Settings(raw=raw))

    def test_error_message_names_field(self):
        with pytest.raises(ConfigValidationError, match="quota.daily_limit"):
            AppConfig.from_settings(Settings(raw={"quota": {"daily_limit": 0}}))


class TestSettings:
    def test_get_app_config(self):
        assert isinstance(Settings(raw={}).get_app_config(), AppConfig)


class TestEnvOverrides:
    def test_env_overrides_applied(self, monkeypatch):
        monkeypatch.setenv("TTS_PROXY_DAILY_LIMIT", "3")
        monkeypatch.setenv("AWS_REGION", "eu-central-1")
        monkeypatch.setenv("PORT", "8080")

        raw = apply_env_overrides({"quota": {"daily_limit": 12}})
        config = AppConfig.from_settings(Settings(raw=raw))

        assert config.quota.daily_limit == 3
        assert config.provider.region == "eu-central-1"
        assert config.server.port == 8080

    def test_unset_env_keeps_file_values(self, monkeypatch):
        monkeypatch.delenv("TTS_PROXY_DAILY_LIMIT", raising=False)
        raw = apply_env_overrides({"quota": {"daily_limit": 4}})
        assert raw["quota"]["daily_limit"] == 4


class TestLoadSettings:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_loads_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TTS_PROXY_DAILY_LIMIT", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("quota:\n  daily_limit: 20\nprovider:\n  default_voice: Brian\n", encoding="utf-8")

        config = load_settings(str(path)).get_app_config()
        assert config.quota.daily_limit == 20
        assert config.provider.default_voice == "Brian"

    def test_empty_file(self, tmp_path, monkeypatch):
        for var in ("TTS_PROXY_DAILY_LIMIT", "TTS_PROXY_WINDOW_SECONDS", "TTS_PROXY_TRUST_PROXY",
                    "AWS_REGION", "PORT", "HOST"):
            monkeypatch.delenv(var, raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(str(path)).raw == {}

    def test_repo_settings_valid(self, monkeypatch):
        """The shipped config/settings.yaml loads and validates."""
        for var in ("TTS_PROXY_DAILY_LIMIT", "TTS_PROXY_WINDOW_SECONDS", "AWS_REGION", "PORT", "HOST"):
            monkeypatch.delenv(var, raising=False)
        config = load_settings("config/settings.yaml").get_app_config()
        assert config.quota.daily_limit == 12
        assert config.server.port == 3001


class TestSettingsDependency:
    """get_settings() falls back to defaults when no file is present."""

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        from tts_proxy.api.dependencies import get_app_config, get_settings, reset_dependencies

        monkeypatch.setenv("TTS_PROXY_SETTINGS", str(tmp_path / "missing.yaml"))
        monkeypatch.setenv("TTS_PROXY_DAILY_LIMIT", "5")
        reset_dependencies()
        try:
            assert get_settings().raw["quota"] == {"daily_limit": "5"}
            assert get_app_config().quota.daily_limit == 5
        finally:
            reset_dependencies()

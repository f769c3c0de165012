"""Test Settings loading."""

import pytest

from chance_journal.core.config import Settings, load_settings
from chance_journal.core.enums import StorageBackend
from chance_journal.core.errors import ConfigError


class TestSettingsDefaults:
    def test_default_settings(self):
        settings = Settings()
        assert settings.strict_vocabulary is False
        assert settings.storage.backend == StorageBackend.FILE
        assert settings.storage.key_prefix == "fx-checker-"
        assert settings.limits.max_presets == 10

    def test_observability_defaults(self):
        settings = Settings()
        assert settings.observability.log_level == "WARNING"
        assert settings.observability.log_format == "console"


class TestLoadSettings:
    def test_missing_file_is_ignored(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.storage.backend == StorageBackend.FILE

    def test_toml_file(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text(
            'strict_vocabulary = true\n'
            '\n'
            '[storage]\n'
            'backend = "memory"\n'
            'key_prefix = "demo-"\n'
            '\n'
            '[limits]\n'
            'max_presets = 3\n'
        )
        settings = load_settings(path)
        assert settings.strict_vocabulary is True
        assert settings.storage.backend == StorageBackend.MEMORY
        assert settings.storage.key_prefix == "demo-"
        assert settings.limits.max_presets == 3

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text('[storage]\nbackend = "memory"\n')
        settings = load_settings(path, overrides={"storage": {"backend": "redis"}})
        assert settings.storage.backend == StorageBackend.REDIS

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("CHANCE_JOURNAL_STORAGE__BACKEND", "memory")
        monkeypatch.setenv("CHANCE_JOURNAL_LIMITS__MAX_PRESETS", "4")
        settings = load_settings()
        assert settings.storage.backend == StorageBackend.MEMORY
        assert settings.limits.max_presets == 4

    @pytest.mark.parametrize(
        "overrides",
        [
            {"storage": {"backend": "sqlite"}},
            {"limits": {"max_presets": 0}},
        ],
    )
    def test_invalid_values_raise_config_error(self, overrides):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(overrides=overrides)

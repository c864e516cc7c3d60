"""Tests for INI configuration loading, migration, and validation."""

import pytest

from uuid2asset.exceptions import ConfigurationError
from uuid2asset.models.config import DEFAULT_FILE_EXTENSIONS, RunConfig
from uuid2asset.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "uuid2asset" / "config.ini"


class TestRunConfig:
    def test_defaults(self):
        config = RunConfig()
        assert config.concurrency_limit == 400
        assert config.sub_batch_size == 50
        assert config.task_timeout == 30.0
        assert config.retry_delay == 5.0
        assert config.max_attempts is None
        assert config.extensions == DEFAULT_FILE_EXTENSIONS
        assert len(config.extensions) == 18

    def test_server_url_is_normalized(self):
        assert RunConfig(server_url="https://x.org/game/").server_url == (
            "https://x.org/game"
        )

    def test_low_concurrency_keeps_default_sub_batch(self):
        config = RunConfig(concurrency_limit=20)
        assert config.concurrency_limit == 20
        assert config.sub_batch_size == 50

    def test_zero_attempts_means_unbounded(self):
        assert RunConfig(max_attempts=0).max_attempts is None

    def test_extensions_are_deduplicated(self):
        config = RunConfig(extensions=[".png", " .png", ".json"])
        assert config.extensions == [".png", ".json"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"server_url": "ftp://x.org"},
            {"extensions": ["png"]},
            {"concurrency_limit": 0},
            {"sub_batch_size": 0},
            {"task_timeout": 0},
            {"backoff_factor": 0.5},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            RunConfig(**overrides)


class TestConfigManager:
    def test_missing_file_uses_defaults(self, config_file):
        config = ConfigManager(config_file).load_config()
        assert config.concurrency_limit == 400
        assert not config_file.exists()

    def test_save_and_load(self, config_file):
        manager = ConfigManager(config_file)
        manager.save_default_config({"concurrency_limit": 100, "max_attempts": 5})

        config = ConfigManager(config_file).load_config()
        assert config.concurrency_limit == 100
        assert config.max_attempts == 5
        assert config.extensions == DEFAULT_FILE_EXTENSIONS
        assert config.config_path == str(config_file.parent)

    def test_empty_limits_mean_none(self, config_file):
        ConfigManager(config_file).save_default_config()
        config = ConfigManager(config_file).load_config()
        assert config.max_attempts is None
        assert config.max_retry_delay is None

    def test_cli_options_override_file(self, config_file):
        ConfigManager(config_file).save_default_config({"task_timeout": 10.0})
        config = ConfigManager(config_file).load_config(
            {"task_timeout": 2.5, "server_url": "http://localhost:8000/"}
        )
        assert config.task_timeout == 2.5
        assert config.server_url == "http://localhost:8000"

    def test_missing_keys_are_migrated(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[DEFAULT]\nconcurrency_limit = 200\n", encoding="utf-8")

        config = ConfigManager(config_file).load_config()

        assert config.concurrency_limit == 200
        content = config_file.read_text(encoding="utf-8")
        assert "sub_batch_size = 50" in content
        assert "retry_delay = 5.0" in content

    def test_invalid_number_raises(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[DEFAULT]\nconcurrency_limit = many\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_validation_error_is_wrapped(self, config_file):
        with pytest.raises(ConfigurationError, match="validation failed"):
            ConfigManager(config_file).load_config(
                {"concurrency_limit": 0}
            )

    def test_display_dict_without_file(self, config_file):
        values = ConfigManager(config_file).as_display_dict()
        assert values["concurrency_limit"] == 400
        assert "server_url" not in values

    def test_low_concurrency_from_cli(self, config_file):
        config = ConfigManager(config_file).load_config({"concurrency_limit": 20})
        assert config.concurrency_limit == 20

"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from uuid2asset.exceptions import ConfigurationError
from uuid2asset.models.config import RunConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """
    Handles all operations related to the application's INI config file.
    The file is optional: without it, model defaults are used.
    """

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser()

    def load_config(self, cli_options: dict[str, Any] | None = None) -> RunConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated RunConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        else:
            log.debug(f"No config file at '{self.config_file_path}', using defaults.")

        # Override with CLI options
        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return RunConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_default_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a complete configuration file.

        Args:
            settings: Optional values overriding the model defaults.
        """
        settings = settings or {}
        config = configparser.ConfigParser()
        config["DEFAULT"] = {}

        defaults = RunConfig()
        for key in sorted(RunConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._to_ini_value(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            return ",".join(map(str, value))
        if value is None:
            return ""
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = RunConfig()
        try:
            values = {
                "extensions": [
                    e.strip()
                    for e in section.get(
                        "extensions", ",".join(defaults.extensions)
                    ).split(",")
                    if e.strip()
                ],
                "concurrency_limit": section.getint(
                    "concurrency_limit", defaults.concurrency_limit
                ),
                "sub_batch_size": section.getint(
                    "sub_batch_size", defaults.sub_batch_size
                ),
                "task_timeout": section.getfloat("task_timeout", defaults.task_timeout),
                "retry_delay": section.getfloat("retry_delay", defaults.retry_delay),
                "backoff_factor": section.getfloat(
                    "backoff_factor", defaults.backoff_factor
                ),
                "output_dir": section.get("output_dir", defaults.output_dir),
                "external_archive": section.getboolean(
                    "external_archive", defaults.external_archive
                ),
            }
            # Empty means "no limit"
            max_attempts = section.get("max_attempts", "").strip()
            values["max_attempts"] = int(max_attempts) if max_attempts else None
            max_retry_delay = section.get("max_retry_delay", "").strip()
            values["max_retry_delay"] = (
                float(max_retry_delay) if max_retry_delay else None
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid value in configuration file '{self.config_file_path}': {e}"
            ) from e
        return values

    def as_display_dict(self) -> dict[str, Any]:
        """Returns the effective file settings, for display."""
        if self.config_file_path.is_file():
            self._parser.read(self.config_file_path, encoding="utf-8")
            return self._get_config_as_dict()
        return RunConfig().model_dump(include=RunConfig.get_ini_keys())

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = RunConfig()
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(RunConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini_value(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving

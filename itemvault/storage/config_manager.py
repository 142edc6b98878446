"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from itemvault.exceptions import ConfigurationError
from itemvault.models.config import VaultConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> VaultConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated VaultConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'itemvault init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        config_from_file = self.get_config_as_dict()

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return VaultConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> VaultConfig:
        """
        Validates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save; unset keys get defaults.

        Raises:
            ConfigurationError: If the settings are invalid or cannot be written.
        """
        try:
            config = VaultConfig(
                **settings, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        parser = configparser.ConfigParser(interpolation=None)
        parser["DEFAULT"] = {}
        for key in sorted(VaultConfig.get_ini_keys()):
            value = getattr(config, key)
            if isinstance(value, bool):
                parser["DEFAULT"][key] = "true" if value else "false"
            else:
                parser["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
        return config

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            open_viewer = section.getboolean("open_viewer", True)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for 'open_viewer': {e}") from e
        return {
            "asset_url": section.get(
                "asset_url", VaultConfig.model_fields["asset_url"].default
            ),
            "documents_dir": section.get("documents_dir", ""),
            "data_dir": section.get("data_dir", ""),
            "record_type": section.get(
                "record_type", VaultConfig.model_fields["record_type"].default
            ),
            "open_viewer": open_viewer,
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key in sorted(VaultConfig.get_ini_keys()):
            if key in config_section:
                continue
            default_value = VaultConfig.model_fields[key].default
            if isinstance(default_value, bool):
                config_section[key] = "true" if default_value else "false"
            else:
                config_section[key] = str(default_value)
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

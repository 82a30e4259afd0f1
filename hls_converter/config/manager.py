"""
Configuration management for the HLS converter.

This module handles loading, validating, and saving configuration from YAML
files, with environment overrides for the external binary locations.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from hls_converter.config.models import ConverterConfig
from hls_converter.utils import ConfigurationError, get_logger

logger = get_logger(__name__)

# Environment variable -> BinaryConfig field
ENV_BINARY_OVERRIDES = {
    "FFMPEG_PATH": "ffmpeg_path",
    "FFPROBE_PATH": "ffprobe_path",
}


class ConfigManager:
    """Manages converter configuration."""

    DEFAULT_CONFIG_LOCATIONS = [
        Path.home() / ".hls-converter.yaml",
        Path.home() / ".config" / "hls-converter" / "config.yaml",
        Path.cwd() / ".hls-converter.yaml",
    ]

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file
            environ: Environment used for overrides (defaults to os.environ)
        """
        self.config_path = config_path
        self.environ = environ if environ is not None else os.environ
        self._config: Optional[ConverterConfig] = None

    @property
    def config(self) -> ConverterConfig:
        """
        Get current configuration, loading it if necessary.

        Raises:
            ConfigurationError: If configuration cannot be loaded
        """
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self, config_path: Optional[Path] = None) -> ConverterConfig:
        """
        Load configuration from file or create default.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Loaded ConverterConfig with environment overrides applied

        Raises:
            ConfigurationError: If configuration file is missing or invalid
        """
        path = config_path or self.config_path

        if path:
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            return self._apply_env_overrides(self._load_from_file(path))

        for default_path in self.DEFAULT_CONFIG_LOCATIONS:
            if default_path.exists():
                logger.info(f"Loading configuration from {default_path}")
                return self._apply_env_overrides(self._load_from_file(default_path))

        logger.debug("No configuration file found, using defaults")
        return self._apply_env_overrides(ConverterConfig.create_default())

    def _load_from_file(self, path: Path) -> ConverterConfig:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file {path}: {e}") from e

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        try:
            config = ConverterConfig(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

        logger.debug(f"Successfully loaded configuration from {path}")
        return config

    def _apply_env_overrides(self, config: ConverterConfig) -> ConverterConfig:
        """Apply FFMPEG_PATH / FFPROBE_PATH when set to a non-empty value."""
        for env_name, field_name in ENV_BINARY_OVERRIDES.items():
            value = self.environ.get(env_name, "").strip()
            if value:
                setattr(config.binaries, field_name, value)
                logger.debug(f"{env_name} overrides {field_name}: {value}")
        return config

    def save(self, path: Optional[Path] = None, config: Optional[ConverterConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save configuration (uses default if None)
            config: Configuration to save (uses current if None)

        Raises:
            ConfigurationError: If configuration cannot be saved
        """
        cfg = config or self.config
        save_path = path or self.config_path or self.DEFAULT_CONFIG_LOCATIONS[0]

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            data = cfg.model_dump(mode="json")
            with open(save_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

        logger.info(f"Configuration saved to {save_path}")

    def init_default_config(self, path: Optional[Path] = None, force: bool = False) -> Path:
        """
        Initialize default configuration file.

        Args:
            path: Path to create configuration file (uses default if None)
            force: Overwrite existing file

        Returns:
            Path to created configuration file

        Raises:
            ConfigurationError: If file already exists and force=False
        """
        target_path = path or self.DEFAULT_CONFIG_LOCATIONS[0]

        if target_path.exists() and not force:
            raise ConfigurationError(
                f"Configuration file already exists: {target_path}. Use force=True to overwrite."
            )

        self.save(target_path, ConverterConfig.create_default())
        return target_path


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """
    Get global configuration manager instance.

    A different ``config_path`` than the cached manager's replaces it.

    Args:
        config_path: Optional path to configuration file

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None or (
        config_path is not None and _config_manager.config_path != config_path
    ):
        _config_manager = ConfigManager(config_path)

    return _config_manager

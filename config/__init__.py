"""
Configuration Module for the Stamp Catalog Extraction Service.

This module provides centralized configuration management using YAML files.
Deploy-time values (database location, media root, the vision credential)
can be overridden through environment variables so that secrets never have
to live in settings.yaml.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional


# Environment variables that override individual configuration keys
ENV_OVERRIDES = {
    "STAMP_CATALOG_DB": "paths.database",
    "STAMP_CATALOG_MEDIA_ROOT": "paths.media_root",
    "OPENAI_MODEL": "vision.model",
    "OCR_POLL_MS": "queue.poll_interval_ms",
}


class ConfigurationManager:
    """
    Centralized configuration management for the stamp catalog service.

    This class handles loading and providing access to all configuration
    parameters defined in settings.yaml.

    Attributes:
        config_path (Path): Path to the configuration file.
        config (Dict): Loaded configuration dictionary.

    Example:
        >>> config = ConfigurationManager()
        >>> poll_ms = config.get("queue.poll_interval_ms")
        >>> model_name = config.get("vision.model")
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        """
        Singleton pattern to ensure only one configuration instance exists.

        Args:
            config_path: Optional path to configuration file.

        Returns:
            ConfigurationManager instance.
        """
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        Defaults to $STAMP_CATALOG_CONFIG, then
                        config/settings.yaml.
        """
        if self._initialized:
            return

        if config_path is None:
            config_path = os.environ.get("STAMP_CATALOG_CONFIG")

        if config_path is None:
            self.config_path = Path(__file__).parent / "settings.yaml"
        else:
            self.config_path = Path(config_path)

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Load configuration from YAML file and apply environment overrides.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            yaml.YAMLError: If configuration file is invalid.
            ValueError: If a numeric environment override is not an integer.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        self._apply_env_overrides()

        # Resolve relative paths to absolute paths
        self._resolve_paths()

    def _apply_env_overrides(self) -> None:
        """Copy non-empty override variables into the loaded configuration."""
        for env_key, config_key in ENV_OVERRIDES.items():
            raw = os.environ.get(env_key)
            if raw is None or not raw.strip():
                continue

            value: Any = raw.strip()
            # Numeric overrides keep their YAML type
            if isinstance(self.get(config_key), int):
                try:
                    value = int(value)
                except ValueError as e:
                    raise ValueError(
                        f"Environment variable {env_key} must be an integer, got {raw!r}"
                    ) from e
            self.set(config_key, value)

    def _resolve_paths(self) -> None:
        """
        Resolve relative paths in configuration to absolute paths.
        Uses project root as base directory.
        """
        project_root = Path(__file__).parent.parent

        if 'paths' in self._config:
            for key, value in self._config['paths'].items():
                if value and value != ":memory:" and not Path(value).is_absolute():
                    self._config['paths'][key] = str(project_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "queue.poll_interval_ms").
            default: Default value if key doesn't exist.

        Returns:
            Configuration value or default.

        Example:
            >>> config.get("vision.model")
            "gpt-4.1-mini"
            >>> config.get("nonexistent.key", "default_value")
            "default_value"
        """
        keys = key.split('.')
        value = self._config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value using dot notation.

        Intermediate sections are created as needed.

        Args:
            key: Configuration key in dot notation.
            value: Value to store.
        """
        keys = key.split('.')
        section = self._config
        for k in keys[:-1]:
            section = section.setdefault(k, {})
        section[keys[-1]] = value

    @classmethod
    def reset(cls) -> None:
        """
        Drop the singleton so the next access loads from disk again.

        Tests call this after changing environment overrides.
        """
        cls._instance = None


# Convenience function for quick access
def get_config(key: str, default: Any = None) -> Any:
    """
    Convenience function to get configuration values.

    Args:
        key: Configuration key in dot notation.
        default: Default value if key doesn't exist.

    Returns:
        Configuration value or default.
    """
    return ConfigurationManager().get(key, default)


def get_secret(env_key: str) -> str:
    """
    Read a credential from the environment.

    Credentials are never read from settings.yaml; an unset variable
    yields an empty string.

    Args:
        env_key: Name of the environment variable.

    Returns:
        The stripped value, or "".
    """
    return (os.environ.get(env_key) or "").strip()


# Export public API
__all__ = ['ConfigurationManager', 'get_config', 'get_secret']

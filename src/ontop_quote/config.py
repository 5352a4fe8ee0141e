#!/usr/bin/env python3
"""
Configuration for the Ontop Quote Generator.
All static tables (countries, fallback rates, phrase lists) live in settings.yaml
and are loaded once per process.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


class ConfigurationManager:
    """
    Singleton access to settings.yaml.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("rates.endpoint")
        'https://open.er-api.com/v6/latest/USD'
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        if self._initialized:
            return

        self.config_path = Path(config_path) if config_path else DEFAULT_SETTINGS_PATH
        self._config: Dict[str, Any] = {}
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Load configuration from the YAML file.

        Raises:
            FileNotFoundError: If the settings file doesn't exist.
            yaml.YAMLError: If the settings file is invalid.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        logger.debug(f"Loaded settings from {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "quote.valid_days").
            default: Value returned when the key doesn't exist.
        """
        value: Any = self._config
        try:
            for part in key.split('.'):
                value = value[part]
            return value
        except (KeyError, TypeError):
            return default

    def get_all(self) -> Dict[str, Any]:
        """Get a shallow copy of the complete configuration dictionary."""
        return self._config.copy()

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next access reloads (used by tests)."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Convenience accessor for configuration values."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'DEFAULT_SETTINGS_PATH']

"""Configuration management module"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

APP_DIR_NAME = 'ClipStash'

DEFAULT_CONFIG: Dict[str, Any] = {
    'clipboard': {
        'check_interval': 500,
        'auto_start': True
    },
    'history': {
        'max_items': 100
    },
    'storage': {
        'backends': ['sqlite', 'json', 'memory'],
        'directory': None,
        'database_file': 'clipboard_history.sqlite',
        'json_file': 'clipboard_history.json'
    },
    'logging': {
        'level': 'INFO',
        'file_logging': True,
        'rotation': '1 day',
        'retention': '7 days'
    }
}


def get_data_dir() -> Path:
    """
    Resolve the application data directory

    CLIPSTASH_HOME wins, then %APPDATA%/ClipStash on Windows, then
    ~/.clipstash.
    """
    override = os.environ.get('CLIPSTASH_HOME')
    if override:
        return Path(override).expanduser()

    app_data = os.environ.get('APPDATA')
    if app_data:
        return Path(app_data) / APP_DIR_NAME

    return Path.home() / f".{APP_DIR_NAME.lower()}"


class ConfigManager:
    """Manages application configuration"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Path to configuration file
        """
        if config_path is None:
            config_path = str(get_data_dir() / 'settings.yaml')

        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self._load_defaults()
        self._load_config()

    @property
    def data_dir(self) -> Path:
        """Directory holding the settings file and default storage"""
        return Path(self.config_path).parent

    def _load_defaults(self):
        """Load default configuration"""
        self.config = copy.deepcopy(DEFAULT_CONFIG)

    def _load_config(self):
        """Load user configuration"""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    user_config = yaml.safe_load(f) or {}

                if not isinstance(user_config, dict):
                    logger.error(f"Ignoring malformed config file: {self.config_path}")
                    return

                # Merge with defaults
                self._merge_config(self.config, user_config)
                logger.info(f"Loaded user configuration from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load user config: {e}")

    def _merge_config(self, base: Dict, updates: Dict):
        """
        Recursively merge configuration dictionaries

        Args:
            base: Base configuration
            updates: Updates to apply
        """
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def save(self) -> bool:
        """Save current configuration to file"""
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.config_path)), exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.config, f, default_flow_style=False)

            logger.info(f"Configuration saved to {self.config_path}")
            return True

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set configuration value

        Args:
            key: Configuration key (dot notation supported)
            value: Value to set
        """
        keys = key.split('.')
        config = self.config

        # Navigate to the parent
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        logger.debug(f"Set config: {key} = {value}")

    def get_all(self) -> Dict[str, Any]:
        """Get entire configuration"""
        return copy.deepcopy(self.config)

    def reset(self):
        """Reset to default configuration"""
        self._load_defaults()
        logger.info("Configuration reset to defaults")

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if valid
        """
        required = [
            'clipboard.check_interval',
            'history.max_items',
            'storage.backends'
        ]

        for key in required:
            if self.get(key) is None:
                logger.error(f"Missing required config: {key}")
                return False

        check_interval = self.get('clipboard.check_interval')
        if not isinstance(check_interval, (int, float)) or check_interval < 100:
            logger.error("Check interval too small (min 100ms)")
            return False

        max_items = self.get('history.max_items')
        if not isinstance(max_items, int) or max_items < 1:
            logger.error("History size must be a positive integer")
            return False

        backends = self.get('storage.backends')
        if not isinstance(backends, list) or not backends:
            logger.error("storage.backends must be a non-empty list")
            return False

        return True

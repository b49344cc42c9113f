"""Configuration management for EpubSplit.

This module handles loading, saving, and managing user configuration settings.
The configuration is stored in ~/.epubsplit/config.json.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, List

# Set up logging
logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG = {
    "output_filename": "split.epub",
    "output_directory": "",
    "default_languages": ["en"],
    "preview_length": 1500,
}

# Constants
CONFIG_DIR = Path.home() / ".epubsplit"
CONFIG_FILE = CONFIG_DIR / "config.json"


def ensure_config_dir() -> None:
    """Create the configuration directory if it doesn't exist.

    Sets appropriate permissions (700) for security.

    Raises:
        OSError: If directory creation fails or permissions can't be set.
    """
    try:
        CONFIG_DIR.mkdir(mode=0o700, parents=True, exist_ok=True)
        logger.debug(f"Config directory ensured at {CONFIG_DIR}")
    except OSError as e:
        logger.error(f"Failed to create config directory: {e}")
        raise


def _default_config() -> Dict[str, Any]:
    # Fresh copy so list values are never shared between configs
    return json.loads(json.dumps(DEFAULT_CONFIG))


def load_config() -> Dict[str, Any]:
    """Load configuration from file or return default config.

    Returns:
        Dict[str, Any]: The loaded configuration or default values.
    """
    ensure_config_dir()

    if not CONFIG_FILE.exists():
        logger.info("Config file doesn't exist. Creating with defaults.")
        config = _default_config()
        save_config(config)
        return config

    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            config = json.load(f)

        # Update with any missing default values
        updated = False
        for key, value in _default_config().items():
            if key not in config:
                config[key] = value
                updated = True

        if updated:
            save_config(config)

        logger.debug("Config loaded successfully")
        return config
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"Error loading config file: {e}")
        logger.info("Using default configuration")
        return _default_config()


def save_config(config: Dict[str, Any]) -> bool:
    """Save configuration to file.

    Args:
        config: The configuration dictionary to save.

    Returns:
        bool: True if saving was successful, False otherwise.
    """
    ensure_config_dir()

    try:
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.chmod(CONFIG_FILE, 0o600)  # Secure file permissions
        logger.debug("Config saved successfully")
        return True
    except OSError as e:
        logger.error(f"Error saving config file: {e}")
        return False


def coerce_value(key: str, raw: str) -> Any:
    """Convert a command-line string into the type of the default for ``key``.

    Args:
        key: The configuration key being set.
        raw: The value as typed by the user.

    Returns:
        The converted value; unknown keys keep the raw string.

    Raises:
        ValueError: If the value can't be converted.
    """
    default = DEFAULT_CONFIG.get(key)
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


class Config:
    """Configuration manager class for EpubSplit."""

    def __init__(self):
        """Initialize the configuration manager."""
        self._config = load_config()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The value for the specified key or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Set a configuration value.

        Args:
            key: The configuration key to set.
            value: The value to store.

        Returns:
            bool: True if setting was successful, False otherwise.
        """
        self._config[key] = value
        return self.save()

    def save(self) -> bool:
        """Save the current configuration to disk."""
        return save_config(self._config)

    def reset(self) -> bool:
        """Reset configuration to default values."""
        self._config = _default_config()
        return self.save()

    def items(self) -> Dict[str, Any]:
        """Return a copy of every configured value."""
        return dict(self._config)

    def get_output_dir(self) -> str:
        """Get the configured output directory ("" means the current directory)."""
        return self.get("output_directory") or ""

    def get_languages(self) -> List[str]:
        """Get the default language list for written books."""
        languages = self.get("default_languages") or []
        if isinstance(languages, str):
            languages = [languages]
        return list(languages) or ["en"]

    def get_preview_length(self) -> int:
        """Get the split point preview length in characters."""
        try:
            return int(self.get("preview_length", DEFAULT_CONFIG["preview_length"]))
        except (TypeError, ValueError):
            logger.warning("Invalid preview_length in config, using default")
            return DEFAULT_CONFIG["preview_length"]

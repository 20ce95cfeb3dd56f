"""
Configuration management for ctxshell.

Provides a configuration file at ~/.ctxshell/config.json for default settings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Default values - single source of truth
DEFAULTS = {
    "server": "keepersecurity.com",
    "backup_dir": str(Path.home() / ".ctxshell" / "backups"),
    "help_marker": "?",
    "prompt_suffix": "> ",
    "log_level": "INFO",
    "simple": False,
}


class Config(BaseModel):
    """Configuration settings for ctxshell.

    All settings are optional. Use DEFAULTS for default values.
    """

    model_config = {"extra": "ignore"}  # Ignore unknown fields like _comment

    # Main menu settings
    server: Optional[str] = Field(
        default=None,
        description="Server the main menu reports and connects to"
    )
    backup_dir: Optional[str] = Field(
        default=None,
        description="Directory holding backup files"
    )

    # Shell settings
    help_marker: Optional[str] = Field(
        default=None,
        description="Command token that shows help without an error"
    )
    prompt_suffix: Optional[str] = Field(
        default=None,
        description="Text appended to the context prompt"
    )
    simple: Optional[bool] = Field(
        default=None,
        description="Read plain lines from stdin (no prompt_toolkit)"
    )

    # Logging settings
    log_file: Optional[str] = Field(
        default=None,
        description="Write logs to this file"
    )
    log_level: Optional[str] = Field(
        default=None,
        description="Log level for the log file (DEBUG, INFO, ...)"
    )

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value with fallback to DEFAULTS, then to provided default."""
        value = getattr(self, key, None)
        if value is not None:
            return value
        return DEFAULTS.get(key, default)


class ConfigManager:
    """Manages loading and saving configuration."""

    CONFIG_DIR = Path.home() / ".ctxshell"
    CONFIG_FILE = CONFIG_DIR / "config.json"

    def __init__(self):
        self._config: Optional[Config] = None

    def _ensure_dir(self) -> None:
        """Ensure config directory exists."""
        self.CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    @property
    def config(self) -> Config:
        """Get the current config, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self, create_if_missing: bool = True) -> Config:
        """Load configuration from file.

        Args:
            create_if_missing: If True, create default config file if it doesn't exist.

        Returns:
            Config object with loaded settings, or defaults if file doesn't exist.
        """
        if not self.CONFIG_FILE.exists():
            if create_if_missing:
                self._create_default_config()
            return Config()

        try:
            data = json.loads(self.CONFIG_FILE.read_text())
            return Config.model_validate(data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Invalid config file ({e}), using defaults")
            return Config()

    def _create_default_config(self) -> None:
        """Create default config file with actual default values."""
        self._ensure_dir()

        default_config = {
            "_comment": "ctxshell configuration file",
            "server": DEFAULTS["server"],
            "backup_dir": DEFAULTS["backup_dir"],
            "help_marker": DEFAULTS["help_marker"],
            "prompt_suffix": DEFAULTS["prompt_suffix"],
            "simple": DEFAULTS["simple"],
            "log_file": None,
            "log_level": DEFAULTS["log_level"],
        }
        self.CONFIG_FILE.write_text(json.dumps(default_config, indent=2) + "\n")

    def _read_existing(self) -> dict[str, Any]:
        if not self.CONFIG_FILE.exists():
            return {}
        try:
            data = json.loads(self.CONFIG_FILE.read_text())
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, config: Optional[Config] = None) -> Path:
        """Save configuration to file, preserving existing structure.

        Args:
            config: Config to save. If None, saves current config.

        Returns:
            Path to saved config file.
        """
        self._ensure_dir()
        if config is not None:
            self._config = config

        if self._config is None:
            self._config = Config()

        existing_data = self._read_existing()

        # Update only non-None config values, preserving everything else
        for key, value in self._config.model_dump().items():
            if value is not None:
                existing_data[key] = value

        self._write(existing_data)
        return self.CONFIG_FILE

    def _check_key(self, key: str) -> None:
        if key not in Config.model_fields:
            raise ValueError(f"Unknown config key: {key}")

    def _write(self, data: dict[str, Any]) -> None:
        self.CONFIG_FILE.write_text(json.dumps(data, indent=2) + "\n")

    def set(self, key: str, value: Any) -> Any:
        """Validate and store a config value.

        Strings are coerced to the field type by pydantic ("true" for a
        bool field, for example).

        Returns:
            The stored value.

        Raises:
            ValueError: Unknown key or a value the field does not accept.
        """
        self._check_key(key)
        if not self.CONFIG_FILE.exists():
            self._create_default_config()

        data = self._read_existing()
        data[key] = value
        self._config = Config.model_validate(data)
        data[key] = getattr(self._config, key)
        self._write(data)
        return data[key]

    def unset(self, key: str) -> None:
        """Remove a config value (reset to default)."""
        self._check_key(key)
        if not self.CONFIG_FILE.exists():
            self._create_default_config()

        data = self._read_existing()
        data[key] = None
        self._write(data)
        self._config = self.load(create_if_missing=False)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value with fallback."""
        return self.config.get(key, default)

    def list_settings(self) -> dict[str, Any]:
        """List user-customized settings (values that differ from defaults)."""
        result = {}
        for k, v in self.config.model_dump().items():
            if v is None:
                continue
            if k not in DEFAULTS or v != DEFAULTS[k]:
                result[k] = v
        return result

    def reset(self) -> None:
        """Reset configuration to defaults."""
        self._config = Config()
        if self.CONFIG_FILE.exists():
            self.CONFIG_FILE.unlink()


# Singleton instance
_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the singleton ConfigManager instance."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager


def get_config() -> Config:
    """Get the current configuration."""
    return get_config_manager().config

"""
System prompt configuration store
Loads, saves and applies the persisted prompt-composition preferences
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".asset-generator-config.json"

_FIELD_KEYS = {
    "systemPrompt": "system_prompt",
    "enabled": "enabled",
    "maxSize": "max_size",
}


class ConfigReadError(Exception):
    """Raised when the config file exists but cannot be read or parsed."""


class ConfigWriteError(Exception):
    """Raised when the config file cannot be written."""


@dataclass
class PromptConfig:
    system_prompt: str = ""
    enabled: bool = False
    max_size: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "systemPrompt": self.system_prompt,
            "enabled": self.enabled,
            "maxSize": self.max_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptConfig":
        """Build a config from a decoded JSON object, defaulting each bad field."""
        defaults = cls()
        values = {}
        for key, field_name in _FIELD_KEYS.items():
            default = getattr(defaults, field_name)
            value = data.get(key)
            if isinstance(value, type(default)):
                values[field_name] = value
            else:
                logger.warning(f"System prompt config field '{key}' is missing or invalid, using {default!r}")
                values[field_name] = default
        return cls(**values)


def config_path() -> str:
    return os.path.join(os.getcwd(), CONFIG_FILENAME)


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigReadError(str(e)) from e

    if not isinstance(data, dict):
        raise ConfigReadError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_prompt_config() -> PromptConfig:
    """
    Load the prompt config from the working directory.

    Never raises: a missing file gives the defaults, an unreadable one or
    a missing field gives the defaults plus a warning.
    """
    path = config_path()
    if not os.path.exists(path):
        logger.debug(f"No system prompt config at {path}, using defaults")
        return PromptConfig()

    try:
        return PromptConfig.from_dict(_read_config_file(path))
    except ConfigReadError as e:
        logger.warning(f"Could not load system prompt config, using defaults: {e}")
        return PromptConfig()


def save_prompt_config(config: PromptConfig) -> None:
    """Overwrite the config file with the given record."""
    path = config_path()
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
    except OSError as e:
        logger.error(f"Error saving system prompt config: {str(e)}")
        raise ConfigWriteError(f"Could not save {path}: {e}") from e


def compose_prompt(user_text: str, config: PromptConfig) -> str:
    """Prefix the user text with the system prompt when it is enabled and non-blank."""
    if not config.enabled or not config.system_prompt.strip():
        return user_text
    return f"{config.system_prompt}\n\n{user_text}"


def describe_status(config: PromptConfig) -> str:
    status = "enabled" if config.enabled else "disabled"
    if config.max_size:
        status += ", max size"
    return status

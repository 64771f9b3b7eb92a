import json
import os
from typing import Any, Dict, Tuple

from spotify_api.errors import ConfigError
from spotify_api.models import AppIdentity
from spotify_api.token_manager import PROGRAM_DIR

CONFIG_PATH = os.path.join(PROGRAM_DIR, "config.json")

# Default configuration values
DEFAULT_CONFIG = {
    # Spotify app credentials (https://developer.spotify.com/dashboard)
    "appClientId": "",
    "appClientSecret": "",
    "redirectPort": "",

    # Playback backend: "web" (Spotify Web API) or "osx" (desktop app via osascript)
    "playerType": "web",
}

# Checked in this order; the first empty one is reported.
REQUIRED_FIELDS = ("appClientId", "appClientSecret", "redirectPort")

# Validation rules for config fields
CONFIG_SCHEMA = {
    "appClientId": {"type": str, "required": True},
    "appClientSecret": {"type": str, "required": True},
    "redirectPort": {"type": str, "required": True},
    "playerType": {"type": str, "required": False, "choices": ["web", "osx"]},
}


def load_config(path: str = CONFIG_PATH) -> Tuple[Dict[str, Any], bool]:
    """Load configuration from file, applying defaults for missing fields.

    Returns (config, created). A missing file is not an error: a default
    config is returned with created=True so the caller can write it out.
    """
    if not os.path.exists(path):
        return DEFAULT_CONFIG.copy(), True

    with open(path, "r", encoding="utf-8") as f:
        config = json.load(f)

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")

    # Apply defaults for missing fields
    for key, value in DEFAULT_CONFIG.items():
        if key not in config:
            config[key] = value

    return config, False


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> bool:
    """Save configuration to file."""
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, mode=0o700, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        raise IOError(f"Failed to save config: {e}")


def validate_config(config: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate configuration against schema.
    Returns (is_valid, list_of_errors).
    """
    errors = []

    for key, rules in CONFIG_SCHEMA.items():
        value = config.get(key)

        # Check required fields
        if rules.get("required", False) and (value is None or str(value).strip() == ""):
            errors.append(f"{key} must not be empty")
            continue

        if key not in config:
            continue

        # Type check
        expected_type = rules.get("type")
        if expected_type and not isinstance(value, expected_type):
            errors.append(f"Field '{key}' must be {expected_type.__name__}, got {type(value).__name__}")
            continue

        # Choices check
        if "choices" in rules and value not in rules["choices"]:
            errors.append(f"Field '{key}' must be one of {rules['choices']}, got '{value}'")

    return len(errors) == 0, errors


def require_app_identity(config: Dict[str, Any]) -> AppIdentity:
    """Build the AppIdentity, failing on the first empty required field."""
    for key in REQUIRED_FIELDS:
        if not str(config.get(key) or "").strip():
            raise ConfigError(f"{key} must not be empty")

    if not str(config["redirectPort"]).strip().isdigit():
        raise ConfigError(f"redirectPort must be a port number, got '{config['redirectPort']}'")

    return AppIdentity(
        client_id=str(config["appClientId"]).strip(),
        client_secret=str(config["appClientSecret"]).strip(),
        redirect_port=str(config["redirectPort"]).strip(),
    )


def update_config(config: Dict[str, Any], key: str, value: Any) -> tuple[bool, str]:
    """
    Update a single config field in place.
    Returns (success, message).
    """
    if key not in CONFIG_SCHEMA:
        return False, f"Unknown config key: {key}"

    rules = CONFIG_SCHEMA[key]
    if "choices" in rules and value not in rules["choices"]:
        return False, f"{key} must be one of {rules['choices']}, got '{value}'"

    config[key] = str(value).strip() if isinstance(value, str) else value
    return True, f"Set {key}."

# src/config/credentials.py — v1
"""Credential lookup for LLM enhancement.

Precedence: user config file (set via `iacdiagram config set-key`) over
the ANTHROPIC_API_KEY environment variable / .env entry. The credential
is resolved once at the command surface and handed to the orchestrator
as an explicit value.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from iacdiagram.config.settings import ConfigurationError, Settings

logger = logging.getLogger(__name__)

API_KEY_FIELD = "anthropicApiKey"


def load_user_config(path: Path) -> dict[str, Any]:
    """Load the user config file, or an empty dict if it does not exist."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def save_user_config(path: Path, config: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")


def set_api_key(path: Path, key: str) -> None:
    """Store an API key in the user config file."""
    key = key.strip()
    if not key:
        raise ConfigurationError("API key must not be empty")
    config = load_user_config(path)
    config[API_KEY_FIELD] = key
    save_user_config(path, config)
    logger.info("API key saved to %s", path)


def clear_api_key(path: Path) -> bool:
    """Remove the stored API key. Returns True if one was present."""
    config = load_user_config(path)
    if API_KEY_FIELD not in config:
        return False
    del config[API_KEY_FIELD]
    save_user_config(path, config)
    return True


def get_credential(settings: Settings) -> str | None:
    """Return the enhancement credential, or None if none is configured."""
    config = load_user_config(settings.resolved_user_config_path)
    stored = config.get(API_KEY_FIELD)
    if isinstance(stored, str) and stored.strip():
        return stored.strip()
    if settings.anthropic_api_key.strip():
        return settings.anthropic_api_key.strip()
    return None


def credential_source(settings: Settings) -> str | None:
    """Name where the active credential comes from ("config" or "env")."""
    config = load_user_config(settings.resolved_user_config_path)
    stored = config.get(API_KEY_FIELD)
    if isinstance(stored, str) and stored.strip():
        return "config"
    if settings.anthropic_api_key.strip():
        return "env"
    return None


def mask_api_key(key: str) -> str:
    """Mask a key for display: first 8 and last 4 characters."""
    if len(key) <= 12:
        return "*" * len(key)
    return f"{key[:8]}...{key[-4:]}"

# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: where project
data lives, which LLM model enhances graphs, when enhancement runs,
how variants are scheduled, and how logs are written.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EnhanceMode = Literal["auto", "always", "never"]


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from the environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Storage ===
    data_dir: Path = Path("./iac-data")
    projects_file: Path = Path("./projects.json")

    # === LLM enhancement ===
    anthropic_api_key: str = ""
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.2
    # auto: enhance whenever a credential is available
    enhance_mode: EnhanceMode = "auto"

    # === Variant fan-out ===
    max_parallel_variants: int = 1

    # === User config file (stored API key) ===
    user_config_path: Path = Path("~/.config/iacdiagram/config.json")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("llm_max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("llm_max_tokens must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.max_parallel_variants < 1:
            errors.append("MAX_PARALLEL_VARIANTS must be >= 1")

        if not re.match(r"^\d+\s*(KB|MB|GB)$", self.log_rotation.strip(), re.IGNORECASE):
            errors.append(f"LOG_ROTATION must look like '10MB', got {self.log_rotation!r}")

        if self.log_retention < 0:
            errors.append("LOG_RETENTION must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_user_config_path(self) -> Path:
        return self.user_config_path.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

"""
Trustchain — Configuration System

All configuration is Pydantic-validated and loaded from:
1. A YAML file (defaults for a deployment)
2. Environment variables (overrides)

Registry configuration is fixed once a RegistryService has been built from
it; nothing in the registry reads configuration again at runtime.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trustchain.primitives.registry import (
    DEFAULT_MIN_REPUTATION,
    MAX_REPUTATION_SCORE,
    MIN_REPUTATION_SCORE,
    fingerprint_from_hex,
    fingerprint_hex,
)

# ─── Sub-configs ──────────────────────────────────────────────────


class RegistryConfig(BaseModel):
    # The single principal allowed to adjust reputation
    admin_principal: str = Field(min_length=1)
    # Hash of the approved training code, copied into every new record
    approved_code_fingerprint: str
    # Clients strictly below this score are deactivated and ineligible
    min_reputation: int = Field(
        DEFAULT_MIN_REPUTATION, ge=MIN_REPUTATION_SCORE, le=MAX_REPUTATION_SCORE,
    )

    @field_validator("admin_principal")
    @classmethod
    def _strip_principal(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("admin_principal must not be blank")
        return value

    @field_validator("approved_code_fingerprint")
    @classmethod
    def _normalise_fingerprint(cls, value: str) -> str:
        return fingerprint_hex(fingerprint_from_hex(value))

    @property
    def approved_code_fingerprint_bytes(self) -> bytes:
        return fingerprint_from_hex(self.approved_code_fingerprint)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


class TrustchainConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRUSTCHAIN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    registry: RegistryConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | Path | None = None) -> TrustchainConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    overrides: dict[str, Any] = {}
    if admin := os.environ.get("TRUSTCHAIN_REGISTRY__ADMIN_PRINCIPAL"):
        overrides.setdefault("registry", {})["admin_principal"] = admin
    if code_fp := os.environ.get("TRUSTCHAIN_REGISTRY__APPROVED_CODE_FINGERPRINT"):
        overrides.setdefault("registry", {})["approved_code_fingerprint"] = code_fp
    if min_rep := os.environ.get("TRUSTCHAIN_REGISTRY__MIN_REPUTATION"):
        overrides.setdefault("registry", {})["min_reputation"] = min_rep
    if log_level := os.environ.get("TRUSTCHAIN_LOGGING__LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level
    if log_format := os.environ.get("TRUSTCHAIN_LOGGING__FORMAT"):
        overrides.setdefault("logging", {})["format"] = log_format

    return TrustchainConfig(**_deep_merge(raw, overrides))

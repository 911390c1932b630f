"""
Trustchain — Common Primitives

Shared base classes and utilities used across all systems.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from ulid import ULID

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


# ─── Base Models ──────────────────────────────────────────────────


class TrustchainBaseModel(BaseModel):
    """Base model for all Trustchain primitives."""

    model_config = {"populate_by_name": True, "from_attributes": True}


class Timestamped(TrustchainBaseModel):
    """Mixin for models with creation timestamps."""

    timestamp: datetime = Field(default_factory=utc_now)


class Identified(TrustchainBaseModel):
    """Mixin for models with ULID IDs."""

    id: str = Field(default_factory=new_id)

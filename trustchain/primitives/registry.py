"""
Trustchain — Registry Primitives

Client records, registry domain events, and the fingerprint helpers used to
derive the fixed-length hashes the registry stores.

A client is admitted once, keyed by its caller identity, and bound forever to
the hardware key fingerprint it enrolled with. Reputation lives in [0, 100];
a record is never deleted, only deactivated.
"""

from __future__ import annotations

import enum
import hashlib
from datetime import datetime

from cryptography.hazmat.primitives import serialization
from pydantic import Field

from trustchain.primitives.common import EPOCH, Identified, Timestamped, TrustchainBaseModel

FINGERPRINT_LENGTH = 32
ZERO_FINGERPRINT = bytes(FINGERPRINT_LENGTH)

MIN_REPUTATION_SCORE = 0
MAX_REPUTATION_SCORE = 100
INITIAL_REPUTATION = MAX_REPUTATION_SCORE
DEFAULT_MIN_REPUTATION = 50

LOW_REPUTATION_REASON = "Low reputation"


# ─── Client Record ───────────────────────────────────────────────


class ClientRecord(TrustchainBaseModel):
    """
    One enrolled federated-learning participant.

    The round counters are reserved for the training-round subsystem and are
    never incremented by the registry itself.
    """

    identity: str = ""
    hardware_key_fingerprint: bytes = ZERO_FINGERPRINT
    approved_code_fingerprint: bytes = ZERO_FINGERPRINT
    reputation: int = Field(0, ge=MIN_REPUTATION_SCORE, le=MAX_REPUTATION_SCORE)
    enrolled_at: datetime = EPOCH
    total_rounds_participated: int = Field(0, ge=0)
    successful_rounds: int = Field(0, ge=0)
    active: bool = False

    @classmethod
    def empty(cls) -> ClientRecord:
        """The record every unregistered identity reads as."""
        return cls()


# ─── Events ──────────────────────────────────────────────────────


class RegistryEventType(str, enum.Enum):
    """All event types emitted by the registry."""

    REGISTERED = "registered"
    REPUTATION_CHANGED = "reputation_changed"
    DEACTIVATED = "deactivated"


class RegistryEvent(Identified, Timestamped):
    """A committed registry state transition for one identity."""

    event_type: RegistryEventType
    identity: str


class RegisteredEvent(RegistryEvent):
    event_type: RegistryEventType = RegistryEventType.REGISTERED
    hardware_key_fingerprint: bytes


class ReputationChangedEvent(RegistryEvent):
    event_type: RegistryEventType = RegistryEventType.REPUTATION_CHANGED
    reputation: int
    previous_reputation: int
    delta: int


class DeactivatedEvent(RegistryEvent):
    event_type: RegistryEventType = RegistryEventType.DEACTIVATED
    reason: str = LOW_REPUTATION_REASON


class ReputationAdjustment(TrustchainBaseModel):
    """Outcome of one privileged reputation adjustment."""

    changed: ReputationChangedEvent
    deactivated: DeactivatedEvent | None = None

    @property
    def events(self) -> list[RegistryEvent]:
        """Events in emission order."""
        events: list[RegistryEvent] = [self.changed]
        if self.deactivated is not None:
            events.append(self.deactivated)
        return events


# ─── Fingerprints ────────────────────────────────────────────────


def is_fingerprint(value: object) -> bool:
    return isinstance(value, bytes) and len(value) == FINGERPRINT_LENGTH


def fingerprint_hex(fingerprint: bytes) -> str:
    """0x-prefixed lowercase hex, the form used in config and logs."""
    return "0x" + fingerprint.hex()


def fingerprint_from_hex(value: str) -> bytes:
    """Parse a 64-character hex fingerprint, with or without a 0x prefix."""
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    raw = bytes.fromhex(text)
    if len(raw) != FINGERPRINT_LENGTH:
        raise ValueError(
            f"Fingerprint must be {FINGERPRINT_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def compute_key_fingerprint(public_key_pem: str | bytes) -> bytes:
    """
    SHA-256 fingerprint of a hardware-bound public key.

    The PEM is parsed and re-encoded as DER SubjectPublicKeyInfo so that
    cosmetic differences in the PEM text (line endings, trailing newlines)
    cannot yield two fingerprints for the same key.
    """
    pem = public_key_pem.encode() if isinstance(public_key_pem, str) else public_key_pem
    key = serialization.load_pem_public_key(pem)
    der = key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(der).digest()


def compute_code_fingerprint(code: bytes) -> bytes:
    """SHA-256 fingerprint of an approved training-code artifact."""
    return hashlib.sha256(code).digest()

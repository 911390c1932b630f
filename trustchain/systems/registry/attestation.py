"""
Trustchain — Attestation Verification Seam

Cryptographic verification of a hardware attestation is the job of an
external collaborator. The registry only asks a verifier whether the proof
is acceptable and never stores the payload.
"""

from __future__ import annotations

from typing import Protocol


class AttestationVerifier(Protocol):
    """Decides whether an enrollment's attestation is acceptable."""

    def verify(
        self,
        identity: str,
        hardware_key_fingerprint: bytes,
        attestation: bytes,
    ) -> bool: ...


class PresenceAttestationVerifier:
    """Placeholder policy: any non-empty payload is accepted."""

    def verify(
        self,
        identity: str,
        hardware_key_fingerprint: bytes,
        attestation: bytes,
    ) -> bool:
        return len(attestation) > 0

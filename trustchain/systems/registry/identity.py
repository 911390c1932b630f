"""
Trustchain — Identity Registry

Enrollment of new federated-learning clients.

A caller enrolls exactly once. The hardware key fingerprint it presents is
bound forever: it can never be presented again by anyone, even after the
record that bound it has been deactivated. New records start fully trusted
(reputation 100, active) and carry the approved training-code fingerprint
configured for the registry.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from trustchain.primitives.registry import (
    INITIAL_REPUTATION,
    ClientRecord,
    RegisteredEvent,
    fingerprint_hex,
    is_fingerprint,
)
from trustchain.systems.registry.attestation import (
    AttestationVerifier,
    PresenceAttestationVerifier,
)
from trustchain.systems.registry.errors import (
    AlreadyRegisteredError,
    InvalidAttestationError,
    KeyReuseError,
    MalformedFingerprintError,
    RegistryError,
)

if TYPE_CHECKING:
    from trustchain.systems.registry.store import RegistryStore

logger = structlog.get_logger("trustchain.systems.registry.identity")


class IdentityRegistry:
    """
    Owns enrollment: novelty of identity and hardware key, initial record.

    Checks run in a fixed order so the rejection a caller sees is
    deterministic: identity, then hardware key, then attestation.
    """

    def __init__(
        self,
        store: RegistryStore,
        approved_code_fingerprint: bytes,
        verifier: AttestationVerifier | None = None,
    ) -> None:
        if not is_fingerprint(approved_code_fingerprint):
            raise MalformedFingerprintError(reason="Approved code fingerprint must be 32 bytes")
        self._store = store
        self._approved_code_fingerprint = approved_code_fingerprint
        self._verifier: AttestationVerifier = verifier or PresenceAttestationVerifier()
        self._enrolled: int = 0
        self._rejected: int = 0
        self._stats_lock = threading.Lock()
        self._logger = logger.bind(component="identity_registry")

    @property
    def approved_code_fingerprint(self) -> bytes:
        return self._approved_code_fingerprint

    def enroll(
        self,
        caller: str,
        hardware_key_fingerprint: bytes,
        attestation: bytes,
    ) -> RegisteredEvent:
        """
        Create the caller's record and bind its hardware key.

        Raises:
            MalformedFingerprintError: fingerprint is not a 32-byte hash.
            AlreadyRegisteredError: caller already has a record.
            KeyReuseError: fingerprint was bound by any earlier enrollment.
            InvalidAttestationError: the verifier rejected the attestation.
        """
        if not caller:
            raise ValueError("Caller identity must be non-empty")

        try:
            with self._store.transaction() as txn:
                if not is_fingerprint(hardware_key_fingerprint):
                    raise MalformedFingerprintError(caller)
                if txn.get(caller) is not None:
                    raise AlreadyRegisteredError(caller)
                if txn.is_key_used(hardware_key_fingerprint):
                    raise KeyReuseError(caller)
                if not self._verifier.verify(caller, hardware_key_fingerprint, attestation or b""):
                    raise InvalidAttestationError(caller)

                txn.put(ClientRecord(
                    identity=caller,
                    hardware_key_fingerprint=hardware_key_fingerprint,
                    approved_code_fingerprint=self._approved_code_fingerprint,
                    reputation=INITIAL_REPUTATION,
                    enrolled_at=txn.now,
                    active=True,
                ))
                txn.bind_key(hardware_key_fingerprint)

                event = RegisteredEvent(
                    identity=caller,
                    hardware_key_fingerprint=hardware_key_fingerprint,
                    timestamp=txn.now,
                )
                txn.record_event(event)
        except RegistryError as exc:
            with self._stats_lock:
                self._rejected += 1
            self._logger.warning(
                "enrollment_rejected",
                identity=caller,
                error=type(exc).__name__,
                reason=exc.reason,
            )
            raise

        with self._stats_lock:
            self._enrolled += 1
        self._logger.info(
            "client_enrolled",
            identity=caller,
            hardware_key=fingerprint_hex(hardware_key_fingerprint)[:18] + "...",
        )
        return event

    @property
    def stats(self) -> dict[str, int]:
        with self._stats_lock:
            return {
                "enrolled": self._enrolled,
                "rejected": self._rejected,
            }

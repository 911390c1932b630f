"""
Trustchain -- Registry Error Hierarchy

All rejection signals raised by registry mutations.

Every error aborts the whole call before anything is committed: the record
map, the used-key set, and the event log are exactly as they were before the
call. None is retried internally; retry policy (for example re-enrolling with
a different hardware key) belongs to the caller.

  AlreadyRegisteredError     identity already has a record
  KeyReuseError              hardware key fingerprint was bound before
  InvalidAttestationError    attestation rejected by the verifier
  NotAuthorizedError         caller is not the administrative principal
  ClientNotActiveError       target never enrolled or already deactivated
  MalformedFingerprintError  fingerprint is not a 32-byte hash
"""

from __future__ import annotations


class RegistryError(RuntimeError):
    """Base for all registry rejection signals."""

    reason: str = "Registry error"

    def __init__(self, identity: str = "", reason: str | None = None) -> None:
        self.identity = identity
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class AlreadyRegisteredError(RegistryError):
    reason = "Already registered"


class KeyReuseError(RegistryError):
    reason = "TPM key already used"


class InvalidAttestationError(RegistryError):
    reason = "Invalid attestation"


class NotAuthorizedError(RegistryError):
    reason = "Only owner"


class ClientNotActiveError(RegistryError):
    """Raised for both never-enrolled and deactivated targets."""

    reason = "Client not active"


class MalformedFingerprintError(RegistryError, ValueError):
    reason = "Malformed fingerprint"

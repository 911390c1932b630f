"""
Trustchain — Participant Registry

Hardware-backed enrollment, privileged reputation adjustment with automatic
deactivation, and eligibility checks for federated-learning clients.
"""

from trustchain.systems.registry.attestation import (
    AttestationVerifier,
    PresenceAttestationVerifier,
)
from trustchain.systems.registry.errors import (
    AlreadyRegisteredError,
    ClientNotActiveError,
    InvalidAttestationError,
    KeyReuseError,
    MalformedFingerprintError,
    NotAuthorizedError,
    RegistryError,
)
from trustchain.systems.registry.event_log import EventLog
from trustchain.systems.registry.service import RegistryService

__all__ = [
    "AlreadyRegisteredError",
    "AttestationVerifier",
    "ClientNotActiveError",
    "EventLog",
    "InvalidAttestationError",
    "KeyReuseError",
    "MalformedFingerprintError",
    "NotAuthorizedError",
    "PresenceAttestationVerifier",
    "RegistryError",
    "RegistryService",
]

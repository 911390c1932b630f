"""
Trustchain — Registry Service

Composes the registry components around one shared store:

  IdentityRegistry         enroll()            any caller, once per identity
  ReputationEngine         adjust_reputation() administrative principal only
  EligibilityPolicy        is_eligible()       any caller, read-only
  AdministrativeAuthority  gate for reputation changes

Every mutating call runs inside a single store transaction and either
applies all of its effects or none of them. Committed events are published
to the service's EventLog in commit order.

Caller identity is always passed explicitly as the first argument; the
service does no authentication of its own. Whatever transport sits in front
of it is responsible for supplying an authenticated caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from trustchain.primitives.registry import DEFAULT_MIN_REPUTATION, fingerprint_hex
from trustchain.systems.registry.authority import AdministrativeAuthority
from trustchain.systems.registry.eligibility import EligibilityPolicy
from trustchain.systems.registry.event_log import EventLog
from trustchain.systems.registry.identity import IdentityRegistry
from trustchain.systems.registry.reputation import ReputationEngine
from trustchain.systems.registry.store import Clock, RegistryStore

if TYPE_CHECKING:
    from trustchain.config import RegistryConfig, TrustchainConfig
    from trustchain.primitives.registry import (
        ClientRecord,
        RegisteredEvent,
        ReputationAdjustment,
    )
    from trustchain.systems.registry.attestation import AttestationVerifier

logger = structlog.get_logger("trustchain.systems.registry.service")


class RegistryService:
    """Trust registry for federated-learning participants."""

    def __init__(
        self,
        admin_principal: str,
        approved_code_fingerprint: bytes,
        min_reputation: int = DEFAULT_MIN_REPUTATION,
        verifier: AttestationVerifier | None = None,
        clock: Clock | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._event_log = event_log or EventLog()
        self._store = RegistryStore(clock=clock, on_commit=self._event_log.publish)
        self._authority = AdministrativeAuthority(admin_principal)
        self._identity = IdentityRegistry(
            self._store, approved_code_fingerprint, verifier=verifier,
        )
        self._reputation = ReputationEngine(
            self._store, self._authority, min_reputation=min_reputation,
        )
        self._eligibility = EligibilityPolicy(self._store, min_reputation=min_reputation)
        self._logger = logger.bind(component="registry_service")

        self._logger.info(
            "registry_initialized",
            owner=admin_principal,
            approved_code=fingerprint_hex(approved_code_fingerprint),
            min_reputation=min_reputation,
        )

    @classmethod
    def from_config(
        cls,
        config: TrustchainConfig | RegistryConfig,
        verifier: AttestationVerifier | None = None,
        clock: Clock | None = None,
    ) -> RegistryService:
        registry_config = getattr(config, "registry", config)
        return cls(
            admin_principal=registry_config.admin_principal,
            approved_code_fingerprint=registry_config.approved_code_fingerprint_bytes,
            min_reputation=registry_config.min_reputation,
            verifier=verifier,
            clock=clock,
        )

    # ─── Configuration (fixed at construction) ──────────────────────

    @property
    def owner(self) -> str:
        return self._authority.principal

    @property
    def approved_code_fingerprint(self) -> bytes:
        return self._identity.approved_code_fingerprint

    @property
    def min_reputation(self) -> int:
        return self._reputation.min_reputation

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ─── Mutations ──────────────────────────────────────────────────

    def enroll(
        self,
        caller: str,
        hardware_key_fingerprint: bytes,
        attestation: bytes,
    ) -> RegisteredEvent:
        return self._identity.enroll(caller, hardware_key_fingerprint, attestation)

    def adjust_reputation(
        self,
        caller: str,
        target: str,
        delta: int,
    ) -> ReputationAdjustment:
        return self._reputation.adjust_reputation(caller, target, delta)

    # ─── Queries ────────────────────────────────────────────────────

    def get_client(self, identity: str) -> ClientRecord:
        """Record for identity; the empty record if it never enrolled."""
        return self._store.get(identity)

    def is_eligible(self, identity: str) -> bool:
        return self._eligibility.is_eligible(identity)

    def eligible_clients(self) -> list[str]:
        """Identities currently allowed to participate, in enrollment order."""
        return [
            record.identity
            for record in self._store.records()
            if self._eligibility.evaluate(record)
        ]

    # ─── Health ─────────────────────────────────────────────────────

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "store": self._store.stats,
            "identity": self._identity.stats,
            "reputation": self._reputation.stats,
            "events": self._event_log.stats,
        }

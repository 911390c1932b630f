"""
Trustchain — Reputation Engine

Privileged, bounded adjustment of a client's reputation.

The caller supplies the delta; this engine does not derive scores from
training-round outcomes. The new score saturates at 0 and 100 instead of
failing. A score that lands strictly below the minimum deactivates the
client in the same transaction, and deactivation is terminal: a deactivated
client is rejected exactly like one that never enrolled.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from trustchain.primitives.registry import (
    DEFAULT_MIN_REPUTATION,
    MAX_REPUTATION_SCORE,
    MIN_REPUTATION_SCORE,
    DeactivatedEvent,
    ReputationAdjustment,
    ReputationChangedEvent,
)
from trustchain.systems.registry.errors import ClientNotActiveError, RegistryError

if TYPE_CHECKING:
    from trustchain.systems.registry.authority import AdministrativeAuthority
    from trustchain.systems.registry.store import RegistryStore

logger = structlog.get_logger("trustchain.systems.registry.reputation")


def clamp_reputation(score: int) -> int:
    """Saturate a raw score into [0, 100]."""
    return max(MIN_REPUTATION_SCORE, min(MAX_REPUTATION_SCORE, score))


class ReputationEngine:
    """Owns score mutation, clamping, and the low-reputation deactivation rule."""

    def __init__(
        self,
        store: RegistryStore,
        authority: AdministrativeAuthority,
        min_reputation: int = DEFAULT_MIN_REPUTATION,
    ) -> None:
        if not MIN_REPUTATION_SCORE <= min_reputation <= MAX_REPUTATION_SCORE:
            raise ValueError(
                f"min_reputation must be within [{MIN_REPUTATION_SCORE}, "
                f"{MAX_REPUTATION_SCORE}], got {min_reputation}"
            )
        self._store = store
        self._authority = authority
        self._min_reputation = min_reputation
        self._adjustments: int = 0
        self._deactivations: int = 0
        self._rejected: int = 0
        self._stats_lock = threading.Lock()
        self._logger = logger.bind(component="reputation_engine")

    @property
    def min_reputation(self) -> int:
        return self._min_reputation

    def adjust_reputation(
        self,
        caller: str,
        target: str,
        delta: int,
    ) -> ReputationAdjustment:
        """
        Apply a signed delta to an active client's reputation.

        Authorization is checked before anything else, so an unauthorized
        caller learns nothing about the target.

        Raises:
            NotAuthorizedError: caller is not the administrative principal.
            TypeError: delta is not an int.
            ClientNotActiveError: target never enrolled or is deactivated.
        """
        try:
            self._authority.authorize(caller)
            if isinstance(delta, bool) or not isinstance(delta, int):
                raise TypeError(f"delta must be an int, got {type(delta).__name__}")
            with self._store.transaction() as txn:
                record = txn.get(target)
                if record is None or not record.active:
                    raise ClientNotActiveError(target)

                previous = record.reputation
                record.reputation = clamp_reputation(previous + delta)

                changed = ReputationChangedEvent(
                    identity=target,
                    reputation=record.reputation,
                    previous_reputation=previous,
                    delta=delta,
                    timestamp=txn.now,
                )
                txn.record_event(changed)

                deactivated: DeactivatedEvent | None = None
                if record.reputation < self._min_reputation:
                    record.active = False
                    deactivated = DeactivatedEvent(identity=target, timestamp=txn.now)
                    txn.record_event(deactivated)

                txn.put(record)
        except RegistryError as exc:
            with self._stats_lock:
                self._rejected += 1
            self._logger.warning(
                "reputation_adjustment_rejected",
                caller=caller,
                identity=target,
                error=type(exc).__name__,
                reason=exc.reason,
            )
            raise

        with self._stats_lock:
            self._adjustments += 1
            if deactivated is not None:
                self._deactivations += 1

        self._logger.info(
            "reputation_changed",
            identity=target,
            previous=previous,
            new=record.reputation,
            delta=delta,
        )
        if deactivated is not None:
            self._logger.info(
                "client_deactivated",
                identity=target,
                reputation=record.reputation,
                min_reputation=self._min_reputation,
                reason=deactivated.reason,
            )

        return ReputationAdjustment(changed=changed, deactivated=deactivated)

    @property
    def stats(self) -> dict[str, int]:
        with self._stats_lock:
            return {
                "adjustments": self._adjustments,
                "deactivations": self._deactivations,
                "rejected": self._rejected,
                "min_reputation": self._min_reputation,
            }

"""
Trustchain — Eligibility Policy

Read-only check of whether a client may take part in a training round.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustchain.primitives.registry import DEFAULT_MIN_REPUTATION

if TYPE_CHECKING:
    from trustchain.primitives.registry import ClientRecord
    from trustchain.systems.registry.store import RegistryStore


class EligibilityPolicy:
    """
    Eligible means active and at or above the minimum reputation.

    Unregistered identities evaluate against the empty record and are never
    eligible. Open to any caller; never mutates state.
    """

    def __init__(
        self,
        store: RegistryStore,
        min_reputation: int = DEFAULT_MIN_REPUTATION,
    ) -> None:
        self._store = store
        self._min_reputation = min_reputation

    def evaluate(self, record: ClientRecord) -> bool:
        return record.active and record.reputation >= self._min_reputation

    def is_eligible(self, identity: str) -> bool:
        return self.evaluate(self._store.get(identity))

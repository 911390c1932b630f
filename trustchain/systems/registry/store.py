"""
Trustchain — Registry Store

The one shared state of the registry: a map from identity to ClientRecord
and the set of hardware key fingerprints ever bound.

All mutation goes through RegistryStore.transaction(). A transaction holds
the store lock for the whole mutating call, so mutations form a single total
order, and stages every write in an overlay. The overlay is merged into the
committed maps only when the block exits normally; an exception discards it.
Readers therefore only ever observe fully committed state.

Events produced inside a transaction are staged alongside the writes and
handed to the commit hook after the merge, so a rejected call emits nothing.
A subscriber that mutates the registry from inside the hook commits a nested
transaction; its events are queued and delivered after the outer batch, so
publication always follows commit order.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import structlog

from trustchain.primitives.common import utc_now
from trustchain.primitives.registry import ClientRecord, RegistryEvent

logger = structlog.get_logger("trustchain.systems.registry.store")

Clock = Callable[[], datetime]
CommitHook = Callable[[list[RegistryEvent]], None]


class RegistryTransaction:
    """
    Staging overlay for one mutating call.

    Reads fall through to committed state for anything not yet written in
    this transaction. Only the owning RegistryStore should construct one.
    """

    def __init__(self, store: RegistryStore) -> None:
        self._store = store
        self._records: dict[str, ClientRecord] = {}
        self._new_keys: set[bytes] = set()
        self._events: list[RegistryEvent] = []
        self.now: datetime = store.clock()

    def get(self, identity: str) -> ClientRecord | None:
        if identity in self._records:
            return self._records[identity].model_copy()
        committed = self._store._records.get(identity)
        return committed.model_copy() if committed is not None else None

    def put(self, record: ClientRecord) -> None:
        self._records[record.identity] = record.model_copy()

    def is_key_used(self, fingerprint: bytes) -> bool:
        return fingerprint in self._new_keys or fingerprint in self._store._used_keys

    def bind_key(self, fingerprint: bytes) -> None:
        self._new_keys.add(fingerprint)

    def record_event(self, event: RegistryEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[RegistryEvent]:
        return list(self._events)


class RegistryStore:
    """
    Record map plus used-key set, updated together or not at all.

    The used-key set grows monotonically and outlives deactivation of the
    record that bound the key. Records are never removed.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        on_commit: CommitHook | None = None,
    ) -> None:
        self._records: dict[str, ClientRecord] = {}
        self._used_keys: set[bytes] = set()
        # Re-entrant so commit hooks may read or mutate committed state
        self._lock = threading.RLock()
        self._clock: Clock = clock or utc_now
        self._on_commit = on_commit
        self._pending: deque[list[RegistryEvent]] = deque()
        self._publishing: bool = False
        self._commits: int = 0
        self._rollbacks: int = 0
        self._logger = logger.bind(component="registry_store")

    @property
    def clock(self) -> Clock:
        return self._clock

    # ─── Mutation ───────────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[RegistryTransaction]:
        """
        Run one mutating call atomically.

        Yields a RegistryTransaction; its staged records and keys are
        committed when the block exits without raising.
        """
        with self._lock:
            txn = RegistryTransaction(self)
            try:
                yield txn
            except BaseException as exc:
                self._rollbacks += 1
                self._logger.debug(
                    "transaction_rolled_back",
                    error=type(exc).__name__,
                    staged_records=len(txn._records),
                )
                raise
            self._records.update(txn._records)
            self._used_keys.update(txn._new_keys)
            self._commits += 1
            if self._on_commit is not None and txn._events:
                self._pending.append(txn.events)
                if not self._publishing:
                    self._drain_pending()

    def _drain_pending(self) -> None:
        # Caller holds the lock. Nested commits from hooks only enqueue.
        self._publishing = True
        try:
            while self._pending:
                self._on_commit(self._pending.popleft())
        finally:
            self._publishing = False

    # ─── Queries ────────────────────────────────────────────────────

    def get(self, identity: str) -> ClientRecord:
        """
        Committed record for an identity, as a copy.

        Unregistered identities read as the empty record rather than raising.
        """
        with self._lock:
            record = self._records.get(identity)
            return record.model_copy() if record is not None else ClientRecord.empty()

    def contains(self, identity: str) -> bool:
        with self._lock:
            return identity in self._records

    def is_key_used(self, fingerprint: bytes) -> bool:
        with self._lock:
            return fingerprint in self._used_keys

    def identities(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def records(self) -> list[ClientRecord]:
        with self._lock:
            return [r.model_copy() for r in self._records.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "clients": len(self._records),
                "active_clients": sum(1 for r in self._records.values() if r.active),
                "used_keys": len(self._used_keys),
                "commits": self._commits,
                "rollbacks": self._rollbacks,
            }

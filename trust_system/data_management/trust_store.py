"""Trust storage with user-scoped explicit and inferred trust records.

Plays the role of the external store around the trust engine:
- Explicit trust set by users (always wins over inference)
- Inferred trust written back by network recomputes
- Assertions carrying provenance (source, importing bot)
- Thread-safe operations with asyncio locks
- Optional JSON persistence for beta

Usage:
    from trust_system.data_management.trust_store import TrustStore

    store = TrustStore()
    await store.set_trust_value("user-1", "REUTERS", EntityType.SOURCE, 0.9)
    snapshot = await store.get_all_explicit_trust()
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from trust_system.data_management.schemas import (
    Assertion,
    EntityType,
    InferredTrust,
    TrustRelationship,
)
from trust_system.utils.logging import get_structured_logger

_StoreState = tuple[
    dict[str, dict[str, TrustRelationship]],
    dict[str, set[str]],
    dict[str, Assertion],
]


class TrustStore:
    """Storage for trust relationships and assertions.

    Data structure:
    {
        user_id: {
            target_id: TrustRelationship,
            ...
        },
        ...
    }

    A reverse index target_id -> {user_id} backs "who trusts X" lookups.
    """

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize TrustStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
        """
        self._trust: dict[str, dict[str, TrustRelationship]] = {}
        self._target_index: dict[str, set[str]] = {}
        self._assertions: dict[str, Assertion] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = get_structured_logger(__name__, component="TrustStore")

        if self._persistence_path and self._persistence_path.exists():
            self._load_from_file()

    async def set_trust_value(
        self,
        user_id: str,
        target_id: str,
        target_type: EntityType,
        trust_value: float,
    ) -> TrustRelationship:
        """Record an explicit trust value, replacing any inferred one.

        Args:
            user_id: User setting the trust.
            target_id: Entity being trusted.
            target_type: Kind of entity.
            trust_value: Value in [0, 1].

        Returns:
            The stored TrustRelationship.

        Raises:
            pydantic.ValidationError: If trust_value is outside [0, 1].
            OSError: If the JSON persistence write fails; the previous record is kept.
        """
        record = TrustRelationship(
            user_id=user_id,
            target_id=target_id,
            target_type=target_type,
            trust_value=trust_value,
            is_explicit=True,
        )
        async with self._lock:
            backup = self._backup()
            self._put(record)
            self._logger.debug(
                "trust_set",
                user_id=user_id,
                target_id=target_id,
                target_type=record.target_type.value,
                trust_value=trust_value,
            )
            self._commit(backup)
        return record

    async def get_trust_value(
        self,
        user_id: str,
        target_id: str,
    ) -> Optional[TrustRelationship]:
        """Get one trust record (explicit or inferred).

        Returns:
            TrustRelationship if found, None otherwise.
        """
        async with self._lock:
            return self._trust.get(user_id, {}).get(target_id)

    async def get_trust_values(
        self,
        user_id: str,
        target_ids: Iterable[str],
    ) -> dict[str, TrustRelationship]:
        """Batch lookup of trust records; missing targets are omitted."""
        async with self._lock:
            user_trust = self._trust.get(user_id, {})
            return {tid: user_trust[tid] for tid in target_ids if tid in user_trust}

    async def list_user_trust(
        self,
        user_id: str,
        limit: int = 1000,
        explicit_only: bool = False,
    ) -> list[TrustRelationship]:
        """List a user's trust records, most recently updated first.

        Args:
            user_id: User whose records to list.
            limit: Maximum records returned.
            explicit_only: Skip inferred records.
        """
        async with self._lock:
            records = [
                r for r in self._trust.get(user_id, {}).values()
                if r.is_explicit or not explicit_only
            ]
        records.sort(key=lambda r: r.updated_at, reverse=True)
        return records[:limit]

    async def get_who_trusts_target(
        self,
        target_id: str,
        explicit_only: bool = True,
    ) -> list[TrustRelationship]:
        """Get every user's record for a target."""
        async with self._lock:
            records = []
            for user_id in sorted(self._target_index.get(target_id, ())):
                record = self._trust[user_id][target_id]
                if record.is_explicit or not explicit_only:
                    records.append(record)
            return records

    async def get_trusted_sources(
        self,
        user_id: str,
        threshold: float = 0.5,
    ) -> list[str]:
        """Get source ids the user trusts at or above a threshold."""
        async with self._lock:
            return [
                r.target_id
                for r in self._trust.get(user_id, {}).values()
                if r.target_type == EntityType.SOURCE and r.trust_value >= threshold
            ]

    async def delete_trust_value(self, user_id: str, target_id: str) -> bool:
        """Delete a trust record.

        Returns:
            True if deleted, False if no record existed.
        """
        async with self._lock:
            user_trust = self._trust.get(user_id, {})
            if target_id not in user_trust:
                return False

            backup = self._backup()
            del user_trust[target_id]
            if not user_trust:
                del self._trust[user_id]
            users = self._target_index.get(target_id)
            if users is not None:
                users.discard(user_id)
                if not users:
                    del self._target_index[target_id]

            self._logger.debug("trust_deleted", user_id=user_id, target_id=target_id)
            self._commit(backup)
            return True

    async def get_all_explicit_trust(self) -> dict[str, list[TrustRelationship]]:
        """Snapshot of every user's explicit trust records.

        Inferred records are excluded so they never feed back into
        trust vectors.
        """
        async with self._lock:
            snapshot: dict[str, list[TrustRelationship]] = {}
            for user_id, records in self._trust.items():
                explicit = [r.model_copy() for r in records.values() if r.is_explicit]
                if explicit:
                    snapshot[user_id] = explicit
            return snapshot

    async def persist_inferred_trust(
        self,
        user_id: str,
        values: Mapping[str, InferredTrust],
    ) -> int:
        """Write inferred trust values for a user.

        Targets the user has set explicitly are skipped.

        Args:
            user_id: User the values were computed for.
            values: target_id -> InferredTrust.

        Returns:
            Number of records written.

        Raises:
            OSError: If the JSON persistence write fails; nothing is kept in memory.
        """
        async with self._lock:
            backup = self._backup()
            written = 0
            skipped = 0
            now = datetime.now(timezone.utc)
            user_trust = self._trust.get(user_id, {})
            for target_id, inferred in values.items():
                existing = user_trust.get(target_id)
                if existing is not None and existing.is_explicit:
                    skipped += 1
                    continue
                self._put(
                    TrustRelationship(
                        user_id=user_id,
                        target_id=target_id,
                        target_type=inferred.entity_type,
                        trust_value=inferred.value,
                        is_explicit=False,
                        propagated_from=list(inferred.contributors),
                        confidence=inferred.confidence,
                        updated_at=now,
                    )
                )
                written += 1

            self._logger.info(
                "inferred_trust_persisted",
                user_id=user_id,
                written=written,
                skipped_explicit=skipped,
            )
            self._commit(backup)
            return written

    async def save_assertions(self, assertions: Iterable[Assertion]) -> int:
        """Save or replace assertions by assertion_id."""
        async with self._lock:
            backup = self._backup()
            count = 0
            for assertion in assertions:
                self._assertions[assertion.assertion_id] = assertion
                count += 1
            self._commit(backup)
            return count

    async def get_assertion(self, assertion_id: str) -> Optional[Assertion]:
        """Get an assertion by id."""
        async with self._lock:
            return self._assertions.get(assertion_id)

    async def get_assertions_needing_trust(
        self,
        types: Iterable[str],
        limit: int = 1000,
    ) -> list[Assertion]:
        """Load assertions of the given types, newest first, up to limit per type."""
        wanted = list(types)
        async with self._lock:
            by_type: dict[str, list[Assertion]] = {t: [] for t in wanted}
            for assertion in self._assertions.values():
                if assertion.assertion_type in by_type:
                    by_type[assertion.assertion_type].append(assertion)

        result: list[Assertion] = []
        for assertion_type in wanted:
            batch = sorted(by_type[assertion_type], key=lambda a: a.created_at, reverse=True)
            result.extend(batch[:limit])
        return result

    async def get_stats(self) -> dict[str, Any]:
        """Get storage statistics."""
        async with self._lock:
            explicit = sum(
                1 for records in self._trust.values() for r in records.values() if r.is_explicit
            )
            total = sum(len(records) for records in self._trust.values())
            return {
                "users": len(self._trust),
                "explicit_records": explicit,
                "inferred_records": total - explicit,
                "targets": len(self._target_index),
                "assertions": len(self._assertions),
                "persistence_enabled": self._persistence_path is not None,
            }

    def _put(self, record: TrustRelationship) -> None:
        """Insert a record and update the target index (caller holds the lock)."""
        self._trust.setdefault(record.user_id, {})[record.target_id] = record
        self._target_index.setdefault(record.target_id, set()).add(record.user_id)

    def _backup(self) -> Optional[_StoreState]:
        """Copy the indexes before a mutation (caller holds the lock).

        Records are replaced, never edited in place, so copying the
        containers is enough. Memory-only stores cannot fail a write and
        skip the copy.
        """
        if not self._persistence_path:
            return None
        return (
            {user_id: dict(records) for user_id, records in self._trust.items()},
            {target_id: set(users) for target_id, users in self._target_index.items()},
            dict(self._assertions),
        )

    def _commit(self, backup: Optional[_StoreState]) -> None:
        """Persist a mutation, restoring the backup if the write fails (caller holds the lock)."""
        if not self._persistence_path:
            return
        try:
            self._save_to_file()
        except OSError:
            self._trust, self._target_index, self._assertions = backup
            self._logger.warning("mutation_rolled_back", path=str(self._persistence_path))
            raise

    def _save_to_file(self) -> None:
        """Save to JSON file (synchronous).

        Raises:
            OSError: Propagated after logging so callers can apply their own retry policy.
        """
        if not self._persistence_path:
            return
        data: dict[str, Any] = {
            "trust": {
                user_id: {tid: r.model_dump(mode="json") for tid, r in records.items()}
                for user_id, records in self._trust.items()
            },
            "assertions": {
                aid: a.model_dump(mode="json") for aid, a in self._assertions.items()
            },
        }
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self._logger.error(
                "persistence_failed",
                path=str(self._persistence_path),
                error=str(e),
            )
            raise

    def _load_from_file(self) -> None:
        """Load storage from JSON file and rebuild the target index (synchronous)."""
        if not self._persistence_path or not self._persistence_path.exists():
            return

        with open(self._persistence_path, "r") as f:
            data = json.load(f)

        self._trust = {}
        self._target_index = {}
        for records in data.get("trust", {}).values():
            for raw in records.values():
                self._put(TrustRelationship.model_validate(raw))
        self._assertions = {
            aid: Assertion.model_validate(raw)
            for aid, raw in data.get("assertions", {}).items()
        }

        self._logger.info(
            "store_loaded",
            path=str(self._persistence_path),
            users=len(self._trust),
            assertions=len(self._assertions),
        )

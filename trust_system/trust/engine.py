"""Trust engine - main API for personalized trust computation.

Ties the pure inference pieces to the trust store:
- compute_user_trust_network: full recompute for one user, written back to the store
- Read path for feeds: per-assertion trust, filtering and ranking
- Explanations and provenance breakdowns for transparency
- Legacy path explanations for debugging

Every operation pulls one snapshot of explicit trust and computes from it;
no mutable state is shared between calls, so recomputes for different
users can run concurrently. Stale cached values are acceptable between
recomputes, and recomputing the same snapshot twice yields the same result.

Usage:
    engine = TrustEngine(TrustStore())
    await engine.set_trust("user-1", "REUTERS", EntityType.SOURCE, 0.9)
    values = await engine.compute_user_trust_network("user-1")
    feed = await engine.sort_by_trust("user-1", assertions)
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from trust_system.config.logging import get_logger
from trust_system.config.settings import Settings, settings as default_settings
from trust_system.data_management.schemas import (
    Assertion,
    EntityType,
    InferredTrust,
    TrustRelationship,
)
from trust_system.data_management.trust_store import TrustStore
from trust_system.trust.controversy import ControversyScore, calculate_topic_controversy
from trust_system.trust.explanation import TrustContributor, explain_with
from trust_system.trust.graph import (
    TrustPath,
    build_trust_graph_from_data,
    find_trust_paths,
    propagate_trust,
)
from trust_system.trust.inference import InferenceOptions, TrustInference
from trust_system.trust.provenance import ProvenanceTrust, resolve_provenance
from trust_system.trust.vectors import TrustSnapshot, build_trust_vectors
from trust_system.utils.logging import get_recompute_id


@dataclass
class TrustExplanation:
    """Why a user holds a given trust value in an entity."""

    entity_id: str
    trust_value: float
    confidence: float
    is_explicit: bool
    is_defaulted: bool
    contributors: List[TrustContributor] = field(default_factory=list)


class TrustEngine:
    """
    Personalized trust computation over a TrustStore.

    Attributes:
        store: Source of explicit trust and assertions, sink for inferred trust
        options: Similarity diffusion parameters
        settings: Recompute bounds, explanation size and legacy graph parameters
    """

    def __init__(
        self,
        store: Optional[TrustStore] = None,
        options: Optional[InferenceOptions] = None,
        engine_settings: Optional[Settings] = None,
    ):
        self.settings = engine_settings or default_settings
        self.store = store if store is not None else TrustStore(self.settings.trust_store_path)
        self.options = options or InferenceOptions.from_settings(self.settings)
        self.logger = get_logger("TrustEngine")
        self._background_tasks: set[asyncio.Task] = set()

    async def load_snapshot(self) -> TrustSnapshot:
        """Pull all explicit trust once and build vectors from it."""
        return build_trust_vectors(await self.store.get_all_explicit_trust())

    async def compute_user_trust_network(
        self,
        user_id: str,
        entity_types: Optional[Iterable[EntityType]] = None,
    ) -> Dict[str, float]:
        """
        Recompute a user's trust in every known entity and persist inferred values.

        Known entities are everything any user has rated explicitly plus the
        assertions (and their sources and bots) returned by the store for the
        configured assertion types. Assertions get provenance-capped values.

        Args:
            user_id: User to recompute
            entity_types: Restrict the recompute to these kinds (all if None)

        Returns:
            entity_id -> trust value (explicit targets included)

        Raises:
            OSError: If the store fails to persist; no internal retry
        """
        recompute_id = get_recompute_id()
        log = self.logger.bind(user_id=user_id, recompute_id=recompute_id)

        snapshot = await self.load_snapshot()
        assertions = await self.store.get_assertions_needing_trust(
            self.settings.assertion_types,
            self.settings.assertion_limit,
        )
        log.info(
            f"Computing trust network: {len(snapshot.vectors)} vectors, "
            f"{len(assertions)} assertions"
        )

        allowed = {EntityType(t) for t in entity_types} if entity_types is not None else None
        targets = self._collect_targets(snapshot, assertions, allowed)
        assertions_by_id = {a.assertion_id: a for a in assertions}

        inference = TrustInference(user_id, snapshot, self.options)
        own_explicit = snapshot.explicit_values.get(user_id, {})
        values: Dict[str, float] = {}
        inferred: Dict[str, InferredTrust] = {}

        for target_id, target_type in targets.items():
            if target_id == user_id:
                continue

            assertion = assertions_by_id.get(target_id) if target_type == EntityType.ASSERTION else None
            if assertion is not None:
                provenance = resolve_provenance(inference, assertion)
                value, confidence = provenance.effective_trust, provenance.confidence
            else:
                result = inference.infer(target_id, target_type)
                value, confidence = result.trust_value, result.confidence

            values[target_id] = value
            if target_id in own_explicit:
                continue

            contributors = explain_with(inference, target_id, self.settings.explanation_top_n)
            inferred[target_id] = InferredTrust(
                value=value,
                confidence=confidence,
                contributors=[c.user_id for c in contributors],
                entity_type=target_type,
            )

        try:
            await self.store.persist_inferred_trust(user_id, inferred)
        except OSError:
            log.error(f"Persisting {len(inferred)} inferred values failed")
            raise

        log.info(f"Trust network computed: {len(values)} values, {len(inferred)} inferred")
        return values

    async def get_trust_for_assertion(self, user_id: str, assertion_id: str) -> float:
        """Effective trust of a user in one assertion."""
        values = await self.get_trust_for_assertions(user_id, [assertion_id])
        return values[assertion_id]

    async def get_trust_for_assertions(
        self,
        user_id: str,
        assertion_ids: Sequence[str],
    ) -> Dict[str, float]:
        """
        Effective trust of a user in many assertions.

        Inferred values cached by the last recompute are used as-is. Anything
        else (never computed, or explicitly rated and still subject to its
        provenance chain) is computed on demand from a fresh snapshot without
        being persisted.
        """
        cached = await self.store.get_trust_values(user_id, assertion_ids)
        values: Dict[str, float] = {}
        pending: List[str] = []
        for assertion_id in assertion_ids:
            record = cached.get(assertion_id)
            if record is not None and not record.is_explicit:
                values[assertion_id] = record.trust_value
            else:
                pending.append(assertion_id)

        if pending:
            inference = TrustInference(user_id, await self.load_snapshot(), self.options)
            for assertion_id in pending:
                assertion = await self.store.get_assertion(assertion_id)
                if assertion is not None:
                    values[assertion_id] = resolve_provenance(inference, assertion).effective_trust
                else:
                    values[assertion_id] = inference.infer(assertion_id, EntityType.ASSERTION).trust_value
            self.logger.debug(
                f"{len(pending)} of {len(assertion_ids)} assertion values computed on demand",
                user_id=user_id,
            )

        return values

    async def filter_by_trust(
        self,
        user_id: str,
        assertions: Sequence[Assertion],
        threshold: float,
    ) -> List[Assertion]:
        """Assertions whose effective trust meets the threshold, order preserved."""
        values = await self.get_trust_for_assertions(user_id, [a.assertion_id for a in assertions])
        return [a for a in assertions if values[a.assertion_id] >= threshold]

    async def sort_by_trust(
        self,
        user_id: str,
        assertions: Sequence[Assertion],
    ) -> List[Assertion]:
        """Assertions ordered by effective trust, descending (stable for ties)."""
        values = await self.get_trust_for_assertions(user_id, [a.assertion_id for a in assertions])
        return sorted(assertions, key=lambda a: values[a.assertion_id], reverse=True)

    async def get_trust_explanation(
        self,
        user_id: str,
        entity_id: str,
        entity_type: Optional[EntityType] = None,
    ) -> TrustExplanation:
        """
        Explain a user's trust in an entity.

        The entity type is resolved from the snapshot or the assertion store
        when not given; unknown entities are treated as users. The reported
        value matches the read path: an inferred value cached by the last
        recompute wins, and stored assertions are capped by their provenance
        chain.
        """
        snapshot = await self.load_snapshot()
        assertion = await self.store.get_assertion(entity_id)
        if entity_type is None:
            entity_type = self._resolve_entity_type(snapshot, entity_id, assertion)

        inference = TrustInference(user_id, snapshot, self.options)
        result = inference.infer(entity_id, entity_type)
        trust_value, confidence = result.trust_value, result.confidence

        if assertion is not None and EntityType(entity_type) == EntityType.ASSERTION:
            provenance = resolve_provenance(inference, assertion)
            trust_value, confidence = provenance.effective_trust, provenance.confidence

        cached = await self.store.get_trust_value(user_id, entity_id)
        if cached is not None and not cached.is_explicit:
            trust_value = cached.trust_value
            if cached.confidence is not None:
                confidence = cached.confidence

        contributors = [] if result.is_explicit else explain_with(
            inference, entity_id, self.settings.explanation_top_n
        )
        return TrustExplanation(
            entity_id=entity_id,
            trust_value=trust_value,
            confidence=confidence,
            is_explicit=result.is_explicit,
            is_defaulted=result.is_defaulted,
            contributors=contributors,
        )

    async def compute_assertion_trust_with_provenance(
        self,
        user_id: str,
        assertion: Assertion,
    ) -> ProvenanceTrust:
        """Assertion, source and bot trust plus the provenance-capped effective value."""
        inference = TrustInference(user_id, await self.load_snapshot(), self.options)
        return resolve_provenance(inference, assertion)

    async def compute_controversy(self, entity_ids: Iterable[str]) -> ControversyScore:
        """Disagreement among users' explicit trust in the given entities."""
        snapshot = await self.load_snapshot()
        return calculate_topic_controversy(entity_ids, snapshot.explicit_values)

    async def explain_trust_paths(
        self,
        user_id: str,
        target_id: str,
        max_depth: Optional[int] = None,
    ) -> List[TrustPath]:
        """
        Debugging aid: transitive paths from a user to a target in the legacy graph.

        The graph is built from the user's own explicit records and the stored
        assertions. Path trust values are not inference results.
        """
        relationships = await self.store.list_user_trust(user_id, explicit_only=True)
        assertions = await self.store.get_assertions_needing_trust(
            self.settings.assertion_types,
            self.settings.assertion_limit,
        )
        graph = build_trust_graph_from_data(user_id, relationships, assertions)
        propagate_trust(
            graph,
            damping_factor=self.settings.damping_factor,
            convergence_threshold=self.settings.convergence_threshold,
            max_iterations=self.settings.max_iterations,
        )
        return find_trust_paths(
            graph,
            user_id,
            target_id,
            max_depth or self.settings.max_path_depth,
        )

    async def set_trust(
        self,
        user_id: str,
        target_id: str,
        target_type: EntityType,
        trust_value: float,
        recompute: bool = True,
    ) -> TrustRelationship:
        """Record explicit trust and, optionally, refresh the user's network in the background."""
        record = await self.store.set_trust_value(user_id, target_id, target_type, trust_value)
        if recompute:
            self.schedule_recompute(user_id)
        return record

    async def remove_trust(self, user_id: str, target_id: str, recompute: bool = True) -> bool:
        """Delete a trust record and, optionally, refresh the user's network."""
        deleted = await self.store.delete_trust_value(user_id, target_id)
        if deleted and recompute:
            self.schedule_recompute(user_id)
        return deleted

    def schedule_recompute(self, user_id: str) -> asyncio.Task:
        """Run compute_user_trust_network in the background; failures are logged on the task."""
        task = asyncio.get_running_loop().create_task(self._recompute_in_background(user_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def wait_for_recomputes(self) -> None:
        """Wait until every scheduled background recompute has finished."""
        while True:
            pending = [t for t in self._background_tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _recompute_in_background(self, user_id: str) -> Optional[Dict[str, float]]:
        try:
            return await self.compute_user_trust_network(user_id)
        except Exception as e:
            self.logger.opt(exception=e).error(f"Background recompute failed for {user_id}")
            return None

    @staticmethod
    def _resolve_entity_type(
        snapshot: TrustSnapshot,
        entity_id: str,
        assertion: Optional[Assertion],
    ) -> EntityType:
        recorded = snapshot.entity_types.get(entity_id)
        if recorded is not None:
            return EntityType(recorded)
        if assertion is not None:
            return EntityType.ASSERTION
        return EntityType.USER

    @staticmethod
    def _collect_targets(
        snapshot: TrustSnapshot,
        assertions: Sequence[Assertion],
        allowed: Optional[set],
    ) -> Dict[str, EntityType]:
        targets: Dict[str, EntityType] = {
            target_id: EntityType(entity_type)
            for target_id, entity_type in snapshot.entity_types.items()
        }
        for assertion in assertions:
            targets[assertion.assertion_id] = EntityType.ASSERTION
            targets.setdefault(assertion.source_id, assertion.source_type)
            if assertion.imported_by:
                targets.setdefault(assertion.imported_by, EntityType.BOT)

        if allowed is None:
            return targets
        return {tid: t for tid, t in targets.items() if t in allowed}


__all__ = ["TrustEngine", "TrustExplanation"]

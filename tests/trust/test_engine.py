"""Tests for TrustEngine.

Tests cover:
- Network recompute: inferred values, persistence, contributors, idempotence
- Provenance capping of stored assertions
- Entity type restriction
- Read path: cached inferred values vs on-demand computation
- Feed filtering and ranking
- Explanations and type resolution
- Persistence failure propagation
- Background recomputes after trust updates
- Legacy path explanations and controversy
"""

import pytest

from trust_system.data_management.schemas import Assertion, EntityType, InferredTrust
from trust_system.data_management.trust_store import TrustStore
from trust_system.trust.engine import TrustEngine
from trust_system.trust.inference import InferenceOptions

RATINGS = {
    "alice": {"R1": 0.9, "R2": 0.1, "R3": 0.8},
    "bob": {"R1": 0.9, "R2": 0.1, "R3": 0.8, "X": 0.9},
    "carol": {"R1": 0.8, "R2": 0.2, "R3": 0.7, "X": 0.5},
    "dave": {"R1": 0.1, "R2": 0.9, "R3": 0.2, "X": 0.1},
}


class FailingStore(TrustStore):
    """Store whose inferred-trust write always fails."""

    async def persist_inferred_trust(self, user_id, values):
        raise OSError("disk full")


async def _populate(store: TrustStore) -> None:
    """Shared population: alice and bob agree, dave disagrees with both."""
    for user_id, values in RATINGS.items():
        for target_id, value in values.items():
            await store.set_trust_value(user_id, target_id, EntityType.SOURCE, value)

    await store.set_trust_value("bob", "A1", EntityType.ASSERTION, 0.9)
    await store.set_trust_value("bob", "A2", EntityType.ASSERTION, 0.3)
    await store.save_assertions([
        Assertion(
            assertion_id="A1",
            content="Imported news item",
            source_id="R1",
            imported_by="IMPORT_BOT_NEWS",
            assertion_type="news_import",
        ),
        Assertion(assertion_id="A2", content="Claim two", source_id="R2"),
        Assertion(assertion_id="A3", content="Claim three", source_id="R3"),
        Assertion(assertion_id="A4", content="Claim four", source_id="R3"),
    ])


@pytest.fixture
def store():
    return TrustStore()


@pytest.fixture
def engine(store):
    return TrustEngine(store=store, options=InferenceOptions(confidence_threshold=1.5))


class TestComputeUserTrustNetwork:
    """Tests for compute_user_trust_network."""

    @pytest.mark.asyncio
    async def test_infers_from_similar_users(self, engine, store):
        """X leans toward bob and carol, who rate like alice."""
        await _populate(store)

        values = await engine.compute_user_trust_network("alice")

        assert 0.6 < values["X"] < 0.9
        assert values["R1"] == 0.9

    @pytest.mark.asyncio
    async def test_persists_inferred_with_contributors(self, engine, store):
        await _populate(store)

        await engine.compute_user_trust_network("alice")

        record = await store.get_trust_value("alice", "X")
        assert record is not None
        assert not record.is_explicit
        assert record.confidence == pytest.approx(1.0)
        assert record.propagated_from[0] == "bob"
        assert "carol" in record.propagated_from

    @pytest.mark.asyncio
    async def test_explicit_records_untouched(self, engine, store):
        await _populate(store)

        await engine.compute_user_trust_network("alice")

        record = await store.get_trust_value("alice", "R1")
        assert record.is_explicit
        assert record.trust_value == 0.9

    @pytest.mark.asyncio
    async def test_idempotent(self, engine, store):
        """Recomputing an unchanged snapshot yields the same values."""
        await _populate(store)

        first = await engine.compute_user_trust_network("alice")
        second = await engine.compute_user_trust_network("alice")

        assert first == second

    @pytest.mark.asyncio
    async def test_provenance_caps_assertion(self, engine, store):
        """A1 infers to ~0.6 but the unrated official bot caps it at 0.5."""
        await _populate(store)

        values = await engine.compute_user_trust_network("alice")

        assert values["A1"] == pytest.approx(0.5)
        assert values["IMPORT_BOT_NEWS"] == 0.5

    @pytest.mark.asyncio
    async def test_entity_type_restriction(self, engine, store):
        await _populate(store)

        values = await engine.compute_user_trust_network("alice", [EntityType.ASSERTION])

        assert set(values) == {"A1", "A2", "A3", "A4"}

    @pytest.mark.asyncio
    async def test_user_without_vector_gets_defaults(self, engine, store):
        await _populate(store)

        values = await engine.compute_user_trust_network("newcomer")

        assert values["X"] == 0.0
        assert values["IMPORT_BOT_NEWS"] == 0.5

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self):
        failing = FailingStore()
        await _populate(failing)
        engine = TrustEngine(store=failing)

        with pytest.raises(OSError, match="disk full"):
            await engine.compute_user_trust_network("alice")


class TestReadPath:
    """Tests for per-assertion reads, filtering and ranking."""

    @pytest.mark.asyncio
    async def test_on_demand_without_persisting(self, engine, store):
        await _populate(store)

        value = await engine.get_trust_for_assertion("alice", "A1")

        assert value == pytest.approx(0.5)
        assert await store.get_trust_value("alice", "A1") is None

    @pytest.mark.asyncio
    async def test_cached_value_used(self, engine, store):
        await _populate(store)
        await store.persist_inferred_trust(
            "alice", {"A1": InferredTrust(value=0.33, confidence=0.4)}
        )

        assert await engine.get_trust_for_assertion("alice", "A1") == 0.33

    @pytest.mark.asyncio
    async def test_unknown_assertion_defaults(self, engine, store):
        await _populate(store)
        assert await engine.get_trust_for_assertion("alice", "missing") == 0.0

    @pytest.mark.asyncio
    async def test_filter_preserves_order(self, engine, store):
        await _populate(store)
        assertions = [await store.get_assertion(aid) for aid in ("A3", "A2", "A1")]

        kept = await engine.filter_by_trust("alice", assertions, 0.1)

        assert [a.assertion_id for a in kept] == ["A2", "A1"]

    @pytest.mark.asyncio
    async def test_sort_descending_and_stable(self, engine, store):
        await _populate(store)
        assertions = [await store.get_assertion(aid) for aid in ("A4", "A2", "A3", "A1")]

        ranked = await engine.sort_by_trust("alice", assertions)

        assert [a.assertion_id for a in ranked] == ["A1", "A2", "A4", "A3"]


class TestExplanations:
    """Tests for get_trust_explanation and provenance breakdowns."""

    @pytest.mark.asyncio
    async def test_inferred_explanation(self, engine, store):
        await _populate(store)

        explanation = await engine.get_trust_explanation("alice", "X")

        assert not explanation.is_explicit
        assert explanation.contributors[0].user_id == "bob"
        assert sum(c.contribution_percent for c in explanation.contributors) == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_explicit_explanation(self, engine, store):
        await _populate(store)

        explanation = await engine.get_trust_explanation("alice", "R1")

        assert explanation.is_explicit
        assert explanation.trust_value == 0.9
        assert explanation.contributors == []

    @pytest.mark.asyncio
    async def test_unknown_entity_treated_as_user(self, engine, store):
        await _populate(store)

        explanation = await engine.get_trust_explanation("alice", "zed")

        assert explanation.trust_value == 0.0
        assert explanation.is_defaulted
        assert (await engine.get_trust_explanation("alice", "alice")).trust_value == 1.0

    @pytest.mark.asyncio
    async def test_explanation_capped_by_provenance(self, engine, store):
        """An explicit 0.7 on an assertion from an unknown bot explains as 0.0."""
        await _populate(store)
        await store.set_trust_value("alice", "A9", EntityType.ASSERTION, 0.7)
        await store.save_assertions([
            Assertion(assertion_id="A9", source_id="R1", imported_by="FAKE_BOT")
        ])

        explanation = await engine.get_trust_explanation("alice", "A9")

        assert explanation.is_explicit
        assert explanation.trust_value == 0.0
        assert explanation.confidence == 0.0
        assert explanation.trust_value == await engine.get_trust_for_assertion("alice", "A9")

    @pytest.mark.asyncio
    async def test_explanation_matches_read_path(self, engine, store):
        await _populate(store)

        explanation = await engine.get_trust_explanation("alice", "A1")

        assert explanation.trust_value == pytest.approx(0.5)
        assert explanation.trust_value == await engine.get_trust_for_assertion("alice", "A1")

    @pytest.mark.asyncio
    async def test_explanation_uses_cached_value(self, engine, store):
        await _populate(store)
        await store.persist_inferred_trust(
            "alice", {"A1": InferredTrust(value=0.8, confidence=0.4)}
        )

        explanation = await engine.get_trust_explanation("alice", "A1")

        assert explanation.trust_value == 0.8
        assert explanation.confidence == 0.4
        assert explanation.trust_value == await engine.get_trust_for_assertion("alice", "A1")

    @pytest.mark.asyncio
    async def test_provenance_breakdown(self, engine, store):
        await _populate(store)

        provenance = await engine.compute_assertion_trust_with_provenance(
            "alice", await store.get_assertion("A1")
        )

        assert provenance.source_trust == 0.9
        assert provenance.import_bot_trust == 0.5
        assert provenance.assertion_trust > provenance.effective_trust

    @pytest.mark.asyncio
    async def test_trust_paths(self, engine, store):
        await _populate(store)

        paths = await engine.explain_trust_paths("alice", "A1")

        assert paths[0].path == ["alice", "R1", "A1"]
        assert paths[0].trust_value == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_controversy(self, engine, store):
        await _populate(store)

        score = await engine.compute_controversy(["X"])

        assert score.user_count == 3
        assert score.variance == pytest.approx(0.32 / 3)
        assert score.score == pytest.approx((0.32 / 3) / 0.15)


class TestTrustUpdates:
    """Tests for set_trust / remove_trust background recomputes."""

    @pytest.mark.asyncio
    async def test_set_trust_schedules_recompute(self, engine, store):
        await _populate(store)

        await engine.set_trust("alice", "R4", EntityType.SOURCE, 0.4)
        await engine.wait_for_recomputes()

        record = await store.get_trust_value("alice", "X")
        assert record is not None
        assert not record.is_explicit

    @pytest.mark.asyncio
    async def test_set_trust_without_recompute(self, engine, store):
        await _populate(store)

        await engine.set_trust("alice", "R4", EntityType.SOURCE, 0.4, recompute=False)
        await engine.wait_for_recomputes()

        assert await store.get_trust_value("alice", "X") is None

    @pytest.mark.asyncio
    async def test_remove_trust(self, engine, store):
        """Alice loses overlap with everyone, so R1 falls back to its default."""
        await _populate(store)

        assert await engine.remove_trust("alice", "R1")
        await engine.wait_for_recomputes()

        record = await store.get_trust_value("alice", "R1")
        assert not record.is_explicit
        assert record.trust_value == 0.0

    @pytest.mark.asyncio
    async def test_remove_missing_trust(self, engine, store):
        await _populate(store)

        assert not await engine.remove_trust("alice", "NOPE")
        await engine.wait_for_recomputes()

        assert await store.get_trust_value("alice", "X") is None

    @pytest.mark.asyncio
    async def test_background_failure_is_contained(self):
        failing = FailingStore()
        await _populate(failing)
        engine = TrustEngine(store=failing)

        task = engine.schedule_recompute("alice")

        assert await task is None

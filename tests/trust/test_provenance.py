"""Tests for provenance chain resolution.

Tests cover:
- Assertions without an importing bot
- effective = min(assertion, min(bot, source)) for imported assertions
- Untrusted bot / untrusted source scenarios
- Fake attribution through an unknown bot
- Official bot bootstrap default
- Monotonicity across combinations
"""

import itertools

import pytest

from trust_system.data_management.schemas import Assertion, EntityType, TrustRelationship
from trust_system.trust.inference import TrustInference
from trust_system.trust.provenance import (
    compute_assertion_trust_with_provenance,
    resolve_provenance,
)
from trust_system.trust.vectors import build_trust_vectors


def _snapshot_for(user_id, **explicit):
    """Snapshot where one user has explicit values for bot, source and assertion ids."""
    types = {
        "IMPORT_BOT_NEWS": EntityType.BOT,
        "ROGUE_BOT": EntityType.BOT,
        "REUTERS": EntityType.SOURCE,
        "assertion1": EntityType.ASSERTION,
    }
    return build_trust_vectors({
        user_id: [
            TrustRelationship(
                user_id=user_id,
                target_id=target_id,
                target_type=types[target_id],
                trust_value=value,
            )
            for target_id, value in explicit.items()
        ]
    })


def _assertion(imported_by="IMPORT_BOT_NEWS", source_id="REUTERS"):
    return Assertion(
        assertion_id="assertion1",
        content="News article content",
        source_id=source_id,
        imported_by=imported_by,
        assertion_type="news_import",
        original_url="https://reuters.com/article/123",
    )


class TestNotImported:
    """Assertions without an importing bot."""

    def test_assertion_trust_is_effective(self):
        snapshot = _snapshot_for("user1", assertion1=0.8)

        result = compute_assertion_trust_with_provenance(
            "user1", _assertion(imported_by=None), snapshot
        )

        assert result.assertion_trust == 0.8
        assert result.effective_trust == 0.8
        assert result.source_trust is None
        assert result.import_bot_trust is None


class TestProvenanceChain:
    """Imported assertions are capped by their weakest link."""

    def test_source_is_weakest(self):
        """bot 0.9, source 0.6, assertion 0.7 -> 0.6."""
        snapshot = _snapshot_for("user1", IMPORT_BOT_NEWS=0.9, REUTERS=0.6, assertion1=0.7)

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.assertion_trust == pytest.approx(0.7)
        assert result.import_bot_trust == pytest.approx(0.9)
        assert result.source_trust == pytest.approx(0.6)
        assert result.effective_trust == pytest.approx(0.6)

    def test_untrusted_bot_caps_trusted_source(self):
        """bot 0.3, source 0.9, assertion 0.8 -> 0.3."""
        snapshot = _snapshot_for("user1", IMPORT_BOT_NEWS=0.3, REUTERS=0.9, assertion1=0.8)

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.effective_trust == pytest.approx(0.3)

    def test_fake_attribution_neutralized(self):
        """An unknown bot defaults to 0.0 and collapses effective trust."""
        snapshot = _snapshot_for("user1", REUTERS=0.9, assertion1=0.7)

        result = compute_assertion_trust_with_provenance(
            "user1", _assertion(imported_by="ROGUE_BOT"), snapshot
        )

        assert result.import_bot_trust == 0.0
        assert result.source_trust == 0.9
        assert result.effective_trust == 0.0

    def test_official_bot_bootstrap_default(self):
        """An unrated official bot contributes its 0.5 bootstrap default."""
        snapshot = _snapshot_for("user1", REUTERS=0.9, assertion1=0.8)

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.import_bot_trust == 0.5
        assert result.effective_trust == 0.5

    def test_assertion_is_weakest(self):
        snapshot = _snapshot_for("user1", IMPORT_BOT_NEWS=0.9, REUTERS=0.9, assertion1=0.2)

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.effective_trust == pytest.approx(0.2)

    def test_confidence_is_lowest_in_chain(self):
        """Explicit assertion and source, defaulted bot: confidence 0."""
        snapshot = _snapshot_for("user1", REUTERS=0.9, assertion1=0.8)

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.confidence == 0.0

    def test_resolve_reuses_inference_context(self):
        snapshot = _snapshot_for("user1", IMPORT_BOT_NEWS=0.9, REUTERS=0.6, assertion1=0.7)
        inference = TrustInference("user1", snapshot)

        result = resolve_provenance(inference, _assertion())

        assert result.effective_trust == pytest.approx(0.6)


class TestMonotonicity:
    """effective <= assertion and effective <= min(bot, source)."""

    @pytest.mark.parametrize(
        "bot,source,assertion",
        list(itertools.product((0.0, 0.3, 1.0), (0.1, 0.6), (0.2, 0.9))),
    )
    def test_effective_never_exceeds_chain(self, bot, source, assertion):
        snapshot = _snapshot_for(
            "user1", IMPORT_BOT_NEWS=bot, REUTERS=source, assertion1=assertion
        )

        result = compute_assertion_trust_with_provenance("user1", _assertion(), snapshot)

        assert result.effective_trust <= result.assertion_trust
        assert result.effective_trust <= min(result.import_bot_trust, result.source_trust)
        assert result.effective_trust == min(assertion, bot, source)

"""Tests for trust vector construction.

Tests cover:
- One vector per user with explicit values
- Inferred records never feed vectors
- Users without explicit values get no vector
- Entity type recording and opinion lookup
"""

from trust_system.data_management.schemas import EntityType, TrustRelationship
from trust_system.trust.vectors import TrustVector, build_trust_vectors


def _rel(user_id, target_id, value, explicit=True, target_type=EntityType.SOURCE):
    return TrustRelationship(
        user_id=user_id,
        target_id=target_id,
        target_type=target_type,
        trust_value=value,
        is_explicit=explicit,
    )


class TestBuildTrustVectors:
    """Tests for build_trust_vectors."""

    def test_builds_vector_per_user(self):
        """Each user with explicit values gets a sparse vector."""
        snapshot = build_trust_vectors({
            "alice": [_rel("alice", "REUTERS", 0.9), _rel("alice", "bob", 0.4, target_type=EntityType.USER)],
            "bob": [_rel("bob", "REUTERS", 0.2)],
        })

        assert set(snapshot.vectors) == {"alice", "bob"}
        assert snapshot.vectors["alice"].values == {"REUTERS": 0.9, "bob": 0.4}
        assert snapshot.explicit_values["bob"] == {"REUTERS": 0.2}

    def test_inferred_records_excluded(self):
        """Inferred values never enter vectors or the explicit lookup."""
        snapshot = build_trust_vectors({
            "alice": [
                _rel("alice", "REUTERS", 0.9),
                _rel("alice", "assertion-1", 0.7, explicit=False, target_type=EntityType.ASSERTION),
            ],
        })

        assert "assertion-1" not in snapshot.vectors["alice"].values
        assert "assertion-1" not in snapshot.explicit_values["alice"]

    def test_user_with_only_inferred_values_has_no_vector(self):
        """A user without explicit values is absent from the snapshot."""
        snapshot = build_trust_vectors({
            "carol": [_rel("carol", "REUTERS", 0.5, explicit=False)],
            "dave": [],
        })

        assert snapshot.vectors == {}
        assert snapshot.explicit_values == {}

    def test_entity_types_recorded(self):
        """Target types from the records are kept for later default lookups."""
        snapshot = build_trust_vectors({
            "alice": [
                _rel("alice", "IMPORT_BOT_NEWS", 0.8, target_type=EntityType.BOT),
                _rel("alice", "REUTERS", 0.9),
            ],
        })

        assert snapshot.entity_types == {"IMPORT_BOT_NEWS": "bot", "REUTERS": "source"}

    def test_users_with_opinion(self):
        """Only users holding an explicit value for the target are returned."""
        snapshot = build_trust_vectors({
            "alice": [_rel("alice", "REUTERS", 0.9)],
            "bob": [_rel("bob", "AFP", 0.5)],
            "carol": [_rel("carol", "REUTERS", 0.1)],
        })

        holders = [v.user_id for v in snapshot.users_with_opinion("REUTERS")]
        assert holders == ["alice", "carol"]

    def test_vector_length(self):
        vector = TrustVector(user_id="alice", values={"a": 0.1, "b": 0.2})
        assert len(vector) == 2

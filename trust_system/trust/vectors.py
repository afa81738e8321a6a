"""Trust vector construction from explicit trust records.

A trust vector is a user's sparse map entity_id -> trust value, built only
from values the user set explicitly. Inferred values never feed back into
vectors: that would let inference amplify itself and let Sybil accounts
bootstrap trust from their own inferred values.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from trust_system.data_management.schemas import TrustRelationship


@dataclass
class TrustVector:
    """A user's explicit trust values.

    Attributes:
        user_id: Owner of the vector
        values: entity_id -> trust value in [0, 1]
    """

    user_id: str
    values: Dict[str, float] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class TrustSnapshot:
    """Vectors plus the explicit-value lookup built from one data snapshot.

    Attributes:
        vectors: user_id -> TrustVector, one per user with at least one explicit value
        explicit_values: user_id -> (target_id -> trust value), explicit entries only
        entity_types: target_id -> entity type string as recorded by raters
    """

    vectors: Dict[str, TrustVector] = field(default_factory=dict)
    explicit_values: Dict[str, Dict[str, float]] = field(default_factory=dict)
    entity_types: Dict[str, str] = field(default_factory=dict)

    def users_with_opinion(self, target_id: str) -> List[TrustVector]:
        """Vectors of every user holding an explicit value for target_id."""
        return [
            vector for user_id, vector in self.vectors.items()
            if target_id in self.explicit_values.get(user_id, {})
        ]


def build_trust_vectors(
    relationships_by_user: Mapping[str, Iterable[TrustRelationship]],
) -> TrustSnapshot:
    """
    Build trust vectors from all users' trust relationships.

    Non-explicit records are ignored. Users without any explicit record
    get no vector. User order follows the input mapping so downstream
    candidate truncation is deterministic.

    Args:
        relationships_by_user: user_id -> trust relationships

    Returns:
        TrustSnapshot with vectors and explicit lookup
    """
    snapshot = TrustSnapshot()

    for user_id, relationships in relationships_by_user.items():
        values: Dict[str, float] = {}
        for rel in relationships:
            if not rel.is_explicit:
                continue
            values[rel.target_id] = rel.trust_value
            snapshot.entity_types.setdefault(rel.target_id, rel.target_type.value)

        if values:
            snapshot.vectors[user_id] = TrustVector(user_id=user_id, values=values)
            snapshot.explicit_values[user_id] = dict(values)

    return snapshot


__all__ = ["TrustVector", "TrustSnapshot", "build_trust_vectors"]

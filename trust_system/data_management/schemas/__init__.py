"""Schema package for trust records and the content they refer to.

Primary exports:
- TrustRelationship: explicit or inferred trust of a user in a target
- Assertion: content with a provenance chain (source, importing bot)
- InferredTrust: computed value handed to the store on recompute
- EntityType: closed set of trustable entity kinds

Usage:
    from trust_system.data_management.schemas import TrustRelationship, EntityType
    rel = TrustRelationship(
        user_id="u-1", target_id="REUTERS",
        target_type=EntityType.SOURCE, trust_value=0.9,
    )
"""

from trust_system.data_management.schemas.trust_schema import (
    Assertion,
    EntityType,
    InferredTrust,
    TrustRelationship,
)

__all__ = [
    "Assertion",
    "EntityType",
    "InferredTrust",
    "TrustRelationship",
]

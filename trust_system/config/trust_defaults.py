"""Default trust values and algorithm constants for trust inference.

Entity defaults are used when:
1. A user has not explicitly set trust for an entity
2. Inference cannot determine a value (no similar users with opinions)

Default hierarchy:
1. A user trusting themselves: 1.0
2. Official bots and well-known sources: 0.5 (bootstrap trust for new users)
3. Everything else (unknown users, sources, bots, any assertion or group): 0.0

Unknown entities defaulting to 0.0 is what makes similarity diffusion
Sybil-resistant: fresh identities receive and contribute nothing until a
real user explicitly trusts them.
"""

from typing import Dict, FrozenSet

# Bots that import content from external feeds and vouch for its attribution
OFFICIAL_IMPORT_BOTS: tuple[str, ...] = (
    "IMPORT_BOT_NEWS",
    "IMPORT_BOT_WIKIPEDIA",
    "IMPORT_BOT_ACADEMIC",
    "IMPORT_BOT_SOCIAL",
)

# Editorial bots that compose, translate or simplify existing assertions
OFFICIAL_COMPOSITION_BOTS: tuple[str, ...] = (
    "COMPOSITION_BOT",
    "TRANSLATION_BOT_ES",
    "TRANSLATION_BOT_FR",
    "SIMPLIFICATION_BOT",
)

OFFICIAL_BOTS: FrozenSet[str] = frozenset(OFFICIAL_IMPORT_BOTS + OFFICIAL_COMPOSITION_BOTS)

# Sources with elevated default trust for bootstrapping new users
WELL_KNOWN_SOURCES: FrozenSet[str] = frozenset({
    # News agencies
    "REUTERS",
    "ASSOCIATED_PRESS",
    "AFP",
    # Reference
    "WIKIPEDIA",
    "BRITANNICA",
    # Scientific
    "NATURE",
    "SCIENCE_MAG",
    "PUBMED",
    # Government
    "CDC",
    "WHO",
    "NASA",
})

SELF_TRUST: float = 1.0
BOOTSTRAP_TRUST: float = 0.5
UNKNOWN_ENTITY_TRUST: float = 0.0

# Similarity diffusion
SIMILARITY_BANDWIDTH_SIGMA: float = 0.3
MIN_OVERLAP_FOR_SIMILARITY: int = 3
CONFIDENCE_THRESHOLD: float = 5.0
SIMILARITY_MAX_COMPARISONS: int = 1000
EXPLANATION_TOP_N: int = 10

# Controversy: variance above this is "very controversial"
# (half the population at 0.0 and half at 1.0 gives 0.25)
CONTROVERSY_VARIANCE_CEILING: float = 0.15

# Legacy graph propagation
LEGACY_DEFAULT_TRUST: float = 0.5
TRUST_DAMPING_FACTOR: float = 0.7
TRUST_CONVERGENCE_THRESHOLD: float = 0.01
TRUST_MAX_ITERATIONS: int = 10
TRUST_MAX_PATH_DEPTH: int = 3

# Edge weights for structural (non-trust) edges in the legacy graph
STRUCTURAL_EDGE_WEIGHTS: Dict[str, float] = {
    "authored": 1.0,
    "imported": 1.0,
}


def is_official_bot(entity_id: str) -> bool:
    """Check whether an entity is one of the official bots."""
    return entity_id in OFFICIAL_BOTS


def is_well_known_source(entity_id: str) -> bool:
    """Check whether an entity is a well-known source."""
    return entity_id in WELL_KNOWN_SOURCES

"""Trust inference engine.

This package personalizes how much a user should believe an assertion,
source, bot or other user:
- build_trust_vectors: explicit trust records -> sparse per-user vectors
- similarity: cosine similarity on shared ratings, Gaussian kernel weights
- TrustInference: explicit override, else similarity diffusion, else entity default
- resolve_provenance: assertion trust capped by min(bot, source)
- calculate_controversy: normalized variance of trust across users
- explain_trust_inference: who contributed how much to an inferred value
- TrustEngine: store-backed API (recompute, feed ranking, explanations)

The legacy graph module (transitive damped propagation) is a debugging
aid for path explanations only.
"""

from trust_system.trust.vectors import TrustSnapshot, TrustVector, build_trust_vectors
from trust_system.trust.similarity import (
    SimilarityResult,
    compute_weighted_average,
    cosine_similarity,
    euclidean_distance,
    find_similar_users,
    gaussian_kernel,
)
from trust_system.trust.inference import (
    InferenceOptions,
    InferenceResult,
    TrustInference,
    get_default_trust,
    infer_trust,
    infer_trust_batch,
)
from trust_system.trust.provenance import (
    ProvenanceTrust,
    compute_assertion_trust_with_provenance,
    resolve_provenance,
)
from trust_system.trust.controversy import (
    ControversyScore,
    calculate_controversy,
    calculate_topic_controversy,
)
from trust_system.trust.explanation import TrustContributor, explain_trust_inference
from trust_system.trust.engine import TrustEngine, TrustExplanation

__all__ = [
    "TrustSnapshot",
    "TrustVector",
    "build_trust_vectors",
    "SimilarityResult",
    "compute_weighted_average",
    "cosine_similarity",
    "euclidean_distance",
    "find_similar_users",
    "gaussian_kernel",
    "InferenceOptions",
    "InferenceResult",
    "TrustInference",
    "get_default_trust",
    "infer_trust",
    "infer_trust_batch",
    "ProvenanceTrust",
    "compute_assertion_trust_with_provenance",
    "resolve_provenance",
    "ControversyScore",
    "calculate_controversy",
    "calculate_topic_controversy",
    "TrustContributor",
    "explain_trust_inference",
    "TrustEngine",
    "TrustExplanation",
]

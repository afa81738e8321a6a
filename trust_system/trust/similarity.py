"""Similarity computation for trust inference.

Trust is inferred from similarity in trust space: users with similar
explicit trust patterns are "nearby" and influence each other's inferred
values. Influence is not transitive: nothing flows along paths.

Pipeline:
- Cosine similarity over the entities both users rated (min overlap 3)
- Gaussian kernel on the equivalent unit-vector distance:
  d^2 = 2(1 - cos), weight = exp(-d^2 / sigma^2)
- Weighted average of neighbours' opinions, total weight as raw confidence

The candidate pool is truncated to max_comparisons. This is an
approximation; exact top-k at scale needs an approximate nearest
neighbour index.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from trust_system.config.trust_defaults import (
    MIN_OVERLAP_FOR_SIMILARITY,
    SIMILARITY_BANDWIDTH_SIGMA,
    SIMILARITY_MAX_COMPARISONS,
)
from trust_system.trust.vectors import TrustVector

_log = logger.bind(component="Similarity")


@dataclass
class SimilarityResult:
    """Similarity of one candidate to the target user.

    Attributes:
        user_id: Candidate user
        similarity: Gaussian kernel weight in (0, 1]
        overlap_count: Number of entities both users rated
    """

    user_id: str
    similarity: float
    overlap_count: int


def _overlap(vector_a: TrustVector, vector_b: TrustVector) -> List[str]:
    smaller, larger = sorted((vector_a.values, vector_b.values), key=len)
    return sorted(entity_id for entity_id in smaller if entity_id in larger)


def cosine_similarity(
    vector_a: TrustVector,
    vector_b: TrustVector,
    min_overlap: int = MIN_OVERLAP_FOR_SIMILARITY,
) -> float:
    """
    Cosine similarity restricted to the entities both users rated.

    Returns 0 when fewer than min_overlap entities are shared, or when
    either restricted norm is zero.

    Args:
        vector_a: First user's trust vector
        vector_b: Second user's trust vector
        min_overlap: Minimum shared entities (default 3)

    Returns:
        Similarity in [0, 1] for trust values in [0, 1]
    """
    shared = _overlap(vector_a, vector_b)
    if len(shared) < min_overlap:
        return 0.0

    dot = 0.0
    norm_a_sq = 0.0
    norm_b_sq = 0.0
    for entity_id in shared:
        a = vector_a.values[entity_id]
        b = vector_b.values[entity_id]
        dot += a * b
        norm_a_sq += a * a
        norm_b_sq += b * b

    if norm_a_sq == 0 or norm_b_sq == 0:
        return 0.0

    return dot / (math.sqrt(norm_a_sq) * math.sqrt(norm_b_sq))


def euclidean_distance(
    vector_a: TrustVector,
    vector_b: TrustVector,
    min_overlap: int = MIN_OVERLAP_FOR_SIMILARITY,
) -> float:
    """
    Euclidean distance over the entities both users rated.

    Returns:
        Distance, or math.inf when overlap is insufficient
    """
    shared = _overlap(vector_a, vector_b)
    if len(shared) < min_overlap:
        return math.inf

    return math.sqrt(sum(
        (vector_a.values[e] - vector_b.values[e]) ** 2 for e in shared
    ))


def gaussian_kernel(cosine: float, sigma: float = SIMILARITY_BANDWIDTH_SIGMA) -> float:
    """
    Convert cosine similarity to a Gaussian kernel weight.

    Larger sigma widens the diffusion radius; smaller sigma narrows it
    to near-identical users.

    Examples (sigma=0.3):
    - cos=1.0: 1.0
    - cos=0.99: exp(-0.02/0.09) ~ 0.80
    - cos=0.9: exp(-0.2/0.09) ~ 0.11

    Raises:
        ValueError: If sigma is not positive
    """
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    distance_sq = 2.0 * (1.0 - cosine)
    return math.exp(-distance_sq / (sigma * sigma))


def find_similar_users(
    target: TrustVector,
    candidates: Sequence[TrustVector],
    sigma: float = SIMILARITY_BANDWIDTH_SIGMA,
    max_comparisons: Optional[int] = SIMILARITY_MAX_COMPARISONS,
    min_overlap: int = MIN_OVERLAP_FOR_SIMILARITY,
    cache: Optional[Dict[str, Optional[SimilarityResult]]] = None,
) -> List[SimilarityResult]:
    """
    Find candidates similar to the target user.

    Self is excluded. Candidates with zero cosine similarity (including
    insufficient overlap) are dropped. Pass the same cache across calls to
    reuse similarities for one target user over many targets.

    Args:
        target: The user to find neighbours for
        candidates: Other users' vectors, in a stable order
        sigma: Gaussian kernel bandwidth
        max_comparisons: Candidate pool cap (None for no cap)
        min_overlap: Minimum shared ratings for similarity
        cache: Optional candidate user_id -> result memo

    Returns:
        Similar users sorted by similarity, descending
    """
    pool = candidates
    if max_comparisons is not None and len(candidates) > max_comparisons:
        _log.warning(
            f"Candidate pool truncated: {len(candidates)} -> {max_comparisons}",
            user_id=target.user_id,
        )
        pool = candidates[:max_comparisons]

    results: List[SimilarityResult] = []
    for other in pool:
        if other.user_id == target.user_id:
            continue

        if cache is not None and other.user_id in cache:
            cached = cache[other.user_id]
            if cached is not None:
                results.append(cached)
            continue

        cosine = cosine_similarity(target, other, min_overlap)
        result = None
        if cosine != 0:
            result = SimilarityResult(
                user_id=other.user_id,
                similarity=gaussian_kernel(cosine, sigma),
                overlap_count=len(_overlap(target, other)),
            )
            results.append(result)
        if cache is not None:
            cache[other.user_id] = result

    results.sort(key=lambda r: r.similarity, reverse=True)
    return results


def compute_weighted_average(
    similar_users: Sequence[SimilarityResult],
    get_trust_value: Callable[[str], Optional[float]],
) -> Tuple[float, float]:
    """
    Similarity-weighted average of neighbours' trust in a target.

    Neighbours without an opinion (get_trust_value returns None) are skipped.

    Returns:
        (weighted_average, total_weight); (0.0, 0.0) when nobody contributes
    """
    weighted_sum = 0.0
    total_weight = 0.0

    for result in similar_users:
        value = get_trust_value(result.user_id)
        if value is None:
            continue
        weighted_sum += result.similarity * value
        total_weight += result.similarity

    if total_weight == 0:
        return 0.0, 0.0

    return weighted_sum / total_weight, total_weight


__all__ = [
    "SimilarityResult",
    "cosine_similarity",
    "euclidean_distance",
    "gaussian_kernel",
    "find_similar_users",
    "compute_weighted_average",
]

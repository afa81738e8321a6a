"""Trust inference using similarity-based diffusion.

For one (user, target) pair the decision procedure runs in strict order:
1. Explicit trust: returned as-is with confidence 1.0 (self-trust is always 1.0)
2. User has no vector: entity default, confidence 0
3. Nobody has an opinion on the target: entity default, confidence 0
4. No similar users among those with opinions: entity default, confidence 0
5. Similarity-weighted average of the neighbours' opinions
6. Total weight below the confidence threshold: blend toward the default
   confidence = total_weight / threshold
   value = confidence * average + (1 - confidence) * default
7. Otherwise the weighted average at confidence 1.0

Step 6 keeps the result continuous at the threshold boundary and lets thin
evidence degrade toward the safe default instead of snapping to a noisy
average.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from loguru import logger

from trust_system.config.settings import Settings
from trust_system.config.trust_defaults import (
    BOOTSTRAP_TRUST,
    CONFIDENCE_THRESHOLD,
    MIN_OVERLAP_FOR_SIMILARITY,
    SELF_TRUST,
    SIMILARITY_BANDWIDTH_SIGMA,
    SIMILARITY_MAX_COMPARISONS,
    UNKNOWN_ENTITY_TRUST,
    is_official_bot,
    is_well_known_source,
)
from trust_system.data_management.schemas import EntityType
from trust_system.trust.similarity import (
    SimilarityResult,
    compute_weighted_average,
    find_similar_users,
)
from trust_system.trust.vectors import TrustSnapshot


@dataclass
class InferenceOptions:
    """Tuning knobs for similarity diffusion.

    Attributes:
        sigma: Gaussian kernel bandwidth
        min_overlap: Minimum shared ratings for similarity
        confidence_threshold: Total similarity weight for full confidence
        max_comparisons: Candidate pool cap per search
    """

    sigma: float = SIMILARITY_BANDWIDTH_SIGMA
    min_overlap: int = MIN_OVERLAP_FOR_SIMILARITY
    confidence_threshold: float = CONFIDENCE_THRESHOLD
    max_comparisons: int = SIMILARITY_MAX_COMPARISONS

    def __post_init__(self) -> None:
        if self.sigma <= 0:
            raise ValueError(f"sigma must be positive, got {self.sigma}")
        if self.confidence_threshold <= 0:
            raise ValueError(
                f"confidence_threshold must be positive, got {self.confidence_threshold}"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "InferenceOptions":
        return cls(
            sigma=settings.similarity_sigma,
            min_overlap=settings.min_overlap,
            confidence_threshold=settings.confidence_threshold,
            max_comparisons=settings.max_comparisons,
        )


@dataclass
class InferenceResult:
    """Outcome of inferring one user's trust in one target.

    Attributes:
        trust_value: Trust in [0, 1]
        confidence: Evidence behind the value in [0, 1]
        num_similar_users: Neighbours found by the similarity search
        is_explicit: The user set this value directly
        is_defaulted: Fully or partially taken from the entity default
    """

    trust_value: float
    confidence: float
    num_similar_users: int = 0
    is_explicit: bool = False
    is_defaulted: bool = False


def get_default_trust(
    entity_id: str,
    entity_type: EntityType,
    current_user_id: Optional[str] = None,
) -> float:
    """
    Default trust for an entity nobody has informed us about.

    Args:
        entity_id: Entity being trusted
        entity_type: Kind of entity
        current_user_id: User doing the trusting (for self-trust)

    Returns:
        1.0 for self, 0.5 for official bots and well-known sources, else 0.0
    """
    entity_type = EntityType(entity_type)

    if entity_type == EntityType.USER:
        if current_user_id is not None and entity_id == current_user_id:
            return SELF_TRUST
        return UNKNOWN_ENTITY_TRUST
    if entity_type == EntityType.BOT:
        return BOOTSTRAP_TRUST if is_official_bot(entity_id) else UNKNOWN_ENTITY_TRUST
    if entity_type == EntityType.SOURCE:
        return BOOTSTRAP_TRUST if is_well_known_source(entity_id) else UNKNOWN_ENTITY_TRUST
    if entity_type in (EntityType.ASSERTION, EntityType.GROUP):
        return UNKNOWN_ENTITY_TRUST

    raise ValueError(f"Unhandled entity type: {entity_type!r}")


class TrustInference:
    """
    Infers one user's trust in targets from a snapshot of explicit trust.

    Similarities between the user and other users are memoized, so
    inferring many targets for the same user computes each pairwise
    similarity at most once. This is the expected calling convention for
    ranking a feed.

    Usage:
        inference = TrustInference("user-1", snapshot)
        result = inference.infer("REUTERS", EntityType.SOURCE)

    Attributes:
        user_id: User whose perspective is computed
        snapshot: Vectors and explicit values from one data pull
        options: Diffusion parameters
    """

    def __init__(
        self,
        user_id: str,
        snapshot: TrustSnapshot,
        options: Optional[InferenceOptions] = None,
    ):
        self.user_id = user_id
        self.snapshot = snapshot
        self.options = options or InferenceOptions()
        self._similarity_cache: Dict[str, Optional[SimilarityResult]] = {}
        self.logger = logger.bind(component="TrustInference", user_id=user_id)

    def similar_users_for(self, target_id: str) -> list[SimilarityResult]:
        """Neighbours of the user among those holding an opinion on target_id."""
        user_vector = self.snapshot.vectors.get(self.user_id)
        if user_vector is None:
            return []
        return find_similar_users(
            user_vector,
            self.snapshot.users_with_opinion(target_id),
            sigma=self.options.sigma,
            max_comparisons=self.options.max_comparisons,
            min_overlap=self.options.min_overlap,
            cache=self._similarity_cache,
        )

    def infer(self, target_id: str, target_type: EntityType) -> InferenceResult:
        """
        Infer trust in one target.

        Args:
            target_id: Entity being trusted
            target_type: Kind of entity (drives the default)

        Returns:
            InferenceResult with value and confidence in [0, 1]
        """
        explicit = self.snapshot.explicit_values.get(self.user_id, {}).get(target_id)
        if explicit is not None:
            return InferenceResult(
                trust_value=explicit,
                confidence=1.0,
                is_explicit=True,
            )

        default = get_default_trust(target_id, target_type, self.user_id)

        # Other users' opinions of this user never override their self-trust
        if target_id == self.user_id and EntityType(target_type) == EntityType.USER:
            return InferenceResult(trust_value=default, confidence=1.0)

        if self.user_id not in self.snapshot.vectors:
            self.logger.debug(f"No trust vector, default {default} for {target_id}")
            return self._defaulted(default)

        if not self.snapshot.users_with_opinion(target_id):
            self.logger.debug(f"No opinions on {target_id}, default {default}")
            return self._defaulted(default)

        similar_users = self.similar_users_for(target_id)
        if not similar_users:
            self.logger.debug(f"No similar users for {target_id}, default {default}")
            return self._defaulted(default)

        weighted_average, total_weight = compute_weighted_average(
            similar_users,
            lambda uid: self.snapshot.explicit_values.get(uid, {}).get(target_id),
        )

        threshold = self.options.confidence_threshold
        if total_weight < threshold:
            confidence = min(1.0, total_weight / threshold)
            blended = confidence * weighted_average + (1.0 - confidence) * default
            return InferenceResult(
                trust_value=_clamp(blended),
                confidence=confidence,
                num_similar_users=len(similar_users),
                is_defaulted=True,
            )

        return InferenceResult(
            trust_value=_clamp(weighted_average),
            confidence=1.0,
            num_similar_users=len(similar_users),
        )

    def infer_many(
        self,
        target_ids: Iterable[str],
        target_types: Mapping[str, EntityType],
        default_type: EntityType = EntityType.USER,
    ) -> Dict[str, InferenceResult]:
        """Infer trust for many targets, reusing cached similarities."""
        return {
            target_id: self.infer(target_id, target_types.get(target_id, default_type))
            for target_id in target_ids
        }

    @staticmethod
    def _defaulted(default: float) -> InferenceResult:
        return InferenceResult(trust_value=default, confidence=0.0, is_defaulted=True)


def _clamp(value: float) -> float:
    # Float rounding can push a weighted mean of [0, 1] values a hair outside the range
    return max(0.0, min(1.0, value))


def infer_trust(
    user_id: str,
    target_id: str,
    target_type: EntityType,
    snapshot: TrustSnapshot,
    options: Optional[InferenceOptions] = None,
) -> InferenceResult:
    """Infer one user's trust in one target. See module docstring for the procedure."""
    return TrustInference(user_id, snapshot, options).infer(target_id, target_type)


def infer_trust_batch(
    user_id: str,
    target_ids: Iterable[str],
    target_types: Mapping[str, EntityType],
    snapshot: TrustSnapshot,
    options: Optional[InferenceOptions] = None,
) -> Dict[str, InferenceResult]:
    """
    Infer one user's trust in many targets.

    Equivalent to calling infer_trust per target, but similarities are
    computed once per candidate. Targets missing from target_types are
    treated as users.
    """
    return TrustInference(user_id, snapshot, options).infer_many(target_ids, target_types)


__all__ = [
    "InferenceOptions",
    "InferenceResult",
    "TrustInference",
    "get_default_trust",
    "infer_trust",
    "infer_trust_batch",
]

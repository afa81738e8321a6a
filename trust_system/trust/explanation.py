"""Explanations of inferred trust values.

Reruns the similarity search and weighted-average bookkeeping for one
(user, target) pair and reports who contributed how much. Used for UI
transparency and to fill propagated_from when inferred values are persisted.
"""

from dataclasses import dataclass
from typing import List, Optional

from trust_system.config.trust_defaults import EXPLANATION_TOP_N
from trust_system.trust.inference import InferenceOptions, TrustInference
from trust_system.trust.vectors import TrustSnapshot


@dataclass
class TrustContributor:
    """One similar user's share of an inferred value.

    Attributes:
        user_id: Contributing user
        similarity: Kernel weight between the two users
        trust_value: Contributor's explicit trust in the target
        contribution_percent: Share of total weight, 0-100
    """

    user_id: str
    similarity: float
    trust_value: float
    contribution_percent: float


def explain_with(
    inference: TrustInference,
    target_id: str,
    top_n: int = EXPLANATION_TOP_N,
) -> List[TrustContributor]:
    """Contributors for target_id using an existing inference context."""
    explicit = inference.snapshot.explicit_values
    contributors = []
    total_weight = 0.0

    for result in inference.similar_users_for(target_id):
        value = explicit.get(result.user_id, {}).get(target_id)
        if value is None:
            continue
        total_weight += result.similarity
        contributors.append((result, value))

    explained = [
        TrustContributor(
            user_id=result.user_id,
            similarity=result.similarity,
            trust_value=value,
            contribution_percent=(result.similarity / total_weight * 100.0) if total_weight > 0 else 0.0,
        )
        for result, value in contributors
    ]
    explained.sort(key=lambda c: c.contribution_percent, reverse=True)
    return explained[:top_n]


def explain_trust_inference(
    user_id: str,
    target_id: str,
    snapshot: TrustSnapshot,
    options: Optional[InferenceOptions] = None,
    top_n: int = EXPLANATION_TOP_N,
) -> List[TrustContributor]:
    """
    Top contributors to a user's inferred trust in a target.

    Returns an empty list when the user has no vector or nobody similar
    holds an opinion.
    """
    return explain_with(TrustInference(user_id, snapshot, options), target_id, top_n)


__all__ = ["TrustContributor", "explain_with", "explain_trust_inference"]

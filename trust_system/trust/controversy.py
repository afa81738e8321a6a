"""Controversy scoring: disagreement in trust across users.

High variance in the trust values different users hold for the same
entities signals a topic where people disagree.

    score = min(1, mean_variance / 0.15)

0.15 is the empirical ceiling for "very controversial"; the theoretical
maximum population variance of values in [0, 1] is 0.25 (half at 0, half
at 1). Entities with fewer than two values carry no signal and are skipped.
"""

import statistics
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from trust_system.config.trust_defaults import CONTROVERSY_VARIANCE_CEILING


@dataclass
class ControversyDetail:
    """Per-entity breakdown for display."""

    entity_id: str
    variance: float
    trust_values: List[float]


@dataclass
class ControversyScore:
    """Controversy across a set of entities.

    Attributes:
        score: 0.0-1.0, higher = more controversial
        variance: Mean population variance over qualifying entities
        assertion_count: Number of entities analyzed
        user_count: Users with opinions on the qualifying entities
        details: Per-entity variance breakdown
    """

    score: float
    variance: float
    assertion_count: int
    user_count: int
    details: List[ControversyDetail] = field(default_factory=list)


def calculate_variance(values: Sequence[float]) -> float:
    """Population variance (divides by n). Empty input gives 0."""
    if not values:
        return 0.0
    return statistics.pvariance(values)


def calculate_standard_deviation(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.pstdev(values)


def calculate_controversy(
    entity_ids: Sequence[str],
    trust_values_by_entity: Mapping[str, Sequence[float]],
    user_count: Optional[int] = None,
) -> ControversyScore:
    """
    Calculate controversy for a set of entities.

    Args:
        entity_ids: Entities to analyze (typically assertions)
        trust_values_by_entity: entity_id -> trust values from different users
        user_count: Distinct users behind the values, if known. Otherwise the
            largest per-entity value count is used as a lower bound.

    Returns:
        ControversyScore; all zeros when nothing qualifies
    """
    details: List[ControversyDetail] = []
    for entity_id in entity_ids:
        values = list(trust_values_by_entity.get(entity_id, ()))
        if len(values) < 2:
            continue
        details.append(ControversyDetail(
            entity_id=entity_id,
            variance=calculate_variance(values),
            trust_values=values,
        ))

    if not details:
        return ControversyScore(
            score=0.0,
            variance=0.0,
            assertion_count=len(entity_ids),
            user_count=0,
        )

    mean_variance = sum(d.variance for d in details) / len(details)
    if user_count is None:
        user_count = max(len(d.trust_values) for d in details)

    return ControversyScore(
        score=min(1.0, mean_variance / CONTROVERSY_VARIANCE_CEILING),
        variance=mean_variance,
        assertion_count=len(entity_ids),
        user_count=user_count,
        details=details,
    )


def calculate_topic_controversy(
    entity_ids: Iterable[str],
    user_trust_maps: Mapping[str, Mapping[str, float]],
) -> ControversyScore:
    """
    Controversy for a topic across many users' perspectives.

    Args:
        entity_ids: Entities belonging to the topic
        user_trust_maps: user_id -> (entity_id -> trust value)

    Returns:
        ControversyScore with an exact distinct user count
    """
    entity_ids = list(entity_ids)
    values_by_entity: Dict[str, List[float]] = {}
    users_by_entity: Dict[str, set] = {}

    for entity_id in entity_ids:
        for user_id, trust_map in user_trust_maps.items():
            value = trust_map.get(entity_id)
            if value is None:
                continue
            values_by_entity.setdefault(entity_id, []).append(value)
            users_by_entity.setdefault(entity_id, set()).add(user_id)

    contributing: set = set()
    for entity_id, users in users_by_entity.items():
        if len(users) >= 2:
            contributing |= users

    return calculate_controversy(entity_ids, values_by_entity, user_count=len(contributing))


__all__ = [
    "ControversyDetail",
    "ControversyScore",
    "calculate_variance",
    "calculate_standard_deviation",
    "calculate_controversy",
    "calculate_topic_controversy",
]

"""Provenance chain resolution for assertions.

An assertion's effective trust is capped by the weakest link of its
attribution chain:

    effective = assertion_trust                               (not imported)
    effective = min(assertion_trust, min(bot_trust, source_trust))  (imported)

Distrusting the import mechanism (the bot) caps content even from a
trusted source. An unknown bot defaults to 0.0, so claiming a trusted
source through a fabricated bot collapses effective trust to 0.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from trust_system.data_management.schemas import Assertion, EntityType
from trust_system.trust.inference import InferenceOptions, InferenceResult, TrustInference
from trust_system.trust.vectors import TrustSnapshot

_log = logger.bind(component="ProvenanceResolver")


@dataclass
class ProvenanceTrust:
    """Trust along an assertion's provenance chain.

    Attributes:
        assertion_trust: Inferred trust in the assertion itself
        effective_trust: Trust after capping by the chain
        confidence: Lowest confidence among the chain inferences
        source_trust: Trust in the source (only when imported)
        import_bot_trust: Trust in the importing bot (only when imported)
    """

    assertion_trust: float
    effective_trust: float
    confidence: float
    source_trust: Optional[float] = None
    import_bot_trust: Optional[float] = None


def resolve_provenance(inference: TrustInference, assertion: Assertion) -> ProvenanceTrust:
    """
    Resolve effective trust for an assertion using an existing inference context.

    Reusing the context shares its similarity cache across the assertion,
    its source and its bot.
    """
    assertion_result = inference.infer(assertion.assertion_id, EntityType.ASSERTION)

    if not assertion.imported_by:
        return ProvenanceTrust(
            assertion_trust=assertion_result.trust_value,
            effective_trust=assertion_result.trust_value,
            confidence=assertion_result.confidence,
        )

    bot_result = inference.infer(assertion.imported_by, EntityType.BOT)
    source_result = inference.infer(assertion.source_id, EntityType.SOURCE)

    provenance_trust = min(bot_result.trust_value, source_result.trust_value)
    effective = min(assertion_result.trust_value, provenance_trust)

    if effective < assertion_result.trust_value:
        _log.debug(
            f"Assertion {assertion.assertion_id} capped by provenance: "
            f"{assertion_result.trust_value:.3f} -> {effective:.3f}",
            user_id=inference.user_id,
            bot=assertion.imported_by,
            source=assertion.source_id,
        )

    return ProvenanceTrust(
        assertion_trust=assertion_result.trust_value,
        effective_trust=effective,
        confidence=_chain_confidence(assertion_result, bot_result, source_result),
        source_trust=source_result.trust_value,
        import_bot_trust=bot_result.trust_value,
    )


def compute_assertion_trust_with_provenance(
    user_id: str,
    assertion: Assertion,
    snapshot: TrustSnapshot,
    options: Optional[InferenceOptions] = None,
) -> ProvenanceTrust:
    """Effective trust of one user in one assertion, capped by its provenance chain."""
    return resolve_provenance(TrustInference(user_id, snapshot, options), assertion)


def _chain_confidence(*results: InferenceResult) -> float:
    return min(r.confidence for r in results)


__all__ = [
    "ProvenanceTrust",
    "resolve_provenance",
    "compute_assertion_trust_with_provenance",
]

"""Trust relationship and assertion schemas.

Explicit trust records are owned by the store and supplied to the engine as a
snapshot. Inferred records are written back by a network recompute and never
replace an explicit record for the same (user, target) pair.

Design principle: the entity type is a closed enum because the default-trust
policy switches on it exhaustively.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EntityType(str, Enum):
    """Kinds of entity a user can hold trust in."""

    USER = "user"
    SOURCE = "source"
    BOT = "bot"
    ASSERTION = "assertion"
    GROUP = "group"


class TrustRelationship(BaseModel):
    """A user's trust in one target entity.

    Explicit records are set by the user and always win over inference.
    Inferred records carry the contributing users and a confidence.

    Attributes:
        user_id: User holding the trust.
        target_id: Entity being trusted.
        target_type: Kind of entity being trusted.
        trust_value: Trust in [0, 1].
        is_explicit: True if the user set this value directly.
        propagated_from: Users whose opinions produced an inferred value.
        confidence: Evidence behind an inferred value (None for explicit).
        updated_at: Last write time.
    """

    user_id: str = Field(..., min_length=1, description="User holding the trust")
    target_id: str = Field(..., min_length=1, description="Entity being trusted")
    target_type: EntityType
    trust_value: float = Field(..., ge=0.0, le=1.0, description="Trust in [0, 1]")
    is_explicit: bool = Field(True, description="Set directly by the user")
    propagated_from: list[str] = Field(
        default_factory=list,
        description="Contributing users for an inferred value",
    )
    confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Confidence of an inferred value"
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-1",
                    "target_id": "REUTERS",
                    "target_type": "source",
                    "trust_value": 0.9,
                    "is_explicit": True,
                },
                {
                    "user_id": "user-1",
                    "target_id": "assertion-42",
                    "target_type": "assertion",
                    "trust_value": 0.64,
                    "is_explicit": False,
                    "propagated_from": ["user-7", "user-9"],
                    "confidence": 0.8,
                },
            ]
        }
    }


class Assertion(BaseModel):
    """A piece of content whose trust is computed per user.

    source_id and imported_by together form the provenance chain:
    the originating source, and the bot that imported or composed it.
    """

    assertion_id: str = Field(..., min_length=1)
    content: str = ""
    source_id: str = Field(..., min_length=1, description="Originating source")
    source_type: EntityType = EntityType.SOURCE
    assertion_type: str = Field("factual", description="factual, wiki_import, news_import, ...")
    imported_by: Optional[str] = Field(
        None, description="Bot that imported or composed the assertion"
    )
    original_url: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InferredTrust(BaseModel):
    """Computed trust for one target, as handed to the store for persistence."""

    value: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    contributors: list[str] = Field(default_factory=list)
    entity_type: EntityType = EntityType.ASSERTION

"""Application settings using Pydantic BaseSettings for environment variable management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Global trust engine settings loaded from environment variables.

    Attributes:
        similarity_sigma: Gaussian kernel bandwidth for similarity diffusion
        min_overlap: Minimum shared ratings before two users can be compared
        confidence_threshold: Total similarity weight needed for full confidence
        max_comparisons: Candidate pool cap per similarity search
        explanation_top_n: Contributors kept per explanation / persisted record
        damping_factor: Legacy graph propagation damping
        convergence_threshold: Legacy graph propagation epsilon
        max_iterations: Legacy graph propagation iteration cap
        max_path_depth: Maximum edges searched when explaining trust paths
        assertion_types: Assertion types recomputed by a network refresh
        assertion_limit: Maximum assertions loaded per type on refresh
        trust_store_path: Optional JSON file backing the trust store
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    similarity_sigma: float = Field(
        default=0.3,
        gt=0.0,
        description="Bandwidth of the Gaussian similarity kernel"
    )
    min_overlap: int = Field(
        default=3,
        ge=1,
        description="Minimum overlapping ratings for a similarity judgment"
    )
    confidence_threshold: float = Field(
        default=5.0,
        gt=0.0,
        description="Sum of similarities required for full confidence"
    )
    max_comparisons: int = Field(
        default=1000,
        ge=1,
        description="Maximum candidates compared per similarity search"
    )
    explanation_top_n: int = Field(
        default=10,
        ge=1,
        description="Contributors returned by trust explanations"
    )
    damping_factor: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Legacy propagation damping factor"
    )
    convergence_threshold: float = Field(
        default=0.01,
        gt=0.0,
        description="Legacy propagation convergence epsilon"
    )
    max_iterations: int = Field(
        default=10,
        ge=1,
        description="Legacy propagation iteration cap"
    )
    max_path_depth: int = Field(
        default=3,
        ge=1,
        description="Maximum path length for trust path explanations"
    )
    assertion_types: list[str] = Field(
        default_factory=lambda: ["factual", "wiki_import", "news_import"],
        description="Assertion types included in a full network recompute"
    )
    assertion_limit: int = Field(
        default=1000,
        ge=1,
        description="Assertions loaded per type during a full recompute"
    )
    trust_store_path: Optional[str] = Field(
        default=None,
        description="JSON file for trust store persistence (memory-only if unset)"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance - import this throughout the application
settings = Settings()

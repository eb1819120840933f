from .engine import (
    DIMENSION_CODES,
    TIER_BANDS,
    DimensionSet,
    InvalidDimensionError,
    ScoreBreakdown,
    ScoringWeights,
    load_scoring_weights,
    score,
    tier_for,
)

__all__ = [
    "DIMENSION_CODES",
    "TIER_BANDS",
    "DimensionSet",
    "InvalidDimensionError",
    "ScoreBreakdown",
    "ScoringWeights",
    "load_scoring_weights",
    "score",
    "tier_for",
]

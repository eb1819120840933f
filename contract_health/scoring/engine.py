"""Deterministic contract health scoring.

A contract is rated on four 0-100 dimensions. Destruction risk is the only
risk-weighted one: it feeds the safety component inverted and, past a
threshold, caps the final score no matter how attractive the rest of the
deal looks. The other three are averaged into the value component.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Any, Literal, Mapping

from contract_health.core.errors import ContractHealthError
from contract_health.core.scoring_config import get_scoring_value

Tier = Literal["S", "A", "B", "C", "D"]

# Persisted short code -> attribute name.
DIMENSION_CODES: dict[str, str] = {
    "mad": "destruction_risk",
    "mao": "mutual_advantage",
    "maa": "attrition_depth",
    "map": "strategic_potential",
}

# Highest band first; the first floor the score reaches wins.
TIER_BANDS: tuple[tuple[int, Tier, str], ...] = (
    (90, "S", "Excellent"),
    (80, "A", "Healthy"),
    (70, "B", "Fair"),
    (60, "C", "Caution"),
    (0, "D", "High Risk"),
)


class InvalidDimensionError(ContractHealthError):
    stage = "validation"
    status_code = 422

    def __init__(self, message: str, *, field: str):
        super().__init__(message)
        self.field = field

    def details(self) -> dict[str, Any]:
        return {"field": self.field}


@dataclass(frozen=True)
class DimensionSet:
    destruction_risk: float
    mutual_advantage: float
    attrition_depth: float
    strategic_potential: float

    @classmethod
    def from_codes(cls, payload: Any) -> "DimensionSet":
        """Build from a ``{mad, mao, maa, map}`` mapping; missing codes are rejected."""
        if not isinstance(payload, Mapping):
            raise InvalidDimensionError(
                "health_dimensions must be an object with mad, mao, maa and map.",
                field="health_dimensions",
            )
        values: dict[str, Any] = {}
        for code, name in DIMENSION_CODES.items():
            if code not in payload or payload[code] is None:
                raise InvalidDimensionError(f"Dimension '{code}' ({name}) is missing.", field=name)
            values[name] = payload[code]
        return cls(**values)

    def to_codes(self) -> dict[str, float]:
        return {code: getattr(self, name) for code, name in DIMENSION_CODES.items()}


@dataclass(frozen=True)
class BonusRule:
    advantage_above: float
    points: int


@dataclass(frozen=True)
class ScoringWeights:
    safety: float = 0.6
    value: float = 0.4
    bonus_risk_below: float = 5
    bonus_rules: tuple[BonusRule, ...] = field(
        default_factory=lambda: (BonusRule(advantage_above=75, points=5), BonusRule(advantage_above=85, points=3))
    )
    breaker_risk_above: float = 35
    breaker_score_cap: float = 59


@dataclass(frozen=True)
class ScoreBreakdown:
    safety_component: float
    value_component: float
    bonus_points: int
    raw_score: float
    circuit_breaker_applied: bool
    final_score: int
    tier: Tier
    tier_label: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@lru_cache(maxsize=1)
def load_scoring_weights() -> ScoringWeights:
    rules = get_scoring_value("bonus.tiers", None) or []
    return ScoringWeights(
        safety=float(get_scoring_value("weights.safety")),
        value=float(get_scoring_value("weights.value")),
        bonus_risk_below=float(get_scoring_value("bonus.risk_below", 5)),
        bonus_rules=tuple(
            BonusRule(advantage_above=float(rule["advantage_above"]), points=int(rule["points"]))
            for rule in rules
        ),
        breaker_risk_above=float(get_scoring_value("circuit_breaker.risk_above", 35)),
        breaker_score_cap=float(get_scoring_value("circuit_breaker.score_cap", 59)),
    )


def validate_dimensions(dims: DimensionSet) -> None:
    for name in DIMENSION_CODES.values():
        value = getattr(dims, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidDimensionError(
                f"Dimension '{name}' must be a number, got {type(value).__name__}.", field=name
            )
        if not math.isfinite(value):
            raise InvalidDimensionError(f"Dimension '{name}' must be finite.", field=name)
        if value < 0 or value > 100:
            raise InvalidDimensionError(f"Dimension '{name}' must be within [0, 100], got {value}.", field=name)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def tier_for(final_score: int) -> tuple[Tier, str]:
    for floor, tier, label in TIER_BANDS:
        if final_score >= floor:
            return tier, label
    return TIER_BANDS[-1][1], TIER_BANDS[-1][2]


def score(dims: DimensionSet, weights: ScoringWeights | None = None) -> ScoreBreakdown:
    validate_dimensions(dims)
    weights = weights or load_scoring_weights()

    safety = (100 - dims.destruction_risk) * weights.safety
    positive_average = (dims.mutual_advantage + dims.attrition_depth + dims.strategic_potential) / 3
    value = positive_average * weights.value
    raw = safety + value

    bonus = 0
    if dims.destruction_risk < weights.bonus_risk_below:
        for rule in weights.bonus_rules:
            if dims.mutual_advantage > rule.advantage_above:
                bonus += rule.points

    total = raw + bonus
    breaker = dims.destruction_risk > weights.breaker_risk_above
    if breaker:
        total = min(total, weights.breaker_score_cap)

    final_score = _round_half_up(min(100.0, max(0.0, total)))
    tier, tier_label = tier_for(final_score)
    return ScoreBreakdown(
        safety_component=round(safety, 1),
        value_component=round(value, 1),
        bonus_points=bonus,
        raw_score=round(raw, 2),
        circuit_breaker_applied=breaker,
        final_score=final_score,
        tier=tier,
        tier_label=tier_label,
    )

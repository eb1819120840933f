from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contract_health.scoring.engine import DimensionSet, ScoreBreakdown

HealthTier = Literal["S", "A", "B", "C", "D"]
DimensionValue = int | float


class HealthDimensions(BaseModel):
    mad: DimensionValue
    mao: DimensionValue
    maa: DimensionValue
    map: DimensionValue

    @field_validator("mad", "mao", "maa", "map")
    @classmethod
    def _within_range(cls, value: DimensionValue) -> DimensionValue:
        if value < 0 or value > 100:
            raise ValueError("must be within [0, 100]")
        return value

    @classmethod
    def from_dimension_set(cls, dims: DimensionSet) -> "HealthDimensions":
        return cls(**dims.to_codes())

    def to_dimension_set(self) -> DimensionSet:
        return DimensionSet.from_codes(self.model_dump())


class DimensionExplanations(BaseModel):
    mad: str = ""
    mao: str = ""
    maa: str = ""
    map: str = ""


class ScoreBreakdownPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    safety_score: float = Field(alias="safetyScore")
    value_score: float = Field(alias="valueScore")
    bonus_points: int = Field(default=0, alias="bonusPoints")

    @classmethod
    def from_breakdown(cls, breakdown: ScoreBreakdown) -> "ScoreBreakdownPayload":
        return cls(
            safety_score=breakdown.safety_component,
            value_score=breakdown.value_component,
            bonus_points=breakdown.bonus_points,
        )


class CompanyData(BaseModel):
    profile: dict[str, Any] | None = None
    customs: dict[str, Any] | None = None
    legal: dict[str, Any] | None = None
    responsible_person: dict[str, Any] | None = None
    responsible_person_legal: dict[str, Any] | None = None


class ContractRecord(BaseModel):
    contract_id: str
    file_hash: str
    file_id: str | None = None
    filename: str
    upload_date: datetime
    health_score: int = Field(ge=0, le=100)
    health_tier: HealthTier
    health_tier_label: str
    score_breakdown: ScoreBreakdownPayload
    health_dimensions: HealthDimensions
    dimension_explanations: DimensionExplanations = Field(default_factory=DimensionExplanations)
    overall_recommendation: str = ""
    document_type: str = ""
    seller_company: str = ""
    raw_data: dict[str, Any] = Field(default_factory=dict)
    company_data: CompanyData = Field(default_factory=CompanyData)
    last_updated: datetime | None = None

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ContractSummary(BaseModel):
    contract_id: str
    filename: str
    seller_company: str = ""
    document_type: str = ""
    health_score: int
    health_tier: HealthTier
    upload_date: datetime
    last_updated: datetime | None = None

    @classmethod
    def from_record(cls, record: ContractRecord) -> "ContractSummary":
        return cls(
            contract_id=record.contract_id,
            filename=record.filename,
            seller_company=record.seller_company,
            document_type=record.document_type,
            health_score=record.health_score,
            health_tier=record.health_tier,
            upload_date=record.upload_date,
            last_updated=record.last_updated,
        )


class UploadResponse(BaseModel):
    success: bool = True
    duplicate: bool = False
    message: str
    contract: ContractRecord


class ContractListResponse(BaseModel):
    success: bool = True
    contracts: list[ContractSummary] = Field(default_factory=list)


class ContractDetailResponse(BaseModel):
    success: bool = True
    contract: ContractRecord


class CounterpartyUpdateRequest(BaseModel):
    seller_company: str = Field(min_length=1, max_length=300)


class CounterpartyUpdateResponse(BaseModel):
    success: bool = True
    rescored: bool
    contract: ContractRecord


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    stage: str
    error: str
    details: dict[str, Any] = Field(default_factory=dict)


class ReplaceResponse(BaseModel):
    success: bool = True
    duplicate: bool = False
    replaced: bool
    message: str
    contract: ContractRecord

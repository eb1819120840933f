from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from contract_health.core.config import settings
from contract_health.core.errors import NotFoundError, UnidentifiedDocumentError
from contract_health.extraction.json_salvage import extract
from contract_health.scoring.engine import DimensionSet, ScoreBreakdown, ScoringWeights, score
from contract_health.schemas.contracts import (
    CompanyData,
    ContractRecord,
    ContractSummary,
    DimensionExplanations,
    HealthDimensions,
    ScoreBreakdownPayload,
)
from contract_health.services.background_check import BackgroundChecker
from contract_health.services.contract_analyzer import DocumentAnalyzer
from contract_health.services.document_text import LOCAL_TEXT_EXTENSIONS, extract_docx_text, validate_upload
from contract_health.store.base import ContractStore, hash_content

logger = logging.getLogger(__name__)

UNDETERMINED_DOCUMENT_TYPES = {"", "unknown", "uncertain", "undetermined", "不確定"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class Assessment:
    """Everything one analysis contributes to a record."""

    document_type: str
    seller_company: str
    responsible_person: str | None
    dimensions: DimensionSet
    breakdown: ScoreBreakdown
    explanations: DimensionExplanations
    recommendation: str
    raw_data: dict[str, Any]


@dataclass(frozen=True)
class UploadOutcome:
    record: ContractRecord
    duplicate: bool


@dataclass(frozen=True)
class UpdateOutcome:
    record: ContractRecord
    rescored: bool


@dataclass(frozen=True)
class ReplaceOutcome:
    record: ContractRecord
    duplicate: bool
    replaced: bool


def _scoring_fields(dims: DimensionSet, breakdown: ScoreBreakdown) -> dict[str, Any]:
    return {
        "health_score": breakdown.final_score,
        "health_tier": breakdown.tier,
        "health_tier_label": breakdown.tier_label,
        "score_breakdown": ScoreBreakdownPayload.from_breakdown(breakdown),
        "health_dimensions": HealthDimensions.from_dimension_set(dims),
    }


class ContractService:
    """Upload, re-score and manage stored contract assessments.

    One request runs end to end: hash, duplicate gate, analysis, extraction,
    scoring, background checks, then a single full-record write. Any failure
    before the write leaves the store untouched.
    """

    def __init__(
        self,
        store: ContractStore,
        analyzer: DocumentAnalyzer,
        background_checker: BackgroundChecker,
        *,
        weights: ScoringWeights | None = None,
        excerpt_chars: int | None = None,
    ):
        self.store = store
        self.analyzer = analyzer
        self.background_checker = background_checker
        self._weights = weights
        self._excerpt_chars = excerpt_chars if excerpt_chars is not None else settings.extraction_excerpt_chars

    async def _assess(
        self,
        *,
        file_id: str | None = None,
        document_text: str | None = None,
        counterparty_hint: str | None = None,
    ) -> Assessment:
        raw_text = await self.analyzer.analyze(
            file_id=file_id,
            document_text=document_text,
            counterparty_hint=counterparty_hint,
        )
        payload = extract(raw_text, excerpt_chars=self._excerpt_chars)

        document_type = _clean_text(payload.get("document_type"))
        seller_company = counterparty_hint or _clean_text(payload.get("seller_company"))
        if not counterparty_hint and (document_type.lower() in UNDETERMINED_DOCUMENT_TYPES or not seller_company):
            raise UnidentifiedDocumentError("Unable to determine the document type or the counterparty company name.")

        dims = DimensionSet.from_codes(payload.get("health_dimensions"))
        breakdown = score(dims, self._weights)

        explanations_raw = payload.get("dimension_explanations")
        explanations_raw = explanations_raw if isinstance(explanations_raw, dict) else {}
        explanations = DimensionExplanations(
            **{code: _clean_text(explanations_raw.get(code)) for code in ("mad", "mao", "maa", "map")}
        )
        return Assessment(
            document_type=document_type,
            seller_company=seller_company,
            responsible_person=_clean_text(payload.get("responsible_person")) or None,
            dimensions=dims,
            breakdown=breakdown,
            explanations=explanations,
            recommendation=_clean_text(payload.get("overall_recommendation")),
            raw_data=payload,
        )

    async def _background(self, company: str, responsible_person: str | None) -> CompanyData:
        results = await self.background_checker.run(company, responsible_person)
        return CompanyData(**results)

    async def _build_record(
        self,
        filename: str,
        file_hash: str,
        file_id: str | None,
        document_text: str | None = None,
    ) -> ContractRecord:
        assessment = await self._assess(file_id=file_id, document_text=document_text)
        company_data = await self._background(assessment.seller_company, assessment.responsible_person)
        record = ContractRecord(
            contract_id=secrets.token_hex(16),
            file_hash=file_hash,
            file_id=file_id,
            filename=filename,
            upload_date=_utc_now(),
            **_scoring_fields(assessment.dimensions, assessment.breakdown),
            dimension_explanations=assessment.explanations,
            overall_recommendation=assessment.recommendation,
            document_type=assessment.document_type,
            seller_company=assessment.seller_company,
            raw_data=assessment.raw_data,
            company_data=company_data,
        )
        self.store.upsert(record)
        logger.info(
            "contract_created contract_id=%s score=%s tier=%s",
            record.contract_id,
            record.health_score,
            record.health_tier,
        )
        return record

    async def _create(self, filename: str, content: bytes, file_hash: str, ext: str) -> ContractRecord:
        if ext in LOCAL_TEXT_EXTENSIONS:
            return await self._build_record(filename, file_hash, None, document_text=extract_docx_text(content))

        file_id = await self.analyzer.upload_document(filename=filename, content=content)
        try:
            return await self._build_record(filename, file_hash, file_id)
        except Exception:
            # No record references the uploaded file; remove it before surfacing the error.
            await self.analyzer.delete_document(file_id)
            raise

    async def upload(self, filename: str, content: bytes) -> UploadOutcome:
        ext = validate_upload(filename=filename, content=content)
        file_hash = hash_content(content)
        existing = self.store.find_by_content_hash(file_hash)
        if existing is not None:
            logger.info("contract_upload_duplicate hash=%s contract_id=%s", file_hash, existing.contract_id)
            return UploadOutcome(record=existing, duplicate=True)
        record = await self._create(filename, content, file_hash, ext)
        return UploadOutcome(record=record, duplicate=False)

    def get(self, contract_id: str) -> ContractRecord:
        record = self.store.find_by_id(contract_id)
        if record is None:
            raise NotFoundError(f"Contract '{contract_id}' does not exist.")
        return record

    def list_contracts(self) -> list[ContractSummary]:
        return self.store.list_summaries()

    def delete(self, contract_id: str) -> None:
        if not self.store.delete_by_id(contract_id):
            raise NotFoundError(f"Contract '{contract_id}' does not exist.")
        logger.info("contract_deleted contract_id=%s", contract_id)

    async def update_counterparty(self, contract_id: str, seller_company: str) -> UpdateOutcome:
        """Re-assess a record under a corrected counterparty name.

        Without a retained document handle the source is not re-read: the
        stored dimensions are re-scored as-is and only the counterparty and
        its background checks change.
        """
        record = self.get(contract_id)
        name = seller_company.strip()
        if not name:
            raise UnidentifiedDocumentError("Counterparty company name must not be empty.")

        if record.file_id:
            assessment = await self._assess(file_id=record.file_id, counterparty_hint=name)
            company_data = await self._background(name, assessment.responsible_person)
            updated = record.model_copy(
                update={
                    **_scoring_fields(assessment.dimensions, assessment.breakdown),
                    "dimension_explanations": assessment.explanations,
                    "overall_recommendation": assessment.recommendation,
                    "document_type": (
                        assessment.document_type
                        if assessment.document_type.lower() not in UNDETERMINED_DOCUMENT_TYPES
                        else record.document_type
                    ),
                    "seller_company": name,
                    "raw_data": assessment.raw_data,
                    "company_data": company_data,
                    "last_updated": _utc_now(),
                }
            )
            rescored = True
        else:
            dims = record.health_dimensions.to_dimension_set()
            breakdown = score(dims, self._weights)
            responsible_person = _clean_text(record.raw_data.get("responsible_person")) or None
            company_data = await self._background(name, responsible_person)
            updated = record.model_copy(
                update={
                    **_scoring_fields(dims, breakdown),
                    "seller_company": name,
                    "company_data": company_data,
                    "last_updated": _utc_now(),
                }
            )
            rescored = False

        self.store.upsert(updated)
        logger.info(
            "contract_counterparty_updated contract_id=%s rescored=%s score=%s",
            contract_id,
            rescored,
            updated.health_score,
        )
        return UpdateOutcome(record=updated, rescored=rescored)

    async def replace(self, contract_id: str, filename: str, content: bytes) -> ReplaceOutcome:
        """Swap a stored record for a new document; the old record survives any failure."""
        current = self.get(contract_id)
        ext = validate_upload(filename=filename, content=content)
        file_hash = hash_content(content)
        if file_hash == current.file_hash:
            return ReplaceOutcome(record=current, duplicate=True, replaced=False)

        existing = self.store.find_by_content_hash(file_hash)
        if existing is not None:
            return ReplaceOutcome(record=existing, duplicate=True, replaced=False)

        record = await self._create(filename, content, file_hash, ext)
        self.store.delete_by_id(contract_id)
        logger.info("contract_replaced old_contract_id=%s new_contract_id=%s", contract_id, record.contract_id)
        return ReplaceOutcome(record=record, duplicate=False, replaced=True)

from __future__ import annotations

import logging
import time
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from contract_health.core.config import settings
from contract_health.core.errors import AnalysisServiceError
from contract_health.services.prompts import DOCUMENT_TEXT_HEADER, build_analysis_prompt

logger = logging.getLogger(__name__)


class DocumentAnalyzer(Protocol):
    async def upload_document(self, *, filename: str, content: bytes) -> str: ...

    async def delete_document(self, file_id: str) -> bool: ...

    async def analyze(
        self,
        *,
        file_id: str | None = None,
        document_text: str | None = None,
        counterparty_hint: str | None = None,
    ) -> str: ...


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def analyzer_enabled() -> bool:
    api_key = (settings.openai_api_key or "").strip()
    return bool(api_key) and not _looks_like_placeholder(api_key)


class OpenAIContractAnalyzer:
    """Sends a contract to the OpenAI Responses API and returns the raw text answer."""

    def __init__(
        self,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self._model = model or settings.analysis_model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not analyzer_enabled():
            raise AnalysisServiceError("Contract analysis is not configured (OPENAI_API_KEY).", code="analysis_disabled")
        self._client = AsyncOpenAI(
            api_key=(settings.openai_api_key or "").strip(),
            base_url=settings.openai_base_url or None,
            timeout=settings.analysis_timeout_s,
            max_retries=settings.openai_max_retries,
        )
        return self._client

    async def upload_document(self, *, filename: str, content: bytes) -> str:
        client = self._get_client()
        try:
            uploaded = await client.files.create(file=(filename, content), purpose="assistants")
        except OpenAIError as exc:
            logger.warning("contract_analysis_upload_failed file=%s: %s", filename, exc)
            raise AnalysisServiceError("Uploading the document to the analysis service failed.", code="upload_failed") from exc
        logger.info("contract_analysis_uploaded file=%s file_id=%s", filename, uploaded.id)
        return uploaded.id

    async def delete_document(self, file_id: str) -> bool:
        """Remove an uploaded document; failures are logged, not raised."""
        client = self._get_client()
        try:
            await client.files.delete(file_id)
        except OpenAIError as exc:
            logger.warning("contract_analysis_delete_failed file_id=%s: %s", file_id, exc)
            return False
        logger.info("contract_analysis_deleted file_id=%s", file_id)
        return True

    async def analyze(
        self,
        *,
        file_id: str | None = None,
        document_text: str | None = None,
        counterparty_hint: str | None = None,
    ) -> str:
        if not file_id and not document_text:
            raise ValueError("analyze() needs either file_id or document_text")

        client = self._get_client()
        content: list[dict[str, str]] = [{"type": "input_text", "text": build_analysis_prompt(counterparty_hint)}]
        if file_id:
            content.append({"type": "input_file", "file_id": file_id})
        else:
            content.append({"type": "input_text", "text": f"{DOCUMENT_TEXT_HEADER}{document_text}"})

        started = time.perf_counter()
        try:
            response = await client.responses.create(
                model=self._model,
                input=[{"role": "user", "content": content}],
            )
        except OpenAIError as exc:
            logger.warning("contract_analysis_failed model=%s file_id=%s: %s", self._model, file_id, exc)
            raise AnalysisServiceError("The analysis service request failed. Try again.", code="analysis_failed") from exc

        output_text = getattr(response, "output_text", "") or ""
        latency_ms = int((time.perf_counter() - started) * 1000)
        if not output_text.strip():
            logger.warning("contract_analysis_empty model=%s latency_ms=%s", self._model, latency_ms)
            raise AnalysisServiceError("The analysis service returned an empty response.", code="empty_response")
        logger.info(
            "contract_analysis_completed model=%s latency_ms=%s chars=%s",
            self._model,
            latency_ms,
            len(output_text),
        )
        return output_text

from __future__ import annotations

from typing import Any


class ContractHealthError(RuntimeError):
    """Base for every failure the HTTP boundary renders as an error payload.

    ``stage`` names the pipeline step that failed (upload, analysis, extraction,
    validation, background_check, storage) so a client can tell a prompt/format
    regression apart from a bad upload or a missing record.
    """

    stage = "internal"
    status_code = 500

    def __init__(self, message: str, *, stage: str | None = None, status_code: int | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage
        if status_code is not None:
            self.status_code = status_code

    def details(self) -> dict[str, Any]:
        return {}


class UnsupportedDocumentError(ContractHealthError):
    stage = "upload"
    status_code = 400


class AnalysisServiceError(ContractHealthError):
    stage = "analysis"
    status_code = 503

    def __init__(self, message: str, *, code: str = "analysis_unavailable"):
        super().__init__(message)
        self.code = code

    def details(self) -> dict[str, Any]:
        return {"code": self.code}


class UnidentifiedDocumentError(ContractHealthError):
    stage = "validation"
    status_code = 422


class BackgroundCheckError(ContractHealthError):
    stage = "background_check"
    status_code = 503

    def __init__(self, message: str, *, query: str | None = None):
        super().__init__(message)
        self.query = query

    def details(self) -> dict[str, Any]:
        return {"query": self.query} if self.query else {}


class NotFoundError(ContractHealthError):
    stage = "storage"
    status_code = 404


class StoreError(ContractHealthError):
    stage = "storage"
    status_code = 500

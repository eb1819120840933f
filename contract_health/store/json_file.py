from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from contract_health.core.errors import StoreError
from contract_health.schemas.contracts import ContractRecord, ContractSummary
from contract_health.store.base import ContractStore

logger = logging.getLogger(__name__)


class JsonFileContractStore(ContractStore):
    """Whole-file JSON array of records, read and rewritten on every call.

    The file is a plain list of persisted record objects. Rows that do not
    match the record schema are left untouched on disk and skipped by
    listings; looking one up by id or hash raises ``StoreError``.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            raw = self._path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise StoreError(f"Failed to read contract store '{self._path}': {exc}") from exc
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Contract store '{self._path}' is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StoreError(f"Contract store '{self._path}' must contain a JSON array.")
        return data

    def _save(self, rows: list[dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".contracts-", suffix=".json", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write contract store '{self._path}': {exc}") from exc

    def _parse(self, row: dict[str, Any]) -> ContractRecord:
        try:
            return ContractRecord.model_validate(row)
        except ValidationError as exc:
            contract_id = row.get("contract_id", "?") if isinstance(row, dict) else "?"
            raise StoreError(
                f"Stored contract '{contract_id}' does not match the record schema: {exc}"
            ) from exc

    def find_by_content_hash(self, file_hash: str) -> ContractRecord | None:
        with self._lock:
            rows = self._load()
        for row in rows:
            if row.get("file_hash") == file_hash:
                return self._parse(row)
        return None

    def find_by_id(self, contract_id: str) -> ContractRecord | None:
        with self._lock:
            rows = self._load()
        for row in rows:
            if row.get("contract_id") == contract_id:
                return self._parse(row)
        return None

    def upsert(self, record: ContractRecord) -> ContractRecord:
        payload = record.to_storage()
        with self._lock:
            rows = self._load()
            for index, row in enumerate(rows):
                if row.get("contract_id") == record.contract_id:
                    rows[index] = payload
                    break
            else:
                rows.append(payload)
            self._save(rows)
        logger.debug("contract_store_upsert backend=json contract_id=%s", record.contract_id)
        return record

    def delete_by_id(self, contract_id: str) -> bool:
        with self._lock:
            rows = self._load()
            remaining = [row for row in rows if row.get("contract_id") != contract_id]
            if len(remaining) == len(rows):
                return False
            self._save(remaining)
        return True

    def list_summaries(self) -> list[ContractSummary]:
        with self._lock:
            rows = self._load()
        summaries: list[ContractSummary] = []
        for row in rows:
            try:
                record = self._parse(row)
            except StoreError as exc:
                logger.warning("contract_store_row_skipped backend=json: %s", exc)
                continue
            summaries.append(ContractSummary.from_record(record))
        return summaries

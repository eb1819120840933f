from __future__ import annotations

import threading

from contract_health.schemas.contracts import ContractRecord, ContractSummary
from contract_health.store.base import ContractStore


class MemoryContractStore(ContractStore):
    """Process-local store; insertion order is the listing order."""

    def __init__(self) -> None:
        self._records: dict[str, ContractRecord] = {}
        self._lock = threading.Lock()

    def find_by_content_hash(self, file_hash: str) -> ContractRecord | None:
        with self._lock:
            for record in self._records.values():
                if record.file_hash == file_hash:
                    return record.model_copy(deep=True)
        return None

    def find_by_id(self, contract_id: str) -> ContractRecord | None:
        with self._lock:
            record = self._records.get(contract_id)
        return record.model_copy(deep=True) if record else None

    def upsert(self, record: ContractRecord) -> ContractRecord:
        with self._lock:
            self._records[record.contract_id] = record.model_copy(deep=True)
        return record

    def delete_by_id(self, contract_id: str) -> bool:
        with self._lock:
            return self._records.pop(contract_id, None) is not None

    def list_summaries(self) -> list[ContractSummary]:
        with self._lock:
            records = list(self._records.values())
        return [ContractSummary.from_record(record) for record in records]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

"""Content-addressed contract record store.

Every backend keeps whole ``ContractRecord`` objects keyed by ``contract_id``
and searchable by ``file_hash``. ``upsert`` is the only write: callers read a
record, build the new version and write it back in full.

At most one record per content hash is enforced by the duplicate gate in the
upload pipeline, which checks ``find_by_content_hash`` before any external
call is made. ``upsert`` does not re-check it.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod

from contract_health.schemas.contracts import ContractRecord, ContractSummary


def hash_content(content: bytes) -> str:
    """SHA-256 hex digest of the exact uploaded bytes."""
    return hashlib.sha256(content).hexdigest()


class ContractStore(ABC):
    @abstractmethod
    def find_by_content_hash(self, file_hash: str) -> ContractRecord | None: ...

    @abstractmethod
    def find_by_id(self, contract_id: str) -> ContractRecord | None: ...

    @abstractmethod
    def upsert(self, record: ContractRecord) -> ContractRecord: ...

    @abstractmethod
    def delete_by_id(self, contract_id: str) -> bool: ...

    @abstractmethod
    def list_summaries(self) -> list[ContractSummary]: ...

from __future__ import annotations

from contract_health.core.config import settings

from .base import ContractStore, hash_content
from .json_file import JsonFileContractStore
from .memory import MemoryContractStore
from .sqlite import SqliteContractStore


def build_contract_store(backend: str | None = None) -> ContractStore:
    selected = (backend or settings.contract_store_backend).strip().lower()
    if selected == "sqlite":
        return SqliteContractStore(settings.contract_db_path)
    if selected == "json":
        return JsonFileContractStore(settings.contract_json_path)
    if selected == "memory":
        return MemoryContractStore()
    raise ValueError(f"Unsupported contract store backend '{selected}'")


__all__ = [
    "ContractStore",
    "JsonFileContractStore",
    "MemoryContractStore",
    "SqliteContractStore",
    "build_contract_store",
    "hash_content",
]

from __future__ import annotations

from functools import lru_cache

from contract_health.services.background_check import BackgroundChecker, TavilyBackgroundChecker
from contract_health.services.contract_analyzer import DocumentAnalyzer, OpenAIContractAnalyzer
from contract_health.services.contract_service import ContractService
from contract_health.store import ContractStore, build_contract_store


@lru_cache(maxsize=1)
def get_contract_store() -> ContractStore:
    return build_contract_store()


@lru_cache(maxsize=1)
def get_document_analyzer() -> DocumentAnalyzer:
    return OpenAIContractAnalyzer()


@lru_cache(maxsize=1)
def get_background_checker() -> BackgroundChecker:
    return TavilyBackgroundChecker()


def get_contract_service() -> ContractService:
    return ContractService(
        get_contract_store(),
        get_document_analyzer(),
        get_background_checker(),
    )

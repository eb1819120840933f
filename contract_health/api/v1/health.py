from fastapi import APIRouter

from contract_health.services.contract_analyzer import analyzer_enabled
from contract_health.core.config import settings

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the contract service.")
async def health_check():
    return {
        "status": "healthy",
        "store": settings.contract_store_backend,
        "analysis_enabled": analyzer_enabled(),
        "background_checks_enabled": bool(settings.tavily_api_key),
    }

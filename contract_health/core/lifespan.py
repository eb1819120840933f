from contextlib import asynccontextmanager
import logging

from contract_health.api.dependencies import get_contract_store
from contract_health.core.config import settings
from contract_health.core.scoring_config import get_scoring_config
from contract_health.services.contract_analyzer import analyzer_enabled

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    get_scoring_config()
    store = get_contract_store()
    logger.info(
        "contract_service_starting store=%s analysis_enabled=%s search_enabled=%s",
        type(store).__name__,
        analyzer_enabled(),
        bool(settings.tavily_api_key),
    )
    yield
    close = getattr(store, "close", None)
    if callable(close):
        close()

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from contract_health.api.v1.health import router as health_router
from contract_health.api.v1.contracts import router as contracts_router
from contract_health.core.cors import cors_allowed_origins
from contract_health.core.errors import ContractHealthError
from contract_health.core.rate_limit import limiter
from contract_health.core.config import settings
from contract_health.core.lifespan import lifespan
from contract_health.schemas.contracts import ErrorResponse

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

logger = logging.getLogger(__name__)

app = FastAPI(title="Contract Health API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ContractHealthError)
async def contract_health_error_handler(request: Request, exc: ContractHealthError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_failed path=%s stage=%s status=%s: %s", request.url.path, exc.stage, exc.status_code, exc)
    body = ErrorResponse(stage=exc.stage, error=str(exc), details=exc.details())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(contracts_router, prefix="/v1", tags=["Contracts"])

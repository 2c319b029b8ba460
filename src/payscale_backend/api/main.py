from contextlib import asynccontextmanager
from typing import Tuple

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.api_models import HealthData, SuccessResponse
from ..core.db import close_mongo_client
from ..core.encryption import get_encryption_service
from ..core.errors import ServiceError
from ..core.logging import get_logger
from ..core.observability import RequestContextMiddleware, bind_route_context, metrics_snapshot
from ..core.response import ok, service_error_payload
from ..core.settings import get_settings
from ..payscales.router import pay_scales_router, personnel_grades_router

settings = get_settings()
logger = get_logger(__name__)

openapi_tags = [
    {"name": "Service", "description": "Health and metrics"},
    {"name": "Pay Scales", "description": "Government pay scales by grade and step"},
    {"name": "Personnel Grades", "description": "Personnel grade records with encrypted identifiers"},
]


def _encryption_status(app: FastAPI) -> Tuple[bool, bool]:
    """(self-test passed, key strong), computed once per app."""
    status = getattr(app.state, "encryption_status", None)
    if status is None:
        service = get_encryption_service()
        status = (service.initialize(), service.validate_key_strength())
        app.state.encryption_status = status
    return status


@asynccontextmanager
async def lifespan(app: FastAPI):
    ready, _ = _encryption_status(app)
    if not ready:
        logger.error("Encryption self-test failed; encrypted fields will not be readable")
    yield
    close_mongo_client()


app = FastAPI(
    title=settings.api.API_TITLE,
    description=settings.api.API_DESCRIPTION,
    version=settings.api.API_VERSION,
    openapi_tags=openapi_tags,
    lifespan=lifespan,
    dependencies=[Depends(bind_route_context)],
)

# CORS: allow configured origins/methods/headers; defaults are permissive but can be tightened via env
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.api.CORS_ALLOW_METHODS,
    allow_headers=settings.api.CORS_ALLOW_HEADERS,
)

# Correlation ID / request context middleware
app.add_middleware(RequestContextMiddleware, logger=logger)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=service_error_payload(exc))


# PUBLIC_INTERFACE
@app.get(
    "/",
    summary="Health Check",
    description="Health check endpoint that returns service status, environment and the encryption self-test result.",
    tags=["Service"],
    response_model=SuccessResponse[HealthData],  # type: ignore[type-arg]
    responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "ok",
                        "data": {"message": "Healthy", "env": "development", "encryption_ready": True, "key_strong": True},
                        "meta": {},
                    }
                }
            },
        }
    },
)
def health_check(request: Request):
    """Health check endpoint that returns service status and environment."""
    ready, key_strong = _encryption_status(request.app)
    return ok(HealthData(message="Healthy", env=settings.app.ENV, encryption_ready=ready, key_strong=key_strong))


# PUBLIC_INTERFACE
@app.get(
    "/_metrics",
    summary="Metrics (basic)",
    description="Basic in-process counters for observability.",
    tags=["Service"],
    response_model=SuccessResponse[dict],  # type: ignore[type-arg]
    responses={
        200: {
            "description": "Metrics snapshot",
            "content": {"application/json": {"example": {"status": "ok", "data": {"requests_total": 10.0}, "meta": {}}}},
        }
    },
)
def metrics():
    """Return basic service metrics (process-local) for quick visibility."""
    return ok(metrics_snapshot())


app.include_router(pay_scales_router)
app.include_router(personnel_grades_router)

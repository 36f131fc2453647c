# tenancy/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import (
    CollaboratorError,
    ConcurrentUpdate,
    IllegalTransition,
    LeaseNotFound,
    TenancyError,
    ValidationError,
)
from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.leases import router as leases_router
from .routers.meta import router as meta_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)

# most specific first
ERROR_STATUS: list[tuple[type[TenancyError], int]] = [
    (ValidationError, 422),
    (LeaseNotFound, 404),
    (IllegalTransition, 409),
    (ConcurrentUpdate, 409),
    (CollaboratorError, 503),
]


def status_for(exc: TenancyError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    return list(val) or ["*"]


async def tenancy_error_handler(request: Request, exc: TenancyError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        log.warning("collaborator_error", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=code, content={"detail": exc.message})


def create_app() -> FastAPI:
    app = FastAPI(title="Tenancy Engine", version=settings.engine_version)

    # last added runs first: request id is set before the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TenancyError, tenancy_error_handler)

    app.include_router(meta_router, prefix=API_PREFIX)
    app.include_router(leases_router, prefix=API_PREFIX)
    return app


app = create_app()

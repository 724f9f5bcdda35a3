"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resplan.api.router import api_router
from resplan.core.config import get_settings
from resplan.core.errors import DataUnavailable, MalformedHierarchy, NarrativeGenerationError, ResplanError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ResplanError], int] = {
    DataUnavailable: 503,
    MalformedHierarchy: 500,
    NarrativeGenerationError: 502,
}


def _error_response(exc: ResplanError) -> JSONResponse:
    status_code = next(
        (code for error_cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_cls)),
        500,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level), format=settings.log_format)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MalformedHierarchy)
    async def malformed_hierarchy_handler(request: Request, exc: MalformedHierarchy) -> JSONResponse:
        logger.error("Malformed resource hierarchy on %s: %s", request.url.path, exc.message)
        return _error_response(exc)

    @app.exception_handler(ResplanError)
    async def resplan_error_handler(request: Request, exc: ResplanError) -> JSONResponse:
        logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
        return _error_response(exc)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    logger.info("Application %s created (env=%s)", settings.app_name, settings.app_env)
    return app


app = create_app()

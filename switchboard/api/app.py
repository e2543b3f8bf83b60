"""FastAPI application exposing the orchestration engine.

Usage:
    uvicorn switchboard.api.app:create_app --factory --port 8000

Or:
    switchboard serve
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import ProfileConfig, Services
from ..errors import ProviderError, SwitchboardError
from .routes import agents_router, query_router, status_router

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    logger.error(f"Provider failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": f"Query processing failed: {exc}", "backend": exc.backend},
    )


async def switchboard_error_handler(request: Request, exc: SwitchboardError) -> JSONResponse:
    logger.error(f"Request to {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(
    services: Services | None = None,
    profile: ProfileConfig | None = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        services: Prebuilt services; the caller owns their lifecycle
        profile: Profile to build services from when none are given
    """
    owned = services is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owned:
            app.state.services = Services(profile)
            await app.state.services.connect()
        logger.info(f"Switchboard API v{__version__} starting")

        yield

        if owned:
            await app.state.services.close()
        logger.info("Switchboard API shut down")

    app = FastAPI(
        title="Switchboard",
        version=__version__,
        description="Routes natural-language queries to tool-using intelligence agents.",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(SwitchboardError, switchboard_error_handler)

    app.include_router(status_router)
    app.include_router(query_router)
    app.include_router(agents_router)

    return app

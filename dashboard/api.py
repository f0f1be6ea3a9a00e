"""
Dashboard - API.

============================================================
RESPONSIBILITY
============================================================
REST API over the domain feeds for the dashboard frontend.

- Every feed route answers with the same envelope:
  success, data, origin, degraded, failures, last_updated
- Upstream outages never surface as errors; they show up
  as origin=stale/fallback and degraded=true
- Bad input is a 400; admin routes need X-Admin-Token
============================================================
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import AppConfig
from core.constants import SYSTEM_VERSION
from dashboard.routers import admin, events, news, newsletter, status, surf, weather
from feeds.container import Services, build_services

logger = logging.getLogger(__name__)


def create_app(services: Services, close_on_shutdown: bool = False) -> FastAPI:
    """
    Build the FastAPI application around an already wired container.

    Args:
        services: Container from build_services
        close_on_shutdown: Close adapter sessions when the app stops
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Dashboard API started")
        yield
        if close_on_shutdown:
            await services.close()
        logger.info("Dashboard API stopped")

    app = FastAPI(
        title="Island Pulse API",
        description="Weather, surf, tides, news and events for the Hawaiian islands.",
        version=SYSTEM_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "detail": jsonable_encoder(exc.errors())})

    app.include_router(weather.router)
    app.include_router(surf.router)
    app.include_router(news.router)
    app.include_router(events.router)
    app.include_router(status.router)
    app.include_router(newsletter.router)
    app.include_router(admin.router)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "service": "Island Pulse API",
            "version": SYSTEM_VERSION,
            "docs": "/docs",
        }

    return app


def build_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Application factory for uvicorn: configuration from the environment."""
    config = config or AppConfig.from_env()
    return create_app(build_services(config), close_on_shutdown=True)

"""Entrypoint for the ESOP advisor FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import analytics_router, grants_router
from .config import EsopSettings, get_settings
from .core.errors import EsopAdvisorError
from .core.logging import setup_logging
from .core.telemetry import setup_telemetry
from .db.session import Database
from .providers import FxProvider, HttpFxProvider, HttpQuoteProvider, QuoteProvider, StaticFxProvider
from .services.analytics import build_engine

logger = logging.getLogger("esop_advisor")


def _default_quote_provider(settings: EsopSettings) -> QuoteProvider | None:
    if not settings.quote_service_url:
        return None
    return HttpQuoteProvider(
        settings.quote_service_url,
        token=settings.quote_service_token,
        timeout_seconds=settings.quote_timeout_seconds,
    )


def _default_fx_provider(settings: EsopSettings) -> FxProvider:
    if not settings.fx_service_url:
        return StaticFxProvider(settings.usd_inr_fallback_rate)
    return HttpFxProvider(
        settings.fx_service_url,
        fallback_rate=settings.usd_inr_fallback_rate,
        timeout_seconds=settings.fx_timeout_seconds,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI, db: Database):
    await db.create_all()
    yield
    await db.dispose()


async def _handle_advisor_error(request: Request, exc: EsopAdvisorError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(
    settings: EsopSettings | None = None,
    database: Database | None = None,
    quote_provider: QuoteProvider | None = None,
    fx_provider: FxProvider | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    database_instance = database or Database(settings.database_url)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, database_instance),
    )
    app.state.settings = settings
    app.state.database = database_instance
    app.state.engine = build_engine(
        settings,
        fx_provider=fx_provider or _default_fx_provider(settings),
        quote_provider=quote_provider or _default_quote_provider(settings),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(EsopAdvisorError, _handle_advisor_error)

    app.include_router(grants_router, prefix=settings.api_prefix, tags=["grants"])
    app.include_router(analytics_router, prefix=settings.api_prefix, tags=["analytics"])

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "esop-advisor"}

    if setup_telemetry(app, settings, database_instance.engine):
        logger.info("Telemetry enabled for %s", settings.telemetry_service_name)
    logger.info("ESOP advisor configuration", extra=settings.dict_for_logging())
    return app


def build_app() -> FastAPI:
    """Application factory for ``uvicorn --factory``."""

    setup_logging()
    return create_app()

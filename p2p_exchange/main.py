import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.dal import Database
from .db.migrate import bootstrap_database
from .routers import auth, health, rates, wallet
from .services.rates.cache_service import build_rate_cache_service

logger = logging.getLogger("p2p_exchange")


def create_app(settings_override: Settings | None = None) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    """
    settings = settings_override or get_settings()
    if settings.db_path is None:
        settings.init_post_load()
    init_logging(debug=settings.debug)

    # A database that stays unreachable is logged and tolerated: rate and
    # quote routes keep serving, storage routes answer storage_unavailable
    # and the Database retries the schema setup on each later call.
    db_ready = bootstrap_database(
        settings.db_path,  # type: ignore[arg-type]
        attempts=settings.db_connect_attempts,
        delay_seconds=settings.db_connect_retry_delay_seconds,
        timeout=settings.db_timeout_seconds,
    )

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.db = Database(
        settings.db_path,  # type: ignore[arg-type]
        timeout=settings.db_timeout_seconds,
        schema_ready=db_ready,
    )
    app.state.rate_service = build_rate_cache_service(settings)

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handlers
    app.add_exception_handler(errors.ExchangeError, errors.exchange_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(wallet.router)
    app.include_router(rates.router)
    app.include_router(auth.router)

    @app.get("/")
    def root():
        return {"message": settings.app_name, "version": settings.version}

    logger.info(
        "application created",
        extra={
            "context": {
                "rate_provider": settings.exchange_rate_provider,
                "db_ready": db_ready,
            }
        },
    )
    return app


app = create_app()

"""
FastAPI application entry point.

``create_app`` is the composition root: it builds the settings, logging,
document store and routers explicitly and wires them together. Importing a
router module has no side effects on the application.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rental_api.api.routers import imports, properties
from rental_api.core.config import Settings, get_settings
from rental_api.core.logging_config import configure_logging
from rental_api.db.session import build_engine
from rental_api.db.store import DocumentStore
from rental_api.domain.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; defaults to the environment-derived ones.
        store: Pre-built store (tests); defaults to one on ``database_url``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, use_utc=settings.log_utc)
    store = store or DocumentStore(build_engine(settings.database_url))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            store.create_schema()
            logger.info("Document store schema ready")
        except Exception as exc:
            # Requests will answer 503 until the backend is reachable
            logger.error("Could not initialise document store schema: %s", exc)
        yield
        store.close()

    app = FastAPI(
        title="Rental Property API",
        version="1.0.0",
        description="Imports vendor property/room exports and serves them for search and mapping",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    app.include_router(imports.router)
    app.include_router(properties.router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "service": "rental-api",
        }

    return app


app = create_app()

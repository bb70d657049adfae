"""
Entity Mixin - FastAPI Application

Serves the entity services configured in ENTITY_COLLECTIONS over REST.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from entity_mixin.config import Settings, get_settings
from entity_mixin.core.errors import EntityServiceError
from entity_mixin.core.logging import setup_logging
from entity_mixin.routers import health
from entity_mixin.routers.entities import build_entity_router
from entity_mixin.services.broker import ServiceBroker
from entity_mixin.services.entity_service import EntityService, create_entity_service

logger = logging.getLogger(__name__)


def build_broker(settings: Settings) -> ServiceBroker:
    """Register one entity service per configured collection."""
    broker = ServiceBroker()
    for collection in settings.entity_collections:
        broker.register(create_entity_service(collection, settings))
    return broker


def create_app(
    settings: Optional[Settings] = None,
    broker: Optional[ServiceBroker] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Startup starts every registered service (storage, indexes, seeding);
    shutdown stops them in reverse order.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    if broker is None:
        broker = build_broker(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting entity services...")
        await broker.start()

        yield

        logger.info("Stopping entity services...")
        await broker.stop()

    app = FastAPI(
        title="Entity Mixin API",
        description="CRUD endpoints of the registered entity services.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.broker = broker

    @app.exception_handler(EntityServiceError)
    async def entity_service_error_handler(request: Request, exc: EntityServiceError):
        return JSONResponse(status_code=exc.code, content=exc.to_dict())

    app.include_router(health.router)
    for service in broker.services.values():
        if isinstance(service, EntityService):
            app.include_router(build_entity_router(service))

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Entity Mixin API",
            "version": "0.1.0",
            "services": list(broker.services),
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()

"""
Main FastAPI application for the Lead Engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .routes import leads, discovery
from .services import Services
from config.logging_config import configure_logging
from config.settings import get_settings
from lead_scoring.errors import NotFoundError, PersistenceError, ProvisioningError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    services: Services = app.state.services
    logger.info(f"{services.settings.app_name} starting up...")
    await services.initialize()
    logger.info(f"{services.settings.app_name} ready")
    yield
    logger.info(f"{services.settings.app_name} shutting down...")
    await services.shutdown()


def _register_error_handlers(app: FastAPI):
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})

    @app.exception_handler(NotFoundError)
    async def not_found_error(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ProvisioningError)
    async def provisioning_error(request: Request, exc: ProvisioningError):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc), "step": exc.step})


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = services.settings if services else get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.api_title,
        description="Lead intake, scoring, discovery analytics and client provisioning.",
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services or Services(settings)

    _register_error_handlers(app)

    app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
    app.include_router(discovery.router, prefix="/api/v1", tags=["Discovery"])

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.api_version,
            "status": "operational",
            "docs": "/docs",
        }

    # Health check
    @app.get("/health")
    async def health():
        services: Services = app.state.services
        return {
            "status": "healthy" if services.is_ready else "degraded",
            "services": services.health(),
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    s = get_settings()
    uvicorn.run(app, host=s.api_host, port=s.api_port)

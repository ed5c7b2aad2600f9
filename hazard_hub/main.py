"""
Hazard Alert Hub - FastAPI Application Entry Point

Citizens submit geolocated hazard reports; administrators triage and
resolve them.

DESIGN PRINCIPLES:
- Every protected call re-verifies its bearer credential
- Report status only moves forward; Resolved is final
- Notifications are best-effort and never block a submission
- Upstream failures are logged in full and reported to callers opaquely
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hazard_hub.core.container import Services, build_services
from hazard_hub.core.errors import HazardHubError, UpstreamFailure, ValidationError
from hazard_hub.core.logging_config import configure_logging
from hazard_hub.core.settings import Settings, settings as default_settings
from hazard_hub.routes import admin, auth, health, reports

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        services: Prebuilt service graph (tests, embedding). When omitted the
            graph is built from settings on startup.
        settings: Settings to use; defaults to the environment-loaded ones.
    """
    settings = settings or (services.settings if services else default_settings)
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Citizen hazard reporting with admin triage",
        debug=settings.DEBUG,
    )
    app.state.services = services

    @app.exception_handler(HazardHubError)
    async def hazard_hub_error_handler(request: Request, exc: HazardHubError):
        if isinstance(exc, UpstreamFailure):
            logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        elif exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        error = ValidationError(details=jsonable_encoder(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions; full detail to the log, none to the caller."""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": "internal_error"},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        """Build collaborators once, unless they were injected."""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        if app.state.services is not None:
            return
        try:
            app.state.services = build_services(settings)
        except Exception as e:
            logger.error(f"Service initialization failed: {e}", exc_info=True)
            logger.warning("The app will start but every data operation will fail.")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {settings.APP_NAME}")

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(reports.router)
    app.include_router(admin.router)

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()

"""
ledtech - application factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from ledtech import __version__
from ledtech.api.admin_routes import router as admin_router
from ledtech.api.auth_routes import router as auth_router
from ledtech.api.dependencies import SecurityServices, build_security_services, init_security
from ledtech.api.exception_handlers import register_exception_handlers
from ledtech.api.metrics import metrics_endpoint
from ledtech.services.maintenance import SecurityMaintenance

logger = logging.getLogger(__name__)


def create_app(
    services: Optional[SecurityServices] = None,
    run_maintenance: bool = True,
    allowed_origins: Optional[list] = None,
) -> FastAPI:
    """Build the FastAPI app around a wired trust core"""
    services = services if services is not None else build_security_services()
    maintenance = SecurityMaintenance(services)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🛡️ Starting ledtech trust core...")
        if run_maintenance:
            maintenance.start()
        yield
        maintenance.shutdown()
        logger.info("🌙 ledtech trust core has shut down")

    app = FastAPI(
        title="ledtech trust core",
        description="Authentication and access control for the ledtech B2B site",
        version=__version__,
        lifespan=lifespan,
    )

    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    init_security(app, services)
    app.state.maintenance = maintenance
    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": __version__,
            "active_sessions": services.sessions.get_active_session_count(),
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        return metrics_endpoint()

    return app

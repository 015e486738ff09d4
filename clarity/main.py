"""FastAPI application entrypoint.

Validates configuration, configures middleware, includes routers, mounts the
admin panel, and exposes health and public-config endpoints.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from . import __version__, schemas
from .admin import mount_admin
from .database import engine
from .deps import get_settings
from .errors import register_exception_handlers
from .routers import connections as connections_router
from .routers import events as events_router
from .routers import example as example_router
from .routers import users as users_router
from .routers import websites as websites_router
from .settings import DEFAULT_ADMIN_SECRET_KEY

# Import models so Alembic can discover metadata
from . import models  # noqa: F401


def create_app() -> FastAPI:
    # Raises ConfigurationError on a bad environment; the process must not start
    settings = get_settings()

    app = FastAPI(
        title="ClarityTracking API",
        description="""
        ClarityTracking forwards e-commerce conversion events to ad platforms.

        This API provides endpoints for:
        - Current user registration and onboarding
        - Websites and their source/destination platform connections
        - Raw event log inspection

        ## Authentication

        Requests carry a Clerk session token, either as `Authorization: Bearer <jwt>`
        or in the `__session` cookie.
        """,
        version=__version__,
    )

    # Trust X-Forwarded-Proto from the load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    if settings.ADMIN_SECRET_KEY == DEFAULT_ADMIN_SECRET_KEY:
        logger.warning("[STARTUP] Using default admin secret key. Set ADMIN_SECRET_KEY for production.")

    app.add_middleware(SessionMiddleware, secret_key=settings.ADMIN_SECRET_KEY)

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(example_router.router)
    app.include_router(users_router.router)
    app.include_router(websites_router.router)
    app.include_router(connections_router.router)
    app.include_router(events_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    @app.get(
        "/public-config",
        response_model=schemas.PublicConfigResponse,
        tags=["Health"],
        summary="Client configuration",
        description="Publishable keys the browser needs. Never includes server secrets.",
    )
    def public_config():
        return schemas.PublicConfigResponse(**get_settings().public_config())

    if engine is not None:
        mount_admin(app, engine, settings)
    else:
        logger.warning("[STARTUP] DATABASE_URL not set; admin panel not mounted")


    logger.info("[STARTUP] ClarityTracking API ready (environment=%s)", settings.ENVIRONMENT)
    return app


app = create_app()

"""FastAPI application setup."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from ..logging_config import get_logger
from .routes import control, messaging, observability

logger = get_logger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:5174"

# Application served by apps created without one
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def set_app(application: Application | None) -> None:
    """Replace the global application instance, e.g. to load scripts."""
    global _app
    _app = application


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the served application with the server, stopping it after."""
    application: Application = app.state.application
    await application.start()
    logger.info("Serving %s", application.robot.name)
    yield
    await application.stop()


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """
    Create the API around an application.

    Without one, the global application is served. Allowed origins come from
    CORS_ORIGINS (comma separated).
    """
    fastapi_app = FastAPI(
        title="Playbook API",
        description="Conversation flows over an in-memory chat adapter",
        version="0.1.0",
        lifespan=lifespan,
    )

    origins = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application = application or get_app()
    fastapi_app.state.application = application
    for create_router in (
        messaging.create_messaging_router,
        observability.create_observability_router,
        control.create_control_router,
    ):
        fastapi_app.include_router(create_router(application))

    return fastapi_app

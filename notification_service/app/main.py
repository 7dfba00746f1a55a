"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.app.lifespan import lifespan
from notification_service.core.settings import get_app_settings
from notification_service.features.notifications.router import router as notifications_router


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Settings are loaded once and cached via LRU cache.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Configure exception handlers (must be before routers)
    configure_exception_handlers(app)

    app.include_router(notifications_router, prefix=app_settings.api_prefix)

    @app.get("/health", tags=["health"], include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": app_settings.service_name}

    return app


# Application instance for uvicorn
app = create_app()

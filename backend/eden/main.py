"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eden.config import get_settings
from eden.infrastructure.dependencies import EdenContainer, build_container
from eden.infrastructure.logging.log_config import setup_logging
from eden.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — load collections, start sync, autosave and polling."""
    setup_logging()

    container: EdenContainer = app.state.container
    await container.start()
    logger.info("Context %s ready", container.origin)

    yield

    # Shutdown
    await container.stop()


def create_app(container: EdenContainer | None = None) -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.container = container or build_container(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eden.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )

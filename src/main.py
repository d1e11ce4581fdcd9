"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.config import get_settings
from src.core.firestore import FirestoreClient
from src.core.gemini import GeminiClient
from src.core.logging_config import configure_logging
from src.core.rate_limiter import limiter
from src.features.chat.router import router as chat_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: clients already placed on app.state (tests) are kept
    settings = getattr(app.state, "settings", None) or get_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings
    if getattr(app.state, "gemini", None) is None:
        app.state.gemini = GeminiClient(settings)
    if getattr(app.state, "firestore", None) is None:
        app.state.firestore = FirestoreClient(settings)
    logger.info("Starting EcoVibe assistant in %s mode", settings.app_env)
    yield
    # Shutdown
    logger.info("Shutting down EcoVibe assistant")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="EcoVibe Floors Assistant",
        description="Bilingual RAG chat assistant for the EcoVibe Floors storefront",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
    )
    app.state.settings = settings

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": VERSION}

    # API info endpoint
    @app.get("/")
    async def root():
        return {
            "name": "EcoVibe Floors Assistant",
            "version": VERSION,
            "docs": "/docs" if settings.app_debug else None,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )

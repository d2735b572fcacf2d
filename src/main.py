"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware, request_validation_handler
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.middleware.request_size import request_size_limit_middleware
from src.api.routes import auth, health, users
from src.core.config import get_settings
from src.core.redis import close_redis_client, create_redis_client
from src.core.supabase import create_supabase_client
from src.schemas.common import SERVICE_VERSION
from src.services.image_upload import DropboxUploader
from src.services.profile_cache import ProfileCache
from src.services.user_store import UserStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Creates the store, cache and upload clients once and publishes them on
    app.state, where request dependencies pick them up. Closes them on
    shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    app.state.user_store = UserStore(create_supabase_client(settings), table=settings.users_table)
    logger.info("User store initialized (table=%s)", settings.users_table)

    redis_client = create_redis_client(settings)
    app.state.profile_cache = ProfileCache(redis_client, ttl_seconds=settings.profile_cache_ttl)
    logger.info("Profile cache initialized (ttl=%ds)", settings.profile_cache_ttl)

    http_client = httpx.AsyncClient(timeout=settings.upload_timeout_seconds)
    app.state.image_uploader = DropboxUploader(http_client, settings)
    logger.info("Image uploader initialized")

    yield
    # Shutdown
    await http_client.aclose()
    await close_redis_client(redis_client)
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Accounts API",
        description="User registration, credentials, profiles and search",
        version=SERVICE_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    # Middleware added last runs first: size limit, then latency logging,
    # then the error handler, so latency logs see the final status code
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Add request size limit middleware (rejects oversized requests early)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Malformed bodies and query params are reported as 400, like other validation errors
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

"""Identity Service

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity_service.api.middleware.exchange_logging import ExchangeLoggingMiddleware
from identity_service.api.routes import oauth
from identity_service.config.settings import get_settings
from identity_service.core.identity import IdentityError
from identity_service.infrastructure.observability import RedactingLogFormatter
from identity_service.infrastructure.observability.setup import configure_logging
from identity_service.infrastructure.redis.client import close_redis_client, get_redis_client

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")
    enabled = sorted(provider.value for provider in settings.enabled_providers())
    logger.info(f"OAuth providers enabled: {', '.join(enabled) or 'none'}")

    # Initialize user store
    try:
        await oauth.get_user_store()
    except Exception as e:
        logger.error(f"Failed to initialize user store: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Identity Service")
    oauth.reset_user_store()
    await close_redis_client()


# Create FastAPI application
app = FastAPI(
    title="Identity Service",
    version=settings.service_version,
    description="Provider login reconciliation with redacted exchange logging",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Exchange logging (added last so it wraps everything else)
if settings.enable_exchange_logging:
    app.add_middleware(
        ExchangeLoggingMiddleware,
        formatter=RedactingLogFormatter(body_max_length=settings.log_body_max_length),
    )


# Health check endpoint
@app.get("/health")
async def root_health_check():
    """Root health check endpoint"""
    health = {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "user_store": settings.user_store_backend
    }
    if settings.user_store_backend == "redis":
        redis_client = await get_redis_client()
        if not await redis_client.health_check():
            health["status"] = "degraded"
    return health


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "Identity Service",
        "docs": "/docs",
        "health": "/health"
    }


# Include routers (oauth.router already has /api/v1/oauth prefix)
app.include_router(oauth.router, tags=["oauth"])


@app.exception_handler(IdentityError)
async def identity_exception_handler(request: Request, exc: IdentityError):
    """Rejected logins are reported to the caller, never retried"""
    return oauth.identity_error_response(exc)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "identity_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

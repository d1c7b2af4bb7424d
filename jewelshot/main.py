"""
Jewelshot API - Main Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jewelshot import __version__
from jewelshot.config import settings
from jewelshot.db import init_db
from jewelshot.api import (
    auth_router,
    studio_router,
    credits_router,
    storage_router,
    gallery_router,
    profile_router,
    account_router,
)
from jewelshot.api.admin import credits_router as admin_credits_router
from jewelshot.services.errors import GENERIC_ERROR, log_error
from jewelshot.services.fal_service import FalClient
from jewelshot.services.storage_service import ObjectStore
from jewelshot.structured_logging import (
    REQUEST_ID_HEADER, configure_logging, generate_request_id, set_request_context,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown"""
    configure_logging(settings.log_level, json_output=settings.log_json)
    logger.info("%s starting up...", settings.app_name)

    await init_db()
    logger.info("Database initialized")

    # External clients live for the whole process and are injected per request
    app.state.object_store = ObjectStore()
    app.state.inference_client = FalClient()
    if not settings.fal_key:
        logger.warning("FAL_KEY is not set; generation requests will fail")

    yield

    await app.state.inference_client.close()
    logger.info("%s shutdown complete.", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="AI jewelry photography: studio generation, credits, gallery and account management",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line of a request with its id and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
    set_request_context(request_id=request_id)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Keep the {success, data, error} shape for auth and guard failures."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": None, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error(f"{request.method} {request.url.path}", exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "data": None, "error": GENERIC_ERROR},
    )


# Include routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(studio_router, prefix=settings.api_prefix)
app.include_router(credits_router, prefix=settings.api_prefix)
app.include_router(storage_router, prefix=settings.api_prefix)
app.include_router(gallery_router, prefix=settings.api_prefix)
app.include_router(profile_router, prefix=settings.api_prefix)
app.include_router(account_router, prefix=settings.api_prefix)
app.include_router(admin_credits_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "name": settings.app_name,
        "status": "healthy",
        "version": __version__,
    }


@app.get("/health")
async def health():
    """Detailed health check with a database probe."""
    db_status = "connected"
    try:
        from jewelshot.db.database import async_session_maker
        async with async_session_maker() as db:
            from sqlalchemy import text
            await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"error: {e}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": __version__,
        "database": db_status,
        "run_mode": settings.run_mode,
        "features": {
            "payments": settings.payments_enabled,
            "anonymous_generation": settings.allow_anonymous_generation,
            "inference": "configured" if settings.fal_key else "missing FAL_KEY",
        },
    }


def main():
    import uvicorn
    uvicorn.run(
        "jewelshot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()

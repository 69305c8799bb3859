# src/forum_stage/main.py
"""Main entry point for the forum engine API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from forum_stage.api.v1 import (
    changes_router,
    comments_router,
    communities_router,
    feed_router,
    moderation_router,
    posts_router,
    reports_router,
    users_router,
    votes_router,
)
from forum_stage.core.logging import configure_logging
from forum_stage.core.settings import settings
from forum_stage.services.change_feed import change_feed, install_change_capture
from forum_stage.services.errors import ForumError

logger = logging.getLogger(__name__)

# Publish committed ORM changes to in-process subscribers.
install_change_capture(change_feed)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Community forum content ranking and moderation API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")
app.include_router(feed_router, prefix="/api/v1")
app.include_router(communities_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(changes_router, prefix="/api/v1")


@app.exception_handler(ForumError)
async def forum_error_handler(_request: Request, exc: ForumError) -> JSONResponse:
    """Render service errors with their mapped status code."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("forum_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

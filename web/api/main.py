"""
Toolshelf Web API

FastAPI backend for the Toolshelf AI tool directory.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from toolshelf.config import configure_logging, load_config
from toolshelf.errors import (
    AuthenticationRequired,
    InsufficientPermission,
    InvalidTransition,
    NotFound,
    ProfileLookupFailed,
    SyncFailed,
    ToolshelfError,
    ValidationError,
)
from toolshelf.migrations import MigrationError, run_pending_migrations
from web.api.deps import close_db, init_db

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    AuthenticationRequired: 401,
    ProfileLookupFailed: 403,
    InsufficientPermission: 403,
    NotFound: 404,
    InvalidTransition: 409,
    ValidationError: 422,
    SyncFailed: 500,
}


def run_migrations():
    """Run pending database migrations on startup."""
    config = load_config()
    db_path = config["database"]["path"]
    try:
        applied = run_pending_migrations(db_path)
        for name in applied:
            logger.info("Applied migration: %s", name)
    except MigrationError as e:
        logger.warning("Migration check failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging(load_config())
    # Run migrations before initializing DB
    run_migrations()
    init_db()
    yield
    close_db()


app = FastAPI(
    title="Toolshelf API",
    description="API for the Toolshelf AI tool directory",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend (development)
cors_origins = os.environ.get(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ToolshelfError)
async def toolshelf_error_handler(request: Request, exc: ToolshelfError):
    """Report workflow errors with their kind so clients can react to each."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    body = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if isinstance(exc, SyncFailed):
        body["submission_id"] = exc.submission_id
    return JSONResponse(status_code=status_code, content=body)


# Import and include routers after app is created
from web.api.routers import auth, categories, profiles, reviews, stats, submissions, tools  # noqa: E402

# Auth routes (public)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Directory routes (public reads)
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(tools.router, prefix="/api/tools", tags=["tools"])

# Protected routes
app.include_router(submissions.router, prefix="/api/submissions", tags=["submissions"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(profiles.router, prefix="/api/profiles", tags=["profiles"])
app.include_router(stats.router, prefix="/api", tags=["stats"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "toolshelf-api"}

"""
API Dependencies

Shared dependencies for API routers: the database, the signed-in profile and
the service objects built on top of them.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from toolshelf.config import load_config
from toolshelf.database import Database
from toolshelf.models import Role
from toolshelf.services import (
    CategoryService,
    ProfileService,
    PublicationSync,
    SubmissionService,
    ToolCatalog,
)
from web.api.auth import decode_access_token

# Database for the running app; tests override get_db instead
_db: Optional[Database] = None

# Security scheme
security = HTTPBearer(auto_error=False)


def _open_db() -> Database:
    config = load_config()
    db = Database(config["database"]["path"], check_same_thread=False)
    db.init_schema()
    return db


def get_db() -> Database:
    """Get database instance."""
    global _db
    if _db is None:
        _db = _open_db()
    return _db


def init_db():
    """Initialize database on startup."""
    global _db
    _db = _open_db()


def close_db():
    """Close database on shutdown."""
    global _db
    if _db:
        _db.close()
        _db = None


# --- Services ---

def get_profile_service(db: Database = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_submission_service(db: Database = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db)


def get_publication_sync(db: Database = Depends(get_db)) -> PublicationSync:
    return PublicationSync(db)


def get_category_service(db: Database = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_tool_catalog(db: Database = Depends(get_db)) -> ToolCatalog:
    return ToolCatalog(db)


# --- Current profile ---

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """
    Get the current signed-in profile from the JWT token.
    Raises 401 if not authenticated.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = db.get_profile(token_data.profile_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return profile


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> Optional[dict]:
    """
    Get the current profile if authenticated, otherwise return None.
    Does not raise an error if not authenticated.
    """
    if credentials is None:
        return None

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        return None

    return db.get_profile(token_data.profile_id)


async def require_staff(
    current_user: dict = Depends(get_current_user),
) -> dict:
    """
    Require the current profile to be a reviewer or admin.
    """
    if current_user["role"] not in (Role.REVIEWER.value, Role.ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reviewer or admin privileges required",
        )
    return current_user


async def require_admin(
    current_user: dict = Depends(get_current_user),
) -> dict:
    """
    Require the current profile to be an admin.
    """
    if current_user["role"] != Role.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user

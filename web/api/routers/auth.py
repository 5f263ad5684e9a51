"""
Authentication Router

Endpoints for profile registration, login and the signed-in profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr

from toolshelf.database import Database
from toolshelf.services import ProfileService
from web.api.deps import get_current_user, get_current_user_optional, get_db, get_profile_service
from web.api.auth import (
    hash_password,
    verify_password,
    create_access_token,
    Token,
)

router = APIRouter()


class ProfileRegister(BaseModel):
    """Registration request."""
    nickname: str
    email: EmailStr
    password: str


class ProfileLogin(BaseModel):
    """Login request."""
    nickname: str
    password: str


class ProfileResponse(BaseModel):
    """Profile response (no password)."""
    id: int
    nickname: str
    email: str
    role: str
    created_at: Optional[str] = None


class NicknameAvailability(BaseModel):
    nickname: str
    available: bool


def profile_to_response(profile: dict) -> ProfileResponse:
    """Convert database profile dict to response model."""
    return ProfileResponse(
        id=profile["id"],
        nickname=profile["nickname"],
        email=profile["email"],
        role=profile["role"],
        created_at=profile.get("created_at"),
    )


@router.post("/register", response_model=ProfileResponse)
async def register(
    data: ProfileRegister,
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Register a new profile.
    New profiles always start with the user role.
    """
    if len(data.password) < 8:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Password must be at least 8 characters",
        )
    profile = profiles.create_profile(data.nickname, data.email, hash_password(data.password))
    return profile_to_response(profile)


@router.post("/login", response_model=Token)
async def login(credentials: ProfileLogin, db: Database = Depends(get_db)):
    """
    Authenticate by nickname and return a JWT token.
    """
    profile = db.get_profile_by_nickname(credentials.nickname.strip().lower())
    if not profile or not verify_password(credentials.password, profile["password_hash"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid nickname or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Token(access_token=create_access_token(profile))


@router.get("/me", response_model=ProfileResponse)
async def get_current_profile(current_user: dict = Depends(get_current_user)):
    """
    Get the signed-in profile.
    """
    return profile_to_response(current_user)


@router.get("/nickname-available", response_model=NicknameAvailability)
async def nickname_available(
    nickname: str = Query(..., min_length=1),
    current_user: Optional[dict] = Depends(get_current_user_optional),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Check whether a nickname is free. Your own nickname counts as free."""
    exclude_id = current_user["id"] if current_user else None
    return NicknameAvailability(
        nickname=nickname.strip().lower(),
        available=profiles.is_nickname_available(nickname, exclude_id=exclude_id),
    )


@router.post("/logout")
async def logout(current_user: dict = Depends(get_current_user)):
    """
    Logout the current profile.
    Tokens are stateless, so the client just discards its token.
    """
    return {"message": "Successfully logged out"}

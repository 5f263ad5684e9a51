"""
Authentication utilities

Password hashing and JWT token management for profile sign-in.
"""

import base64
import hashlib
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from toolshelf.config import load_config

# Configuration
SECRET_KEY = os.environ.get("TOOLSHELF_SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(load_config()["auth"]["token_expire_minutes"])

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Token(BaseModel):
    """Token response model."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Token payload data."""
    profile_id: Optional[int] = None
    nickname: Optional[str] = None


def _prepare_password(password: str) -> str:
    """Pre-hash password if longer than bcrypt's 72-byte limit."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        # SHA-256 hash and base64 encode to stay under 72 bytes
        return base64.b64encode(hashlib.sha256(password_bytes).digest()).decode("ascii")
    return password


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(_prepare_password(password))


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash. Profiles without a password never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(_prepare_password(plain_password), hashed_password)


def create_access_token(profile: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for a profile."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(profile["id"]),  # JWT requires a string subject
        "nickname": profile["nickname"],
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT access token."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            return None
        return TokenData(profile_id=int(sub), nickname=payload.get("nickname"))
    except (JWTError, ValueError):
        return None

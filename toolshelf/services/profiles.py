"""
Profile Service

Maps authenticated identities to nicknames, emails and roles.
"""

import logging
import re
import sqlite3
from typing import Optional

from toolshelf.database import Database
from toolshelf.errors import (
    AuthenticationRequired,
    InsufficientPermission,
    NotFound,
    ProfileLookupFailed,
    ValidationError,
)
from toolshelf.models import Role

logger = logging.getLogger(__name__)

NICKNAME_PATTERN = re.compile(r"^[a-z0-9_][a-z0-9_.-]{1,31}$")


def normalize_nickname(nickname: str) -> str:
    return nickname.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


class ProfileService:
    """Profile and role lookups."""

    def __init__(self, db: Database):
        self.db = db

    def create_profile(self, nickname: str, email: str, password_hash: str = None) -> dict:
        """Create a profile with the default user role.

        Raises:
            ValidationError: nickname is malformed, or nickname / email is taken.
        """
        nickname = normalize_nickname(nickname)
        email = normalize_email(email)

        if not NICKNAME_PATTERN.match(nickname):
            raise ValidationError(
                "Nickname must be 2-32 characters of letters, digits, '_', '.' or '-'",
                field="nickname",
            )
        if not self.is_nickname_available(nickname):
            raise ValidationError("Nickname already registered", field="nickname")
        if self.db.get_profile_by_email(email):
            raise ValidationError("Email already registered", field="email")

        try:
            profile_id = self.db.create_profile(nickname, email, password_hash, Role.USER.value)
        except sqlite3.IntegrityError:
            raise ValidationError("Nickname or email already registered")
        logger.info("Created profile %s (%s)", profile_id, nickname)
        return self.db.get_profile(profile_id)

    def get_profile(self, profile_id: int) -> Optional[dict]:
        return self.db.get_profile(profile_id)

    def get_role(self, actor_id: Optional[int]) -> Role:
        """Resolve an actor's role.

        Never falls back to ``Role.USER``: a missing or unreadable profile is
        an error, not an unprivileged user.

        Raises:
            AuthenticationRequired: actor_id is None.
            ProfileLookupFailed: profile missing, unreadable, or has an unknown role.
        """
        if actor_id is None:
            raise AuthenticationRequired()

        try:
            profile = self.db.get_profile(actor_id)
        except sqlite3.Error as e:
            raise ProfileLookupFailed(f"Could not load profile {actor_id}: {e}") from e

        if profile is None:
            raise ProfileLookupFailed(f"No profile for user {actor_id}")

        try:
            return Role(profile["role"])
        except ValueError:
            raise ProfileLookupFailed(f"Profile {actor_id} has unknown role '{profile['role']}'")

    def is_nickname_available(self, nickname: str, exclude_id: int = None) -> bool:
        profile = self.db.get_profile_by_nickname(normalize_nickname(nickname))
        return profile is None or profile["id"] == exclude_id

    def set_role(self, admin_id: Optional[int], profile_id: int, role: "Role | str") -> dict:
        """Change another profile's role. Admin only."""
        if self.get_role(admin_id) != Role.ADMIN:
            raise InsufficientPermission("Only admins can change roles")

        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role '{role}'", field="role")

        if not self.db.update_profile_role(profile_id, role.value):
            raise NotFound(f"Profile {profile_id} not found")

        logger.info("Admin %s set role of profile %s to %s", admin_id, profile_id, role.value)
        return self.db.get_profile(profile_id)

    def list_profiles(self, admin_id: Optional[int]) -> list[dict]:
        if self.get_role(admin_id) != Role.ADMIN:
            raise InsufficientPermission("Only admins can list users")
        return self.db.list_profiles()

    def get_user_stats(self) -> dict:
        """Counts of profiles by role."""
        counts = self.db.count_profiles_by_role()
        return {
            "total": sum(counts.values()),
            "admins": counts["admin"],
            "reviewers": counts["reviewer"],
            "users": counts["user"],
        }

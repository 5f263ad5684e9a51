"""
Category Service

Registry of tool categories.
"""

import re
import sqlite3
from typing import Optional

from toolshelf.database import Database
from toolshelf.errors import InsufficientPermission, NotFound, ValidationError
from toolshelf.services.profiles import ProfileService
from toolshelf.models import Role

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class CategoryService:
    """Category lookups and admin maintenance."""

    def __init__(self, db: Database, profiles: ProfileService = None):
        self.db = db
        self.profiles = profiles or ProfileService(db)

    def list_homepage(self) -> list[dict]:
        """Active categories shown on the homepage, in display order."""
        return self.db.list_categories(active_only=True, homepage_only=True)

    def list_all(self) -> list[dict]:
        """Every category, including inactive ones."""
        return self.db.list_categories()

    def get_by_slug(self, slug: str) -> Optional[dict]:
        """Get an active category by slug."""
        category = self.db.get_category_by_slug(slug)
        if category is None or not category["is_active"]:
            return None
        return category

    def create(self, admin_id: Optional[int], slug: str, name: str, **fields) -> dict:
        self._require_admin(admin_id)
        if not SLUG_PATTERN.match(slug or ""):
            raise ValidationError("Slug must be lowercase letters, digits and hyphens", field="slug")
        if not (name or "").strip():
            raise ValidationError("Category name is required", field="name")
        self._check_parent(fields.get("parent_id"))

        try:
            category_id = self.db.add_category(slug, name.strip(), created_by=admin_id, **fields)
        except sqlite3.IntegrityError:
            raise ValidationError(f"Category slug '{slug}' already exists", field="slug")
        return self.db.get_category(category_id)

    def update(self, admin_id: Optional[int], category_id: int, **fields) -> dict:
        self._require_admin(admin_id)
        if "slug" in fields and not SLUG_PATTERN.match(fields["slug"] or ""):
            raise ValidationError("Slug must be lowercase letters, digits and hyphens", field="slug")
        if fields.get("parent_id") == category_id:
            raise ValidationError("A category cannot be its own parent", field="parent_id")
        self._check_parent(fields.get("parent_id"))

        if self.db.get_category(category_id) is None:
            raise NotFound(f"Category {category_id} not found")
        try:
            self.db.update_category(category_id, **fields)
        except sqlite3.IntegrityError:
            raise ValidationError(f"Category slug '{fields.get('slug')}' already exists", field="slug")
        return self.db.get_category(category_id)

    def _check_parent(self, parent_id: Optional[int]):
        if parent_id is not None and self.db.get_category(parent_id) is None:
            raise ValidationError(f"Parent category {parent_id} not found", field="parent_id")

    def _require_admin(self, actor_id: Optional[int]):
        if self.profiles.get_role(actor_id) != Role.ADMIN:
            raise InsufficientPermission("Only admins can manage categories")

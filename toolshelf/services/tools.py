"""
Tool Catalog

Read side of the published tool directory.
"""

from typing import Optional

from toolshelf.database import Database
from toolshelf.errors import NotFound


class ToolCatalog:
    """Published tool listings and engagement counters."""

    def __init__(self, db: Database):
        self.db = db

    def list_published(self, category_slug: str = None, search: str = None,
                       limit: int = 50, offset: int = 0) -> dict:
        """List published tools, optionally within one category."""
        category_id = None
        if category_slug:
            category = self.db.get_category_by_slug(category_slug)
            if category is None:
                raise NotFound(f"Category '{category_slug}' not found")
            category_id = category["id"]

        tools, total = self.db.list_published_tools(
            category_id=category_id, search=search, limit=limit, offset=offset
        )
        return {"tools": tools, "total": total, "limit": limit, "offset": offset}

    def get_by_slug(self, slug: str, record_view: bool = False) -> Optional[dict]:
        tool = self.db.get_tool_by_slug(slug)
        if tool is None or tool["status"] != "published" or not tool["is_active"]:
            return None
        if record_view:
            self.db.increment_tool_counter(tool["id"], "view_count")
            tool["view_count"] += 1
        return tool

    def record_click(self, slug: str) -> str:
        """Count an outbound click and return the tool's website URL."""
        tool = self.get_by_slug(slug)
        if tool is None:
            raise NotFound(f"Tool '{slug}' not found")
        self.db.increment_tool_counter(tool["id"], "click_count")
        return tool["website_url"]

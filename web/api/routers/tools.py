"""
Tools Router

The published tool directory.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from toolshelf.services import ToolCatalog
from web.api.deps import get_tool_catalog

router = APIRouter()


@router.get("")
async def list_tools(
    category: Optional[str] = Query(None, description="Category slug"),
    search: Optional[str] = Query(None, description="Search in name and description"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    catalog: ToolCatalog = Depends(get_tool_catalog),
):
    """List published tools, featured first then newest."""
    return catalog.list_published(
        category_slug=category, search=search, limit=limit, offset=offset
    )


@router.get("/{slug}")
async def get_tool(slug: str, catalog: ToolCatalog = Depends(get_tool_catalog)):
    """Get a published tool. Counts as a view."""
    tool = catalog.get_by_slug(slug, record_view=True)
    if tool is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    return tool


@router.post("/{slug}/click")
async def record_click(slug: str, catalog: ToolCatalog = Depends(get_tool_catalog)):
    """Count an outbound click and return where to send the visitor."""
    return {"website_url": catalog.record_click(slug)}

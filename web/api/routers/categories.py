"""
Categories Router

Public category listings and admin maintenance.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from toolshelf.services import CategoryService
from web.api.deps import get_category_service, get_current_user, require_admin

router = APIRouter()


class CategoryCreate(BaseModel):
    slug: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    is_active: bool = True
    show_on_homepage: bool = True


class CategoryUpdate(BaseModel):
    slug: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    show_on_homepage: Optional[bool] = None


@router.get("")
async def list_categories(service: CategoryService = Depends(get_category_service)):
    """Active homepage categories in display order."""
    return {"categories": service.list_homepage()}


@router.get("/all")
async def list_all_categories(
    current_user: dict = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    """Every category, including inactive ones."""
    return {"categories": service.list_all()}


@router.get("/{slug}")
async def get_category(slug: str, service: CategoryService = Depends(get_category_service)):
    category = service.get_by_slug(slug)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("")
async def create_category(
    data: CategoryCreate,
    current_user: dict = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    fields = data.model_dump(exclude={"slug", "name"})
    fields["is_active"] = int(fields["is_active"])
    fields["show_on_homepage"] = int(fields["show_on_homepage"])
    return service.create(current_user["id"], data.slug, data.name, **fields)


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: dict = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    fields = data.model_dump(exclude_unset=True)
    for flag in ("is_active", "show_on_homepage"):
        if fields.get(flag) is not None:
            fields[flag] = int(fields[flag])
    return service.update(current_user["id"], category_id, **fields)

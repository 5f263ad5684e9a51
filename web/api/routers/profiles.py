"""
Profiles Router

Admin management of profiles and roles.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from toolshelf.services import ProfileService
from web.api.deps import get_current_user, get_profile_service, require_admin

router = APIRouter()


class RoleUpdate(BaseModel):
    role: str


@router.get("")
async def list_profiles(
    current_user: dict = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    return {"profiles": profiles.list_profiles(current_user["id"])}


@router.get("/stats")
async def profile_stats(
    current_user: dict = Depends(require_admin),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Profile counts by role."""
    return profiles.get_user_stats()


@router.put("/{profile_id}/role")
async def set_role(
    profile_id: int,
    data: RoleUpdate,
    current_user: dict = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Change a profile's role. Admin only."""
    profile = profiles.set_role(current_user["id"], profile_id, data.role)
    return {
        "id": profile["id"],
        "nickname": profile["nickname"],
        "role": profile["role"],
    }

"""
Stats Router

Directory-wide statistics for the admin dashboard.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from toolshelf.database import Database
from web.api.deps import get_db, require_staff


router = APIRouter()


class DirectoryStats(BaseModel):
    """Directory statistics response."""
    submitted: int
    reviewing: int
    changes_requested: int
    approved: int
    rejected: int
    withdrawn: int
    total_submissions: int
    published_tools: int
    active_categories: int
    total_profiles: int


@router.get("/stats", response_model=DirectoryStats)
async def get_stats(
    current_user: dict = Depends(require_staff),
    db: Database = Depends(get_db),
):
    """Get directory statistics for the dashboard."""
    stats = db.get_directory_stats()
    by_status = stats["submissions_by_status"]

    return DirectoryStats(
        submitted=by_status["submitted"],
        reviewing=by_status["reviewing"],
        changes_requested=by_status["changes_requested"],
        approved=by_status["approved"],
        rejected=by_status["rejected"],
        withdrawn=by_status["withdrawn"],
        total_submissions=stats["total_submissions"],
        published_tools=stats["published_tools"],
        active_categories=stats["active_categories"],
        total_profiles=stats["total_profiles"],
    )

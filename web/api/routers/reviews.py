"""
Reviews Router

Review queue, review decisions and publication maintenance.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from toolshelf.services import PublicationSync, SubmissionService
from toolshelf.services.submissions import is_reviewable
from web.api.deps import (
    get_current_user,
    get_publication_sync,
    get_submission_service,
    require_admin,
    require_staff,
)

router = APIRouter()


class ReviewRequest(BaseModel):
    """Review decision request."""
    action: str
    notes: Optional[str] = None


@router.get("/pending")
async def list_pending(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_staff),
    service: SubmissionService = Depends(get_submission_service),
):
    """The review queue, highest priority first then oldest first."""
    pending = service.list_pending_submissions(limit=limit, offset=offset)
    items = []
    for submission in pending:
        item = asdict(submission)
        item["can_review"] = is_reviewable(submission.status)
        items.append(item)
    return {"submissions": items, "limit": limit, "offset": offset}


@router.get("/stats")
async def review_stats(
    current_user: dict = Depends(require_staff),
    service: SubmissionService = Depends(get_submission_service),
):
    """Counters for the review dashboard."""
    return asdict(service.get_review_stats())


@router.post("/sync")
async def sync_all(
    current_user: dict = Depends(require_admin),
    publisher: PublicationSync = Depends(get_publication_sync),
):
    """Publish every approved submission that has no tool yet."""
    report = publisher.sync_all()
    return {
        "synced": report.synced,
        "failed": report.failed,
        "total": report.total,
    }


@router.post("/recount")
async def recount_categories(
    current_user: dict = Depends(require_admin),
    publisher: PublicationSync = Depends(get_publication_sync),
):
    """Recompute every category's published tool count."""
    changes = publisher.recount_categories()
    return {
        "categories": {
            slug: {"previous": old, "current": new}
            for slug, (old, new) in changes.items()
        }
    }


@router.post("/{submission_id}")
async def review_submission(
    submission_id: int,
    data: ReviewRequest,
    current_user: dict = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Apply a review action: start_review, approve, reject or request_changes.
    Approving publishes the tool.
    """
    result = service.review_submission(
        submission_id, data.action, data.notes, current_user["id"]
    )
    return asdict(result)


@router.post("/{submission_id}/sync")
async def sync_submission(
    submission_id: int,
    current_user: dict = Depends(require_staff),
    publisher: PublicationSync = Depends(get_publication_sync),
):
    """Retry publishing an approved submission."""
    tool_id = publisher.sync_submission(submission_id)
    return {"submission_id": submission_id, "tool_id": tool_id}

"""
Submissions Router

Submitting tools and following your own submissions through review.
"""

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from toolshelf.models import SubmissionPayload
from toolshelf.services import SubmissionService
from web.api.deps import get_current_user, get_submission_service

router = APIRouter()


class SubmissionCreate(BaseModel):
    """Tool submission request."""
    tool_name: str
    tool_description: str
    tool_website_url: str
    category_id: int
    tool_content: Optional[str] = None
    tool_logo_url: Optional[str] = None
    tool_screenshots: list[str] = Field(default_factory=list)
    tool_tags: list[str] = Field(default_factory=list)
    tool_type: str = "free"
    pricing_info: dict[str, Any] = Field(default_factory=dict)
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None
    submission_notes: Optional[str] = None
    review_priority: int = 3
    parent_submission_id: Optional[int] = None


class WithdrawRequest(BaseModel):
    notes: Optional[str] = None


@router.post("")
async def create_submission(
    data: SubmissionCreate,
    current_user: dict = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Submit a tool. Staff submissions are approved and published right away.
    """
    payload = SubmissionPayload(**data.model_dump())
    if payload.submitter_name is None:
        payload.submitter_name = current_user["nickname"]
    if payload.submitter_email is None:
        payload.submitter_email = current_user["email"]

    result = service.submit_tool(payload, current_user["id"])
    return asdict(result)


@router.get("/mine")
async def list_my_submissions(
    current_user: dict = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """The signed-in profile's submissions, newest first."""
    submissions = service.list_user_submissions(current_user["id"])
    return {"submissions": [asdict(s) for s in submissions]}


@router.get("/{submission_id}")
async def get_submission(
    submission_id: int,
    current_user: dict = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """A submission with its review history. Owner or staff only."""
    return service.get_submission(submission_id, current_user["id"])


@router.post("/{submission_id}/withdraw")
async def withdraw_submission(
    submission_id: int,
    data: Optional[WithdrawRequest] = None,
    current_user: dict = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """Withdraw your own submission while it is still pending."""
    notes = data.notes if data else None
    result = service.withdraw_submission(submission_id, current_user["id"], notes)
    return asdict(result)

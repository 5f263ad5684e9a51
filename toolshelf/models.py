"""
Toolshelf Models

Enums and plain data containers shared by the services, CLI and web API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    REVIEWER = "reviewer"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (Role.REVIEWER, Role.ADMIN)


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"
    CHANGES_REQUESTED = "changes_requested"
    WITHDRAWN = "withdrawn"


class ReviewAction(str, Enum):
    SUBMIT = "submit"
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    WITHDRAW = "withdraw"


class ToolType(str, Enum):
    FREE = "free"
    FREEMIUM = "freemium"
    PAID = "paid"


@dataclass
class SubmissionPayload:
    """Content of a new or edited tool proposal."""
    tool_name: str
    tool_description: str
    tool_website_url: str
    category_id: int
    tool_content: Optional[str] = None
    tool_logo_url: Optional[str] = None
    tool_screenshots: list[str] = field(default_factory=list)
    tool_tags: list[str] = field(default_factory=list)
    tool_type: str = ToolType.FREE.value
    pricing_info: dict = field(default_factory=dict)
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None
    submission_notes: Optional[str] = None
    review_priority: int = 3
    parent_submission_id: Optional[int] = None


@dataclass
class SubmissionResult:
    """Outcome of submitting a tool."""
    submission_id: int
    status: SubmissionStatus
    user_role: Role
    auto_approved: bool
    version: int
    message: str
    tool_id: Optional[int] = None


@dataclass
class ReviewResult:
    """Outcome of a review action."""
    submission_id: int
    previous_status: SubmissionStatus
    new_status: SubmissionStatus
    reviewer_role: Role
    message: str
    tool_id: Optional[int] = None


@dataclass
class PendingSubmission:
    """A submission waiting in the review queue."""
    submission_id: int
    tool_name: str
    tool_description: str
    tool_website_url: str
    category_name: str
    submitter_name: str
    submitter_email: str
    submitted_at: str
    status: SubmissionStatus
    review_priority: int
    version: int


@dataclass
class UserSubmission:
    """A submission as seen by the user who made it."""
    submission_id: int
    tool_name: str
    tool_description: str
    category_name: str
    status: SubmissionStatus
    submitted_at: str
    auto_approved: bool
    version: int
    reviewed_at: Optional[str] = None
    review_notes: Optional[str] = None
    tool_slug: Optional[str] = None


@dataclass
class ReviewStats:
    """Review queue statistics for the admin dashboard."""
    pending_count: int
    approved_today: int
    rejected_today: int
    changes_requested_count: int
    avg_review_time_hours: Optional[float] = None


@dataclass
class SyncReport:
    """Result of a batch publication sync."""
    synced: dict[int, int] = field(default_factory=dict)  # submission_id -> tool_id
    failed: dict[int, str] = field(default_factory=dict)  # submission_id -> error

    @property
    def total(self) -> int:
        return len(self.synced) + len(self.failed)

"""
Submission Service

Tool submission intake and the review workflow: who can submit, who can
review, what each action does to a submission, and when a tool gets published.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from toolshelf.database import Database, utc_now, utc_today
from toolshelf.errors import (
    AuthenticationRequired,
    InsufficientPermission,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from toolshelf.models import (
    PendingSubmission,
    ReviewAction,
    ReviewResult,
    ReviewStats,
    Role,
    SubmissionPayload,
    SubmissionResult,
    SubmissionStatus,
    ToolType,
    UserSubmission,
)
from toolshelf.review.state_machine import (
    REVIEWABLE_STATUSES,
    Transition,
    initial_status,
    intake_action,
    intake_message,
    parse_action,
    plan_review,
    plan_withdrawal,
)
from toolshelf.services.audit import BestEffortReviewLog
from toolshelf.services.profiles import ProfileService
from toolshelf.services.publication import PublicationSync

logger = logging.getLogger(__name__)

PENDING_STATUSES = (
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.REVIEWING,
    SubmissionStatus.CHANGES_REQUESTED,
)

# The dashboard's "pending" counter only counts submissions a reviewer can act on now
AWAITING_REVIEW_STATUSES = (
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.REVIEWING,
)


def validate_payload(payload: SubmissionPayload):
    """Check a submission's content fields.

    Raises:
        ValidationError: on the first missing or malformed field.
    """
    for field_name in ("tool_name", "tool_description", "tool_website_url"):
        value = getattr(payload, field_name)
        if value is None or not str(value).strip():
            raise ValidationError(f"{field_name.replace('_', ' ')} is required", field=field_name)

    parsed = urlparse(payload.tool_website_url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Website URL must be an http(s) URL", field="tool_website_url")

    if payload.category_id is None:
        raise ValidationError("category is required", field="category_id")

    try:
        ToolType(payload.tool_type)
    except ValueError:
        valid = ", ".join(t.value for t in ToolType)
        raise ValidationError(f"Pricing type must be one of: {valid}", field="tool_type")

    if not 1 <= payload.review_priority <= 5:
        raise ValidationError("Review priority must be between 1 and 5", field="review_priority")


class SubmissionService:
    """Submission intake and review.

    Collaborators are passed in explicitly; anything not given is built on
    the same database.
    """

    def __init__(self, db: Database, profiles: ProfileService = None,
                 publisher: PublicationSync = None,
                 review_log: BestEffortReviewLog = None):
        self.db = db
        self.profiles = profiles or ProfileService(db)
        self.publisher = publisher or PublicationSync(db)
        self.review_log = review_log or BestEffortReviewLog(db)

    # --- Intake ---

    def submit_tool(self, payload: SubmissionPayload, actor_id: Optional[int]) -> SubmissionResult:
        """Submit a new tool, or a new version of an earlier submission.

        Reviewers and admins are auto-approved and their tool is published
        before this returns. Everyone else lands in the review queue.

        Args:
            payload: Tool content. Set ``parent_submission_id`` to resubmit.
            actor_id: Profile ID of the authenticated submitter.

        Raises:
            AuthenticationRequired: no actor.
            ProfileLookupFailed: the actor's role could not be resolved.
            ValidationError: bad content or unknown category.
            NotFound: the parent submission doesn't exist.
            InsufficientPermission: resubmitting someone else's submission.
            InvalidTransition: the parent is no longer the latest version.
            SyncFailed: auto-approved but publishing failed (the submission
                stays approved and can be synced again).
        """
        if actor_id is None:
            raise AuthenticationRequired()

        validate_payload(payload)
        role = self.profiles.get_role(actor_id)

        if self.db.get_category(payload.category_id) is None:
            raise ValidationError(f"Category {payload.category_id} not found", field="category_id")

        if payload.parent_submission_id is not None:
            self._check_resubmission(payload.parent_submission_id, actor_id, role)

        status = initial_status(role)
        auto_approved = status == SubmissionStatus.APPROVED
        now = utc_now()

        fields = {
            "tool_name": payload.tool_name.strip(),
            "tool_description": payload.tool_description.strip(),
            "tool_content": payload.tool_content,
            "tool_website_url": payload.tool_website_url.strip(),
            "tool_logo_url": payload.tool_logo_url,
            "tool_screenshots": payload.tool_screenshots or [],
            "tool_tags": payload.tool_tags or [],
            "tool_type": payload.tool_type,
            "pricing_info": payload.pricing_info or {},
            "category_id": payload.category_id,
            "submitter_name": payload.submitter_name,
            "submitter_email": payload.submitter_email,
            "submission_notes": payload.submission_notes,
            "review_priority": payload.review_priority,
            "status": status.value,
            "submitted_by": actor_id,
            "submitted_at": now,
            "reviewed_by": actor_id if auto_approved else None,
            "review_completed_at": now if auto_approved else None,
            "auto_approved": int(auto_approved),
        }

        submission_id = self.db.insert_submission(fields, payload.parent_submission_id)
        if submission_id is None:
            raise InvalidTransition(
                f"Submission {payload.parent_submission_id} is no longer the latest version"
            )

        self.review_log.record(
            submission_id,
            Transition(
                action=intake_action(role),
                previous_status=SubmissionStatus.DRAFT,
                new_status=status,
                notes="Auto-approved staff submission" if auto_approved else payload.submission_notes,
                message=intake_message(role),
            ),
            actor_id,
        )

        logger.info(
            "Submission %s created by %s (%s) with status %s",
            submission_id, actor_id, role.value, status.value,
        )

        tool_id = None
        if auto_approved:
            tool_id = self.publisher.sync_submission(submission_id)

        submission = self.db.get_submission(submission_id)
        return SubmissionResult(
            submission_id=submission_id,
            status=status,
            user_role=role,
            auto_approved=auto_approved,
            version=submission["version"],
            message=intake_message(role),
            tool_id=tool_id,
        )

    def _check_resubmission(self, parent_id: int, actor_id: int, role: Role):
        parent = self.db.get_submission(parent_id)
        if parent is None:
            raise NotFound(f"Submission {parent_id} not found")
        if parent["submitted_by"] != actor_id and not role.is_staff:
            raise InsufficientPermission("You can only resubmit your own submissions")
        if not parent["is_latest_version"]:
            raise InvalidTransition(f"Submission {parent_id} is no longer the latest version")

    # --- Review ---

    def review_submission(self, submission_id: int, action: "ReviewAction | str",
                          notes: Optional[str], actor_id: Optional[int]) -> ReviewResult:
        """Apply a reviewer's action to a submission.

        The status guard and the status write are one conditional update, so
        if another reviewer got there first this fails with InvalidTransition
        instead of applying both decisions.

        Raises:
            AuthenticationRequired, ProfileLookupFailed, InsufficientPermission,
            NotFound, InvalidTransition, ValidationError, SyncFailed
        """
        if actor_id is None:
            raise AuthenticationRequired()

        role = self.profiles.get_role(actor_id)
        if not role.is_staff:
            raise InsufficientPermission("Only reviewers and admins can review submissions")

        action = parse_action(action)
        submission = self.db.get_submission(submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")

        if not submission["is_latest_version"]:
            raise InvalidTransition(
                f"Submission {submission_id} has been superseded by a newer version"
            )

        current = SubmissionStatus(submission["status"])
        transition = plan_review(current, action, role, notes)
        self._apply(submission_id, transition, actor_id, record_reviewer=True)

        tool_id = None
        if transition.publishes:
            tool_id = self.publisher.sync_submission(submission_id)

        return ReviewResult(
            submission_id=submission_id,
            previous_status=transition.previous_status,
            new_status=transition.new_status,
            reviewer_role=role,
            message=transition.message,
            tool_id=tool_id,
        )

    def withdraw_submission(self, submission_id: int, actor_id: Optional[int],
                            notes: Optional[str] = None) -> ReviewResult:
        """Let a submitter pull their own submission out of the review queue."""
        if actor_id is None:
            raise AuthenticationRequired()

        role = self.profiles.get_role(actor_id)
        submission = self.db.get_submission(submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")

        current = SubmissionStatus(submission["status"])
        transition = plan_withdrawal(current, submission["submitted_by"] == actor_id, notes)
        self._apply(submission_id, transition, actor_id, record_reviewer=False)

        return ReviewResult(
            submission_id=submission_id,
            previous_status=transition.previous_status,
            new_status=transition.new_status,
            reviewer_role=role,
            message=transition.message,
        )

    def _apply(self, submission_id: int, transition: Transition, actor_id: int,
               record_reviewer: bool):
        """Commit a transition, then log it."""
        updated = self.db.update_submission_status(
            submission_id,
            expected_status=transition.previous_status.value,
            new_status=transition.new_status.value,
            reviewed_by=actor_id if record_reviewer else None,
            review_notes=transition.notes if record_reviewer else None,
            mark_started=transition.starts_review and record_reviewer,
            mark_completed=transition.is_terminal,
            replace_notes=record_reviewer,
            latest_only=record_reviewer,
        )
        if not updated:
            raise InvalidTransition(
                f"Submission {submission_id} changed while you were reviewing it "
                f"(it is no longer {transition.previous_status.value})"
            )

        logger.info(
            "Submission %s: %s -> %s by %s",
            submission_id, transition.previous_status.value,
            transition.new_status.value, actor_id,
        )
        self.review_log.record(submission_id, transition, actor_id)

    # --- Queries ---

    def get_submission(self, submission_id: int, actor_id: Optional[int]) -> dict:
        """Get a submission with its review history. Owner or staff only."""
        if actor_id is None:
            raise AuthenticationRequired()

        role = self.profiles.get_role(actor_id)
        submission = self.db.get_submission(submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")
        if submission["submitted_by"] != actor_id and not role.is_staff:
            raise InsufficientPermission("You can only view your own submissions")

        submission["auto_approved"] = bool(submission["auto_approved"])
        submission["is_latest_version"] = bool(submission["is_latest_version"])
        submission["history"] = self.get_review_history(submission_id)
        return submission

    def get_review_history(self, submission_id: int) -> list[dict]:
        """Review log entries for a submission, oldest first."""
        return self.db.get_review_history(submission_id)

    def list_pending_submissions(self, limit: int = 20, offset: int = 0) -> list[PendingSubmission]:
        """The review queue: highest priority first, then oldest first."""
        rows = self.db.get_pending_submissions(
            [s.value for s in PENDING_STATUSES], limit=limit, offset=offset
        )
        return [
            PendingSubmission(
                submission_id=row["id"],
                tool_name=row["tool_name"],
                tool_description=row["tool_description"],
                tool_website_url=row["tool_website_url"],
                category_name=row["category_name"] or "",
                submitter_name=row["submitter_name"],
                submitter_email=row["submitter_email"],
                submitted_at=row["submitted_at"] or "",
                status=SubmissionStatus(row["status"]),
                review_priority=row["review_priority"] or 3,
                version=row["version"],
            )
            for row in rows
        ]

    def list_user_submissions(self, actor_id: Optional[int]) -> list[UserSubmission]:
        """A user's own submissions, newest first, latest version of each."""
        if actor_id is None:
            raise AuthenticationRequired()

        return [
            UserSubmission(
                submission_id=row["id"],
                tool_name=row["tool_name"],
                tool_description=row["tool_description"],
                category_name=row["category_name"] or "",
                status=SubmissionStatus(row["status"]),
                submitted_at=row["submitted_at"] or "",
                auto_approved=bool(row["auto_approved"]),
                version=row["version"],
                reviewed_at=row["review_completed_at"],
                review_notes=row["review_notes"],
                tool_slug=row["tool_slug"],
            )
            for row in self.db.get_user_submissions(actor_id)
        ]

    def get_review_stats(self) -> ReviewStats:
        """Counters for the review dashboard."""
        today = utc_today()
        return ReviewStats(
            pending_count=self.db.count_submissions(
                [s.value for s in AWAITING_REVIEW_STATUSES]
            ),
            approved_today=self.db.count_submissions(
                [SubmissionStatus.APPROVED.value], completed_since=today
            ),
            rejected_today=self.db.count_submissions(
                [SubmissionStatus.REJECTED.value], completed_since=today
            ),
            changes_requested_count=self.db.count_submissions(
                [SubmissionStatus.CHANGES_REQUESTED.value]
            ),
            avg_review_time_hours=self.db.get_average_review_hours(),
        )


def is_reviewable(status: "SubmissionStatus | str") -> bool:
    """Whether a reviewer can still act on a submission in this status."""
    return SubmissionStatus(status) in REVIEWABLE_STATUSES

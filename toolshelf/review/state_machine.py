"""
Review State Machine

Pure decision logic for submission status changes. Nothing here touches the
database: callers pass in the current status and the actor's role, and get
back a ``Transition`` describing what to write.
"""

from dataclasses import dataclass
from typing import Optional

from toolshelf.errors import InsufficientPermission, InvalidTransition, ValidationError
from toolshelf.models import ReviewAction, Role, SubmissionStatus


# Statuses from which further review actions are allowed
REVIEWABLE_STATUSES = frozenset({
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.REVIEWING,
    SubmissionStatus.CHANGES_REQUESTED,
})

TERMINAL_STATUSES = frozenset({
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED,
})

# Every action maps to the status it produces and who may perform it.
# "staff" = reviewer or admin, "submitter" = owner of the submission.
ACTION_TABLE: dict[ReviewAction, tuple[SubmissionStatus, str]] = {
    ReviewAction.SUBMIT: (SubmissionStatus.SUBMITTED, "submitter"),
    ReviewAction.START_REVIEW: (SubmissionStatus.REVIEWING, "staff"),
    ReviewAction.APPROVE: (SubmissionStatus.APPROVED, "staff"),
    ReviewAction.REJECT: (SubmissionStatus.REJECTED, "staff"),
    ReviewAction.REQUEST_CHANGES: (SubmissionStatus.CHANGES_REQUESTED, "staff"),
    ReviewAction.WITHDRAW: (SubmissionStatus.WITHDRAWN, "submitter"),
}

REVIEW_ACTIONS = frozenset(
    action for action, (_, actor) in ACTION_TABLE.items() if actor == "staff"
)

# Actions that must explain themselves to the submitter
NOTES_REQUIRED = frozenset({ReviewAction.REJECT, ReviewAction.REQUEST_CHANGES})

STATUS_MESSAGES: dict[SubmissionStatus, str] = {
    SubmissionStatus.DRAFT: "Draft saved",
    SubmissionStatus.SUBMITTED: "Submitted, waiting for a reviewer",
    SubmissionStatus.REVIEWING: "Review started",
    SubmissionStatus.APPROVED: "Approved, the tool is published",
    SubmissionStatus.REJECTED: "Submission rejected",
    SubmissionStatus.CHANGES_REQUESTED: "Changes requested, the submission needs revision",
    SubmissionStatus.WITHDRAWN: "Submission withdrawn",
}

AUTO_APPROVED_MESSAGE = "Submitted and auto-approved, the tool is published"


@dataclass(frozen=True)
class Transition:
    """A validated status change, ready to be written."""
    action: ReviewAction
    previous_status: SubmissionStatus
    new_status: SubmissionStatus
    notes: Optional[str]
    message: str

    @property
    def is_terminal(self) -> bool:
        return self.new_status in TERMINAL_STATUSES

    @property
    def starts_review(self) -> bool:
        return self.previous_status == SubmissionStatus.SUBMITTED

    @property
    def publishes(self) -> bool:
        return self.new_status == SubmissionStatus.APPROVED


def parse_action(action: "str | ReviewAction") -> ReviewAction:
    """Convert a raw action name to a ReviewAction."""
    try:
        return ReviewAction(action)
    except ValueError:
        valid = ", ".join(a.value for a in ReviewAction)
        raise ValidationError(f"Unknown action '{action}'. Must be one of: {valid}", field="action")


def clean_notes(notes: Optional[str]) -> Optional[str]:
    """Trim notes, treating blank text as no notes."""
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


def initial_status(role: Role) -> SubmissionStatus:
    """Status a fresh submission starts in. Staff skip the review queue."""
    if role.is_staff:
        return SubmissionStatus.APPROVED
    return SubmissionStatus.SUBMITTED


def intake_action(role: Role) -> ReviewAction:
    """Action recorded in the review log for a fresh submission."""
    return ReviewAction.APPROVE if role.is_staff else ReviewAction.SUBMIT


def intake_message(role: Role) -> str:
    if role.is_staff:
        return AUTO_APPROVED_MESSAGE
    return STATUS_MESSAGES[SubmissionStatus.SUBMITTED]


def plan_review(current: SubmissionStatus, action: ReviewAction, role: Role,
                notes: Optional[str] = None) -> Transition:
    """Validate a staff review action against the current status.

    Guards are checked in order: role, action, current status, notes.

    Raises:
        InsufficientPermission: role is not reviewer or admin.
        ValidationError: action is not a review action, or notes are missing
            for reject / request_changes.
        InvalidTransition: the submission has left the reviewable states.
    """
    if not role.is_staff:
        raise InsufficientPermission(
            "Only reviewers and admins can review submissions"
        )

    if action not in REVIEW_ACTIONS:
        raise ValidationError(f"'{action.value}' is not a review action", field="action")

    if current not in REVIEWABLE_STATUSES:
        raise InvalidTransition(
            f"Cannot {action.value} a submission that is {current.value}"
        )

    notes = clean_notes(notes)
    if action in NOTES_REQUIRED and notes is None:
        raise ValidationError(
            f"A reason is required to {action.value.replace('_', ' ')}",
            field="notes",
        )

    new_status = ACTION_TABLE[action][0]
    return Transition(
        action=action,
        previous_status=current,
        new_status=new_status,
        notes=notes,
        message=STATUS_MESSAGES[new_status],
    )


def plan_withdrawal(current: SubmissionStatus, is_owner: bool,
                    notes: Optional[str] = None) -> Transition:
    """Validate a submitter pulling their own submission out of review."""
    if not is_owner:
        raise InsufficientPermission("Only the submitter can withdraw a submission")

    if current not in REVIEWABLE_STATUSES:
        raise InvalidTransition(f"Cannot withdraw a submission that is {current.value}")

    return Transition(
        action=ReviewAction.WITHDRAW,
        previous_status=current,
        new_status=SubmissionStatus.WITHDRAWN,
        notes=clean_notes(notes),
        message=STATUS_MESSAGES[SubmissionStatus.WITHDRAWN],
    )

"""
Toolshelf Errors

Exception taxonomy for the submission and review workflow. Each error carries
a stable ``kind`` so the web layer and CLI can tell them apart.
"""

from typing import Optional


class ToolshelfError(Exception):
    """Base class for all workflow errors."""
    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class AuthenticationRequired(ToolshelfError):
    """You must be signed in to do this."""
    kind = "authentication_required"


class ProfileLookupFailed(ToolshelfError):
    """Could not resolve the role of the current user."""
    kind = "profile_lookup_failed"


class InsufficientPermission(ToolshelfError):
    """Your role does not allow this action."""
    kind = "insufficient_permission"


class InvalidTransition(ToolshelfError):
    """The submission is no longer in a state that allows this action."""
    kind = "invalid_transition"


class ValidationError(ToolshelfError):
    """The request is missing or has invalid fields."""
    kind = "validation_error"

    def __init__(self, message: str = "", field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFound(ToolshelfError):
    """The requested record does not exist."""
    kind = "not_found"


class SyncFailed(ToolshelfError):
    """Publishing the approved submission failed."""
    kind = "sync_failed"

    def __init__(self, submission_id: int, message: str = ""):
        super().__init__(message or f"Failed to publish submission {submission_id}")
        self.submission_id = submission_id

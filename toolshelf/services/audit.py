"""
Review Log

Best-effort writer for the submission review history.

The review log is an audit trail, not a ledger: it is written after the
status change has already committed, and a failed write is logged and
dropped rather than undoing the transition. Anything that needs the log to be
transactional must stop using this class and move the write inside the
status update's transaction.
"""

import logging
import sqlite3
from typing import Optional

from toolshelf.database import Database
from toolshelf.review.state_machine import Transition

logger = logging.getLogger(__name__)


class BestEffortReviewLog:
    """Append review entries without ever failing the caller."""

    def __init__(self, db: Database):
        self.db = db

    def record(self, submission_id: int, transition: Transition,
               actor_id: Optional[int]) -> Optional[int]:
        """Append an entry for a committed transition.

        Returns:
            The new entry ID, or None if the write failed.
        """
        try:
            return self.db.add_review_entry(
                submission_id=submission_id,
                action=transition.action.value,
                reviewer_id=actor_id,
                previous_status=transition.previous_status.value,
                new_status=transition.new_status.value,
                notes=transition.notes,
            )
        except sqlite3.Error as e:
            logger.warning(
                "Failed to record review log for submission %s (%s -> %s): %s",
                submission_id, transition.previous_status.value,
                transition.new_status.value, e,
            )
            return None

"""
Publication Sync

Materializes approved submissions as published tools and keeps category
tool counts in step.
"""

import logging
import re
import sqlite3

from toolshelf.database import Database, utc_now
from toolshelf.errors import SyncFailed
from toolshelf.models import SubmissionStatus, SyncReport

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """Turn a tool name into a URL slug."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def tool_fields(submission: dict) -> dict:
    """Copy a submission's content into tool columns."""
    return {
        "name": submission["tool_name"],
        "description": submission["tool_description"],
        "content": submission["tool_content"],
        "website_url": submission["tool_website_url"],
        "logo_url": submission["tool_logo_url"],
        "screenshots": submission["tool_screenshots"],
        "tags": submission["tool_tags"],
        "tool_type": submission["tool_type"],
        "pricing_info": submission["pricing_info"],
        "category_id": submission["category_id"],
        "submitted_by": submission["submitted_by"],
        "reviewed_by": submission["reviewed_by"],
        "reviewed_at": submission["review_completed_at"],
        "review_notes": submission["review_notes"],
    }


class PublicationSync:
    """Keeps the published tool catalog in step with approved submissions."""

    def __init__(self, db: Database):
        self.db = db

    def sync_submission(self, submission_id: int) -> int:
        """Publish an approved submission.

        Idempotent: a submission that already has a tool returns that tool's
        ID without writing anything. Tool creation, the back-reference and
        the category count change happen in one transaction, so a failure
        leaves no orphaned tool behind.

        Returns:
            The published tool's ID.

        Raises:
            SyncFailed: the submission is missing, not approved, or a write failed.
                The submission's status is never changed by a failed sync.
        """
        try:
            with self.db.transaction():
                submission = self.db.get_submission(submission_id)
                if submission is None:
                    raise SyncFailed(submission_id, f"Submission {submission_id} not found")

                if submission["tool_id"] is not None:
                    return submission["tool_id"]

                if submission["status"] != SubmissionStatus.APPROVED.value:
                    raise SyncFailed(
                        submission_id,
                        f"Submission {submission_id} is {submission['status']}, not approved",
                    )

                fields = tool_fields(submission)
                existing_tool_id = self.db.get_lineage_tool_id(
                    submission["lineage_id"], exclude_id=submission_id
                )

                if existing_tool_id is None:
                    tool_id = self._create_tool(submission, fields)
                else:
                    tool_id = self._relink_tool(existing_tool_id, fields)

                if not self.db.link_submission_tool(submission_id, tool_id):
                    raise SyncFailed(
                        submission_id,
                        f"Submission {submission_id} changed while publishing",
                    )

                if existing_tool_id is None:
                    self.db.increment_category_tools_count(submission["category_id"], 1)

        except sqlite3.Error as e:
            logger.exception("Publication sync failed for submission %s", submission_id)
            raise SyncFailed(submission_id, f"Failed to publish submission {submission_id}: {e}") from e

        logger.info("Published submission %s as tool %s", submission_id, tool_id)
        return tool_id

    def _create_tool(self, submission: dict, fields: dict) -> int:
        fields.update({
            "slug": self._unique_slug(submission["tool_name"], submission["id"]),
            "status": "published",
            "published_at": submission["review_completed_at"] or utc_now(),
        })
        return self.db.insert_tool(fields)

    def _relink_tool(self, tool_id: int, fields: dict) -> int:
        """Point a resubmitted lineage at the tool its earlier version published."""
        tool = self.db.get_tool(tool_id)
        old_category_id = tool["category_id"]
        self.db.update_tool(tool_id, fields)

        if old_category_id != fields["category_id"]:
            self.db.increment_category_tools_count(old_category_id, -1)
            self.db.increment_category_tools_count(fields["category_id"], 1)
        return tool_id

    def _unique_slug(self, name: str, submission_id: int) -> str:
        base = slugify(name) or f"tool-{submission_id}"
        slug = base
        suffix = 2
        while self.db.tool_slug_exists(slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def sync_all(self) -> SyncReport:
        """Publish every approved submission that has no tool yet.

        Each submission is synced on its own; a failure is recorded in the
        report and the scan moves on.
        """
        report = SyncReport()
        for submission in self.db.get_unsynced_approved_submissions():
            try:
                report.synced[submission["id"]] = self.sync_submission(submission["id"])
            except SyncFailed as e:
                report.failed[submission["id"]] = e.message

        logger.info(
            "Batch sync complete: %d synced, %d failed",
            len(report.synced), len(report.failed),
        )
        return report

    def recount_categories(self) -> dict[str, tuple[int, int]]:
        """Repair category tool counts from the tools table."""
        changed = self.db.recount_category_tools()
        for slug, (old, new) in changed.items():
            logger.warning("Category %s tools_count drifted: %d -> %d", slug, old, new)
        return changed

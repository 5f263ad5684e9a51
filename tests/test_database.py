"""
Tests for the Toolshelf Database module.
"""

import os
import sqlite3

import pytest

from toolshelf.database import DEFAULT_CATEGORIES, Database


def submission_fields(category_id, **overrides):
    fields = {
        "tool_name": "Alpha",
        "tool_description": "Writes things",
        "tool_website_url": "https://alpha.example.com",
        "category_id": category_id,
        "status": "submitted",
        "submitted_at": "2026-10-01 10:00:00",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def category_id(temp_db):
    return temp_db.get_category_by_slug("writing")["id"]


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_create_database(self, temp_db_path):
        db = Database(temp_db_path)
        db.init_schema()

        assert os.path.exists(temp_db_path)
        db.close()

    def test_init_schema_creates_tables(self, temp_db):
        conn = temp_db.connect()
        tables = {
            row["name"] for row in
            conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        }

        expected = {"profiles", "categories", "tools", "submissions", "submission_reviews"}
        assert expected.issubset(tables)

    def test_init_schema_idempotent(self, temp_db):
        temp_db.init_schema()
        temp_db.init_schema()

        assert len(temp_db.list_categories()) == len(DEFAULT_CATEGORIES)

    def test_default_categories_are_seeded_in_order(self, temp_db):
        slugs = [c["slug"] for c in temp_db.list_categories()]
        assert slugs == [slug for slug, *_ in DEFAULT_CATEGORIES]


class TestTransactions:

    def test_rollback_on_error(self, temp_db, category_id):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                temp_db.insert_submission(submission_fields(category_id))
                raise RuntimeError("boom")

        count = temp_db.connect().execute("SELECT COUNT(*) FROM submissions").fetchone()[0]
        assert count == 0

    def test_nested_transaction_joins_outer(self, temp_db, category_id):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                with temp_db.transaction():
                    temp_db.insert_submission(submission_fields(category_id))
                assert temp_db.connect().in_transaction
                raise RuntimeError("boom")

        count = temp_db.connect().execute("SELECT COUNT(*) FROM submissions").fetchone()[0]
        assert count == 0


class TestProfileOperations:

    def test_create_and_lookup(self, temp_db):
        profile_id = temp_db.create_profile(" Alice ", "ALICE@Example.com")

        profile = temp_db.get_profile(profile_id)
        assert profile["nickname"] == "alice"
        assert profile["email"] == "alice@example.com"
        assert profile["role"] == "user"
        assert temp_db.get_profile_by_nickname("alice")["id"] == profile_id
        assert temp_db.get_profile_by_email("alice@example.com")["id"] == profile_id

    def test_nickname_is_unique(self, temp_db):
        temp_db.create_profile("alice", "a@example.com")
        with pytest.raises(sqlite3.IntegrityError):
            temp_db.create_profile("ALICE", "b@example.com")

    def test_role_check_constraint(self, temp_db):
        with pytest.raises(sqlite3.IntegrityError):
            temp_db.create_profile("alice", "a@example.com", role="owner")

    def test_update_role(self, temp_db):
        profile_id = temp_db.create_profile("alice", "a@example.com")

        assert temp_db.update_profile_role(profile_id, "reviewer") is True
        assert temp_db.get_profile(profile_id)["role"] == "reviewer"
        assert temp_db.update_profile_role(9999, "admin") is False

    def test_count_by_role(self, temp_db):
        temp_db.create_profile("alice", "a@example.com")
        temp_db.create_profile("rita", "r@example.com", role="reviewer")

        assert temp_db.count_profiles_by_role() == {"user": 1, "reviewer": 1, "admin": 0}


class TestCategoryOperations:

    def test_add_and_update(self, temp_db):
        category_id = temp_db.add_category("research", "Research", icon="🔬", ignored="x")

        assert temp_db.get_category(category_id)["icon"] == "🔬"
        assert temp_db.update_category(category_id, name="Deep Research") is True
        assert temp_db.get_category_by_slug("research")["name"] == "Deep Research"
        assert temp_db.update_category(category_id, nonsense=1) is False

    def test_active_and_homepage_filters(self, temp_db):
        temp_db.add_category("hidden", "Hidden", is_active=0)
        temp_db.add_category("offpage", "Off page", show_on_homepage=0)

        active = {c["slug"] for c in temp_db.list_categories(active_only=True)}
        homepage = {c["slug"] for c in temp_db.list_categories(active_only=True, homepage_only=True)}

        assert "hidden" not in active
        assert "offpage" in active
        assert "offpage" not in homepage

    def test_tools_count_never_goes_negative(self, temp_db, category_id):
        temp_db.increment_category_tools_count(category_id, 2)
        temp_db.increment_category_tools_count(category_id, -5)
        assert temp_db.get_category(category_id)["tools_count"] == 0


class TestSubmissionOperations:

    def test_insert_root_submission(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(
            submission_fields(category_id, tool_tags=["a", "b"], pricing_info={"x": 1})
        )

        submission = temp_db.get_submission(submission_id)
        assert submission["version"] == 1
        assert submission["lineage_id"] == submission_id
        assert submission["is_latest_version"] == 1
        assert submission["tool_tags"] == ["a", "b"]
        assert submission["pricing_info"] == {"x": 1}
        assert submission["tool_screenshots"] == []
        assert submission["category_slug"] == "writing"

    def test_insert_new_version(self, temp_db, category_id):
        first = temp_db.insert_submission(submission_fields(category_id))
        second = temp_db.insert_submission(submission_fields(category_id), first)

        assert temp_db.get_submission(first)["is_latest_version"] == 0
        child = temp_db.get_submission(second)
        assert child["version"] == 2
        assert child["lineage_id"] == first
        assert child["parent_submission_id"] == first

    def test_insert_from_stale_parent(self, temp_db, category_id):
        first = temp_db.insert_submission(submission_fields(category_id))
        temp_db.insert_submission(submission_fields(category_id), first)

        assert temp_db.insert_submission(submission_fields(category_id), first) is None
        assert temp_db.insert_submission(submission_fields(category_id), 9999) is None

    def test_second_latest_in_lineage_is_refused(self, temp_db, category_id):
        first = temp_db.insert_submission(submission_fields(category_id))

        with pytest.raises(sqlite3.IntegrityError):
            temp_db.connect().execute(
                "INSERT INTO submissions (tool_name, tool_description, tool_website_url, "
                "category_id, lineage_id, is_latest_version) VALUES ('x', 'x', 'x', ?, ?, 1)",
                (category_id, first)
            )

    def test_status_check_constraint(self, temp_db, category_id):
        with pytest.raises(sqlite3.IntegrityError):
            temp_db.insert_submission(submission_fields(category_id, status="published"))

    def test_conditional_status_update(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(submission_fields(category_id))

        assert temp_db.update_submission_status(
            submission_id, "submitted", "reviewing", reviewed_by=None, mark_started=True
        ) is True
        assert temp_db.update_submission_status(
            submission_id, "submitted", "approved", mark_completed=True
        ) is False

        submission = temp_db.get_submission(submission_id)
        assert submission["status"] == "reviewing"
        assert submission["review_started_at"] is not None
        assert submission["review_completed_at"] is None

    def test_replace_notes_overwrites_with_none(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(submission_fields(category_id))
        temp_db.update_submission_status(
            submission_id, "submitted", "changes_requested", review_notes="old notes"
        )

        temp_db.update_submission_status(submission_id, "changes_requested", "reviewing")
        assert temp_db.get_submission(submission_id)["review_notes"] == "old notes"

        temp_db.update_submission_status(
            submission_id, "reviewing", "approved", review_notes=None,
            mark_completed=True, replace_notes=True,
        )
        assert temp_db.get_submission(submission_id)["review_notes"] is None

    def test_latest_only_skips_superseded_rows(self, temp_db, category_id):
        first = temp_db.insert_submission(submission_fields(category_id))
        temp_db.insert_submission(submission_fields(category_id), first)

        assert temp_db.update_submission_status(
            first, "submitted", "approved", mark_completed=True, latest_only=True
        ) is False
        assert temp_db.get_submission(first)["status"] == "submitted"

    def test_completed_at_cleared_for_non_terminal(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(
            submission_fields(category_id, status="approved",
                              review_completed_at="2026-10-01 10:00:00")
        )
        # Not reachable through the review workflow; the column still follows the status
        temp_db.update_submission_status(submission_id, "approved", "changes_requested")
        assert temp_db.get_submission(submission_id)["review_completed_at"] is None

    def test_link_tool_only_once(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(submission_fields(category_id, status="approved"))
        tool_id = temp_db.insert_tool({
            "slug": "alpha", "name": "Alpha", "description": "d",
            "website_url": "https://alpha.example.com", "category_id": category_id,
        })

        assert temp_db.link_submission_tool(submission_id, tool_id) is True
        assert temp_db.link_submission_tool(submission_id, tool_id) is False
        assert temp_db.get_submission(submission_id)["tool_slug"] == "alpha"

    def test_link_tool_requires_approval(self, temp_db, category_id):
        submission_id = temp_db.insert_submission(submission_fields(category_id))
        tool_id = temp_db.insert_tool({
            "slug": "alpha", "name": "Alpha", "description": "d",
            "website_url": "https://alpha.example.com", "category_id": category_id,
        })
        assert temp_db.link_submission_tool(submission_id, tool_id) is False

    def test_average_review_hours_skips_auto_approvals(self, temp_db, category_id):
        temp_db.insert_submission(submission_fields(
            category_id, status="approved",
            submitted_at="2026-10-01 10:00:00", review_completed_at="2026-10-01 16:00:00",
        ))
        temp_db.insert_submission(submission_fields(
            category_id, status="approved", auto_approved=1,
            submitted_at="2026-10-01 10:00:00", review_completed_at="2026-10-01 10:00:00",
        ))

        assert temp_db.get_average_review_hours() == pytest.approx(6.0)

    def test_average_review_hours_empty(self, temp_db):
        assert temp_db.get_average_review_hours() is None


class TestReviewLog:

    def test_history_in_order(self, temp_db, category_id):
        reviewer = temp_db.create_profile("rita", "r@example.com", role="reviewer")
        submission_id = temp_db.insert_submission(submission_fields(category_id))

        temp_db.add_review_entry(submission_id, "submit", None, "draft", "submitted")
        temp_db.add_review_entry(submission_id, "start_review", reviewer, "submitted", "reviewing")

        history = temp_db.get_review_history(submission_id)
        assert [h["action"] for h in history] == ["submit", "start_review"]
        assert history[0]["reviewer_nickname"] is None
        assert history[1]["reviewer_nickname"] == "rita"


class TestToolOperations:

    def add_tool(self, db, category_id, slug, **fields):
        values = {
            "slug": slug, "name": slug.title(), "description": f"{slug} tool",
            "website_url": f"https://{slug}.example.com", "category_id": category_id,
            "status": "published",
        }
        values.update(fields)
        return db.insert_tool(values)

    def test_list_published_excludes_inactive(self, temp_db, category_id):
        self.add_tool(temp_db, category_id, "alpha")
        hidden = self.add_tool(temp_db, category_id, "beta")
        temp_db.connect().execute("UPDATE tools SET is_active = 0 WHERE id = ?", (hidden,))

        tools, total = temp_db.list_published_tools()
        assert total == 1
        assert [t["slug"] for t in tools] == ["alpha"]

    def test_list_published_pagination(self, temp_db, category_id):
        for i in range(5):
            self.add_tool(temp_db, category_id, f"tool{i}", published_at=f"2026-10-0{i + 1} 00:00:00")

        tools, total = temp_db.list_published_tools(limit=2, offset=1)
        assert total == 5
        assert [t["slug"] for t in tools] == ["tool3", "tool2"]

    def test_counters(self, temp_db, category_id):
        tool_id = self.add_tool(temp_db, category_id, "alpha")

        temp_db.increment_tool_counter(tool_id, "view_count")
        temp_db.increment_tool_counter(tool_id, "click_count")
        temp_db.increment_tool_counter(tool_id, "click_count")

        tool = temp_db.get_tool(tool_id)
        assert tool["view_count"] == 1
        assert tool["click_count"] == 2

    def test_unknown_counter(self, temp_db, category_id):
        tool_id = self.add_tool(temp_db, category_id, "alpha")
        with pytest.raises(ValueError):
            temp_db.increment_tool_counter(tool_id, "like_count")

    def test_update_tool_keeps_slug(self, temp_db, category_id):
        tool_id = self.add_tool(temp_db, category_id, "alpha")
        temp_db.update_tool(tool_id, {"slug": "renamed", "name": "Alpha 2"})

        tool = temp_db.get_tool(tool_id)
        assert tool["slug"] == "alpha"
        assert tool["name"] == "Alpha 2"


class TestDirectoryStats:

    def test_counts_latest_versions_only(self, temp_db, category_id):
        first = temp_db.insert_submission(submission_fields(category_id))
        temp_db.insert_submission(submission_fields(category_id), first)

        stats = temp_db.get_directory_stats()
        assert stats["submissions_by_status"]["submitted"] == 1
        assert stats["total_submissions"] == 1
        assert stats["active_categories"] == len(DEFAULT_CATEGORIES)

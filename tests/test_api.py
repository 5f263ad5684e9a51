"""
Tests for the directory API endpoints.
"""

import pytest

from toolshelf.models import Role


@pytest.fixture
def submission_json(writing_category):
    return {
        "tool_name": "Alpha",
        "tool_description": "Writes things for you",
        "tool_website_url": "https://alpha.example.com",
        "category_id": writing_category["id"],
        "tool_tags": ["writing"],
    }


def submit(client, headers, payload):
    response = client.post("/api/submissions", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestSubmissionEndpoints:

    def test_submit_as_user(self, client, alice, auth_headers, submission_json, temp_db):
        data = submit(client, auth_headers(alice), submission_json)

        assert data["status"] == "submitted"
        assert data["auto_approved"] is False
        assert data["user_role"] == "user"
        assert data["tool_id"] is None

        submission = temp_db.get_submission(data["submission_id"])
        assert submission["submitter_name"] == "alice"
        assert submission["submitter_email"] == "alice@example.com"

    def test_submit_as_admin_publishes(self, client, adam, auth_headers, submission_json):
        data = submit(client, auth_headers(adam), submission_json)

        assert data["status"] == "approved"
        assert data["auto_approved"] is True
        assert data["tool_id"] is not None

        tool = client.get("/api/tools/alpha").json()
        assert tool["id"] == data["tool_id"]

    def test_submit_requires_auth(self, client, submission_json):
        response = client.post("/api/submissions", json=submission_json)
        assert response.status_code == 401

    def test_submit_invalid_url(self, client, alice, auth_headers, submission_json):
        submission_json["tool_website_url"] = "not a url"
        response = client.post("/api/submissions", json=submission_json, headers=auth_headers(alice))

        assert response.status_code == 422
        assert response.json() == {
            "error": "validation_error",
            "detail": "Website URL must be an http(s) URL",
            "field": "tool_website_url",
        }

    def test_my_submissions(self, client, alice, rita, auth_headers, submission_json):
        submit(client, auth_headers(alice), submission_json)
        submit(client, auth_headers(rita), dict(submission_json, tool_name="Beta"))

        response = client.get("/api/submissions/mine", headers=auth_headers(alice))

        assert response.status_code == 200
        names = [s["tool_name"] for s in response.json()["submissions"]]
        assert names == ["Alpha"]

    def test_submission_detail(self, client, alice, make_profile, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)
        url = f"/api/submissions/{created['submission_id']}"

        response = client.get(url, headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["tool_tags"] == ["writing"]
        assert response.json()["history"][0]["action"] == "submit"

        bob = make_profile("bob")
        response = client.get(url, headers=auth_headers(bob))
        assert response.status_code == 403
        assert response.json()["error"] == "insufficient_permission"

    def test_submission_detail_not_found(self, client, alice, auth_headers):
        response = client.get("/api/submissions/9999", headers=auth_headers(alice))
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_withdraw(self, client, alice, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)

        response = client.post(
            f"/api/submissions/{created['submission_id']}/withdraw",
            json={"notes": "changed my mind"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["new_status"] == "withdrawn"

    def test_resubmit(self, client, alice, rita, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)
        client.post(
            f"/api/reviews/{created['submission_id']}",
            json={"action": "request_changes", "notes": "add pricing info"},
            headers=auth_headers(rita),
        )

        data = submit(
            client, auth_headers(alice),
            dict(submission_json, pricing_info={"plan": "pro"},
                 parent_submission_id=created["submission_id"]),
        )

        assert data["version"] == 2
        assert data["status"] == "submitted"


class TestReviewEndpoints:

    def test_review_flow(self, client, alice, rita, auth_headers, submission_json, temp_db):
        created = submit(client, auth_headers(alice), submission_json)

        pending = client.get("/api/reviews/pending", headers=auth_headers(rita)).json()
        assert [s["submission_id"] for s in pending["submissions"]] == [created["submission_id"]]
        assert pending["submissions"][0]["can_review"] is True

        response = client.post(
            f"/api/reviews/{created['submission_id']}",
            json={"action": "approve"},
            headers=auth_headers(rita),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["previous_status"] == "submitted"
        assert data["new_status"] == "approved"
        assert data["reviewer_role"] == "reviewer"
        assert temp_db.get_category_by_slug("writing")["tools_count"] == 1

        pending = client.get("/api/reviews/pending", headers=auth_headers(rita)).json()
        assert pending["submissions"] == []

    def test_reject_without_notes(self, client, alice, rita, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)

        response = client.post(
            f"/api/reviews/{created['submission_id']}",
            json={"action": "reject", "notes": ""},
            headers=auth_headers(rita),
        )

        assert response.status_code == 422
        assert response.json()["field"] == "notes"

    def test_user_cannot_review(self, client, alice, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)

        response = client.post(
            f"/api/reviews/{created['submission_id']}",
            json={"action": "reject", "notes": "not relevant"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "insufficient_permission"

    def test_review_twice_conflicts(self, client, alice, rita, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)
        url = f"/api/reviews/{created['submission_id']}"

        client.post(url, json={"action": "approve"}, headers=auth_headers(rita))
        response = client.post(url, json={"action": "reject", "notes": "late"},
                               headers=auth_headers(rita))

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_pending_requires_staff(self, client, alice, auth_headers):
        response = client.get("/api/reviews/pending", headers=auth_headers(alice))
        assert response.status_code == 403

    def test_review_stats(self, client, alice, rita, auth_headers, submission_json):
        submit(client, auth_headers(alice), submission_json)

        response = client.get("/api/reviews/stats", headers=auth_headers(rita))

        assert response.status_code == 200
        assert response.json()["pending_count"] == 1
        assert response.json()["approved_today"] == 0

    def test_sync_not_approved(self, client, alice, rita, auth_headers, submission_json):
        created = submit(client, auth_headers(alice), submission_json)

        response = client.post(
            f"/api/reviews/{created['submission_id']}/sync", headers=auth_headers(rita)
        )

        assert response.status_code == 500
        assert response.json()["error"] == "sync_failed"
        assert response.json()["submission_id"] == created["submission_id"]

    def test_batch_sync_and_recount_are_admin_only(self, client, rita, adam, auth_headers):
        assert client.post("/api/reviews/sync", headers=auth_headers(rita)).status_code == 403

        response = client.post("/api/reviews/sync", headers=auth_headers(adam))
        assert response.status_code == 200
        assert response.json() == {"synced": {}, "failed": {}, "total": 0}

        response = client.post("/api/reviews/recount", headers=auth_headers(adam))
        assert response.status_code == 200
        assert response.json() == {"categories": {}}


class TestCategoryEndpoints:

    def test_list_homepage_categories(self, client):
        response = client.get("/api/categories")

        assert response.status_code == 200
        slugs = [c["slug"] for c in response.json()["categories"]]
        assert slugs[0] == "writing"
        assert "coding" in slugs

    def test_get_category(self, client):
        assert client.get("/api/categories/writing").json()["name"] == "AI Writing"
        assert client.get("/api/categories/nope").status_code == 404

    def test_admin_creates_and_hides_category(self, client, adam, auth_headers):
        response = client.post(
            "/api/categories",
            json={"slug": "research", "name": "Research", "sort_order": 20},
            headers=auth_headers(adam),
        )
        assert response.status_code == 200
        category = response.json()
        assert category["slug"] == "research"

        response = client.put(
            f"/api/categories/{category['id']}",
            json={"is_active": False},
            headers=auth_headers(adam),
        )
        assert response.status_code == 200
        assert response.json()["is_active"] == 0

        assert client.get("/api/categories/research").status_code == 404
        all_slugs = [
            c["slug"] for c in
            client.get("/api/categories/all", headers=auth_headers(adam)).json()["categories"]
        ]
        assert "research" in all_slugs

    def test_duplicate_slug(self, client, adam, auth_headers):
        response = client.post(
            "/api/categories",
            json={"slug": "writing", "name": "Writing again"},
            headers=auth_headers(adam),
        )
        assert response.status_code == 422
        assert response.json()["field"] == "slug"

    def test_user_cannot_create_category(self, client, alice, auth_headers):
        response = client.post(
            "/api/categories",
            json={"slug": "research", "name": "Research"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 403


class TestToolEndpoints:

    def test_list_and_counters(self, client, adam, auth_headers, submission_json, temp_db):
        submit(client, auth_headers(adam), submission_json)
        submit(client, auth_headers(adam), dict(submission_json, tool_name="Coder",
                                                 category_id=temp_db.get_category_by_slug("coding")["id"]))

        everything = client.get("/api/tools").json()
        assert everything["total"] == 2

        writing = client.get("/api/tools", params={"category": "writing"}).json()
        assert [t["slug"] for t in writing["tools"]] == ["alpha"]

        found = client.get("/api/tools", params={"search": "Code"}).json()
        assert [t["slug"] for t in found["tools"]] == ["coder"]

        assert client.get("/api/tools/alpha").json()["view_count"] == 1
        assert client.get("/api/tools/alpha").json()["view_count"] == 2

        click = client.post("/api/tools/alpha/click")
        assert click.json() == {"website_url": "https://alpha.example.com"}
        assert temp_db.get_tool_by_slug("alpha")["click_count"] == 1

    def test_unknown_category_filter(self, client):
        response = client.get("/api/tools", params={"category": "nope"})
        assert response.status_code == 404

    def test_unknown_tool(self, client):
        assert client.get("/api/tools/nope").status_code == 404
        assert client.post("/api/tools/nope/click").status_code == 404


class TestProfileEndpoints:

    def test_admin_promotes_reviewer(self, client, alice, adam, auth_headers, temp_db):
        response = client.put(
            f"/api/profiles/{alice}/role", json={"role": "reviewer"}, headers=auth_headers(adam)
        )

        assert response.status_code == 200
        assert response.json()["role"] == "reviewer"
        assert temp_db.get_profile(alice)["role"] == Role.REVIEWER.value

    def test_reviewer_cannot_change_roles(self, client, alice, rita, auth_headers):
        response = client.put(
            f"/api/profiles/{alice}/role", json={"role": "admin"}, headers=auth_headers(rita)
        )
        assert response.status_code == 403

    def test_unknown_role(self, client, alice, adam, auth_headers):
        response = client.put(
            f"/api/profiles/{alice}/role", json={"role": "owner"}, headers=auth_headers(adam)
        )
        assert response.status_code == 422

    def test_list_and_stats(self, client, alice, rita, adam, auth_headers):
        profiles = client.get("/api/profiles", headers=auth_headers(adam)).json()["profiles"]
        assert {p["nickname"] for p in profiles} == {"alice", "rita", "adam"}
        assert all("password_hash" not in p for p in profiles)

        stats = client.get("/api/profiles/stats", headers=auth_headers(adam)).json()
        assert stats == {"total": 3, "admins": 1, "reviewers": 1, "users": 1}


class TestDirectoryStats:

    def test_stats(self, client, alice, rita, auth_headers, submission_json):
        submit(client, auth_headers(alice), submission_json)
        submit(client, auth_headers(rita), dict(submission_json, tool_name="Beta"))

        response = client.get("/api/stats", headers=auth_headers(rita))

        assert response.status_code == 200
        data = response.json()
        assert data["submitted"] == 1
        assert data["approved"] == 1
        assert data["published_tools"] == 1
        assert data["total_profiles"] == 2
        assert data["active_categories"] == 9

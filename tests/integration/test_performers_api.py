"""
Integration tests for the performers API endpoints.

Tests the request -> service -> store flow, authentication, status codes
and error bodies.
"""


class TestCreatePerformer:
    """Tests for POST /api/performers."""

    def test_create_returns_pending(self, test_client, alice_headers):
        response = test_client.post(
            "/api/performers",
            json={"stage_name": "Mina", "group_names": ["Rakuten Girls"], "birthday": "1999-03-12"},
            headers=alice_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"].startswith("prf_")
        assert body["status"] == "pending"
        assert body["active_event_count"] == 0
        assert body["created_by"] == "alice"

    def test_create_requires_identity(self, test_client):
        response = test_client.post("/api/performers", json={"stage_name": "Mina"})

        assert response.status_code == 401

    def test_unknown_role_header(self, test_client):
        response = test_client.post(
            "/api/performers",
            json={"stage_name": "Mina"},
            headers={"X-User-Id": "alice", "X-User-Role": "superuser"},
        )

        assert response.status_code == 401

    def test_invalid_payload(self, test_client, alice_headers):
        response = test_client.post("/api/performers", json={"stage_name": "  "}, headers=alice_headers)

        assert response.status_code == 422


class TestGetPerformer:
    """Tests for GET /api/performers/{id}."""

    def test_get_approved_anonymously(self, test_client, submit_performer):
        performer = submit_performer()

        response = test_client.get(f"/api/performers/{performer['id']}")

        assert response.status_code == 200
        assert response.json()["stage_name"] == "Mina"

    def test_pending_hidden_from_other_users(self, test_client, submit_performer, alice_headers, bob_headers):
        performer = submit_performer(status=None)

        assert test_client.get(f"/api/performers/{performer['id']}", headers=alice_headers).status_code == 200
        response = test_client.get(f"/api/performers/{performer['id']}", headers=bob_headers)
        assert response.status_code == 404
        assert response.json() == {
            "error": "Not Found",
            "message": f"Performer {performer['id']} not found",
        }

    def test_missing(self, test_client):
        response = test_client.get("/api/performers/prf_missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"


class TestListPerformers:
    """Tests for GET /api/performers."""

    def test_search_and_paginate(self, test_client, submit_performer):
        for name in ["Mina", "Minami", "Aya"]:
            submit_performer(name)

        response = test_client.get(
            "/api/performers",
            params={"search": "MINA", "sort_by": "stage_name", "sort_order": "asc", "limit": 1},
        )

        assert response.status_code == 200
        body = response.json()
        assert [p["stage_name"] for p in body["items"]] == ["Mina"]
        assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}

    def test_birthday_week(self, test_client, submit_performer):
        submit_performer("March", birthday="1999-03-12")
        submit_performer("May", birthday="1999-05-12")

        response = test_client.get(
            "/api/performers",
            params={"birthday_week_start": "2026-03-09", "birthday_week_end": "2026-03-15"},
        )

        assert [p["stage_name"] for p in response.json()["items"]] == ["March"]

    def test_pending_status_needs_admin(self, test_client, submit_performer, bob_headers, admin_headers):
        submit_performer(status=None)

        assert test_client.get("/api/performers", params={"status": "pending"}).status_code == 403
        denied = test_client.get("/api/performers", params={"status": "pending"}, headers=bob_headers)
        assert denied.json()["error"] == "Permission Denied"

        allowed = test_client.get("/api/performers", params={"status": "pending"}, headers=admin_headers)
        assert allowed.status_code == 200
        assert allowed.json()["pagination"]["total"] == 1

    def test_invalid_sort_field(self, test_client):
        response = test_client.get("/api/performers", params={"sort_by": "height"})

        assert response.status_code == 422


class TestReviewQueue:

    def test_pending_queue_admin_only(self, test_client, submit_performer, admin_headers, alice_headers):
        submit_performer("Old", status=None)
        submit_performer("New", status=None)

        response = test_client.get("/api/performers/pending", headers=admin_headers)
        assert response.status_code == 200
        assert {p["stage_name"] for p in response.json()} == {"Old", "New"}

        assert test_client.get("/api/performers/pending", headers=alice_headers).status_code == 403


class TestReviewPerformer:
    """Tests for PATCH /api/performers/{id}/review and /resubmit."""

    def test_reject_then_resubmit(self, test_client, submit_performer, admin_headers, alice_headers):
        performer = submit_performer(status=None)

        rejected = test_client.patch(
            f"/api/performers/{performer['id']}/review",
            json={"status": "rejected", "reason": "Blurry photo"},
            headers=admin_headers,
        )
        assert rejected.status_code == 200
        assert rejected.json()["rejected_reason"] == "Blurry photo"

        resubmitted = test_client.patch(
            f"/api/performers/{performer['id']}/resubmit", headers=alice_headers
        )
        assert resubmitted.status_code == 200
        assert resubmitted.json()["status"] == "pending"
        assert resubmitted.json()["rejected_reason"] is None

    def test_review_requires_admin(self, test_client, submit_performer, alice_headers):
        performer = submit_performer(status=None)

        response = test_client.patch(
            f"/api/performers/{performer['id']}/review",
            json={"status": "approved"},
            headers=alice_headers,
        )

        assert response.status_code == 403

    def test_review_to_pending_is_invalid_transition(self, test_client, submit_performer, admin_headers):
        performer = submit_performer(status=None)

        response = test_client.patch(
            f"/api/performers/{performer['id']}/review",
            json={"status": "pending"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Invalid Transition"

    def test_unknown_review_status(self, test_client, submit_performer, admin_headers):
        performer = submit_performer(status=None)

        response = test_client.patch(
            f"/api/performers/{performer['id']}/review",
            json={"status": "archived"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_resubmit_approved_is_invalid(self, test_client, submit_performer, alice_headers):
        performer = submit_performer()

        response = test_client.patch(f"/api/performers/{performer['id']}/resubmit", headers=alice_headers)

        assert response.status_code == 409

    def test_batch_review(self, test_client, submit_performer, admin_headers):
        first = submit_performer("A", status=None)
        second = submit_performer("B", status=None)

        response = test_client.post(
            "/api/performers/batch-review",
            json={"items": [
                {"id": first["id"], "status": "approved"},
                {"id": second["id"], "status": "exists"},
            ]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 2, "ids": [first["id"], second["id"]]}
        detail = test_client.get(f"/api/performers/{second['id']}", headers=admin_headers)
        assert detail.json()["status"] == "exists"


class TestUpdateDeletePerformer:

    def test_creator_edits_pending(self, test_client, submit_performer, alice_headers):
        performer = submit_performer(status=None)

        response = test_client.put(
            f"/api/performers/{performer['id']}", json={"real_name": "Mina Chen"}, headers=alice_headers
        )

        assert response.status_code == 200
        assert response.json()["real_name"] == "Mina Chen"

    def test_status_cannot_be_edited(self, test_client, submit_performer, admin_headers):
        performer = submit_performer(status=None)

        response = test_client.put(
            f"/api/performers/{performer['id']}", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 422

    def test_delete_referenced_conflicts(self, test_client, submit_performer, submit_event, admin_headers):
        performer = submit_performer()
        submit_event([performer["id"]])

        response = test_client.delete(f"/api/performers/{performer['id']}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    def test_delete(self, test_client, submit_performer, admin_headers):
        performer = submit_performer()

        response = test_client.delete(f"/api/performers/{performer['id']}", headers=admin_headers)

        assert response.status_code == 204
        assert test_client.get(f"/api/performers/{performer['id']}").status_code == 404

"""
Fixtures for API integration tests.

Seeding goes through the HTTP API so the tests exercise the same path as
clients do.
"""

import pytest


@pytest.fixture
def submit_performer(test_client, alice_headers, admin_headers):
    """Submit a performer as alice and optionally review it as admin."""
    def _submit(stage_name="Mina", status="approved", headers=None, **fields):
        response = test_client.post(
            "/api/performers",
            json={"stage_name": stage_name, **fields},
            headers=headers or alice_headers,
        )
        assert response.status_code == 201, response.text
        performer = response.json()
        if status is None:
            return performer

        response = test_client.patch(
            f"/api/performers/{performer['id']}/review",
            json={"status": status},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _submit


@pytest.fixture
def submit_event(test_client, sample_event_data, alice_headers, admin_headers):
    """Submit an event as alice and optionally review it as admin."""
    def _submit(performer_ids, status="approved", headers=None, **fields):
        payload = sample_event_data(performer_ids, **fields).model_dump(mode="json")
        response = test_client.post("/api/events", json=payload, headers=headers or alice_headers)
        assert response.status_code == 201, response.text
        event = response.json()
        if status is None:
            return event

        response = test_client.patch(
            f"/api/events/{event['id']}/review",
            json={"status": status},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _submit

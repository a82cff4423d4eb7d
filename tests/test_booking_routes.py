import pytest


@pytest.fixture
def psw_id(seeded_client):
    params = {"query": "Sarah", "lat": 43.6532, "lng": -79.3832}
    return seeded_client.get("/api/psw/search", params=params).json()["results"][0]["id"]


@pytest.fixture
def confirm(seeded_client, psw_id):
    def _confirm(**overrides):
        body = {
            "client_id": "client-1",
            "psw_id": psw_id,
            "start_time": "2024-01-15T09:00:00Z",
            "end_time": "2024-01-15T12:00:00Z",
            "service_type": "General Support",
            **overrides,
        }
        return seeded_client.post("/api/booking/confirm", json=body)

    return _confirm


def test_confirm(confirm, publisher):
    response = confirm()
    assert response.status_code == 200
    body = response.json()
    booking = body["booking"]
    assert booking["status"] == "confirmed"
    assert booking["id"]
    assert "**Worker:** Sarah Johnson" in body["confirmation_message"]
    assert "**Date:** 2024-01-15" in body["confirmation_message"]
    assert "**Time:** 09:00 - 12:00" in body["confirmation_message"]

    routing_key, event = publisher.published[-1]
    assert routing_key == "booking.confirmed"
    assert event["data"]["booking_id"] == booking["id"]
    assert event["data"]["status"] == "confirmed"


def test_confirm_camel_case(seeded_client, psw_id):
    response = seeded_client.post(
        "/api/booking/confirm",
        json={
            "clientId": "client-2",
            "pswId": psw_id,
            "startTime": "2024-01-15T09:00:00Z",
            "endTime": "2024-01-15T12:00:00Z",
            "serviceType": "Companion Care",
        },
    )
    assert response.status_code == 200
    assert response.json()["booking"]["client_id"] == "client-2"


def test_confirm_missing_fields(confirm):
    assert confirm(service_type=None).status_code == 400
    assert confirm(psw_id="").status_code == 400


def test_confirm_end_before_start(confirm):
    assert confirm(end_time="2024-01-15T08:00:00Z").status_code == 400
    assert confirm(end_time="2024-01-15T09:00:00Z").status_code == 400


def test_confirm_unknown_worker_still_books(confirm):
    response = confirm(psw_id="someone-else")
    assert response.status_code == 200
    assert "Your selected PSW" in response.json()["confirmation_message"]


def test_confirm_closes_conversation(app, seeded_client, confirm):
    conversation = seeded_client.post("/api/chat/conversation", json={"client_id": "client-1"}).json()
    ai_client = app.state.services.ai_client
    ai_client._remember(conversation["id"], "user", "book Sarah please")
    response = confirm(conversation_id=conversation["id"])

    stored = seeded_client.get(f"/api/chat/conversation/{conversation['id']}").json()
    assert stored["status"] == "completed"
    assert stored["messages"][-1]["content"] == response.json()["confirmation_message"]
    assert ai_client.history(conversation["id"]) == []


def test_list_and_get(seeded_client, confirm):
    booking = confirm().json()["booking"]
    confirm(client_id="client-2")

    body = seeded_client.get("/api/booking/list", params={"client_id": "client-1"}).json()
    assert body["total_count"] == 1
    assert body["bookings"][0]["id"] == booking["id"]

    assert seeded_client.get(f"/api/booking/{booking['id']}").json()["psw_id"] == booking["psw_id"]


def test_list_needs_client(seeded_client):
    assert seeded_client.get("/api/booking/list").status_code == 400


def test_get_missing(seeded_client):
    assert seeded_client.get("/api/booking/nope").status_code == 404


def test_update(seeded_client, confirm, publisher):
    booking = confirm().json()["booking"]

    response = seeded_client.patch(f"/api/booking/{booking['id']}", json={"notes": "Ring twice"})
    assert response.status_code == 200
    assert response.json()["notes"] == "Ring twice"
    assert response.json()["status"] == "confirmed"

    response = seeded_client.patch(
        f"/api/booking/{booking['id']}",
        json={"status": "completed", "end_time": "2024-01-15T13:00:00Z", "service_type": None},
    )
    body = response.json()
    assert body["status"] == "completed"
    assert body["end_time"].startswith("2024-01-15T13:00:00")
    assert body["service_type"] == "General Support"
    assert body["notes"] == "Ring twice"

    assert publisher.routing_keys[-2:] == ["booking.updated", "booking.updated"]


def test_update_can_clear_notes(seeded_client, confirm):
    booking = confirm().json()["booking"]
    seeded_client.patch(f"/api/booking/{booking['id']}", json={"notes": "Ring twice"})
    assert seeded_client.patch(f"/api/booking/{booking['id']}", json={"notes": None}).json()["notes"] is None


def test_update_rejects_inverted_times(seeded_client, confirm):
    booking = confirm().json()["booking"]
    response = seeded_client.patch(f"/api/booking/{booking['id']}", json={"end_time": "2024-01-15T08:00:00Z"})
    assert response.status_code == 400


def test_update_rejects_unknown_status(seeded_client, confirm):
    booking = confirm().json()["booking"]
    assert seeded_client.patch(f"/api/booking/{booking['id']}", json={"status": "lost"}).status_code == 422


def test_update_missing(seeded_client):
    assert seeded_client.patch("/api/booking/nope", json={"notes": "x"}).status_code == 404


def test_cancel(seeded_client, confirm, publisher):
    booking = confirm().json()["booking"]

    response = seeded_client.delete(f"/api/booking/{booking['id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Booking cancelled successfully"}
    assert seeded_client.get(f"/api/booking/{booking['id']}").json()["status"] == "cancelled"
    assert publisher.routing_keys[-1] == "booking.cancelled"


def test_cancel_missing(seeded_client):
    assert seeded_client.delete("/api/booking/nope").status_code == 404


def test_list_by_psw(seeded_client, confirm, psw_id):
    confirm()
    confirm(client_id="client-2")
    confirm(psw_id="someone-else")

    body = seeded_client.get("/api/booking/list", params={"psw_id": psw_id}).json()
    assert body["total_count"] == 2
    assert {b["client_id"] for b in body["bookings"]} == {"client-1", "client-2"}

    both = seeded_client.get("/api/booking/list", params={"psw_id": psw_id, "client_id": "client-2"}).json()
    assert [b["client_id"] for b in both["bookings"]] == ["client-2"]

from psw_service.chat import WELCOME_MESSAGE


def start(client, client_id="client-1"):
    response = client.post("/api/chat/conversation", json={"client_id": client_id})
    assert response.status_code == 200
    return response.json()


def test_create_conversation(client):
    body = start(client)
    assert body["client_id"] == "client-1"
    assert body["status"] == "active"

    conversation = client.get(f"/api/chat/conversation/{body['id']}").json()
    assert conversation["messages"][0]["sender"] == "ai"
    assert conversation["messages"][0]["content"] == WELCOME_MESSAGE


def test_create_conversation_accepts_camel_case(client):
    assert client.post("/api/chat/conversation", json={"clientId": "c9"}).json()["client_id"] == "c9"


def test_create_conversation_needs_client(client):
    assert client.post("/api/chat/conversation", json={}).status_code == 400


def test_get_missing_conversation(client):
    assert client.get("/api/chat/conversation/nope").status_code == 404


def test_message_flow(seeded_client):
    conversation = start(seeded_client)
    response = seeded_client.post(
        "/api/chat/message",
        json={
            "conversation_id": conversation["id"],
            "client_id": "client-1",
            "message": "I need General Support in Toronto on January 15, 2024 from 9am to 12pm",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["conversation_id"] == conversation["id"]
    assert body["extracted_data"]["desired_date"] == "2024-01-15"
    assert body["extracted_data"]["is_complete"] is True
    assert [p["name"] for p in body["suggested_psws"]][:2] == ["Sarah Johnson", "Angela Murphy"]
    assert body["requires_confirmation"] is False

    stored = seeded_client.get(f"/api/chat/conversation/{conversation['id']}").json()
    assert [m["sender"] for m in stored["messages"]] == ["ai", "client", "ai"]
    assert stored["extracted_data"]["client_location"]["address"] == "Toronto"


def test_message_needs_all_fields(client):
    conversation = start(client)
    response = client.post("/api/chat/message", json={"conversation_id": conversation["id"], "message": "hi"})
    assert response.status_code == 400


def test_message_unknown_conversation(client):
    response = client.post(
        "/api/chat/message",
        json={"conversationId": "nope", "clientId": "client-1", "message": "hi"},
    )
    assert response.status_code == 404

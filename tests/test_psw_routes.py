import asyncio

import pytest
from fastapi.testclient import TestClient

from psw_service.cache import MatchCache
from psw_service.config import Settings
from psw_service.main import create_app
from psw_service.repository import InMemoryRepository
from psw_service.schemas import PSWProfile

from tests.conftest import TORONTO
from tests.fakes import FakePublisher, FakeRedis

AVAILABLE = {
    "location": TORONTO,
    "radius_km": 15,
    "date": "2024-01-15",
    "start_time": "09:00",
    "end_time": "12:00",
    "service_type": "General Support",
}

NEW_PSW = {
    "name": "Grace Lee",
    "email": "grace.lee@example.com",
    "location": {"latitude": 43.6540, "longitude": -79.3840, "postal_code": "M5H 1A1"},
    "certifications": ["First Aid"],
    "rating": 4.0,
    "review_count": 3,
    "service_types": ["General Support"],
    "availability": {
        "kind": "weekly",
        "weekly": {"monday": [{"start_time": "08:00", "end_time": "16:00"}]},
    },
}


def names(profiles):
    return [p["name"] for p in profiles]


def test_available(seeded_client):
    response = seeded_client.post("/api/psw/available", json=AVAILABLE)
    assert response.status_code == 200
    body = response.json()
    assert names(body["psw_profiles"]) == ["Sarah Johnson", "Angela Murphy", "Michael Chen", "James Wilson"]
    assert body["total_count"] == 4
    assert body["psw_profiles"][0]["review_count"] == 52


def test_available_camel_case_body(seeded_client):
    response = seeded_client.post(
        "/api/psw/available",
        json={
            "location": {**TORONTO, "postalCode": "M5H 2N2"},
            "radius": 15,
            "desiredDate": "2024-01-15T00:00:00.000Z",
            "startTime": "09:00",
            "endTime": "12:00",
            "serviceType": "General Support",
        },
    )
    assert response.status_code == 200
    assert response.json()["total_count"] == 4


def test_available_rejects_bad_time(seeded_client):
    response = seeded_client.post("/api/psw/available", json={**AVAILABLE, "start_time": "9am"})
    assert response.status_code == 422


def test_available_empty_store(client):
    response = client.post("/api/psw/available", json=AVAILABLE)
    assert response.json() == {"psw_profiles": [], "total_count": 0}


def test_available_result_limit(repository, publisher):
    app = create_app(Settings(match_result_limit=2), repository=repository, publisher=publisher)
    with TestClient(app) as client:
        client.post("/api/seed")
        body = client.post("/api/psw/available", json=AVAILABLE).json()
    assert names(body["psw_profiles"]) == ["Sarah Johnson", "Angela Murphy"]
    assert body["total_count"] == 4


def test_create_and_get(client, publisher):
    response = client.post("/api/psw", json=NEW_PSW)
    assert response.status_code == 200
    created = response.json()
    assert created["id"]
    assert created["availability"]["kind"] == "weekly"
    assert created["location"]["postal_code"] == "M5H 1A1"

    fetched = client.get(f"/api/psw/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Grace Lee"

    routing_key, event = publisher.published[0]
    assert routing_key == "psw.created"
    assert event["event_type"] == "psw.created"
    assert event["data"]["psw_id"] == created["id"]


def test_created_weekly_worker_is_matched(client):
    client.post("/api/psw", json=NEW_PSW)
    body = client.post("/api/psw/available", json=AVAILABLE).json()
    assert names(body["psw_profiles"]) == ["Grace Lee"]


def test_create_rejects_unknown_weekday(client):
    bad = {**NEW_PSW, "availability": {"kind": "weekly", "weekly": {"someday": []}}}
    assert client.post("/api/psw", json=bad).status_code == 422


def test_get_missing(client):
    assert client.get("/api/psw/nope").status_code == 404


def test_search(seeded_client):
    params = {"query": "general", "lat": TORONTO["latitude"], "lng": TORONTO["longitude"]}
    body = seeded_client.get("/api/psw/search", params=params).json()
    assert names(body["results"]) == ["Sarah Johnson", "Angela Murphy", "Michael Chen", "James Wilson"]
    assert body["total_count"] == 4

    params["query"] = "Patricia"
    assert names(seeded_client.get("/api/psw/search", params=params).json()["results"]) == [
        "Patricia Rodriguez"
    ]


@pytest.mark.parametrize("params", [{"lat": 43.6, "lng": -79.3}, {"query": "sarah", "lat": 43.6}])
def test_search_needs_query_and_coordinates(seeded_client, params):
    assert seeded_client.get("/api/psw/search", params=params).status_code == 400


def test_available_is_cached_until_a_worker_is_added():
    repository = InMemoryRepository()
    redis = FakeRedis()
    app = create_app(
        Settings(),
        repository=repository,
        publisher=FakePublisher(),
        cache=MatchCache(redis, ttl_seconds=60, grid_deg=0.05),
    )
    with TestClient(app) as client:
        client.post("/api/seed")
        assert client.post("/api/psw/available", json=AVAILABLE).json()["total_count"] == 4
        assert len([k for k in redis.values if k.startswith("match:")]) == 1

        # written behind the API's back: the cached answer still stands
        asyncio.run(repository.create_psw(PSWProfile.model_validate({**NEW_PSW, "name": "Hidden"})))
        assert client.post("/api/psw/available", json=AVAILABLE).json()["total_count"] == 4

        # created through the API: answers for nearby cells are dropped
        client.post("/api/psw", json=NEW_PSW)
        assert redis.values == {}
        assert client.post("/api/psw/available", json=AVAILABLE).json()["total_count"] == 6

    assert redis.closed

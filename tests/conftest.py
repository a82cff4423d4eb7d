"""Shared fixtures: sample workers, a Toronto match request and an in-memory app."""
from datetime import date

import pytest
from fastapi.testclient import TestClient

from psw_service.config import Settings
from psw_service.main import create_app
from psw_service.repository import InMemoryRepository
from psw_service.sample_data import sample_profiles
from psw_service.schemas import Location, MatchRequest

from tests.fakes import FakePublisher

TORONTO = {"latitude": 43.6532, "longitude": -79.3832}


@pytest.fixture
def workers():
    return sample_profiles()


@pytest.fixture
def toronto():
    return Location(**TORONTO)


@pytest.fixture
def match_request(toronto):
    return MatchRequest(
        location=toronto,
        radius_km=15,
        date=date(2024, 1, 15),
        start_time="09:00",
        end_time="12:00",
        service_type="General Support",
    )


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def app(settings, repository, publisher):
    return create_app(settings, repository=repository, publisher=publisher)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seeded_client(client):
    assert client.post("/api/seed").status_code == 200
    return client

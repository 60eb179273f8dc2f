"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from roomchat.config import AppSettings, ChatSettings, DatabaseSettings
from roomchat.main import create_app
from roomchat.messages import MessageLedger
from roomchat.rooms import RoomDirectory
from roomchat.storage import MEMORY_DB, StorageService
from roomchat.users import ParticipantService


@pytest.fixture
def storage():
    """Provide a fresh in-memory DuckDB store with the schema applied."""
    service = StorageService(MEMORY_DB)
    service.initialize()
    yield service
    service.close()


@pytest.fixture
def participants(storage):
    return ParticipantService(storage)


@pytest.fixture
def rooms(storage):
    return RoomDirectory(storage)


@pytest.fixture
def ledger(storage):
    return MessageLedger(storage)


@pytest.fixture
def settings():
    """App settings backed by an in-memory store with the default rooms seeded."""
    return AppSettings(
        database=DatabaseSettings(path=MEMORY_DB),
        chat=ChatSettings(),
    )


@pytest.fixture
def client(settings):
    """TestClient with the lifespan running.

    Entering the client as a context manager starts the lifespan and makes
    every websocket opened from it share one event loop.
    """
    with TestClient(create_app(settings)) as test_client:
        yield test_client

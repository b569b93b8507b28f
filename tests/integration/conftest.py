from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsl.api import dependencies
from rsl.api.main import app
from rsl.infrastructure.db.models.group_session import GroupSessionModel  # noqa: F401
from rsl.infrastructure.db.models.reservation import ReservationModel  # noqa: F401
from rsl.infrastructure.db.models.venue import Base
from rsl.infrastructure.db.repositories.group_session_repo import (
    SqlAlchemyGroupSessionRepository,
)
from rsl.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsl.infrastructure.db.repositories.venue_repo import SqlAlchemyVenueRepository
from rsl.tools.seed import seed


class RecordingPublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, dict[str, Any]]] = []

    def publish(self, channel: str, message: str) -> None:
        self.messages.append((channel, json.loads(message)))

    def payloads(self) -> list[dict[str, Any]]:
        return [envelope["payload"] for _, envelope in self.messages]

    def types(self) -> list[str]:
        return [envelope["payload"]["type"] for _, envelope in self.messages]


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def client(engine: Engine, publisher: RecordingPublisher, monkeypatch) -> Iterator[TestClient]:
    monkeypatch.delenv("WARNING_SWEEP_ENABLED", raising=False)
    monkeypatch.setattr(dependencies, "venue_repository", lambda: SqlAlchemyVenueRepository(engine))
    monkeypatch.setattr(
        dependencies,
        "reservation_repository",
        lambda: SqlAlchemyReservationRepository(engine),
    )
    monkeypatch.setattr(
        dependencies,
        "session_repository",
        lambda: SqlAlchemyGroupSessionRepository(engine),
    )
    monkeypatch.setattr(dependencies, "notification_publisher", lambda: publisher)

    with TestClient(app) as test_client:
        yield test_client

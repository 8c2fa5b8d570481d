from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest

from planner.config import get_settings
from planner.db.base import Base
from planner.db.session import dispose_engine, get_engine
from planner.telemetry import TelemetryEvent, clear_listeners, register_listener


@pytest.fixture()
def planner_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    db_path = tmp_path / "planner.db"
    monkeypatch.setenv("PLANNER_DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield db_path
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture()
def telemetry_events() -> Iterator[List[TelemetryEvent]]:
    events: List[TelemetryEvent] = []
    clear_listeners()
    register_listener(events.append)
    yield events
    clear_listeners()

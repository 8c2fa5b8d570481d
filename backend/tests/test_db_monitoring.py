from __future__ import annotations

from sqlalchemy import create_engine, text

from planner.db import monitoring


def test_instrument_engine_emits_pool_status(monkeypatch) -> None:
    emitted: list[tuple[str, dict[str, object]]] = []

    def record(event_name: str, **payload: object) -> None:
        emitted.append((event_name, payload))

    monkeypatch.setattr(monitoring, "_TELEMETRY_INTERVAL", 0)
    monkeypatch.setattr(monitoring, "emit_event", record)

    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        monitoring.instrument_engine(engine)
        monitoring.instrument_engine(engine)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        assert emitted
        event_name, payload = emitted[0]
        assert event_name == "db_pool_status"
        assert payload["trigger"] == "connect"
        assert payload["connects"] == 1
        snapshot = monitoring.get_pool_snapshot(engine)
        assert snapshot["checkouts"] == 1
        assert snapshot["checkins"] == 1
    finally:
        monitoring.release_engine(engine)
        engine.dispose()


def test_released_engine_has_empty_snapshot() -> None:
    engine = create_engine("sqlite:///:memory:", future=True)
    monitoring.instrument_engine(engine)
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    monitoring.release_engine(engine)
    assert monitoring.get_pool_snapshot(engine)["connects"] == 0
    engine.dispose()

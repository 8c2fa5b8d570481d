from __future__ import annotations

import pytest

from planner.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_checklist_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANNER_CHECKLIST_CONCURRENCY", "8")
    monkeypatch.setenv("PLANNER_CHECKLIST_RETRIES", "0")
    settings = get_settings()
    assert settings.checklist_concurrency == 8
    assert settings.checklist_retries == 0


def test_invalid_settings_raise_runtime_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANNER_CHECKLIST_CONCURRENCY", "0")
    with pytest.raises(RuntimeError):
        get_settings()

from __future__ import annotations

import pytest

from scoutintake.config import IntakeConfig
from scoutintake.context import EventContext
from scoutintake.exceptions import ScoutConfigError

_SCOUT_VARS = (
    "SCOUT_EVENT_KEY",
    "SCOUT_MULTI_SCOUTING",
    "SCOUT_PIT_SCOUTING",
    "SCOUT_EXPECTED_OBSERVERS",
    "SCOUT_OPERATION_TIMEOUT",
    "SCOUT_DATABASE_URL",
    "SCOUT_SPREADSHEET_ID",
    "SCOUT_SHEETS_BASE_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _SCOUT_VARS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_reads_scout_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOUT_EVENT_KEY", "2025mnmi")
    monkeypatch.setenv("SCOUT_MULTI_SCOUTING", "yes")
    monkeypatch.setenv("SCOUT_EXPECTED_OBSERVERS", "2")
    monkeypatch.setenv("SCOUT_OPERATION_TIMEOUT", "4.5")

    config = IntakeConfig.from_env()

    assert config.event_key == "2025mnmi"
    assert config.multi_scouting is True
    assert config.pit_scouting is False
    assert config.expected_observers == 2
    assert config.operation_timeout == 4.5


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOUT_EVENT_KEY", "2025mnmi")
    monkeypatch.setenv("SCOUT_MULTI_SCOUTING", "true")

    config = IntakeConfig.from_env(event_key="2025wila", multi_scouting=False)

    assert config.event_key == "2025wila"
    assert config.multi_scouting is False


def test_missing_event_key_raises() -> None:
    with pytest.raises(ScoutConfigError):
        IntakeConfig.from_env()


def test_bad_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOUT_EVENT_KEY", "2025mnmi")
    monkeypatch.setenv("SCOUT_EXPECTED_OBSERVERS", "three")

    with pytest.raises(ScoutConfigError):
        IntakeConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"event_key": ""},
        {"event_key": "2025_mnmi"},
        {"event_key": "2025mnmi", "expected_observers": 0},
        {"event_key": "2025mnmi", "operation_timeout": 0},
    ],
)
def test_invalid_config_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ScoutConfigError):
        IntakeConfig(**kwargs)  # type: ignore[arg-type]


def test_event_context_is_replaced_not_mutated() -> None:
    config = IntakeConfig(event_key="2025mnmi")
    context = EventContext.from_config(config, roster=[118, 254])

    switched = context.with_event("2025wila", roster=[1678])

    assert context.event_key == "2025mnmi"
    assert context.roster == (118, 254)
    assert switched.event_key == "2025wila"
    assert switched.roster == (1678,)
    assert context.with_roster([7]).event_key == "2025mnmi"
    with pytest.raises(ValueError):
        EventContext(event_key="  ")

"""Intake configuration for scoutintake."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from scoutintake._constants import DEFAULT_MATCH_TAB, DEFAULT_PIT_TAB, SHEETS_BASE_URL
from scoutintake.exceptions import ScoutConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ScoutConfigError(f"{key} must be a {cast.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class IntakeConfig:
    """Pipeline configuration.

    Parameters
    ----------
    event_key : str
        Identifier of the active event (e.g. ``"2025mnmi"``).
    multi_scouting : bool
        Several observers cover the same subject and their reports are
        reconciled into one canonical record.
    expected_observers : int
        Number of observer reports that make a subject complete in
        multi-observer mode.
    spreadsheet_id : str
        Target spreadsheet for row writes.
    match_tab : str
        Tab receiving match rows.
    pit_tab : str
        Tab receiving pit rows.
    pit_scouting : bool
        Whether pit reports are accepted at this event.
    database_url : str
        SQLAlchemy URL for the report ledger and schedule store.
    operation_timeout : float
        Default bound, in seconds, on one intake operation including the
        output write.
    sheets_base_url : str
        Base URL of the Sheets values API.
    """

    event_key: str
    multi_scouting: bool = False
    expected_observers: int = 3
    spreadsheet_id: str = ""
    match_tab: str = DEFAULT_MATCH_TAB
    pit_tab: str = DEFAULT_PIT_TAB
    pit_scouting: bool = False
    database_url: str = "sqlite:///scout.db"
    operation_timeout: float = 15.0
    sheets_base_url: str = SHEETS_BASE_URL

    def __post_init__(self) -> None:
        if not self.event_key.strip():
            raise ScoutConfigError("event_key must be non-empty")
        if "_" in self.event_key:
            raise ScoutConfigError(f"event_key may not contain '_': {self.event_key!r}")
        if self.expected_observers < 1:
            raise ScoutConfigError("expected_observers must be at least 1")
        if self.operation_timeout <= 0:
            raise ScoutConfigError("operation_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> IntakeConfig:
        """Create configuration from environment variables.

        Reads ``SCOUT_EVENT_KEY`` and optional ``SCOUT_*`` variables.
        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "SCOUT_EVENT_KEY": "event_key",
            "SCOUT_SPREADSHEET_ID": "spreadsheet_id",
            "SCOUT_MATCH_TAB": "match_tab",
            "SCOUT_PIT_TAB": "pit_tab",
            "SCOUT_DATABASE_URL": "database_url",
            "SCOUT_SHEETS_BASE_URL": "sheets_base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "multi_scouting" not in overrides:
            config_kwargs["multi_scouting"] = _env_bool(env.get("SCOUT_MULTI_SCOUTING"), False)
        if "pit_scouting" not in overrides:
            config_kwargs["pit_scouting"] = _env_bool(env.get("SCOUT_PIT_SCOUTING"), False)

        observers = _env_number(env, "SCOUT_EXPECTED_OBSERVERS", int)
        if observers is not None and "expected_observers" not in overrides:
            config_kwargs["expected_observers"] = observers

        timeout = _env_number(env, "SCOUT_OPERATION_TIMEOUT", float)
        if timeout is not None and "operation_timeout" not in overrides:
            config_kwargs["operation_timeout"] = timeout

        config_kwargs.update(overrides)

        if "event_key" not in config_kwargs:
            raise ScoutConfigError("SCOUT_EVENT_KEY is not set")
        return cls(**config_kwargs)

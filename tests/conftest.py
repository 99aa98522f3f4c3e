from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine, create_engine

from scoutintake._orm import create_schema


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    # File-backed so executor threads each get their own connection.
    engine = create_engine(f"sqlite:///{tmp_path / 'scout.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


class RecordingWriter:
    """Output writer double that records every block it is handed."""

    def __init__(self, *, result: bool = True, delay: float = 0.0, error: Exception | None = None) -> None:
        self.result = result
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, int, list[list[Any]], str]] = []
        self.entered = asyncio.Event()

    async def write_rows(
        self,
        target: str,
        first_row: int,
        rows: Sequence[Sequence[Any]],
        *,
        column: str = "B",
    ) -> bool:
        self.entered.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.calls.append((target, first_row, [list(row) for row in rows], column))
        return self.result

    @property
    def last_values(self) -> list[Any]:
        return self.calls[-1][2][0]


def match_payload(
    *,
    team: int = 1234,
    match: int = 1,
    is_blue: bool = False,
    station: int = 1,
    scouter: str = "alice",
    cycles: list[dict[str, Any]] | None = None,
    park_status: int = 0,
    endgame_time: float = 0.0,
    rescouting: bool = False,
    prescouting: bool = False,
    notes: str = "",
    **extra: Any,
) -> bytes:
    data: dict[str, Any] = {
        "Team": team,
        "Match": {"Number": match, "isReplay": False},
        "Scouter": scouter,
        "Driver Station": {"Is Blue": is_blue, "Number": station},
        "Cycles": cycles if cycles is not None else [{"Time": 20.0, "Type": "Coral Level 4", "Success": True}],
        "Pickup Locations": {
            "Coral Ground": False,
            "Coral Source": True,
            "Algae Ground": False,
            "Algae Source": False,
        },
        "Auto": {"Can": True, "Scores": 2, "Misses": 1, "Ejects": 0},
        "Endgame": {"Parking Status": park_status, "Time": endgame_time},
        "Misc": {"Lost Communication or Disabled": False, "User Lost Track": False},
        "Penalties": None,
        "Rescouting": rescouting,
        "Prescouting": prescouting,
        "Notes": notes,
    }
    data.update(extra)
    return json.dumps(data).encode("utf-8")


def pit_payload(*, team: int = 1234, scouter: str = "pat", **extra: Any) -> bytes:
    data: dict[str, Any] = {
        "Team": team,
        "Scouter": scouter,
        "Drive Train": "Swerve",
        "Gear Ratio": "6.75:1",
        "Coral Position": {"L1": True, "L2": False, "L3": True, "L4": True},
        "Algae Position": {"A1": True, "A2": False},
        "Algae Ground Pickup": True,
        "Algae Source Pickup": False,
        "Driver Years of Experience": 2,
        "Cycle Time": "8s",
        "Dyanamic Auto?": True,
        "Notes": "solid build",
    }
    data.update(extra)
    return json.dumps(data).encode("utf-8")

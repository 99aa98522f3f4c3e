"""Output collaborator: row cell values and the writer that places them.

The intake pipeline only depends on the :class:`OutputWriter` protocol.
:class:`SheetsValuesWriter` is the production implementation against the
Sheets values API over aiohttp; obtaining its bearer token is left to the
caller.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol
from urllib.parse import quote

import aiohttp

from scoutintake._constants import CYCLE_CATEGORIES, SHEETS_BASE_URL
from scoutintake._diagnostics import redact_for_log
from scoutintake.config import IntakeConfig
from scoutintake.exceptions import OutputWriteError, ScoutConfigError
from scoutintake.metrics import (
    auto_accuracy,
    category_accuracies,
    category_tendencies,
    compile_notes,
    cycle_count,
    mean_cycle_time,
    park_status_label,
    pickup_summary,
)
from scoutintake.models.canonical import CanonicalRecord
from scoutintake.models.pit import PitReport
from scoutintake.models.report import MatchReport
from scoutintake.rows import match_number_column

_logger = logging.getLogger(__name__)

Cell = Any


class OutputWriter(Protocol):
    """Structural interface for whatever receives finished rows.

    Implementations return ``False`` or raise :class:`OutputWriteError`
    on failure; neither retries.
    """

    async def write_rows(
        self,
        target: str,
        first_row: int,
        rows: Sequence[Sequence[Cell]],
        *,
        column: str = "B",
    ) -> bool: ...


async def write_row(writer: OutputWriter, target: str, row: int, values: Sequence[Cell]) -> bool:
    return await writer.write_rows(target, row, [list(values)])


async def fill_match_numbers(writer: OutputWriter, target: str, start_match: int, end_match: int) -> bool:
    """Label column A with match numbers for ``start_match..end_match``."""
    ok = True
    for first_row, values in match_number_column(start_match, end_match):
        ok = await writer.write_rows(target, first_row, values, column="A") and ok
    return ok


# ------------------------------------------------------------------
# Row values
# ------------------------------------------------------------------


def _category_cells(cycles: Sequence[Any]) -> list[Cell]:
    tendencies = category_tendencies(cycles)
    accuracies = category_accuracies(cycles)
    cells: list[Cell] = []
    for category in CYCLE_CATEGORIES:
        cells.append(round(tendencies[category] * 100, 2))
        cells.append(accuracies[category].cell())
    return cells


def match_row_values(report: MatchReport) -> list[Cell]:
    """One row for a single-observer report."""
    return [
        report.team_number,
        mean_cycle_time(report.cycles).cell(),
        cycle_count(report.cycles),
        *_category_cells(report.cycles),
        pickup_summary(report.pickups),
        report.auto.can,
        report.auto.scores,
        auto_accuracy(report.auto).cell(),
        report.auto.ejects,
        report.endgame.time,
        park_status_label(report.endgame),
        compile_notes(report),
    ]


def canonical_notes(record: CanonicalRecord) -> str:
    note = ""
    if record.lost_track:
        note += "LOST TRACK; "
    if record.disconnected:
        note += "DISCONNECTED; "
    return note + "; ".join(record.notes)


def canonical_row_values(record: CanonicalRecord) -> list[Cell]:
    """One row for a reconciled multi-observer record."""
    return [
        record.team_number,
        record.cycles.mean_cycle_time,
        record.cycles.cycle_count,
        *_category_cells(record.cycles.all_cycles),
        pickup_summary(record.pickups),
        record.auto.can,
        record.auto.scores,
        auto_accuracy(record.auto).cell(),
        record.auto.ejects,
        record.endgame_time,
        record.parked,
        canonical_notes(record),
    ]


def pit_row_values(pit: PitReport) -> list[Cell]:
    return [
        pit.team_number,
        pit.scouter,
        pit.drivetrain,
        pit.gear_ratio,
        pit.coral.summary(),
        pit.algae.summary(),
        pit.algae_ground,
        pit.algae_source,
        pit.cycle_time,
        pit.driver_experience,
        pit.preferred_teleop,
        pit.preferred_endgame,
        pit.shallow_climb,
        pit.deep_climb,
        pit.complement,
        pit.favorite_part,
        pit.notes,
    ]


# ------------------------------------------------------------------
# Sheets values API writer
# ------------------------------------------------------------------


class SheetsValuesWriter:
    """Write rows with ``PUT .../values/{range}?valueInputOption=RAW``."""

    def __init__(
        self,
        spreadsheet_id: str,
        http_session: aiohttp.ClientSession,
        token_provider: Callable[[], Awaitable[str]],
        *,
        base_url: str = SHEETS_BASE_URL,
    ) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._http = http_session
        self._token_provider = token_provider
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_config(
        cls,
        config: IntakeConfig,
        http_session: aiohttp.ClientSession,
        token_provider: Callable[[], Awaitable[str]],
    ) -> SheetsValuesWriter:
        """Writer for ``config.spreadsheet_id`` at ``config.sheets_base_url``."""
        if not config.spreadsheet_id.strip():
            raise ScoutConfigError("spreadsheet_id must be set to write rows")
        return cls(config.spreadsheet_id, http_session, token_provider, base_url=config.sheets_base_url)

    def _url(self, cell_range: str) -> str:
        return f"{self._base_url}/{self._spreadsheet_id}/values/{quote(cell_range, safe='!:')}"

    async def write_rows(
        self,
        target: str,
        first_row: int,
        rows: Sequence[Sequence[Cell]],
        *,
        column: str = "B",
    ) -> bool:
        """Overwrite the block starting at ``{target}!{column}{first_row}``."""
        cell_range = f"{target}!{column}{first_row}"
        token = await self._token_provider()
        headers = {
            "authorization": f"Bearer {token}",
            "content-type": "application/json; charset=UTF-8",
        }
        body = json.dumps({"range": cell_range, "majorDimension": "ROWS", "values": [list(row) for row in rows]})

        _logger.debug("PUT %s headers=%s", cell_range, redact_for_log(headers))

        try:
            async with self._http.put(
                self._url(cell_range),
                params={"valueInputOption": "RAW"},
                data=body,
                headers=headers,
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise OutputWriteError(
                        f"HTTP {resp.status} writing {cell_range}: {text[:200]}",
                        status_code=resp.status,
                        target=cell_range,
                    )
        except aiohttp.ClientError as exc:
            raise OutputWriteError(f"Write to {cell_range} failed: {exc}", target=cell_range) from exc
        return True

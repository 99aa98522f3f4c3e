from __future__ import annotations

import json
from typing import Any

import aiohttp
import pytest
from conftest import RecordingWriter, match_payload, pit_payload

from scoutintake.config import IntakeConfig
from scoutintake.exceptions import OutputWriteError, ScoutConfigError
from scoutintake.parser import parse_match_report, parse_pit_report
from scoutintake.reconcile import compile_canonical
from scoutintake.sheet import (
    SheetsValuesWriter,
    canonical_row_values,
    fill_match_numbers,
    match_row_values,
    pit_row_values,
)


class _FakeResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *_exc: object) -> bool:
        return False


class _FakeSession:
    def __init__(self, *, status: int = 200, text: str = "{}", error: Exception | None = None) -> None:
        self._status = status
        self._text = text
        self._error = error
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def put(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append((url, kwargs))
        if self._error is not None:
            raise self._error
        return _FakeResponse(self._status, self._text)


async def _token() -> str:
    return "secret-token"


def _writer(session: _FakeSession) -> SheetsValuesWriter:
    return SheetsValuesWriter(
        "sheet-1",
        session,  # type: ignore[arg-type]
        _token,
        base_url="https://sheets.example.test/v4/spreadsheets/",
    )


@pytest.mark.asyncio
async def test_write_rows_puts_values_at_range() -> None:
    session = _FakeSession()

    ok = await _writer(session).write_rows("RawData", 8, [[1234, "N/A", 0]])

    assert ok is True
    url, kwargs = session.requests[0]
    assert url == "https://sheets.example.test/v4/spreadsheets/sheet-1/values/RawData!B8"
    assert kwargs["params"] == {"valueInputOption": "RAW"}
    assert kwargs["headers"]["authorization"] == "Bearer secret-token"
    body = json.loads(kwargs["data"])
    assert body == {"range": "RawData!B8", "majorDimension": "ROWS", "values": [[1234, "N/A", 0]]}


@pytest.mark.asyncio
async def test_range_with_space_is_quoted() -> None:
    session = _FakeSession()

    await _writer(session).write_rows("Raw Data", 2, [[1]], column="A")

    assert session.requests[0][0].endswith("/values/Raw%20Data!A2")


@pytest.mark.asyncio
async def test_http_error_raises_output_write_error() -> None:
    session = _FakeSession(status=429, text="quota exceeded")

    with pytest.raises(OutputWriteError) as exc_info:
        await _writer(session).write_rows("RawData", 2, [[1]])

    assert exc_info.value.status_code == 429
    assert exc_info.value.target == "RawData!B2"


@pytest.mark.asyncio
async def test_client_error_raises_output_write_error() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))

    with pytest.raises(OutputWriteError) as exc_info:
        await _writer(session).write_rows("RawData", 2, [[1]])

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_writer_from_config_targets_configured_sheet() -> None:
    session = _FakeSession()
    config = IntakeConfig(
        event_key="2025mnmi",
        spreadsheet_id="sheet-9",
        sheets_base_url="https://sheets.example.test/v4/spreadsheets",
    )

    await SheetsValuesWriter.from_config(config, session, _token).write_rows("RawData", 3, [[1]])  # type: ignore[arg-type]

    assert session.requests[0][0] == "https://sheets.example.test/v4/spreadsheets/sheet-9/values/RawData!B3"


def test_writer_from_config_requires_spreadsheet_id() -> None:
    with pytest.raises(ScoutConfigError):
        SheetsValuesWriter.from_config(IntakeConfig(event_key="2025mnmi"), _FakeSession(), _token)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_fill_match_numbers_labels_column_a() -> None:
    writer = RecordingWriter()

    assert await fill_match_numbers(writer, "RawData", 1, 2) is True

    assert [(call[1], call[3]) for call in writer.calls] == [(2, "A"), (8, "A")]
    assert writer.calls[1][2] == [[2]] * 6


def test_match_row_values_layout() -> None:
    report = parse_match_report(
        match_payload(
            team=118,
            cycles=[
                {"Time": 10.0, "Type": "Coral Level 4", "Success": True},
                {"Time": 30.0, "Type": "Net", "Success": False},
            ],
            park_status=6,
            endgame_time=12.0,
            notes="ok",
        )
    )

    values = match_row_values(report)

    assert values[0] == 118
    assert values[1] == pytest.approx(15.0)
    assert values[2] == 2
    # Seven categories, each tendency (%) followed by its accuracy.
    assert values[3:5] == [0.0, "N/A"]
    assert values[9:11] == [50.0, 100.0]
    assert values[13:15] == [50.0, 0.0]
    assert values[17] == "CORAL SOURCE;"
    assert values[-3:] == [12.0, "Climbed Deep Cage", "ok"]
    assert len(values) == 25


def test_canonical_row_values_layout() -> None:
    record = compile_canonical(
        [
            parse_match_report(match_payload(notes="a", Misc={"User Lost Track": True})),
            parse_match_report(match_payload(notes="b")),
        ]
    )

    values = canonical_row_values(record)

    assert values[0] == 1234
    assert values[-1] == "LOST TRACK; a; b"
    assert len(values) == len(match_row_values(parse_match_report(match_payload())))


def test_pit_row_values() -> None:
    values = pit_row_values(parse_pit_report(pit_payload(team=118)))

    assert values[:4] == [118, "pat", "Swerve", "6.75:1"]
    assert values[4:6] == ["L1, L3, L4", "A1/L2"]
    assert values[-1] == "solid build"

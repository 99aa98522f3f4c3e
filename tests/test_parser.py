from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import match_payload, pit_payload

from scoutintake.exceptions import ParseFailureReason, ReportParseError
from scoutintake.metrics import cycles_valid
from scoutintake.parser import parse_match_report, parse_pit_report, parse_report, read_report
from scoutintake.rows import station_label
from scoutintake.state.lifecycle import ReportKind


def test_parse_match_report_reads_nested_fields() -> None:
    report = parse_match_report(match_payload(team=254, match=12, is_blue=True, station=3, notes="fast"))

    assert report.team_number == 254
    assert report.match.number == 12
    assert station_label(report.driver_station.is_blue, report.driver_station.number) == "blue3"
    assert report.cycles[0].type == "Coral Level 4"
    assert report.pickups.coral_source is True
    assert report.auto.scores == 2
    assert report.notes == "fast"


def test_null_cycles_and_penalties_become_empty() -> None:
    report = parse_match_report(match_payload(Cycles=None, Penalties=None))

    assert report.cycles == ()
    assert report.penalties == ()
    assert cycles_valid(report.cycles) is False


def test_unknown_keys_are_ignored() -> None:
    report = parse_match_report(match_payload(**{"Brand New Field": {"x": 1}}))
    assert report.team_number == 1234


def test_missing_payload_is_read_failure() -> None:
    with pytest.raises(ReportParseError) as exc_info:
        parse_match_report(None, name="evt_1_red1_a")

    assert exc_info.value.reason is ParseFailureReason.READ
    assert exc_info.value.size is None
    assert exc_info.value.name == "evt_1_red1_a"


@pytest.mark.parametrize(
    "payload",
    [
        b"{not json",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        json.dumps({"Team": 1}).encode(),
        json.dumps({"Team": "x", "Match": {"Number": 1}, "Driver Station": {"Number": 1}}).encode(),
    ],
)
def test_malformed_payload_is_decode_failure(payload: bytes) -> None:
    with pytest.raises(ReportParseError) as exc_info:
        parse_report(payload, ReportKind.MATCH)

    assert exc_info.value.reason is ParseFailureReason.DECODE
    assert exc_info.value.size == len(payload)


def test_station_out_of_range_is_rejected() -> None:
    payload = match_payload(**{"Driver Station": {"Is Blue": False, "Number": 4}})
    with pytest.raises(ReportParseError):
        parse_match_report(payload)


def test_parse_pit_report_accepts_client_spelling() -> None:
    report = parse_pit_report(pit_payload(team=118))

    assert report.team_number == 118
    assert report.dynamic_auto is True
    assert report.coral.summary() == "L1, L3, L4"
    assert report.algae.summary() == "A1/L2"


def test_read_report_missing_file_is_read_failure(tmp_path: Path) -> None:
    with pytest.raises(ReportParseError) as exc_info:
        read_report(tmp_path / "absent.json", ReportKind.MATCH)
    assert exc_info.value.reason is ParseFailureReason.READ


def test_read_report_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "evt_3_red2_bob.json"
    path.write_bytes(match_payload(match=3, station=2, scouter="bob"))

    report = read_report(path, ReportKind.MATCH)

    assert report.scouter == "bob"
    assert report.driver_station.number == 2

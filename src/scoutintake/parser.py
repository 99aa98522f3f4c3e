"""Decode raw scouting payloads into validated reports.

Parsing is all-or-nothing: either a fully populated model comes back or
:class:`~scoutintake.exceptions.ReportParseError` is raised.  Nothing here
retries; retry policy belongs to the caller.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal, overload

from pydantic import ValidationError

from scoutintake._diagnostics import describe_payload
from scoutintake.exceptions import ParseFailureReason, ReportParseError
from scoutintake.models.pit import PitReport
from scoutintake.models.report import MatchReport
from scoutintake.state.lifecycle import ReportKind

_logger = logging.getLogger(__name__)


def _decode_json(payload: bytes, *, name: str) -> dict[str, object]:
    try:
        decoded = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ReportParseError(
            f"Payload {name or '<unnamed>'} is not valid JSON: {exc}",
            reason=ParseFailureReason.DECODE,
            name=name,
            size=len(payload),
        ) from exc

    if not isinstance(decoded, dict):
        raise ReportParseError(
            f"Payload {name or '<unnamed>'} is not a JSON object",
            reason=ParseFailureReason.DECODE,
            name=name,
            size=len(payload),
        )
    return decoded


@overload
def parse_report(payload: bytes | None, kind: Literal[ReportKind.MATCH], *, name: str = "") -> MatchReport: ...


@overload
def parse_report(payload: bytes | None, kind: Literal[ReportKind.PIT], *, name: str = "") -> PitReport: ...


@overload
def parse_report(payload: bytes | None, kind: ReportKind, *, name: str = "") -> MatchReport | PitReport: ...


def parse_report(payload: bytes | None, kind: ReportKind, *, name: str = "") -> MatchReport | PitReport:
    """Parse *payload* as a report of *kind*.

    Raises
    ------
    ReportParseError
        ``reason=READ`` when there is no payload, ``reason=DECODE`` when it
        is not JSON, not an object, or fails model validation.
    """
    if payload is None:
        _logger.warning("Report %s has no payload", name or "<unnamed>")
        raise ReportParseError(
            f"Payload {name or '<unnamed>'} is unavailable",
            reason=ParseFailureReason.READ,
            name=name,
        )

    data = _decode_json(payload, name=name)
    model: type[MatchReport] | type[PitReport] = MatchReport if kind == ReportKind.MATCH else PitReport
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        _logger.warning(
            "Report %s failed %s validation (%d errors): %s",
            name or "<unnamed>",
            kind.value,
            exc.error_count(),
            describe_payload(payload),
        )
        raise ReportParseError(
            f"Payload {name or '<unnamed>'} is not a valid {kind.value} report: {exc.error_count()} errors",
            reason=ParseFailureReason.DECODE,
            name=name,
            size=len(payload),
        ) from exc


def parse_match_report(payload: bytes | None, *, name: str = "") -> MatchReport:
    return parse_report(payload, ReportKind.MATCH, name=name)


def parse_pit_report(payload: bytes | None, *, name: str = "") -> PitReport:
    return parse_report(payload, ReportKind.PIT, name=name)


def read_report(path: Path, kind: ReportKind) -> MatchReport | PitReport:
    """Read and parse a report file; an unreadable file is a ``READ`` failure."""
    try:
        payload = path.read_bytes()
    except OSError as exc:
        raise ReportParseError(
            f"Could not read {path}: {exc}",
            reason=ParseFailureReason.READ,
            name=path.name,
        ) from exc
    return parse_report(payload, kind, name=path.name)

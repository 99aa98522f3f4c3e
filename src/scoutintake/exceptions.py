"""Custom exception hierarchy for scoutintake."""

from __future__ import annotations

import enum


class ParseFailureReason(enum.StrEnum):
    """Why a payload could not be turned into a report."""

    READ = "read"
    DECODE = "decode"


class ScoutError(Exception):
    """Base exception for all scoutintake errors."""


class ScoutConfigError(ScoutError):
    """Invalid or missing configuration."""


class ReportParseError(ScoutError):
    """Payload was unavailable or could not be decoded into a report.

    ``reason`` separates a payload that could not be read at all from one
    that was read but is malformed.  ``size`` is ``None`` when nothing was
    read.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: ParseFailureReason,
        name: str = "",
        size: int | None = None,
    ) -> None:
        self.reason = reason
        self.name = name
        self.size = size
        super().__init__(message)


class ReportValidationError(ScoutError):
    """A decoded report is not acceptable for finalization (e.g. no match number)."""


class TransitionError(ScoutError):
    """A lifecycle transition was illegal or lost a compare-and-swap race."""

    def __init__(
        self,
        message: str,
        *,
        name: str = "",
        expected: str = "",
        actual: str | None = None,
    ) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class ScheduleStoreError(ScoutError):
    """Persistent schedule store failure."""


class OutputWriteError(ScoutError):
    """Output collaborator rejected or failed a row write."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        target: str = "",
    ) -> None:
        self.status_code = status_code
        self.target = target
        super().__init__(message)

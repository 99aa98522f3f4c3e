"""scoutintake - Scouting report intake, reconciliation and scheduling."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("scoutintake")
except PackageNotFoundError:
    __version__ = "0+local"
from scoutintake._orm import create_schema
from scoutintake.config import IntakeConfig
from scoutintake.context import EventContext
from scoutintake.exceptions import (
    OutputWriteError,
    ParseFailureReason,
    ReportParseError,
    ReportValidationError,
    ScheduleStoreError,
    ScoutConfigError,
    ScoutError,
    TransitionError,
)
from scoutintake.intake import IntakeResult, IntakeStateMachine
from scoutintake.models import (
    CanonicalRecord,
    CoverageRange,
    MatchReport,
    Metric,
    PitReport,
    ScheduleRanges,
    SubjectKey,
)
from scoutintake.parser import parse_match_report, parse_pit_report, parse_report, read_report
from scoutintake.reconcile import compile_canonical
from scoutintake.rows import match_row, pit_row
from scoutintake.schedule import ScheduleStore
from scoutintake.sheet import OutputWriter, SheetsValuesWriter
from scoutintake.state.ledger import ReportEntry, ReportLedger
from scoutintake.state.lifecycle import FailureReason, ReportKind, ReportState

__all__ = [
    "__version__",
    "CanonicalRecord",
    "CoverageRange",
    "EventContext",
    "FailureReason",
    "IntakeConfig",
    "IntakeResult",
    "IntakeStateMachine",
    "MatchReport",
    "Metric",
    "OutputWriteError",
    "OutputWriter",
    "ParseFailureReason",
    "PitReport",
    "ReportEntry",
    "ReportKind",
    "ReportLedger",
    "ReportParseError",
    "ReportState",
    "ReportValidationError",
    "ScheduleRanges",
    "ScheduleStore",
    "ScheduleStoreError",
    "ScoutConfigError",
    "ScoutError",
    "SheetsValuesWriter",
    "SubjectKey",
    "TransitionError",
    "compile_canonical",
    "create_schema",
    "match_row",
    "parse_match_report",
    "parse_pit_report",
    "parse_report",
    "pit_row",
    "read_report",
]

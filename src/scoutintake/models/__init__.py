"""Data models for scouting payloads and derived records."""

from scoutintake.models._base import Metric, ScoutBaseModel
from scoutintake.models.canonical import CanonicalRecord, CompositeCycleData
from scoutintake.models.pit import AlgaePositions, CoralPositions, PitReport
from scoutintake.models.report import (
    AutoData,
    Cycle,
    DriverStation,
    EndgameData,
    MatchInfo,
    MatchReport,
    MiscData,
    PickupLocations,
    SubjectKey,
)
from scoutintake.models.schedule import CoverageRange, ScheduleRanges

__all__ = [
    "AlgaePositions",
    "AutoData",
    "CanonicalRecord",
    "CompositeCycleData",
    "CoralPositions",
    "CoverageRange",
    "Cycle",
    "DriverStation",
    "EndgameData",
    "MatchInfo",
    "MatchReport",
    "Metric",
    "MiscData",
    "PickupLocations",
    "PitReport",
    "ScheduleRanges",
    "ScoutBaseModel",
    "SubjectKey",
]

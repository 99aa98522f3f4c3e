"""Canonical (multi-observer) record model."""

from __future__ import annotations

from pydantic import Field

from scoutintake.models._base import ScoutBaseModel
from scoutintake.models.report import AutoData, Cycle, DriverStation, MatchInfo, PickupLocations


class CompositeCycleData(ScoutBaseModel):
    """Cycle statistics merged across observers."""

    cycle_count: int = 0
    mean_cycle_time: float = 0.0
    all_cycles: tuple[Cycle, ...] = ()
    had_mismatches: bool = False


class CanonicalRecord(ScoutBaseModel):
    """Reconciled view of one subject.

    Derived only: a pure function of the observer reports it was built
    from, recomputed whenever that set changes.
    """

    team_number: int
    match: MatchInfo
    driver_station: DriverStation
    scouters: tuple[str, ...] = ()
    cycles: CompositeCycleData = Field(default_factory=CompositeCycleData)
    pickups: PickupLocations = Field(default_factory=PickupLocations)
    auto: AutoData = Field(default_factory=AutoData)
    parked: bool = False
    endgame_time: float = 0.0
    lost_track: bool = False
    disconnected: bool = False
    notes: tuple[str, ...] = ()
    observer_count: int = 1

    @property
    def had_mismatches(self) -> bool:
        return self.cycles.had_mismatches

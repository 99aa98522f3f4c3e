"""Single-observer match report models."""

from __future__ import annotations

from pydantic import Field, field_validator

from scoutintake._constants import PARK_ACHIEVED_THRESHOLD
from scoutintake.models._base import ScoutBaseModel
from scoutintake.rows import station_label


class MatchInfo(ScoutBaseModel):
    """Match number as assigned by the schedule (``0`` = not yet assigned)."""

    number: int = Field(default=0, ge=0, alias="Number")
    is_replay: bool = Field(default=False, alias="isReplay")


class DriverStation(ScoutBaseModel):
    """Alliance colour and station (1-3)."""

    is_blue: bool = Field(default=False, alias="Is Blue")
    number: int = Field(ge=1, le=3, alias="Number")


class Cycle(ScoutBaseModel):
    """One scoring attempt."""

    time: float = Field(default=0.0, alias="Time")
    type: str = Field(default="", alias="Type")
    success: bool = Field(default=False, alias="Success")


class PickupLocations(ScoutBaseModel):
    coral_ground: bool = Field(default=False, alias="Coral Ground")
    coral_source: bool = Field(default=False, alias="Coral Source")
    algae_ground: bool = Field(default=False, alias="Algae Ground")
    algae_source: bool = Field(default=False, alias="Algae Source")


class AutoData(ScoutBaseModel):
    """Autonomous-period tally."""

    can: bool = Field(default=False, alias="Can")
    scores: int = Field(default=0, alias="Scores")
    misses: int = Field(default=0, alias="Misses")
    ejects: int = Field(default=0, alias="Ejects")


class EndgameData(ScoutBaseModel):
    park_status: int = Field(default=0, ge=0, le=6, alias="Parking Status")
    time: float = Field(default=0.0, alias="Time")

    @property
    def achieved(self) -> bool:
        """Whether a park/climb tier was reached."""
        return self.park_status > PARK_ACHIEVED_THRESHOLD


class MiscData(ScoutBaseModel):
    disconnected: bool = Field(default=False, alias="Lost Communication or Disabled")
    lost_track: bool = Field(default=False, alias="User Lost Track")


class SubjectKey(ScoutBaseModel):
    """Identity of one match row: event, match, alliance and station.

    ``str(key)`` is the filename prefix used to group observer reports of
    the same subject.
    """

    event_key: str
    match_number: int
    is_blue: bool
    station: int

    def __str__(self) -> str:
        return f"{self.event_key}_{self.match_number}_{station_label(self.is_blue, self.station)}"


class MatchReport(ScoutBaseModel):
    """One observer's account of one robot in one match.

    Parameters
    ----------
    team_number : int
        Observed team.
    match : MatchInfo
        Match number and replay flag.
    scouter : str
        Observer identity.
    driver_station : DriverStation
        Alliance colour and station.
    cycles : list of Cycle
        Scoring attempts in the order recorded.
    rescouting : bool
        Supersede any finalized data for the same subject.
    prescouting : bool
        Accept the report without an assigned match number.
    """

    team_number: int = Field(ge=0, alias="Team")
    match: MatchInfo = Field(alias="Match")
    scouter: str = Field(default="", alias="Scouter")
    driver_station: DriverStation = Field(alias="Driver Station")
    cycles: tuple[Cycle, ...] = Field(default=(), alias="Cycles")
    pickups: PickupLocations = Field(default_factory=PickupLocations, alias="Pickup Locations")
    auto: AutoData = Field(default_factory=AutoData, alias="Auto")
    endgame: EndgameData = Field(default_factory=EndgameData, alias="Endgame")
    misc: MiscData = Field(default_factory=MiscData, alias="Misc")
    penalties: tuple[str, ...] = Field(default=(), alias="Penalties")
    rescouting: bool = Field(default=False, alias="Rescouting")
    prescouting: bool = Field(default=False, alias="Prescouting")
    notes: str = Field(default="", alias="Notes")

    @field_validator("cycles", "penalties", mode="before")
    @classmethod
    def _null_to_empty(cls, value: object) -> object:
        # Clients serialize empty lists as null.
        return () if value is None else value

    @property
    def has_match_number(self) -> bool:
        return self.match.number > 0

    def subject(self, event_key: str) -> SubjectKey:
        return SubjectKey(
            event_key=event_key,
            match_number=self.match.number,
            is_blue=self.driver_station.is_blue,
            station=self.driver_station.number,
        )

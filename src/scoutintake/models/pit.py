"""Pit-inspection report model."""

from __future__ import annotations

from pydantic import Field

from scoutintake.models._base import ScoutBaseModel


class CoralPositions(ScoutBaseModel):
    l1: bool = Field(default=False, alias="L1")
    l2: bool = Field(default=False, alias="L2")
    l3: bool = Field(default=False, alias="L3")
    l4: bool = Field(default=False, alias="L4")

    def summary(self) -> str:
        levels = [name for name, on in (("L1", self.l1), ("L2", self.l2), ("L3", self.l3), ("L4", self.l4)) if on]
        return ", ".join(levels) if levels else "NONE"


class AlgaePositions(ScoutBaseModel):
    a1: bool = Field(default=False, alias="A1")
    a2: bool = Field(default=False, alias="A2")

    def summary(self) -> str:
        if self.a1 and self.a2:
            return "BOTH"
        if self.a1:
            return "A1/L2"
        if self.a2:
            return "A2/L3"
        return "NONE"


class PitReport(ScoutBaseModel):
    """One observer's pit inspection of one team.

    Pit reports are never reconciled across observers and carry no
    rescouting/prescouting overrides.
    """

    team_number: int = Field(ge=0, alias="Team")
    scouter: str = Field(default="", alias="Scouter")
    notes: str = Field(default="", alias="Notes")

    weight: str = Field(default="", alias="Weight")
    auto_count: str = Field(default="", alias="Number of Autos")
    # Clients send the key with this spelling.
    dynamic_auto: bool = Field(default=False, alias="Dyanamic Auto?")

    drivetrain: str = Field(default="", alias="Drive Train")
    gear_ratio: str = Field(default="", alias="Gear Ratio")
    coral: CoralPositions = Field(default_factory=CoralPositions, alias="Coral Position")
    algae: AlgaePositions = Field(default_factory=AlgaePositions, alias="Algae Position")
    algae_ground: bool = Field(default=False, alias="Algae Ground Pickup")
    algae_source: bool = Field(default=False, alias="Algae Source Pickup")
    driver_experience: int = Field(default=0, alias="Driver Years of Experience")
    cycle_time: str = Field(default="", alias="Cycle Time")
    preferred_teleop: int = Field(default=0, alias="Preferred Teleop")
    preferred_endgame: int = Field(default=0, alias="Preferred Endgame")
    shallow_climb: bool = Field(default=False, alias="Can Climb Shallow Cage")
    deep_climb: bool = Field(default=False, alias="Can Climb Deep Cage")
    complement: str = Field(default="", alias="What Type of Robot Would Compliment You Best?")
    favorite_part: str = Field(default="", alias="Favorite Part of the Robot?")

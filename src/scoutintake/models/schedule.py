"""Observer schedule models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CoverageRange(BaseModel):
    """One observer assigned to a contiguous span of matches at one station."""

    model_config = ConfigDict(frozen=True)

    station_offset: int = Field(ge=0, le=5)
    start_match: int = Field(ge=0)
    end_match: int = Field(ge=0)

    @classmethod
    def from_triple(cls, triple: Any) -> CoverageRange:
        offset, start, end = triple
        return cls(station_offset=offset, start_match=start, end_match=end)

    def as_triple(self) -> list[int]:
        return [self.station_offset, self.start_match, self.end_match]


class ScheduleRanges(BaseModel):
    """Wire form ``{"Ranges": [[offset, start, end], ...]}``.

    Order is significant and duplicates/overlaps are kept as given.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ranges: tuple[CoverageRange, ...] = Field(default=(), alias="Ranges")

    @field_validator("ranges", mode="before")
    @classmethod
    def _coerce_triples(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(
                CoverageRange.from_triple(item) if isinstance(item, (list, tuple)) else item for item in value
            )
        return value

    def as_payload(self) -> dict[str, list[list[int]]]:
        return {"Ranges": [item.as_triple() for item in self.ranges]}

    def __add__(self, other: ScheduleRanges) -> ScheduleRanges:
        return ScheduleRanges(ranges=self.ranges + other.ranges)

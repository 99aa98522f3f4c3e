"""Immutable per-request event context."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scoutintake.config import IntakeConfig


class EventContext(BaseModel):
    """Active event identifier and its ordered team roster.

    Passed explicitly into every intake operation.  Changing the event
    produces a new context; existing instances are never mutated.
    """

    model_config = ConfigDict(frozen=True)

    event_key: str
    roster: tuple[int, ...] = Field(default=())

    @field_validator("event_key")
    @classmethod
    def _normalize_event_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("event_key must be non-empty")
        return key

    @classmethod
    def from_config(cls, config: IntakeConfig, roster: Iterable[int] = ()) -> EventContext:
        return cls(event_key=config.event_key, roster=tuple(roster))

    def with_event(self, event_key: str, roster: Iterable[int] = ()) -> EventContext:
        return EventContext(event_key=event_key, roster=tuple(roster))

    def with_roster(self, roster: Iterable[int]) -> EventContext:
        return EventContext(event_key=self.event_key, roster=tuple(roster))

"""Base model and tagged statistic for scouting payloads.

Every report model inherits from :class:`ScoutBaseModel` which provides:

* frozen instances (reports are immutable once parsed)
* ``populate_by_name`` so payload keys (``"Driver Station"``) and
  snake_case field names are both accepted
* ``extra="ignore"`` so newer scouting clients can add keys freely

:class:`Metric` replaces the ``"N/A"``-or-number values used by older
spreadsheets with an explicit either-a-number-or-not-applicable result.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from scoutintake._constants import NOT_APPLICABLE


class ScoutBaseModel(BaseModel):
    """Base for all scouting payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class Metric(BaseModel):
    """A statistic that is either a finite number or not applicable."""

    model_config = ConfigDict(frozen=True)

    value: float | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_non_finite(cls, value: Any) -> float | None:
        if value is None:
            return None
        number = float(value)
        if math.isnan(number) or math.isinf(number):
            return None
        return number

    @classmethod
    def of(cls, value: float) -> Metric:
        return cls(value=value)

    @classmethod
    def not_applicable(cls) -> Metric:
        return cls(value=None)

    @property
    def is_applicable(self) -> bool:
        return self.value is not None

    def or_zero(self) -> float:
        return 0.0 if self.value is None else self.value

    def cell(self) -> float | str:
        """Render for an output cell (``"N/A"`` when not applicable)."""
        return NOT_APPLICABLE if self.value is None else self.value

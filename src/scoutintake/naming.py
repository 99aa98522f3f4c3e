"""Report filename convention.

Match reports are named ``<event>_<match>_<station>_<suffix>``.  Two
reports describe the same subject when their first three segments are
identical; the suffix (usually the observer) keeps names unique.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ReportName:
    event_key: str
    match: str
    station: str
    suffix: str

    @property
    def subject_prefix(self) -> str:
        return f"{self.event_key}_{self.match}_{self.station}"


def parse_report_name(name: str) -> ReportName | None:
    """Split a report name, or ``None`` if it has fewer than four segments."""
    parts = name.split("_")
    if len(parts) < 4:
        return None
    return ReportName(parts[0], parts[1], parts[2], "_".join(parts[3:]))


def report_name(event_key: str, match_number: int, station_label: str, suffix: str) -> str:
    return f"{event_key}_{match_number}_{station_label}_{suffix}"


def same_subject(first: str, second: str) -> bool:
    a = parse_report_name(first)
    b = parse_report_name(second)
    if a is None or b is None:
        return False
    return a.subject_prefix == b.subject_prefix


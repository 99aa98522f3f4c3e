"""Merge several observers' reports of one subject into a canonical record.

The first report in the input is authoritative for identity fields (team,
match, driver station).  Disagreements never block the merge; they set
``had_mismatches`` and add an annotation to the notes.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections.abc import Sequence

from scoutintake.metrics import cycle_count, mean_cycle_time
from scoutintake.models.canonical import CanonicalRecord, CompositeCycleData
from scoutintake.models.report import AutoData, Cycle, MatchReport, PickupLocations

_logger = logging.getLogger(__name__)


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _mean_or_zero(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return _finite_or_zero(statistics.fmean(values))


def _cycle_signature(cycles: Sequence[Cycle]) -> tuple[tuple[str, bool], ...]:
    # Stopwatch times differ between observers; category and outcome must not.
    return tuple((cycle.type, cycle.success) for cycle in cycles)


def cycles_agree(cycle_lists: Sequence[Sequence[Cycle]]) -> bool:
    """Whether every observer recorded the same category/outcome sequence.

    Cycle times are not compared; each observer runs an independent
    stopwatch.
    """
    if not cycle_lists:
        return True
    first = _cycle_signature(cycle_lists[0])
    return all(_cycle_signature(cycles) == first for cycles in cycle_lists[1:])


def compile_cycles(reports: Sequence[MatchReport]) -> tuple[CompositeCycleData, list[str]]:
    """Merged cycle statistics plus mismatch annotations.

    Observers with no valid cycles are left out of both the mean time and
    the aggregate count rather than counted as zero.
    """
    annotations: list[str] = []
    counts = [cycle_count(report.cycles) for report in reports]
    had_mismatches = False

    if len(set(counts)) > 1:
        had_mismatches = True
        annotations.append("CYCLE COUNT MISMATCH: " + "/".join(str(count) for count in counts))

    if not cycles_agree([report.cycles for report in reports]):
        had_mismatches = True
        annotations.append("CYCLE SEQUENCE MISMATCH")

    observed_means = [
        metric.or_zero() for metric in (mean_cycle_time(report.cycles) for report in reports) if metric.is_applicable
    ]
    nonzero_counts = [count for count in counts if count > 0]

    all_cycles: list[Cycle] = []
    for report in reports:
        all_cycles.extend(report.cycles)

    composite = CompositeCycleData(
        cycle_count=int(round(_mean_or_zero(nonzero_counts))),
        mean_cycle_time=_mean_or_zero(observed_means),
        all_cycles=tuple(all_cycles),
        had_mismatches=had_mismatches,
    )
    return composite, annotations


def compile_pickups(reports: Sequence[MatchReport]) -> PickupLocations:
    return PickupLocations(
        coral_ground=any(report.pickups.coral_ground for report in reports),
        coral_source=any(report.pickups.coral_source for report in reports),
        algae_ground=any(report.pickups.algae_ground for report in reports),
        algae_source=any(report.pickups.algae_source for report in reports),
    )


def compile_auto(reports: Sequence[MatchReport]) -> AutoData:
    """``can`` is OR'd; counts are the truncated mean over every observer."""
    return AutoData(
        can=any(report.auto.can for report in reports),
        scores=int(_mean_or_zero([report.auto.scores for report in reports])),
        misses=int(_mean_or_zero([report.auto.misses for report in reports])),
        ejects=int(_mean_or_zero([report.auto.ejects for report in reports])),
    )


def compile_parked(reports: Sequence[MatchReport]) -> bool:
    return any(report.endgame.achieved for report in reports)


def compile_endgame_time(reports: Sequence[MatchReport]) -> tuple[float, list[str]]:
    """Median endgame time, preferring observers who saw a tier achieved."""
    achieved = [report.endgame.achieved for report in reports]
    annotations: list[str] = []
    if len(set(achieved)) > 1:
        annotations.append("ENDGAME MISMATCH")

    times = [report.endgame.time for report in reports if report.endgame.achieved]
    if not times:
        times = [report.endgame.time for report in reports]
    if not times:
        return 0.0, annotations
    return _finite_or_zero(statistics.median(times)), annotations


def compile_canonical(reports: Sequence[MatchReport]) -> CanonicalRecord:
    """Reconcile one subject's observer reports (at least one)."""
    if not reports:
        raise ValueError("cannot reconcile an empty set of reports")

    first = reports[0]
    annotations: list[str] = []

    teams = [report.team_number for report in reports]
    team_mismatch = any(team != first.team_number for team in teams[1:])
    if team_mismatch:
        annotations.append("TEAM MISMATCH: " + "/".join(str(team) for team in teams))

    cycles, cycle_annotations = compile_cycles(reports)
    annotations.extend(cycle_annotations)
    if team_mismatch and not cycles.had_mismatches:
        cycles = cycles.model_copy(update={"had_mismatches": True})

    endgame_time, endgame_annotations = compile_endgame_time(reports)
    annotations.extend(endgame_annotations)

    notes = [report.notes for report in reports if report.notes]
    notes.extend(annotations)

    if annotations:
        _logger.debug("Reconciled %d reports for team %s with mismatches: %s", len(reports), first.team_number, annotations)

    return CanonicalRecord(
        team_number=first.team_number,
        match=first.match,
        driver_station=first.driver_station,
        scouters=tuple(report.scouter for report in reports),
        cycles=cycles,
        pickups=compile_pickups(reports),
        auto=compile_auto(reports),
        parked=compile_parked(reports),
        endgame_time=endgame_time,
        lost_track=any(report.misc.lost_track for report in reports),
        disconnected=any(report.misc.disconnected for report in reports),
        notes=tuple(notes),
        observer_count=len(reports),
    )

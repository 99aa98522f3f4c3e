"""Per-report cycle statistics.

Every function here is total: empty or placeholder cycle lists produce
``0`` or :meth:`Metric.not_applicable`, never an exception or NaN.
"""

from __future__ import annotations

from collections.abc import Sequence

from scoutintake._constants import CYCLE_CATEGORIES, NONE_CYCLE_TAG, PARK_STATUS_LABELS
from scoutintake.models._base import Metric
from scoutintake.models.report import AutoData, Cycle, EndgameData, MatchReport, PickupLocations


def cycles_valid(cycles: Sequence[Cycle]) -> bool:
    """A list is valid unless it is empty or starts with the ``"None"`` placeholder."""
    return len(cycles) > 0 and cycles[0].type != NONE_CYCLE_TAG


def cycle_count(cycles: Sequence[Cycle]) -> int:
    return len(cycles) if cycles_valid(cycles) else 0


def mean_cycle_time(cycles: Sequence[Cycle]) -> Metric:
    """Elapsed time of the final cycle divided by the cycle count."""
    if not cycles_valid(cycles):
        return Metric.not_applicable()
    return Metric.of(cycles[-1].time / len(cycles))


def cycle_accuracy(cycles: Sequence[Cycle]) -> Metric:
    """Percentage of successful cycles."""
    if not cycles_valid(cycles):
        return Metric.not_applicable()
    made = sum(1 for cycle in cycles if cycle.success)
    return Metric.of(made / len(cycles) * 100)


def category_tendencies(cycles: Sequence[Cycle]) -> dict[str, float]:
    """Share (0-1) of cycles per category, in ``CYCLE_CATEGORIES`` order."""
    tendencies = dict.fromkeys(CYCLE_CATEGORIES, 0.0)
    if not cycles_valid(cycles):
        return tendencies
    total = len(cycles)
    for category in CYCLE_CATEGORIES:
        tendencies[category] = sum(1 for cycle in cycles if cycle.type == category) / total
    return tendencies


def category_accuracies(cycles: Sequence[Cycle]) -> dict[str, Metric]:
    """Success percentage per category; not applicable for unattempted ones."""
    accuracies = {category: Metric.not_applicable() for category in CYCLE_CATEGORIES}
    if not cycles_valid(cycles):
        return accuracies
    for category in CYCLE_CATEGORIES:
        attempts = [cycle for cycle in cycles if cycle.type == category]
        if attempts:
            made = sum(1 for cycle in attempts if cycle.success)
            accuracies[category] = Metric.of(made / len(attempts) * 100)
    return accuracies


def auto_accuracy(auto: AutoData) -> Metric:
    attempts = auto.scores + auto.misses
    if attempts == 0:
        return Metric.not_applicable()
    return Metric.of(auto.scores / attempts * 100)


def pickup_summary(pickups: PickupLocations) -> str:
    flags = (pickups.algae_ground, pickups.algae_source, pickups.coral_ground, pickups.coral_source)
    if all(flags):
        return "ALL TRUE"
    if not any(flags):
        return "NO PICKUP"

    summary = ""
    if pickups.algae_ground and pickups.algae_source:
        summary += "BOTH ALGAE;"
    if pickups.coral_ground and pickups.coral_source:
        summary += "BOTH CORAL;"
    if pickups.algae_ground:
        summary += "ALGAE GROUND;"
    if pickups.algae_source:
        summary += "ALGAE SOURCE;"
    if pickups.coral_source:
        summary += "CORAL SOURCE;"
    if pickups.coral_ground:
        summary += "CORAL GROUND;"
    return summary


def park_status_label(endgame: EndgameData) -> str:
    return PARK_STATUS_LABELS.get(endgame.park_status, PARK_STATUS_LABELS[0])


def compile_notes(report: MatchReport) -> str:
    """Notes prefixed with lost-track, disconnect and penalty markers."""
    note = ""
    if report.misc.lost_track:
        note += "LOST TRACK; "
    if report.misc.disconnected:
        note += "DISCONNECTED; "
    if report.penalties:
        note += "PENALTIES= " + ",".join(report.penalties) + "; "
    return note + report.notes

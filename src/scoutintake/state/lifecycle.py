"""Lifecycle states and the legal transitions between them."""

from __future__ import annotations

from enum import StrEnum


class ReportKind(StrEnum):
    MATCH = "match"
    PIT = "pit"


class ReportState(StrEnum):
    PENDING = "pending"
    MALFORMED = "malformed"
    FINALIZED = "finalized"
    FAILED = "failed"
    DISCARDED = "discarded"
    ARCHIVED = "archived"
    PIT_FINALIZED = "pit_finalized"


class FailureReason(StrEnum):
    NOT_WRITABLE_YET = "not_writable_yet"
    DUPLICATE_SUBJECT = "duplicate_subject"
    COLLABORATOR_REJECTED = "collaborator_rejected"
    COLLABORATOR_TIMEOUT = "collaborator_timeout"

    @property
    def retryable(self) -> bool:
        """Whether resubmitting can succeed once prerequisite data exists."""
        return self is FailureReason.NOT_WRITABLE_YET


_MATCH_TRANSITIONS: dict[ReportState, frozenset[ReportState]] = {
    ReportState.PENDING: frozenset(
        {ReportState.MALFORMED, ReportState.FINALIZED, ReportState.FAILED, ReportState.DISCARDED}
    ),
    ReportState.FINALIZED: frozenset({ReportState.ARCHIVED}),
}

_PIT_TRANSITIONS: dict[ReportState, frozenset[ReportState]] = {
    ReportState.PENDING: frozenset(
        {ReportState.MALFORMED, ReportState.PIT_FINALIZED, ReportState.FAILED, ReportState.DISCARDED}
    ),
}


def allowed_targets(kind: ReportKind, state: ReportState) -> frozenset[ReportState]:
    table = _MATCH_TRANSITIONS if kind == ReportKind.MATCH else _PIT_TRANSITIONS
    return table.get(state, frozenset())


def can_transition(kind: ReportKind, source: ReportState, target: ReportState) -> bool:
    return target in allowed_targets(kind, source)


def is_terminal(kind: ReportKind, state: ReportState) -> bool:
    return not allowed_targets(kind, state)

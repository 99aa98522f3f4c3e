"""Transactional report ledger.

Each submitted report is one row holding its payload and lifecycle state.
A transition is a single ``UPDATE ... WHERE state = :expected``: it either
lands completely or not at all, so a crash can never leave a report
between two states.  Methods here are blocking; async callers run them in
an executor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from scoutintake._orm import ReportRow
from scoutintake.exceptions import TransitionError
from scoutintake.state.lifecycle import FailureReason, ReportKind, ReportState, can_transition

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReportEntry(BaseModel):
    """Read-only snapshot of one ledger row."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ReportKind
    event_key: str
    subject_key: str | None = None
    state: ReportState
    failure_reason: FailureReason | None = None
    payload: bytes | None = None
    superseded: bool = False
    archive_event: str | None = None
    updated_at: datetime

    @classmethod
    def from_row(cls, row: ReportRow) -> ReportEntry:
        return cls(
            name=row.name,
            kind=ReportKind(row.kind),
            event_key=row.event_key,
            subject_key=row.subject_key,
            state=ReportState(row.state),
            failure_reason=FailureReason(row.failure_reason) if row.failure_reason else None,
            payload=row.payload,
            superseded=row.superseded,
            archive_event=row.archive_event,
            updated_at=row.updated_at,
        )


class ReportLedger:
    """Lifecycle store for submitted reports."""

    def __init__(self, engine: Engine, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._sessions = sessionmaker(engine, expire_on_commit=False)
        self._clock = clock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def submit(self, name: str, payload: bytes | None, kind: ReportKind, event_key: str) -> ReportEntry:
        """Record a new report as ``PENDING``."""
        row = ReportRow(
            name=name,
            kind=kind.value,
            event_key=event_key,
            state=ReportState.PENDING.value,
            payload=payload,
            updated_at=self._clock(),
        )
        try:
            with self._sessions.begin() as session:
                session.add(row)
                session.flush()
                entry = ReportEntry.from_row(row)
        except IntegrityError as exc:
            raise TransitionError(f"Report {name} already exists", name=name) from exc
        _logger.debug("Submitted %s report %s (%s)", kind.value, name, event_key)
        return entry

    def _cas(
        self,
        session: Session,
        name: str,
        expected: ReportState,
        target: ReportState,
        **values: object,
    ) -> None:
        row = session.scalars(select(ReportRow).where(ReportRow.name == name)).one_or_none()
        if row is None:
            raise TransitionError(f"Report {name} does not exist", name=name, expected=expected.value)
        kind = ReportKind(row.kind)
        if not can_transition(kind, expected, target):
            raise TransitionError(
                f"Illegal {kind.value} transition {expected.value} -> {target.value} for {name}",
                name=name,
                expected=expected.value,
                actual=row.state,
            )
        result = session.execute(
            update(ReportRow)
            .where(ReportRow.name == name, ReportRow.state == expected.value)
            .values(state=target.value, updated_at=self._clock(), **values)
        )
        if result.rowcount != 1:
            raise TransitionError(
                f"Report {name} is {row.state}, expected {expected.value}",
                name=name,
                expected=expected.value,
                actual=row.state,
            )

    def transition(
        self,
        name: str,
        expected: ReportState,
        target: ReportState,
        *,
        failure_reason: FailureReason | None = None,
        subject_key: str | None = None,
    ) -> ReportEntry:
        """Move one report from *expected* to *target* atomically."""
        values: dict[str, object] = {"failure_reason": failure_reason.value if failure_reason else None}
        if subject_key is not None:
            values["subject_key"] = subject_key
        with self._sessions.begin() as session:
            self._cas(session, name, expected, target, **values)
        _logger.debug("Report %s: %s -> %s", name, expected.value, target.value)
        entry = self.get(name)
        if entry is None:
            raise TransitionError(
                f"Report {name} vanished after {expected.value} -> {target.value}",
                name=name,
                expected=expected.value,
            )
        return entry

    def finalize_group(
        self,
        names: Sequence[str],
        *,
        subject_key: str,
        target: ReportState = ReportState.FINALIZED,
        supersede: Sequence[str] = (),
    ) -> None:
        """Finalize *names* and supersede *supersede* in one transaction."""
        with self._sessions.begin() as session:
            for name in names:
                self._cas(session, name, ReportState.PENDING, target, subject_key=subject_key, failure_reason=None)
            if supersede:
                session.execute(
                    update(ReportRow)
                    .where(ReportRow.name.in_(supersede), ReportRow.state == ReportState.FINALIZED.value)
                    .values(superseded=True, updated_at=self._clock())
                )
        _logger.debug("Finalized %s for %s (superseded %s)", list(names), subject_key, list(supersede))

    def archive_other_events(self, active_event: str) -> list[str]:
        """Archive every finalized match report not belonging to *active_event*.

        Each report keeps its payload and is filed under its own event key;
        the whole sweep commits as one unit.
        """
        with self._sessions.begin() as session:
            rows = session.scalars(
                select(ReportRow)
                .where(
                    ReportRow.state == ReportState.FINALIZED.value,
                    ReportRow.kind == ReportKind.MATCH.value,
                    ReportRow.event_key != active_event,
                )
                .order_by(ReportRow.id)
            ).all()
            names = [row.name for row in rows]
            now = self._clock()
            for row in rows:
                row.state = ReportState.ARCHIVED.value
                row.archive_event = row.event_key
                row.updated_at = now
        return names

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, name: str) -> ReportEntry | None:
        with self._sessions() as session:
            row = session.scalars(select(ReportRow).where(ReportRow.name == name)).one_or_none()
            return ReportEntry.from_row(row) if row is not None else None

    def in_state(self, state: ReportState, *, kind: ReportKind | None = None) -> list[ReportEntry]:
        stmt = select(ReportRow).where(ReportRow.state == state.value)
        if kind is not None:
            stmt = stmt.where(ReportRow.kind == kind.value)
        with self._sessions() as session:
            return [ReportEntry.from_row(row) for row in session.scalars(stmt.order_by(ReportRow.id))]

    def live_finalized(self, subject_key: str) -> list[ReportEntry]:
        """Finalized, non-superseded reports for one subject in submission order."""
        stmt = (
            select(ReportRow)
            .where(
                ReportRow.subject_key == subject_key,
                ReportRow.state == ReportState.FINALIZED.value,
                ReportRow.superseded.is_(False),
            )
            .order_by(ReportRow.id)
        )
        with self._sessions() as session:
            return [ReportEntry.from_row(row) for row in session.scalars(stmt)]

    def archived(self, event_key: str) -> list[ReportEntry]:
        stmt = select(ReportRow).where(
            ReportRow.state == ReportState.ARCHIVED.value,
            ReportRow.archive_event == event_key,
        )
        with self._sessions() as session:
            return [ReportEntry.from_row(row) for row in session.scalars(stmt.order_by(ReportRow.id))]

    def failed(self, *, retryable: bool | None = None) -> list[ReportEntry]:
        entries = self.in_state(ReportState.FAILED)
        if retryable is None:
            return entries
        return [
            entry
            for entry in entries
            if entry.failure_reason is not None and entry.failure_reason.retryable == retryable
        ]

"""Report intake state machine.

Drives each submitted report from ``PENDING`` to a terminal state:

* parse failure -> ``MALFORMED``
* missing match number without prescouting, duplicate subject in
  single-observer mode, or an output-write failure -> ``FAILED``
* successful write -> ``FINALIZED`` (``PIT_FINALIZED`` for pit reports)
* operator discard -> ``DISCARDED``
* event change -> ``FINALIZED`` reports of other events become ``ARCHIVED``

All work on one subject is serialized, so reconciliation always sees a
consistent set of finalized reports and two writes for the same row never
interleave.  An archival sweep waits for in-flight intake to drain and
holds new intake back until it is done.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine

from scoutintake._constants import PIT_ROW_ABSENT
from scoutintake._orm import open_engine
from scoutintake.config import IntakeConfig
from scoutintake.context import EventContext
from scoutintake.exceptions import (
    OutputWriteError,
    ParseFailureReason,
    ReportParseError,
    ReportValidationError,
    TransitionError,
)
from scoutintake.models.pit import PitReport
from scoutintake.models.report import MatchReport, SubjectKey
from scoutintake.naming import parse_report_name
from scoutintake.parser import parse_match_report, parse_pit_report
from scoutintake.reconcile import compile_canonical
from scoutintake.rows import match_row, pit_row
from scoutintake.sheet import Cell, OutputWriter, canonical_row_values, match_row_values, pit_row_values, write_row
from scoutintake.state.ledger import ReportEntry, ReportLedger
from scoutintake.state.lifecycle import FailureReason, ReportKind, ReportState
from scoutintake.state.locks import ExclusiveGate, KeyedLock

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntakeResult(BaseModel):
    """Outcome of driving one report through intake.

    ``complete`` is only meaningful in multi-observer mode: it is ``True``
    once the subject has at least ``expected_observers`` live reports.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ReportKind
    state: ReportState
    subject_key: str | None = None
    row: int | None = None
    failure_reason: FailureReason | None = None
    parse_failure: ParseFailureReason | None = None
    observers: int = 0
    complete: bool = False

    @property
    def ok(self) -> bool:
        return self.state in (ReportState.FINALIZED, ReportState.PIT_FINALIZED)


@dataclass(frozen=True, slots=True)
class _Parsed:
    name: str
    report: MatchReport


class IntakeStateMachine:
    """Owns the lifecycle of submitted reports.

    Usage::

        machine = IntakeStateMachine.from_config(config, writer)
        result = await machine.receive(name, payload, ReportKind.MATCH, context)
    """

    def __init__(
        self,
        config: IntakeConfig,
        ledger: ReportLedger,
        writer: OutputWriter,
    ) -> None:
        self._config = config
        self._ledger = ledger
        self._writer = writer
        self._subject_locks = KeyedLock()
        self._gate = ExclusiveGate()

    @classmethod
    def from_config(
        cls,
        config: IntakeConfig,
        writer: OutputWriter,
        *,
        engine: Engine | None = None,
    ) -> IntakeStateMachine:
        """Build the machine with its ledger on ``config.database_url``."""
        if engine is None:
            engine = open_engine(config.database_url)
        return cls(config, ReportLedger(engine), writer)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    def _timeout(self, timeout: float | None) -> float:
        return timeout if timeout is not None else self._config.operation_timeout

    async def _fail(
        self,
        name: str,
        kind: ReportKind,
        reason: FailureReason,
        *,
        subject_key: str | None = None,
        row: int | None = None,
    ) -> IntakeResult:
        await self._run(
            lambda: self._ledger.transition(
                name,
                ReportState.PENDING,
                ReportState.FAILED,
                failure_reason=reason,
                subject_key=subject_key,
            )
        )
        _logger.info("Report %s failed: %s", name, reason.value)
        return IntakeResult(
            name=name,
            kind=kind,
            state=ReportState.FAILED,
            subject_key=subject_key,
            row=row,
            failure_reason=reason,
        )

    async def _write(self, target: str, row: int, values: Sequence[Cell], timeout: float) -> FailureReason | None:
        """Hand one row to the output writer; ``None`` on success."""
        try:
            ok = await asyncio.wait_for(write_row(self._writer, target, row, values), timeout)
        except TimeoutError:
            _logger.warning("Write of %s row %d timed out after %.1fs", target, row, timeout)
            return FailureReason.COLLABORATOR_TIMEOUT
        except OutputWriteError as exc:
            _logger.warning("Write of %s row %d rejected: %s", target, row, exc)
            return FailureReason.COLLABORATOR_REJECTED
        if not ok:
            _logger.warning("Write of %s row %d reported failure", target, row)
            return FailureReason.COLLABORATOR_REJECTED
        return None

    def _event_key_for(self, name: str, context: EventContext) -> str:
        parsed = parse_report_name(name)
        return parsed.event_key if parsed is not None else context.event_key

    def _reports_of(self, entries: Sequence[ReportEntry]) -> list[MatchReport]:
        return [parse_match_report(entry.payload, name=entry.name) for entry in entries]

    async def _current(self, name: str) -> IntakeResult:
        entry = await self._run(lambda: self._ledger.get(name))
        if entry is None:
            raise TransitionError(f"Report {name} does not exist", name=name)
        return IntakeResult(
            name=entry.name,
            kind=entry.kind,
            state=entry.state,
            subject_key=entry.subject_key,
            failure_reason=entry.failure_reason,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, name: str, payload: bytes | None, kind: ReportKind, context: EventContext) -> ReportEntry:
        """Record a report as ``PENDING`` without processing it."""
        if kind == ReportKind.PIT and not self._config.pit_scouting:
            raise ReportValidationError(f"Pit scouting is not enabled for {context.event_key}")
        event_key = self._event_key_for(name, context)
        return await self._run(lambda: self._ledger.submit(name, payload, kind, event_key))

    async def receive(
        self,
        name: str,
        payload: bytes | None,
        kind: ReportKind,
        context: EventContext,
        *,
        timeout: float | None = None,
    ) -> IntakeResult:
        """Submit and immediately process one report."""
        await self.submit(name, payload, kind, context)
        return await self.process(name, context, timeout=timeout)

    async def discard(self, name: str) -> IntakeResult:
        """Operator action: drop a pending report without writing anything."""
        entry = await self._run(lambda: self._ledger.transition(name, ReportState.PENDING, ReportState.DISCARDED))
        _logger.info("Report %s discarded", name)
        return IntakeResult(name=name, kind=entry.kind, state=entry.state)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _parse(self, entry: ReportEntry) -> MatchReport | PitReport | IntakeResult:
        """Parsed report, or the ``MALFORMED`` result when it cannot be parsed."""
        try:
            if entry.kind == ReportKind.MATCH:
                return parse_match_report(entry.payload, name=entry.name)
            return parse_pit_report(entry.payload, name=entry.name)
        except ReportParseError as exc:
            try:
                await self._run(lambda: self._ledger.transition(entry.name, ReportState.PENDING, ReportState.MALFORMED))
            except TransitionError:
                # Settled by a concurrent caller in the meantime.
                return await self._current(entry.name)
            _logger.warning("Report %s is malformed (%s, %s bytes)", entry.name, exc.reason.value, exc.size)
            return IntakeResult(
                name=entry.name,
                kind=entry.kind,
                state=ReportState.MALFORMED,
                parse_failure=exc.reason,
            )

    def _subject_for(self, entry: ReportEntry, report: MatchReport) -> SubjectKey:
        subject = report.subject(entry.event_key)
        parsed = parse_report_name(entry.name)
        if parsed is not None and parsed.subject_prefix != str(subject):
            _logger.warning("Report %s describes %s; filename prefix disagrees", entry.name, subject)
        return subject

    async def process(self, name: str, context: EventContext, *, timeout: float | None = None) -> IntakeResult:
        """Drive one pending report to its next state.

        Reports that are no longer ``PENDING`` are returned as they are.
        """
        async with self._gate.shared():
            entry = await self._run(lambda: self._ledger.get(name))
            if entry is None:
                raise TransitionError(f"Report {name} does not exist", name=name)
            if entry.state != ReportState.PENDING:
                return await self._current(name)

            parsed = await self._parse(entry)
            if isinstance(parsed, IntakeResult):
                return parsed
            if isinstance(parsed, PitReport):
                return await self._process_pit(entry, parsed, context, self._timeout(timeout))

            subject = self._subject_for(entry, parsed)
            results = await self._process_match_group(subject, [_Parsed(name, parsed)], self._timeout(timeout))
            return results[0]

    async def process_pending(self, context: EventContext, *, timeout: float | None = None) -> list[IntakeResult]:
        """Process every pending report, grouping match reports by subject.

        Reports of the same subject submitted together are reconciled in
        one pass; distinct subjects run concurrently.
        """
        async with self._gate.shared():
            entries = await self._run(lambda: self._ledger.in_state(ReportState.PENDING))
            effective = self._timeout(timeout)
            results: list[IntakeResult] = []
            groups: dict[str, tuple[SubjectKey, list[_Parsed]]] = {}
            pits: list[tuple[ReportEntry, PitReport]] = []

            for entry in entries:
                parsed = await self._parse(entry)
                if isinstance(parsed, IntakeResult):
                    results.append(parsed)
                elif isinstance(parsed, PitReport):
                    pits.append((entry, parsed))
                else:
                    subject = self._subject_for(entry, parsed)
                    groups.setdefault(str(subject), (subject, []))[1].append(_Parsed(entry.name, parsed))

            batches = await asyncio.gather(
                *(self._process_match_group(subject, items, effective) for subject, items in groups.values()),
                self._process_pit_batch(pits, context, effective),
            )
            for batch in batches:
                results.extend(batch)
            return results

    async def _process_pit_batch(
        self,
        pits: Sequence[tuple[ReportEntry, PitReport]],
        context: EventContext,
        timeout: float,
    ) -> list[IntakeResult]:
        return [await self._process_pit(entry, report, context, timeout) for entry, report in pits]

    async def _process_pit(
        self,
        entry: ReportEntry,
        report: PitReport,
        context: EventContext,
        timeout: float,
    ) -> IntakeResult:
        subject_key = f"pit_{report.team_number}"
        row = pit_row(report.team_number, context.roster)

        async with self._subject_locks.hold(subject_key):
            current = await self._current(entry.name)
            if current.state != ReportState.PENDING:
                return current
            if row == PIT_ROW_ABSENT:
                return await self._fail(
                    entry.name, ReportKind.PIT, FailureReason.NOT_WRITABLE_YET, subject_key=subject_key
                )
            reason = await self._write(self._config.pit_tab, row, pit_row_values(report), timeout)
            if reason is not None:
                return await self._fail(entry.name, ReportKind.PIT, reason, subject_key=subject_key, row=row)
            await self._run(
                lambda: self._ledger.finalize_group(
                    [entry.name],
                    subject_key=subject_key,
                    target=ReportState.PIT_FINALIZED,
                )
            )
        return IntakeResult(
            name=entry.name,
            kind=ReportKind.PIT,
            state=ReportState.PIT_FINALIZED,
            subject_key=subject_key,
            row=row,
            observers=1,
            complete=True,
        )

    async def _process_match_group(
        self,
        subject: SubjectKey,
        items: Sequence[_Parsed],
        timeout: float,
    ) -> list[IntakeResult]:
        key = str(subject)
        results: list[IntakeResult] = []
        writable: list[_Parsed] = []
        prescouted: list[_Parsed] = []

        async with self._subject_locks.hold(key):
            # Another caller may have settled these while we waited for the lock.
            for item in items:
                current = await self._current(item.name)
                if current.state != ReportState.PENDING:
                    results.append(current)
                elif item.report.has_match_number:
                    writable.append(item)
                elif item.report.prescouting:
                    prescouted.append(item)
                else:
                    results.append(
                        await self._fail(item.name, ReportKind.MATCH, FailureReason.NOT_WRITABLE_YET, subject_key=key)
                    )

            for item in prescouted:
                results.append(await self._finalize_unaddressed(key, item))
            if self._config.multi_scouting:
                if writable:
                    results.extend(await self._finalize_multi(subject, writable, timeout))
            else:
                for item in writable:
                    results.append(await self._finalize_single(subject, item, timeout))
        return results

    async def _finalize_unaddressed(self, key: str, item: _Parsed) -> IntakeResult:
        # Prescouted without a match number: kept, but there is no row to write.
        await self._run(lambda: self._ledger.finalize_group([item.name], subject_key=key))
        return IntakeResult(
            name=item.name,
            kind=ReportKind.MATCH,
            state=ReportState.FINALIZED,
            subject_key=key,
            observers=1,
            complete=True,
        )

    async def _finalize_single(self, subject: SubjectKey, item: _Parsed, timeout: float) -> IntakeResult:
        key = str(subject)
        row = match_row(subject.match_number, subject.is_blue, subject.station)
        live = await self._run(lambda: self._ledger.live_finalized(key))
        supersede: list[str] = []
        if live:
            if not item.report.rescouting:
                return await self._fail(item.name, ReportKind.MATCH, FailureReason.DUPLICATE_SUBJECT, subject_key=key)
            supersede = [entry.name for entry in live]

        reason = await self._write(self._config.match_tab, row, match_row_values(item.report), timeout)
        if reason is not None:
            return await self._fail(item.name, ReportKind.MATCH, reason, subject_key=key, row=row)

        await self._run(lambda: self._ledger.finalize_group([item.name], subject_key=key, supersede=supersede))
        return IntakeResult(
            name=item.name,
            kind=ReportKind.MATCH,
            state=ReportState.FINALIZED,
            subject_key=key,
            row=row,
            observers=1,
            complete=True,
        )

    async def _finalize_multi(self, subject: SubjectKey, items: Sequence[_Parsed], timeout: float) -> list[IntakeResult]:
        """Reconcile *items* with the subject's live reports and rewrite its row.

        A rescouting report in *items* replaces every live report: only the
        reports in this batch are reconciled.
        """
        key = str(subject)
        row = match_row(subject.match_number, subject.is_blue, subject.station)
        live = await self._run(lambda: self._ledger.live_finalized(key))
        new_reports = [item.report for item in items]

        if any(report.rescouting for report in new_reports):
            basis = new_reports
            supersede = [entry.name for entry in live]
        else:
            basis = self._reports_of(live) + new_reports
            supersede = []

        record = compile_canonical(basis)
        reason = await self._write(self._config.match_tab, row, canonical_row_values(record), timeout)
        if reason is not None:
            return [
                await self._fail(item.name, ReportKind.MATCH, reason, subject_key=key, row=row) for item in items
            ]

        names = [item.name for item in items]
        await self._run(lambda: self._ledger.finalize_group(names, subject_key=key, supersede=supersede))
        complete = len(basis) >= self._config.expected_observers
        _logger.debug("Subject %s reconciled over %d reports (complete=%s)", key, len(basis), complete)
        return [
            IntakeResult(
                name=name,
                kind=ReportKind.MATCH,
                state=ReportState.FINALIZED,
                subject_key=key,
                row=row,
                observers=len(basis),
                complete=complete,
            )
            for name in names
        ]

    # ------------------------------------------------------------------
    # Event change and inspection
    # ------------------------------------------------------------------

    async def change_event(self, context: EventContext) -> list[str]:
        """Archive finalized reports that do not belong to ``context.event_key``.

        Runs exclusively: in-flight intake finishes first and new intake
        waits until the sweep commits.  Returns the archived names.
        """
        async with self._gate.exclusive():
            names = await self._run(lambda: self._ledger.archive_other_events(context.event_key))
        _logger.info("Archived %d reports on switch to %s", len(names), context.event_key)
        return names

    async def scouters_for(self, subject: SubjectKey) -> list[str]:
        """Observer names of the live finalized reports for *subject*."""
        live = await self._run(lambda: self._ledger.live_finalized(str(subject)))
        return [report.scouter for report in self._reports_of(live) if report.scouter]

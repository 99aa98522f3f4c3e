"""Per-observer schedule store.

Each observer owns an ordered, append-only list of coverage ranges.
Appends are serialized per observer in process.  The stored write is a
conditional update against the schedule that was read, retried when it
lost a race, so an append whose caller already timed out can never
overwrite a newer schedule.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError
from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from scoutintake._orm import IndividualRow, open_engine
from scoutintake.config import IntakeConfig
from scoutintake.exceptions import ScheduleStoreError
from scoutintake.models.schedule import CoverageRange, ScheduleRanges
from scoutintake.state.locks import KeyedLock

_logger = logging.getLogger(__name__)

_APPEND_ATTEMPTS = 8

T = TypeVar("T")


def _decode(observer: str, text: str) -> ScheduleRanges:
    if not text:
        return ScheduleRanges()
    try:
        return ScheduleRanges.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ScheduleStoreError(f"Stored schedule for {observer} is corrupt: {text[:64]!r}") from exc


def _encode(ranges: ScheduleRanges) -> str:
    return json.dumps(ranges.as_payload(), separators=(",", ":"))


def _as_ranges(value: ScheduleRanges | Iterable[Any]) -> ScheduleRanges:
    if isinstance(value, ScheduleRanges):
        return value
    return ScheduleRanges(
        ranges=tuple(item if isinstance(item, CoverageRange) else CoverageRange.from_triple(item) for item in value)
    )


class ScheduleStore:
    """Keyed persistent store of observer coverage ranges.

    Usage::

        store = ScheduleStore(engine)
        await store.append("uuid-1", [[0, 1, 10]])
        await store.append("uuid-1", [[0, 11, 20]])
        (await store.get("uuid-1")).as_payload()
        # {"Ranges": [[0, 1, 10], [0, 11, 20]]}
    """

    def __init__(self, engine: Engine, *, timeout: float | None = None) -> None:
        self._sessions = sessionmaker(engine, expire_on_commit=False)
        self._locks = KeyedLock()
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: IntakeConfig, *, engine: Engine | None = None) -> ScheduleStore:
        """Store on ``config.database_url`` bounded by ``config.operation_timeout``."""
        return cls(engine if engine is not None else open_engine(config.database_url), timeout=config.operation_timeout)

    async def _run(self, fn: Callable[[], T], timeout: float | None) -> T:
        loop = asyncio.get_running_loop()
        effective = timeout if timeout is not None else self._timeout
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, fn), effective)
        except SQLAlchemyError as exc:
            raise ScheduleStoreError(f"Schedule store failure: {exc}") from exc

    # ------------------------------------------------------------------
    # Blocking primitives
    # ------------------------------------------------------------------

    def _get_sync(self, observer: str) -> ScheduleRanges:
        with self._sessions() as session:
            row = session.get(IndividualRow, observer)
            return _decode(observer, row.schedule) if row is not None else ScheduleRanges()

    def _exists_sync(self, observer: str) -> bool:
        with self._sessions() as session:
            return session.get(IndividualRow, observer) is not None

    def _try_append_sync(self, observer: str, new_ranges: ScheduleRanges, username: str) -> ScheduleRanges | None:
        """One read-modify-write attempt; ``None`` when the stored schedule moved underneath it."""
        with self._sessions.begin() as session:
            stored = session.scalars(
                select(IndividualRow.schedule).where(IndividualRow.uuid == observer).with_for_update()
            ).one_or_none()
            if stored is None:
                session.add(IndividualRow(uuid=observer, username=username, schedule=_encode(new_ranges)))
                return new_ranges
            combined = _decode(observer, stored) + new_ranges
            result = session.execute(
                update(IndividualRow)
                .where(IndividualRow.uuid == observer, IndividualRow.schedule == stored)
                .values(schedule=_encode(combined))
                .execution_options(synchronize_session=False)
            )
            return combined if result.rowcount == 1 else None

    def _append_sync(self, observer: str, new_ranges: ScheduleRanges, username: str) -> ScheduleRanges:
        for attempt in range(1, _APPEND_ATTEMPTS + 1):
            try:
                combined = self._try_append_sync(observer, new_ranges, username)
            except IntegrityError:
                # Entry created concurrently; read it again.
                combined = None
            if combined is not None:
                return combined
            _logger.debug("Schedule for %s changed during append (attempt %d)", observer, attempt)
        raise ScheduleStoreError(f"Schedule for {observer} kept changing; gave up after {_APPEND_ATTEMPTS} attempts")

    def _reset_sync(self, observer: str) -> None:
        with self._sessions.begin() as session:
            row = session.get(IndividualRow, observer)
            if row is not None:
                row.schedule = _encode(ScheduleRanges())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, observer: str, *, timeout: float | None = None) -> ScheduleRanges:
        """Ranges assigned to *observer* (empty when it has no entry)."""
        return await self._run(lambda: self._get_sync(observer), timeout)

    async def exists(self, observer: str, *, timeout: float | None = None) -> bool:
        return await self._run(lambda: self._exists_sync(observer), timeout)

    async def append(
        self,
        observer: str,
        new_ranges: ScheduleRanges | Sequence[Any],
        *,
        username: str = "",
        timeout: float | None = None,
    ) -> ScheduleRanges:
        """Append *new_ranges* after the observer's existing ranges.

        No deduplication or interval merging is done.  Returns the full
        updated list.
        """
        ranges = _as_ranges(new_ranges)
        async with self._locks.hold(observer):
            combined = await self._run(lambda: self._append_sync(observer, ranges, username), timeout)
        _logger.debug("Schedule for %s now has %d ranges", observer, len(combined.ranges))
        return combined

    async def reset(self, observer: str, *, timeout: float | None = None) -> None:
        """Clear the observer's ranges (the entry itself is kept)."""
        async with self._locks.hold(observer):
            await self._run(lambda: self._reset_sync(observer), timeout)
        _logger.info("Schedule for %s reset", observer)

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from scoutintake import schedule
from scoutintake._orm import IndividualRow
from scoutintake.config import IntakeConfig
from scoutintake.exceptions import ScheduleStoreError
from scoutintake.models import CoverageRange, ScheduleRanges
from scoutintake.schedule import ScheduleStore


@pytest.mark.asyncio
async def test_append_concatenates_in_order(engine: Engine) -> None:
    store = ScheduleStore(engine)

    await store.append("uuid-1", [[0, 1, 10]], username="alice")
    combined = await store.append("uuid-1", [[0, 11, 20]])

    assert combined.as_payload() == {"Ranges": [[0, 1, 10], [0, 11, 20]]}
    assert (await store.get("uuid-1")).as_payload() == {"Ranges": [[0, 1, 10], [0, 11, 20]]}


@pytest.mark.asyncio
async def test_unknown_observer_has_empty_schedule(engine: Engine) -> None:
    store = ScheduleStore(engine)

    assert (await store.get("nobody")).ranges == ()
    assert await store.exists("nobody") is False


@pytest.mark.asyncio
async def test_duplicates_and_overlaps_are_kept(engine: Engine) -> None:
    store = ScheduleStore(engine)

    await store.append("uuid-1", [[2, 1, 10], [2, 5, 15]])
    extra = ScheduleRanges(ranges=(CoverageRange(station_offset=2, start_match=1, end_match=10),))
    combined = await store.append("uuid-1", extra)

    assert [r.as_triple() for r in combined.ranges] == [[2, 1, 10], [2, 5, 15], [2, 1, 10]]


@pytest.mark.asyncio
async def test_reset_clears_ranges_but_keeps_entry(engine: Engine) -> None:
    store = ScheduleStore(engine)
    await store.append("uuid-1", [[1, 1, 5]])

    await store.reset("uuid-1")

    assert (await store.get("uuid-1")).ranges == ()
    assert await store.exists("uuid-1") is True


@pytest.mark.asyncio
async def test_concurrent_appends_lose_nothing(engine: Engine) -> None:
    store = ScheduleStore(engine)

    await asyncio.gather(*(store.append("uuid-1", [[n % 6, n, n + 1]]) for n in range(12)))

    stored = await store.get("uuid-1")
    assert sorted(r.start_match for r in stored.ranges) == list(range(12))


@pytest.mark.asyncio
async def test_corrupt_stored_schedule_raises(engine: Engine) -> None:
    with Session(engine) as session, session.begin():
        session.add(IndividualRow(uuid="uuid-bad", username="x", schedule="not json"))

    store = ScheduleStore(engine)
    with pytest.raises(ScheduleStoreError):
        await store.get("uuid-bad")


def test_invalid_station_offset_rejected() -> None:
    with pytest.raises(ValueError):
        ScheduleRanges.model_validate({"Ranges": [[6, 1, 10]]})


@pytest.mark.asyncio
async def test_append_rereads_when_schedule_changes_underneath(engine: Engine, monkeypatch: pytest.MonkeyPatch) -> None:
    store = ScheduleStore(engine)
    await store.append("uuid-1", [[0, 1, 10]])
    late = ScheduleRanges(ranges=(CoverageRange(station_offset=1, start_match=11, end_match=20),))
    real_decode = schedule._decode
    interleaved: list[str] = []

    def decode_then_interleave(observer: str, text: str) -> ScheduleRanges:
        decoded = real_decode(observer, text)
        if not interleaved:
            # A worker left running by an earlier timed-out append commits here.
            interleaved.append(text)
            ScheduleStore(engine)._append_sync(observer, late, "")
        return decoded

    monkeypatch.setattr(schedule, "_decode", decode_then_interleave)
    combined = await store.append("uuid-1", [[2, 21, 30]])

    expected = [[0, 1, 10], [1, 11, 20], [2, 21, 30]]
    assert [r.as_triple() for r in combined.ranges] == expected
    assert [r.as_triple() for r in (await store.get("uuid-1")).ranges] == expected


@pytest.mark.asyncio
async def test_append_gives_up_when_schedule_never_settles(engine: Engine, monkeypatch: pytest.MonkeyPatch) -> None:
    store = ScheduleStore(engine)
    monkeypatch.setattr(store, "_try_append_sync", lambda *_args: None)

    with pytest.raises(ScheduleStoreError):
        await store.append("uuid-1", [[0, 1, 10]])


@pytest.mark.asyncio
async def test_from_config_uses_database_url_and_timeout(tmp_path: Path) -> None:
    database = tmp_path / "schedule.db"
    config = IntakeConfig(event_key="2025mnmi", database_url=f"sqlite:///{database}", operation_timeout=2.5)

    store = ScheduleStore.from_config(config)
    await store.append("uuid-1", [[0, 1, 10]])

    assert store._timeout == 2.5
    assert database.exists()
    assert (await store.get("uuid-1")).as_payload() == {"Ranges": [[0, 1, 10]]}

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bingetrack.episodes import WatchedEntry
from bingetrack.errors import StoreWriteFailure
from bingetrack.services.watch_log import WatchLogStore


async def test_append_and_read_back(store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, "2026-10-01T00:00:00Z"))
    await store.append_watched_entry(
        "u1", 1, WatchedEntry(1, 2, datetime(2026, 10, 2, tzinfo=timezone.utc))
    )

    entries = await store.get_watch_log("u1", 1)
    assert [(e.season, e.episode) for e in entries] == [(1, 1), (1, 2)]
    assert entries[0].watched_at == "2026-10-01T00:00:00Z"
    assert entries[1].watched_at == "2026-10-02T00:00:00+00:00"


async def test_logs_are_scoped_by_user_and_show(store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, "2026-10-01T00:00:00Z"))
    await store.append_watched_entry("u1", 2, WatchedEntry(1, 1, "2026-10-01T00:00:00Z"))
    await store.append_watched_entry("u2", 1, WatchedEntry(1, 5, "2026-10-01T00:00:00Z"))

    logs = await store.get_watch_logs("u1")
    assert sorted(logs) == [1, 2]
    assert await store.get_watch_logs("u1", [2]) == {2: logs[2]}
    assert [(e.season, e.episode) for e in await store.get_watch_log("u2", 1)] == [(1, 5)]


async def test_remove_only_touches_matching_episode(store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, "2026-10-01T00:00:00Z"))
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, "2026-10-03T00:00:00Z"))
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 2, "2026-10-02T00:00:00Z"))
    await store.append_watched_entry("u1", 2, WatchedEntry(1, 1, "2026-10-02T00:00:00Z"))

    removed = await store.remove_watched_entry("u1", 1, 1, 1)

    assert removed == 2
    assert [(e.season, e.episode) for e in await store.get_watch_log("u1", 1)] == [(1, 2)]
    assert len(await store.get_watch_log("u1", 2)) == 1


async def test_concurrent_appends_are_all_kept(store):
    await asyncio.gather(*(
        store.append_watched_entry("u1", show_id, WatchedEntry(1, ep, "2026-10-01T00:00:00Z"))
        for show_id in (1, 2)
        for ep in range(1, 6)
    ))
    logs = await store.get_watch_logs("u1")
    assert len(logs[1]) == len(logs[2]) == 5


async def test_onboarded_shows_replace_and_dedupe(store):
    assert await store.get_onboarded_shows("u1") == []
    assert await store.set_onboarded_shows("u1", [3, 1, 3, 2]) == [3, 1, 2]
    assert await store.get_onboarded_shows("u1") == [3, 1, 2]

    await store.set_onboarded_shows("u1", [2])
    assert await store.get_onboarded_shows("u1") == [2]
    assert await store.get_onboarded_shows("u2") == []


async def test_write_failure_is_reported(tmp_path):
    # No tables: every write fails
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    broken = WatchLogStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    with pytest.raises(StoreWriteFailure):
        await broken.append_watched_entry("u1", 1, WatchedEntry(1, 1, "2026-10-01T00:00:00Z"))
    with pytest.raises(StoreWriteFailure):
        await broken.remove_watched_entry("u1", 1, 1, 1)

    await engine.dispose()

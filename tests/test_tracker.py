import pytest

from bingetrack.episodes import Category, EpisodeRef, WatchedEntry
from bingetrack.errors import ConfirmationRequired, InvalidWatchEntry, NotFound, StoreWriteFailure
from bingetrack.services.tracker import WatchTracker

from conftest import days_ago


@pytest.fixture
def tracker(catalog, store):
    return WatchTracker(catalog, store)


async def test_mark_watched_advances_progression(tracker, store):
    update = await tracker.mark_watched("u1", 1, 1, 1)
    assert update.watched
    progression = update.progression
    assert progression.category == Category.NEXT
    assert progression.next_episode == EpisodeRef(1, 1, 2)
    assert len(await store.get_watch_log("u1", 1)) == 1


async def test_mark_last_episode_completes_show(tracker):
    for episode in range(1, 10):
        await tracker.mark_watched("u1", 1, 1, episode)
    progression = (await tracker.mark_watched("u1", 1, 1, 10)).progression
    assert progression.category == Category.COMPLETE
    assert progression.next_episode is None


async def test_mark_rejects_impossible_episode(tracker, store):
    with pytest.raises(InvalidWatchEntry):
        await tracker.mark_watched("u1", 1, 0, 1)
    assert await store.get_watch_log("u1", 1) == []


async def test_unmark_requires_confirmation(tracker, store):
    await tracker.mark_watched("u1", 1, 1, 1)
    with pytest.raises(ConfirmationRequired):
        await tracker.unmark_watched("u1", 1, 1, 1)
    assert len(await store.get_watch_log("u1", 1)) == 1


async def test_unmark_confirmed_removes_every_watch(tracker, store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, days_ago(3)))
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, days_ago(2)))
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 2, days_ago(1)))

    progression = (await tracker.unmark_watched("u1", 1, 1, 1, confirmed=True)).progression

    assert progression.next_episode == EpisodeRef(1, 1, 1)
    assert [(e.season, e.episode) for e in await store.get_watch_log("u1", 1)] == [(1, 2)]


async def test_unmark_last_entry_returns_to_not_started(tracker):
    await tracker.mark_watched("u1", 1, 1, 1)
    update = await tracker.unmark_watched("u1", 1, 1, 1, confirmed=True)
    assert not update.watched
    assert update.progression.category == Category.NOT_STARTED


async def test_mark_is_reported_when_catalog_is_down_after_write(tracker, store, catalog):
    catalog.unavailable_shows.add(1)

    update = await tracker.mark_watched("u1", 1, 1, 1)

    assert update.watched
    assert update.progression is None
    assert update.warning.show_id == 1
    assert update.warning.is_catalog_failure()
    assert len(await store.get_watch_log("u1", 1)) == 1


async def test_unmark_is_reported_when_old_log_is_malformed(tracker, store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, "garbage"))
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 2, days_ago(1)))

    update = await tracker.unmark_watched("u1", 1, 1, 2, confirmed=True)

    assert not update.watched
    assert update.progression is None
    assert update.warning is not None
    assert [(e.season, e.episode) for e in await store.get_watch_log("u1", 1)] == [(1, 1)]


class FailingStore:
    def __init__(self, inner):
        self.inner = inner

    async def get_watch_log(self, user_id, show_id):
        return await self.inner.get_watch_log(user_id, show_id)

    async def append_watched_entry(self, user_id, show_id, entry):
        raise StoreWriteFailure("disk full")

    async def remove_watched_entry(self, user_id, show_id, season, episode):
        raise StoreWriteFailure("disk full")


async def test_failed_write_changes_nothing(catalog, store):
    await store.append_watched_entry("u1", 1, WatchedEntry(1, 1, days_ago(1)))
    tracker = WatchTracker(catalog, FailingStore(store))

    with pytest.raises(StoreWriteFailure):
        await tracker.mark_watched("u1", 1, 1, 2)
    with pytest.raises(StoreWriteFailure):
        await tracker.unmark_watched("u1", 1, 1, 1, confirmed=True)

    assert [(e.season, e.episode) for e in await store.get_watch_log("u1", 1)] == [(1, 1)]
    progression = await tracker.progression("u1", 1)
    assert progression.next_episode == EpisodeRef(1, 1, 2)


async def test_episode_info_labels_watched_episodes(tracker, store):
    await store.append_watched_entry("u1", 2, WatchedEntry(1, 3, "2026-09-30T21:00:00Z"))

    watched = await tracker.episode_info("u1", 2, 1, 3)
    assert watched.label == "Watched on 2026-09-30"
    assert watched.watched_at is not None

    unwatched = await tracker.episode_info("u1", 2, 1, 4)
    assert unwatched.label == "S1 E4"
    assert unwatched.watched_at is None
    assert unwatched.title == "Severance 1x4"


async def test_sibling_navigation_within_season(tracker):
    nxt = await tracker.sibling_episode("u1", 2, 1, 3, "next")
    prev = await tracker.sibling_episode("u1", 2, 1, 3, "previous")
    assert (nxt.season, nxt.episode) == (1, 4)
    assert (prev.season, prev.episode) == (1, 2)


async def test_sibling_navigation_stops_at_season_edges(tracker):
    with pytest.raises(NotFound):
        await tracker.sibling_episode("u1", 2, 1, 1, "previous")
    with pytest.raises(NotFound):
        await tracker.sibling_episode("u1", 2, 1, 5, "next")


async def test_watch_providers_by_region(tracker):
    us = await tracker.watch_providers(2, "US")
    assert [p.provider_name for p in us.flatrate] == ["Apple TV+"]
    assert (await tracker.watch_providers(2, "DE")).flatrate == []

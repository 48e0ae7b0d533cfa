import asyncio

import pytest

from waterdata.cache import Snapshot, SnapshotCache
from waterdata.job import FetchError, WaterDataFetcher, fetch_once, start_refresh_task, stop_refresh_task
from waterdata.settings import Settings


def _fetcher(settings, upstream, cache=None):
    return WaterDataFetcher(settings, cache or SnapshotCache(), transport=upstream.transport)


def test_successful_fetch_replaces_cache(settings, upstream, records):
    fetcher = _fetcher(settings, upstream)

    assert asyncio.run(fetcher.fetch_and_cache()) is True

    snapshot = fetcher.cache.get()
    assert snapshot.count == len(records)
    assert list(snapshot.records) == records
    assert snapshot.fetched_at.tzinfo is not None
    assert fetcher.stats.successes == 1


@pytest.mark.parametrize("mode", ["down", "error", "garbage", "object", "nan-literal", "overflow"])
def test_failed_fetch_keeps_previous_snapshot(settings, upstream, mode):
    fetcher = _fetcher(settings, upstream)
    asyncio.run(fetcher.fetch_and_cache())
    before = fetcher.cache.get()

    upstream.mode = mode
    assert asyncio.run(fetcher.fetch_and_cache()) is False

    assert fetcher.cache.get() is before
    assert fetcher.cache.count == 3
    assert fetcher.stats.failures == 1
    assert isinstance(fetcher.stats.last_error, FetchError)
    assert fetcher.stats.last_error.suggestion


def test_failed_first_fetch_leaves_cache_empty(settings, upstream):
    upstream.mode = "error"
    fetcher = _fetcher(settings, upstream)

    assert asyncio.run(fetcher.fetch_and_cache()) is False
    assert fetcher.cache.get() is None
    assert fetcher.cache.count == 0
    assert fetcher.cache.last_updated is None


def test_download_raises_fetch_error_on_status(settings, upstream):
    upstream.mode = "error"
    with pytest.raises(FetchError, match="503"):
        asyncio.run(_fetcher(settings, upstream).download())


def test_new_snapshot_is_a_whole_replacement(settings, upstream, records):
    cache = SnapshotCache()
    fetcher = _fetcher(settings, upstream, cache)
    asyncio.run(fetcher.fetch_and_cache())

    upstream.records = records[:1]
    asyncio.run(fetcher.fetch_and_cache())

    assert cache.count == 1
    assert cache.get().records[0]["station_name"] == "板新淨水場"


def test_snapshot_is_immutable():
    snapshot = Snapshot.build([{"station_name": "a"}], fetched_at=None)
    assert isinstance(snapshot.records, tuple)
    with pytest.raises(AttributeError):
        snapshot.records = ()


def test_refresh_task_fetches_immediately_and_cancels(settings, upstream):
    fetcher = _fetcher(settings, upstream)

    async def scenario():
        task = start_refresh_task(fetcher)
        while not fetcher.cache.is_populated:
            await asyncio.sleep(0.005)
        await stop_refresh_task(task)
        return task

    task = asyncio.run(asyncio.wait_for(scenario(), timeout=5))
    assert task.cancelled()
    assert upstream.calls == 1


def test_refresh_task_repeats_on_interval(upstream, settings):
    fast = Settings(data_url=settings.data_url, refresh_interval_seconds=0.01)
    fetcher = _fetcher(fast, upstream)

    async def scenario():
        task = start_refresh_task(fetcher)
        while upstream.calls < 3:
            await asyncio.sleep(0.005)
        await stop_refresh_task(task)

    asyncio.run(asyncio.wait_for(scenario(), timeout=5))
    assert fetcher.stats.attempts >= 3


def test_refresh_task_survives_failures(upstream, settings):
    fast = Settings(data_url=settings.data_url, refresh_interval_seconds=0.01)
    upstream.mode = "down"
    fetcher = _fetcher(fast, upstream)

    async def scenario():
        task = start_refresh_task(fetcher)
        while upstream.calls < 2:
            await asyncio.sleep(0.005)
        await stop_refresh_task(task)

    asyncio.run(asyncio.wait_for(scenario(), timeout=5))
    assert fetcher.stats.failures >= 2
    assert fetcher.cache.get() is None


def test_stop_refresh_task_accepts_none():
    asyncio.run(stop_refresh_task(None))


def test_fetch_once(settings, upstream):
    cache, stats = asyncio.run(fetch_once(settings, transport=upstream.transport))
    assert cache.count == 3
    assert stats.attempts == 1

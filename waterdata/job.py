"""
Fetch orchestration for the water quality snapshot.

The job downloads the upstream JSON array described in `settings.py`,
swaps it into the `SnapshotCache`, and keeps doing so on a fixed interval for
the lifetime of the process.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx

from .cache import Snapshot, SnapshotCache
from .client import ClientConfig, get_json, upstream_client
from .settings import Settings

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Raised when the upstream dataset cannot be retrieved or decoded."""

    def __init__(self, message: str, suggestion: str):
        super().__init__(message)
        self.suggestion = suggestion


@dataclass
class FetchStats:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    last_error: Optional[FetchError] = None
    last_success_at: Optional[datetime] = None


class WaterDataFetcher:
    """
    Downloads the upstream dataset and replaces the cache on success.

    There is no retry and no guard against overlapping calls: a manual
    refresh can run alongside a scheduled one and the later completion wins.
    """

    def __init__(
        self,
        settings: Settings,
        cache: SnapshotCache,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.cache = cache
        self.client_config = ClientConfig(
            timeout_seconds=settings.timeout_seconds,
            transport=transport,
        )
        self.tz = ZoneInfo(settings.timezone)
        self.stats = FetchStats()

    async def download(self) -> List[Dict[str, Any]]:
        url = self.settings.data_url
        try:
            async with upstream_client(self.client_config) as client:
                payload = await get_json(client, url)
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"上游回應錯誤狀態 {exc.response.status_code}: {url}",
                "Check that data_url in config/settings.yaml is still published.",
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                f"無法連線至上游資料來源: {exc!r}",
                "Check network connectivity or raise timeout_seconds.",
            ) from exc
        except ValueError as exc:
            raise FetchError(
                f"上游回應不是有效的 JSON: {exc}",
                "The upstream endpoint may be under maintenance; try again later.",
            ) from exc

        if not isinstance(payload, list):
            raise FetchError(
                f"上游 JSON 格式不符，預期為陣列，實際為 {type(payload).__name__}",
                "Confirm data_url points at the station list endpoint.",
            )
        return payload

    async def fetch_and_cache(self) -> bool:
        """
        Fetch the dataset once; return True when the cache was replaced.

        Failures are logged and leave the existing snapshot untouched.
        """
        self.stats.attempts += 1
        logger.info("Fetching water quality data from %s", self.settings.data_url)
        try:
            records = await self.download()
        except FetchError as exc:
            self.stats.failures += 1
            self.stats.last_error = exc
            logger.error("Error fetching water data: %s", exc)
            logger.info("Suggestion: %s", exc.suggestion)
            return False

        snapshot = Snapshot.build(records, datetime.now(self.tz))
        self.cache.replace(snapshot)
        self.stats.successes += 1
        self.stats.last_success_at = snapshot.fetched_at
        logger.info("Data fetched successfully. Records: %s", snapshot.count)
        return True


async def refresh_loop(fetcher: WaterDataFetcher, interval_seconds: float) -> None:
    """Fetch immediately, then once per interval until cancelled."""
    while True:
        await fetcher.fetch_and_cache()
        await asyncio.sleep(interval_seconds)


def start_refresh_task(fetcher: WaterDataFetcher) -> "asyncio.Task[None]":
    interval = fetcher.settings.refresh_interval_seconds
    logger.info("Data will update every %s seconds", interval)
    return asyncio.create_task(refresh_loop(fetcher, interval))


async def stop_refresh_task(task: Optional["asyncio.Task[None]"]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


async def fetch_once(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
    """
    Run a single fetch into a fresh cache.

    Returns the cache (possibly empty) and the fetcher stats.
    """
    cache = SnapshotCache()
    fetcher = WaterDataFetcher(settings, cache, transport=transport)
    await fetcher.fetch_and_cache()
    return cache, fetcher.stats

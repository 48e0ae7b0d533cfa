"""Entry point for performing a single fetch."""

import asyncio
import logging
import sys

from waterdata.classify import bucket_distribution
from waterdata.job import fetch_once
from waterdata.settings import load_settings


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings()
    cache, stats = asyncio.run(fetch_once(settings))
    snapshot = cache.get()
    if snapshot is None:
        exc = stats.last_error
        logging.error("抓取失敗: %s", exc)
        if exc is not None:
            logging.info("修正建議: %s", exc.suggestion)
        sys.exit(1)

    logging.info("Fetch finished: records=%s fetched_at=%s", snapshot.count, snapshot.fetched_at)

    print(f"Source: {settings.data_url}")
    print(f"Total records: {snapshot.count}")
    distribution, _ = bucket_distribution(snapshot.records)
    print(
        "Buckets -> "
        + ", ".join(f"{item['label']}: {item['value']} ({item['percent']}%)" for item in distribution)
    )
    print(f"Last updated: {stats.last_success_at.isoformat()}")


if __name__ == "__main__":
    main()

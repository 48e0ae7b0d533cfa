"""
httpx helpers used by the fetch job.

The functions here wrap opening an HTTP session against the upstream
endpoint and decoding its JSON body. The upstream URL itself comes from
`settings.py`.
"""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

USER_AGENT = "water-quality-map/1.0 (+https://www.water.gov.tw/)"


@dataclass
class ClientConfig:
    timeout_seconds: Optional[float] = None
    transport: Optional[httpx.AsyncBaseTransport] = None


@asynccontextmanager
async def upstream_client(config: ClientConfig) -> AsyncIterator[httpx.AsyncClient]:
    """
    Context manager yielding a single httpx client.

    Closes the connection pool automatically, even if an exception bubbles up.
    """
    client = httpx.AsyncClient(
        timeout=config.timeout_seconds,
        transport=config.transport,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        follow_redirects=True,
    )
    try:
        yield client
    finally:
        await client.aclose()


async def get_json(client: httpx.AsyncClient, url: str) -> Any:
    """
    GET `url` and return the decoded JSON body.

    Raises `httpx.HTTPStatusError` for non-2xx responses and `ValueError`
    when the body is not valid JSON. The non-standard literals NaN and
    Infinity, and numbers that overflow to infinity, count as invalid.
    """
    response = await client.get(url)
    response.raise_for_status()
    return response.json(parse_constant=_reject_constant, parse_float=_finite_float)


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite JSON literal: {name}")


def _finite_float(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"non-finite JSON number: {text}")
    return number

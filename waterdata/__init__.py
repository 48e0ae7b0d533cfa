"""
Water quality map package.

The modules expose:
    - settings: YAML-backed configuration validated with pydantic.
    - parser: Utilities to read loosely typed upstream records.
    - cache: The single in-memory snapshot slot.
    - client: httpx helpers for talking to the upstream endpoint.
    - job: Fetch-and-cache workflow plus the periodic refresh task.
    - classify: Turbidity buckets and their colors.
    - render: Marker, popup, and sidebar view models.
"""

__all__ = ["settings", "parser", "cache", "client", "job", "classify", "render"]

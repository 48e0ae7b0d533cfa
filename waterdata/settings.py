"""
Runtime configuration for the water quality map.

Settings live in `config/settings.yaml` under a top-level `default:` key and
are validated with pydantic so a malformed value fails at startup instead of
on the first refresh. The `PORT` environment variable overrides the port and
`WATERMAP_SETTINGS` can point at an alternative settings file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, validator

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SETTINGS_PATH = PROJECT_ROOT / "config" / "settings.yaml"

DATA_URL = "https://www.water.gov.tw/wq/XML/ADTS.json"
DEFAULT_PORT = 3000


class MapSettings(BaseModel):
    """
    Browser map options.

    Attributes
    ----------
    center:
        Initial ``[lat, lon]`` of the map view.
    zoom:
        Initial zoom level.
    select_zoom:
        Zoom level used when a station is selected.
    client_refresh_seconds:
        Interval of the browser-side reload cycle.
    marker_tolerance:
        Max coordinate difference (degrees) when matching a station to its marker.
    """

    center: List[float] = Field(
        default_factory=lambda: [23.6, 121.0],
        description="Initial map center as [lat, lon].",
    )
    zoom: int = Field(7, description="Initial zoom level.")
    select_zoom: int = Field(12, description="Zoom level applied when a station is selected.")
    client_refresh_seconds: int = Field(
        3600,
        description="How often the browser reloads the dataset.",
    )
    marker_tolerance: float = Field(
        0.001,
        description="Coordinate tolerance (degrees) for station/marker matching.",
    )

    @validator("center")
    def _check_center(cls, value: List[float]) -> List[float]:
        if len(value) != 2:
            raise ValueError("center must be [lat, lon]")
        return value


class Settings(BaseModel):
    """Top-level settings for fetching, serving, and rendering."""

    data_url: str = Field(DATA_URL, description="Upstream JSON endpoint.")
    refresh_interval_seconds: float = Field(
        3600,
        description="Delay between scheduled fetches.",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Upstream request timeout; None waits indefinitely.",
    )
    timezone: str = Field("Asia/Taipei", description="Timezone used for fetch timestamps.")
    host: str = Field("0.0.0.0", description="Interface the HTTP server binds to.")
    port: int = Field(DEFAULT_PORT, description="Port the HTTP server binds to.")
    map: MapSettings = Field(default_factory=MapSettings)

    @validator("data_url", "timezone", "host", pre=True, always=True)
    def _strip_strings(cls, value: str) -> str:
        """Normalize accidental whitespace in string settings."""
        if isinstance(value, str):
            return value.strip()
        return value

    @validator("refresh_interval_seconds")
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        return value


def load_settings(settings_path: Optional[Path] = None) -> Settings:
    """
    Load settings from YAML, applying environment overrides.

    A missing file yields the built-in defaults.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get("WATERMAP_SETTINGS", DEFAULT_SETTINGS_PATH))

    raw = {}
    if settings_path.exists():
        with settings_path.open("r", encoding="utf-8") as handle:
            raw = (yaml.safe_load(handle) or {}).get("default") or {}

    port = os.environ.get("PORT")
    if port:
        raw = {**raw, "port": int(port)}
    return Settings(**raw)

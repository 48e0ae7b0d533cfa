"""
View models for the station map and sidebar list.

Everything here is pure: the browser script only draws what these functions
return. Records without usable coordinates get no marker but still appear in
the list.
"""

from __future__ import annotations

import html
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .classify import color_for, hex_color
from .parser import parse_record

MARKER_TOLERANCE = 0.001

POPUP_PLACEHOLDER = "無資料"
LIST_PLACEHOLDER = "無"

POPUP_METRICS = [
    ("ph", "pH值"),
    ("turbidity_ntu", "濁度 (NTU)"),
    ("residual_chlorine_mg_l", "殘餘氯 (mg/L)"),
]


@dataclass
class Marker:
    station_name: str
    lat: float
    lon: float
    bucket: str
    color: str
    popup: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StationEntry:
    station_name: str
    ph: str
    turbidity: str
    bucket: str
    color: str
    selected: bool
    lat: Optional[float]
    lon: Optional[float]
    marker_index: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def popup_content(record: Mapping[str, Any]) -> str:
    """Render the marker popup; empty metrics show a placeholder."""
    reading = parse_record(record)
    stats = []
    for field_name, label in POPUP_METRICS:
        value = reading.raw.get(field_name) or POPUP_PLACEHOLDER
        empty = " empty" if value == POPUP_PLACEHOLDER else ""
        stats.append(
            '<div class="popup-stat">'
            f'<span class="popup-stat-label">{label}</span>'
            f'<span class="popup-stat-value{empty}">{html.escape(value)}</span>'
            "</div>"
        )
    return (
        '<div class="marker-popup">'
        f'<h3 class="marker-popup-title">{html.escape(reading.station_name)}</h3>'
        f'<div class="marker-popup-content">{"".join(stats)}</div>'
        "</div>"
    )


def build_marker(record: Mapping[str, Any]) -> Optional[Marker]:
    """Return a marker for the record, or None when it has no usable coordinates."""
    reading = parse_record(record)
    if not reading.has_coordinates:
        return None

    bucket = color_for(record)
    return Marker(
        station_name=reading.station_name,
        lat=reading.latitude,
        lon=reading.longitude,
        bucket=bucket,
        color=hex_color(bucket),
        popup=popup_content(record),
    )


def build_markers(records: Iterable[Mapping[str, Any]]) -> List[Marker]:
    markers = []
    for record in records:
        marker = build_marker(record)
        if marker is not None:
            markers.append(marker)
    return markers


def find_marker(
    markers: Sequence[Marker],
    lat: float,
    lon: float,
    tolerance: float = MARKER_TOLERANCE,
) -> Optional[int]:
    """
    Index of the first marker within `tolerance` degrees on both axes.

    Station coordinates are assumed not to move within a snapshot, so an
    approximate position match stands in for a stable ID.
    """
    for index, marker in enumerate(markers):
        if abs(marker.lat - lat) < tolerance and abs(marker.lon - lon) < tolerance:
            return index
    return None


def build_station_list(
    records: Iterable[Mapping[str, Any]],
    markers: Sequence[Marker],
    selected: Optional[str] = None,
    tolerance: float = MARKER_TOLERANCE,
) -> List[StationEntry]:
    """Sidebar entries in upstream order, flagging the selected station by name."""
    entries = []
    for record in records:
        reading = parse_record(record)
        bucket = color_for(record)
        marker_index = None
        if reading.has_coordinates:
            marker_index = find_marker(markers, reading.latitude, reading.longitude, tolerance)
        entries.append(
            StationEntry(
                station_name=reading.station_name,
                ph=reading.raw["ph"] or LIST_PLACEHOLDER,
                turbidity=reading.raw["turbidity_ntu"] or LIST_PLACEHOLDER,
                bucket=bucket,
                color=hex_color(bucket),
                selected=selected is not None and reading.station_name == selected,
                lat=reading.latitude,
                lon=reading.longitude,
                marker_index=marker_index,
            )
        )
    return entries


def matches_search(station_name: str, query: Optional[str]) -> bool:
    if not query:
        return True
    return query.lower() in (station_name or "").lower()


def filter_stations(entries: Iterable[StationEntry], query: Optional[str]) -> List[StationEntry]:
    return [entry for entry in entries if matches_search(entry.station_name, query)]

"""
Utilities for reading upstream station records into typed values.

The functions here focus on:
    - Mapping the upstream field names onto stable internal names.
    - Normalizing numeric values (treating placeholders such as "--" as NULL).
    - Never raising on malformed records; bad fields simply become None.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

STATION_NAME = "station_name"
LATITUDE = "latitude"
LONGITUDE = "longitude"
PH = "pH_value"
TURBIDITY = "turbidity(NTU)"
RESIDUAL_CHLORINE = "residual_chlorine(mg/L)"

RAW_TO_FIELD = {
    STATION_NAME: "station_name",
    LATITUDE: "latitude",
    LONGITUDE: "longitude",
    PH: "ph",
    TURBIDITY: "turbidity_ntu",
    RESIDUAL_CHLORINE: "residual_chlorine_mg_l",
}

NULL_TOKENS = {"", "-", "—", "--", "——", "null", "NULL", "NaN", "nan"}


@dataclass(frozen=True)
class StationReading:
    """
    Structured view of a single upstream record.

    Numeric fields are floats or None when the upstream value is missing or
    not a number. `raw` keeps the display text of each metric as delivered.
    """

    station_name: str
    latitude: Optional[float]
    longitude: Optional[float]
    ph: Optional[float]
    turbidity_ntu: Optional[float]
    residual_chlorine_mg_l: Optional[float]
    raw: Dict[str, str]

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def parse_numeric(value: Any) -> Optional[float]:
    """Convert raw metric values into floats with NULL token handling."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        raw = str(value).strip()
        if raw in NULL_TOKENS:
            return None
        try:
            number = float(raw)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def display_text(value: Any) -> str:
    """Return the upstream value as text, empty when absent."""
    if value is None:
        return ""
    return str(value).strip()


def parse_record(record: Mapping[str, Any]) -> StationReading:
    """
    Convert one upstream record into a `StationReading`.

    Non-mapping input is treated as a record with every field missing.
    """
    if not isinstance(record, Mapping):
        record = {}

    values: Dict[str, Optional[float]] = {}
    raw: Dict[str, str] = {}
    for upstream_key, field_name in RAW_TO_FIELD.items():
        if field_name == "station_name":
            continue
        value = record.get(upstream_key)
        values[field_name] = parse_numeric(value)
        raw[field_name] = display_text(value)

    return StationReading(
        station_name=display_text(record.get(STATION_NAME)),
        raw=raw,
        **values,
    )

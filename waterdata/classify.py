"""
Quality buckets derived from turbidity readings.

`color_for` parses pH but only turbidity drives the bucket: a record without
a numeric pH is still "unknown", yet pH never moves a record between the
other buckets.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal, Mapping, Tuple

from .parser import parse_record

Bucket = Literal["excellent", "good", "moderate", "concern", "unknown"]

EXCELLENT: Bucket = "excellent"
GOOD: Bucket = "good"
MODERATE: Bucket = "moderate"
CONCERN: Bucket = "concern"
UNKNOWN: Bucket = "unknown"

BUCKET_ORDER: Tuple[Bucket, ...] = (EXCELLENT, GOOD, MODERATE, CONCERN, UNKNOWN)

# Upper turbidity bound (NTU, inclusive) for each graded bucket.
TURBIDITY_THRESHOLDS: Tuple[Tuple[float, Bucket], ...] = (
    (0.5, EXCELLENT),
    (1.0, GOOD),
    (2.0, MODERATE),
)

BUCKET_COLORS: Dict[str, str] = {
    EXCELLENT: "#22c55e",
    GOOD: "#3b82f6",
    MODERATE: "#eab308",
    CONCERN: "#ef4444",
    UNKNOWN: "#9ca3af",
}

BUCKET_LABELS: Dict[str, str] = {
    EXCELLENT: "優秀",
    GOOD: "良好",
    MODERATE: "中等",
    CONCERN: "需要關注",
    UNKNOWN: "數據不完整",
}


def color_for(record: Mapping[str, Any]) -> Bucket:
    reading = parse_record(record)
    if reading.ph is None or reading.turbidity_ntu is None:
        return UNKNOWN

    for upper, bucket in TURBIDITY_THRESHOLDS:
        if reading.turbidity_ntu <= upper:
            return bucket
    return CONCERN


def hex_color(bucket: str) -> str:
    return BUCKET_COLORS.get(bucket, BUCKET_COLORS[UNKNOWN])


def bucket_distribution(records: Iterable[Mapping[str, Any]]) -> Tuple[List[Dict[str, object]], int]:
    """
    Count records per bucket.

    Returns the distribution in `BUCKET_ORDER` (every bucket listed, zero
    counts included) and the total number of records.
    """
    counts: Dict[str, int] = {bucket: 0 for bucket in BUCKET_ORDER}
    for record in records:
        counts[color_for(record)] += 1

    total = sum(counts.values())
    distribution = []
    for bucket in BUCKET_ORDER:
        count = counts[bucket]
        percent = 0 if total == 0 else round(count / total * 100, 1)
        distribution.append(
            {
                "label": bucket,
                "name": BUCKET_LABELS[bucket],
                "color": BUCKET_COLORS[bucket],
                "value": count,
                "percent": percent,
            }
        )
    return distribution, total

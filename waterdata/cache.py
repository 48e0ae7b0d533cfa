"""
In-memory storage for the latest water quality snapshot.

Only one snapshot is kept. `SnapshotCache.replace` swaps the whole snapshot
with a single assignment so concurrent readers on the event loop always see
either the previous or the new snapshot in full.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple


@dataclass(frozen=True)
class Snapshot:
    records: Tuple[Dict[str, Any], ...]
    fetched_at: datetime

    @property
    def count(self) -> int:
        return len(self.records)

    @classmethod
    def build(cls, records: Iterable[Dict[str, Any]], fetched_at: datetime) -> "Snapshot":
        return cls(records=tuple(records), fetched_at=fetched_at)


class SnapshotCache:
    """Process-wide holder of the latest snapshot; never cleared once populated."""

    def __init__(self) -> None:
        self._snapshot: Optional[Snapshot] = None

    def get(self) -> Optional[Snapshot]:
        return self._snapshot

    def replace(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot

    @property
    def is_populated(self) -> bool:
        return self._snapshot is not None

    @property
    def count(self) -> int:
        snapshot = self._snapshot
        return snapshot.count if snapshot is not None else 0

    @property
    def last_updated(self) -> Optional[datetime]:
        snapshot = self._snapshot
        return snapshot.fetched_at if snapshot is not None else None

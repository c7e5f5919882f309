# urban_snapshot/services/cache.py
"""
In-process snapshot cache with lazy expiry.

Entries are checked for age when read and evicted then; nothing sweeps the
table in the background. One lock guards the whole table. The cache does
not survive a restart.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.config import settings
from ..schemas.common import DEFAULT_RADIUS_KM, Query
from ..schemas.results import DerivedMetrics, Snapshot

logger = logging.getLogger(__name__)

COORD_DECIMALS = 4


def _rounded(value: float) -> str:
    # round() can yield -0.0, which would format differently from 0.0
    return f"{round(value, COORD_DECIMALS) + 0.0:.{COORD_DECIMALS}f}"


def fingerprint(query: Query) -> str:
    """Normalized cache key: rounded point, search area, country and unit set."""
    radius = query.radius_km or DEFAULT_RADIUS_KM
    box = "-" if query.bbox is None else ",".join(
        _rounded(v) for v in (query.bbox.west, query.bbox.south, query.bbox.east, query.bbox.north)
    )
    return "|".join((
        f"{_rounded(query.latitude)},{_rounded(query.longitude)}",
        f"r={radius:g}",
        f"b={box}",
        f"c={query.country_hint}",
        "u=" + ",".join(sorted(query.units)),
    ))


@dataclass(frozen=True)
class CacheEntry:
    key: str
    snapshot: Snapshot
    metrics: DerivedMetrics
    created_at: float
    expires_at: float


class SnapshotCache:
    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl if ttl is not None else settings.cache_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("cache miss %s", key)
                return None
            if self._clock() - entry.created_at > self.ttl:
                del self._entries[key]
                logger.debug("cache expired %s", key)
                return None
            logger.debug("cache hit %s", key)
            return entry

    def set(self, key: str, snapshot: Snapshot, metrics: DerivedMetrics) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(key=key, snapshot=snapshot, metrics=metrics, created_at=now, expires_at=now + self.ttl)
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

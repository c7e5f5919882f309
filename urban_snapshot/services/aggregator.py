# urban_snapshot/services/aggregator.py
"""
Concurrent fan-out over every configured source client.

Each client runs as its own asyncio task and writes its SourceResult into a
slot reserved for it. The aggregator waits for all tasks, bounded by a shared
deadline; tasks still running at the deadline are cancelled and recorded as
timed out. Any source that did not succeed is replaced by its fallback
payload, so the Snapshot always has one entry per source.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from ..core.config import settings
from ..core.errors import FailureReason, UpstreamTimeout
from ..schemas.common import Query
from ..schemas.results import (
    DerivedMetrics,
    Snapshot,
    SnapshotEntry,
    SourceError,
    SourceResult,
    SourceStatus,
)
from ..utils.time import utc_now
from .air_quality import AirQualityClient
from .base import SourceClient
from .cache import CacheEntry, SnapshotCache, fingerprint
from .landsat import LandsatClient
from .metrics import derive
from .population import PopulationClient
from .weather import WeatherClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateResult:
    snapshot: Snapshot
    metrics: DerivedMetrics

    @property
    def errors(self) -> dict[str, Optional[str]]:
        return self.snapshot.errors()


def default_clients(transport=None) -> list[SourceClient]:
    return [
        AirQualityClient(transport=transport),
        WeatherClient(transport=transport),
        PopulationClient(transport=transport),
        LandsatClient(transport=transport),
    ]


class Aggregator:
    def __init__(self, clients: Sequence[SourceClient], deadline: Optional[float] = None):
        ids = [c.source_id for c in clients]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate source ids: {ids}")
        self.clients = list(clients)
        self.deadline = deadline if deadline is not None else settings.aggregate_timeout

    @property
    def source_ids(self) -> list[str]:
        return [c.source_id for c in self.clients]

    def _timed_out(self, client: SourceClient) -> SourceResult:
        exc = UpstreamTimeout(
            client.source_id, FailureReason.DEADLINE,
            f"{client.source_id} did not respond within {self.deadline:.1f}s",
        )
        return SourceResult(
            source_id=client.source_id,
            status=SourceStatus.TIMED_OUT,
            error=SourceError.from_exception(exc),
            fetched_at=utc_now(),
        )

    async def collect(self, query: Query) -> list[SourceResult]:
        """Settle every source, or give up on the stragglers at the deadline."""
        slots: list[Optional[SourceResult]] = [None] * len(self.clients)
        if not self.clients:
            return []

        async def run(i: int, client: SourceClient):
            slots[i] = await client.fetch(query)

        tasks = [
            asyncio.create_task(run(i, c), name=f"fetch:{c.source_id}")
            for i, c in enumerate(self.clients)
        ]
        _, pending = await asyncio.wait(tasks, timeout=self.deadline)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                "Deadline of %.1fs reached with %d source(s) pending: %s",
                self.deadline, len(pending), ", ".join(t.get_name() for t in pending),
            )

        results: list[SourceResult] = []
        for client, task, slot in zip(self.clients, tasks, slots):
            if slot is None:
                if task.done() and not task.cancelled() and task.exception() is not None:
                    # fetch() is not supposed to raise; keep the error visible
                    logger.error("Source %s raised past its boundary", client.source_id, exc_info=task.exception())
                slot = self._timed_out(client)
            results.append(slot)
        return results

    def synthesize(self, query: Query, results: Sequence[SourceResult]) -> Snapshot:
        by_id = {r.source_id: r for r in results}
        entries: dict[str, SnapshotEntry] = {}
        for client in self.clients:
            result = by_id.get(client.source_id) or self._timed_out(client)
            if result.ok:
                entries[client.source_id] = SnapshotEntry(
                    source_id=client.source_id, status=result.status, payload=result.payload
                )
            else:
                entries[client.source_id] = SnapshotEntry(
                    source_id=client.source_id,
                    status=result.status,
                    payload=client.fallback(query),
                    error=result.error,
                    fallback=True,
                )
        return Snapshot(query=query, generated_at=utc_now(), entries=entries)

    async def aggregate(self, query: Query) -> AggregateResult:
        started = time.monotonic()
        results = await self.collect(query)
        snapshot = self.synthesize(query, results)
        metrics = derive(snapshot)

        failed = [sid for sid, e in snapshot.entries.items() if e.fallback]
        logger.info(
            "Aggregated %d source(s) for (%.4f, %.4f) in %.2fs; fallback used for: %s",
            len(snapshot.entries), query.latitude, query.longitude,
            time.monotonic() - started, ", ".join(failed) or "none",
        )
        return AggregateResult(snapshot=snapshot, metrics=metrics)


async def cached_aggregate(aggregator: Aggregator, cache: SnapshotCache, query: Query) -> tuple[CacheEntry, bool]:
    """Return ``(entry, hit)``. Concurrent misses on one key may both fetch."""
    key = fingerprint(query)
    entry = cache.get(key)
    if entry is not None:
        return entry, True
    result = await aggregator.aggregate(query)
    return cache.set(key, result.snapshot, result.metrics), False

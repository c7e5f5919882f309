"""Tests for SnapshotCache lazy expiry and query fingerprints."""

import threading

from urban_snapshot.schemas.common import DEFAULT_RADIUS_KM, Query
from urban_snapshot.schemas.results import DerivedMetrics, Snapshot
from urban_snapshot.services.cache import SnapshotCache, fingerprint
from urban_snapshot.utils.geo import BBox
from urban_snapshot.utils.time import utc_now


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _snapshot(query: Query) -> Snapshot:
    return Snapshot(query=query, generated_at=utc_now(), entries={})


class TestSnapshotCache:
    def test_get_after_set_returns_entry(self, nyc_query):
        cache = SnapshotCache(ttl=900, clock=FakeClock())
        snap, metrics = _snapshot(nyc_query), DerivedMetrics(environmental_health=50)
        cache.set("k", snap, metrics)
        entry = cache.get("k")
        assert entry is not None
        assert entry.snapshot is snap
        assert entry.metrics is metrics
        assert entry.expires_at == entry.created_at + 900

    def test_miss_for_unknown_key(self):
        assert SnapshotCache(ttl=900).get("nope") is None

    def test_expired_entry_is_evicted_on_read(self, nyc_query):
        clock = FakeClock()
        cache = SnapshotCache(ttl=900, clock=clock)
        cache.set("k", _snapshot(nyc_query), DerivedMetrics())

        clock.now += 900
        assert cache.get("k") is not None  # exactly at the TTL still counts as fresh

        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_no_background_sweep(self, nyc_query):
        clock = FakeClock()
        cache = SnapshotCache(ttl=1, clock=clock)
        cache.set("k", _snapshot(nyc_query), DerivedMetrics())
        clock.now += 100
        # stays in the table until somebody reads it
        assert len(cache) == 1

    def test_set_overwrites(self, nyc_query):
        cache = SnapshotCache(ttl=900, clock=FakeClock())
        cache.set("k", _snapshot(nyc_query), DerivedMetrics(environmental_health=10))
        cache.set("k", _snapshot(nyc_query), DerivedMetrics(environmental_health=20))
        assert cache.get("k").metrics.environmental_health == 20

    def test_clear(self, nyc_query):
        cache = SnapshotCache(ttl=900)
        cache.set("k", _snapshot(nyc_query), DerivedMetrics())
        cache.clear()
        assert cache.get("k") is None

    def test_concurrent_writers_keep_table_consistent(self, nyc_query):
        cache = SnapshotCache(ttl=900)
        snap = _snapshot(nyc_query)

        def writer(n):
            for i in range(200):
                cache.set(f"{n}-{i % 10}", snap, DerivedMetrics())
                cache.get(f"{n}-{i % 10}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 80


class TestFingerprint:
    def test_formatting_differences_hash_identically(self):
        a = Query(latitude=40.7128, longitude=-74.0060, country_hint="usa ", units="imperial,metric")
        b = Query(latitude=40.71280001, longitude=-74.006, country_hint="USA", units=["metric", "imperial"])
        assert fingerprint(a) == fingerprint(b)

    def test_wrapped_longitude_hashes_like_canonical(self):
        assert fingerprint(Query(latitude=10, longitude=190)) == fingerprint(Query(latitude=10, longitude=-170))

    def test_negative_zero(self):
        assert fingerprint(Query(latitude=-0.00001, longitude=0)) == fingerprint(Query(latitude=0, longitude=0))

    def test_relevant_fields_change_the_key(self):
        base = Query(latitude=40.7128, longitude=-74.006)
        assert fingerprint(base) != fingerprint(Query(latitude=40.7128, longitude=-74.006, radius_km=5))
        assert fingerprint(base) != fingerprint(Query(latitude=40.7128, longitude=-74.006, units="imperial"))
        assert fingerprint(base) != fingerprint(Query(latitude=40.7128, longitude=-74.006, country_hint="CAN"))
        assert fingerprint(base) != fingerprint(Query(latitude=40.7128, longitude=-74.006, bbox=BBox(-80, 35, -70, 45)))
        assert fingerprint(base) != fingerprint(Query(latitude=40.7129, longitude=-74.006))

    def test_different_search_boxes_do_not_share_a_key(self):
        near = Query(latitude=40.7128, longitude=-74.006, bbox=BBox(-74.1, 40.7, -73.9, 40.8))
        wide = Query(latitude=40.7128, longitude=-74.006, bbox=BBox(-80, 35, -70, 45))
        assert fingerprint(near) != fingerprint(wide)
        same = Query(latitude=40.7128, longitude=-74.006, bbox=BBox(-74.10000001, 40.7, -73.9, 40.8))
        assert fingerprint(near) == fingerprint(same)

    def test_default_radius_matches_explicit_default(self):
        implicit = Query(latitude=40.7128, longitude=-74.006)
        explicit = Query(latitude=40.7128, longitude=-74.006, radius_km=DEFAULT_RADIUS_KM)
        assert implicit.effective_bbox() == explicit.effective_bbox()
        assert fingerprint(implicit) == fingerprint(explicit)


    def test_location_name_is_irrelevant(self):
        a = Query(latitude=40.7128, longitude=-74.006, location_name="NYC")
        b = Query(latitude=40.7128, longitude=-74.006, location_name="New York City")
        assert fingerprint(a) == fingerprint(b)

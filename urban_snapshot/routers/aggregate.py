# urban_snapshot/routers/aggregate.py
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional

from ..core.errors import InvalidQuery
from ..schemas.common import Query, make_query
from ..schemas.payloads import AirQualityPayload, PopulationPayload, SatellitePayload, WeatherPayload
from ..schemas.responses import AggregateResponse, ErrorResponse, ErrorsBlock, LocationBlock, WeatherBlock
from ..schemas.results import DerivedMetrics
from ..services.aggregator import Aggregator, cached_aggregate
from ..services.cache import CacheEntry, SnapshotCache
from ..services.estimation import estimate_land_surface_temperature, estimate_vegetation_index
from ..utils.geo import parse_bbox, parse_coords
from ..utils.time import iso_z, parse_date, utc_now

router = APIRouter(tags=["aggregate"])

CACHE_CONTROL = "public, s-maxage=900, stale-while-revalidate=1800"
DEFAULT_COORDS = "40.7128,-74.0060"

ESTIMATORS = {
    "lst": estimate_land_surface_temperature,
    "ndvi": estimate_vegetation_index,
}


def get_aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator

def get_cache(request: Request) -> SnapshotCache:
    return request.app.state.cache


# -------- helpers --------
def _c_to_f(v: Optional[float]) -> Optional[float]:
    return None if v is None else round(v * 9 / 5 + 32, 1)

def _kmh_to_mph(v: Optional[float]) -> Optional[float]:
    return None if v is None else round(v * 0.621371, 1)

def _weather_block(weather: WeatherPayload, metrics: DerivedMetrics, imperial: bool) -> WeatherBlock:
    temp, wind, hi = weather.temperature_c, weather.wind_speed_kmh, metrics.heat_index
    if imperial:
        temp, wind, hi = _c_to_f(temp), _kmh_to_mph(wind), _c_to_f(hi)
    return WeatherBlock(
        temperature=temp,
        humidity=weather.humidity_pct,
        wind_speed=wind,
        precipitation=weather.precipitation_mm,
        pressure=weather.pressure_hpa,
        forecast=weather.forecast,
        heat_index=hi,
        units="imperial" if imperial else "metric",
        last_updated=weather.last_updated,
        source=weather.source,
    )

def _location_name(query: Query, entry: CacheEntry) -> str:
    if query.location_name and query.location_name != "here":
        return query.location_name
    air = entry.snapshot.entries.get("air_quality")
    if air is not None and not air.fallback and isinstance(air.payload, AirQualityPayload):
        return air.payload.city or "Unknown"
    return "Unknown"

def _typed(entry: CacheEntry, source_id: str, cls):
    payload = entry.snapshot.payload(source_id)
    return payload if isinstance(payload, cls) else None

def build_response(query: Query, entry: CacheEntry) -> AggregateResponse:
    """Shape a cached snapshot into the public JSON contract for this request."""
    metrics = entry.metrics
    weather = _typed(entry, "weather", WeatherPayload)
    if query.imperial:
        metrics = metrics.model_copy(update={"heat_index": _c_to_f(metrics.heat_index)})
    errors = entry.snapshot.errors()
    return AggregateResponse(
        timestamp=iso_z(entry.snapshot.generated_at),
        location=LocationBlock(
            name=_location_name(query, entry),
            coordinates=(query.latitude, query.longitude),
            country=query.country_hint,
        ),
        air_quality=_typed(entry, "air_quality", AirQualityPayload),
        weather=_weather_block(weather, entry.metrics, query.imperial) if weather else None,
        population=_typed(entry, "population", PopulationPayload),
        satellite=_typed(entry, "landsat", SatellitePayload),
        metrics=metrics,
        errors=ErrorsBlock(
            air_quality=errors.get("air_quality"),
            weather=errors.get("weather"),
            population=errors.get("population"),
            landsat=errors.get("landsat"),
        ),
    )


# =========================
# AGGREGATE
# =========================
@router.get("/aggregate", responses={500: {"model": ErrorResponse}})
async def aggregate(
    coords: str = DEFAULT_COORDS,
    location: Optional[str] = None,
    country: str = "USA",
    bbox: Optional[str] = None,
    radius: Optional[float] = None,
    units: str = "metric",
    aggregator: Aggregator = Depends(get_aggregator),
    cache: SnapshotCache = Depends(get_cache),
):
    lat, lng = parse_coords(coords)
    q = make_query(
        lat, lng,
        country_hint=country,
        radius_km=radius,
        location_name=location,
        bbox=parse_bbox(bbox) if bbox else None,
        units=units,
    )
    entry, hit = await cached_aggregate(aggregator, cache, q)
    body = build_response(q, entry)
    return JSONResponse(
        content=body.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": CACHE_CONTROL, "X-Cache": "HIT" if hit else "MISS"},
    )


# =========================
# SINGLE SOURCE
# =========================
@router.get("/sources/{source_id}")
async def single_source(
    source_id: str,
    coords: str = DEFAULT_COORDS,
    country: str = "USA",
    bbox: Optional[str] = None,
    aggregator: Aggregator = Depends(get_aggregator),
):
    client = next((c for c in aggregator.clients if c.source_id == source_id), None)
    if client is None:
        raise HTTPException(status_code=404, detail=f"Unknown source '{source_id}'. Known: {', '.join(aggregator.source_ids)}")
    lat, lng = parse_coords(coords)
    q = make_query(lat, lng, country_hint=country, bbox=parse_bbox(bbox) if bbox else None)
    result = await client.fetch(q)
    return result.model_dump(mode="json", by_alias=True)


# =========================
# ESTIMATION
# =========================
@router.get("/estimate/{quantity}")
async def estimate(
    quantity: str,
    lat: float,
    lng: float,
    timestamp: Optional[str] = None,
    cloud_cover: float = 0.0,
    data_volume: float = 0.0,
):
    estimator = ESTIMATORS.get(quantity.lower())
    if estimator is None:
        raise HTTPException(status_code=404, detail=f"Unknown quantity '{quantity}'. Known: {', '.join(ESTIMATORS)}")
    q = make_query(lat, lng)
    try:
        when = parse_date(timestamp) if timestamp else utc_now()
        sample = estimator(when, q.latitude, q.longitude, cloud_cover, data_volume)
    except ValueError as e:
        raise InvalidQuery(str(e)) from None
    return sample.model_dump(mode="json", by_alias=True)

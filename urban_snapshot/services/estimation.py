# urban_snapshot/services/estimation.py
"""
Metadata-driven estimates of land-surface temperature (LST) and NDVI.

No pixel is ever decoded here. Given what a granule catalog tells us about a
scene (acquisition time, cloud cover, file size) and the point of interest,
the value is composed from independent terms:

    seasonal + solar + cloud + locale + data quality

and clamped to a physically plausible range. Confidence is scored separately
from the same quality proxies so callers can tell an estimate from a
measurement. Everything is deterministic for identical inputs.
"""
import math
from datetime import datetime

from ..schemas.payloads import EstimationSample
from ..utils.geo import planar_distance_deg
from ..utils.time import as_utc, day_of_year

LST_RANGE = (-50.0, 60.0)
NDVI_RANGE = (-1.0, 1.0)

# Below this the estimate is usable but must be flagged as low confidence
LOW_CONFIDENCE_PCT = 60.0
MIN_CONFIDENCE_PCT = 50.0

# Granule size thresholds (MB) used as a retrieval-completeness proxy
LOW_VOLUME_MB = 2.0
MEDIUM_VOLUME_MB = 3.0
HIGH_VOLUME_MB = 4.0

METHOD_HIGH = "high-quality / clear-sky"
METHOD_MODERATE = "moderate / partial-cloud"
METHOD_ESTIMATED = "estimated / cloud-interference"

# (lat, lon, radius in degrees)
URBAN_AREAS = (
    (40.7128, -74.0060, 0.5),   # New York
    (34.0522, -118.2437, 0.5),  # Los Angeles
    (41.8781, -87.6298, 0.5),   # Chicago
    (29.7604, -95.3698, 0.5),   # Houston
    (33.4484, -112.0740, 0.5),  # Phoenix
)


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _sanitize(cloud_cover_pct: float, data_volume_mb: float) -> tuple[float, float]:
    if not (math.isfinite(cloud_cover_pct) and math.isfinite(data_volume_mb)):
        raise ValueError("cloud cover and data volume must be finite numbers")
    return _clamp(cloud_cover_pct, 0.0, 100.0), max(0.0, data_volume_mb)


def _season_phase(timestamp: datetime, latitude: float) -> float:
    """+1 at northern midsummer, -1 at midwinter; flipped south of the equator."""
    phase = math.sin((day_of_year(timestamp) - 80) * 2 * math.pi / 365)
    return -phase if latitude < 0 else phase


def urban_proximity(latitude: float, longitude: float) -> float:
    """0 outside every known urban region, rising to 1 at a city centre."""
    best = 0.0
    for lat, lon, radius in URBAN_AREAS:
        d = planar_distance_deg(latitude, longitude, lat, lon)
        if d < radius:
            best = max(best, 1.0 - d / radius)
    return best


# =========================
# terms
# =========================
def seasonal_temperature_base(timestamp: datetime, latitude: float) -> float:
    # 30°C at the equator down to -10°C at the poles, ±15°C over the year
    base = 30.0 - (abs(latitude) / 90.0) * 40.0
    return base + _season_phase(timestamp, latitude) * 15.0


def solar_term(timestamp: datetime, latitude: float, longitude: float) -> float:
    ts = as_utc(timestamp)
    solar_hour = (ts.hour + ts.minute / 60.0 + longitude / 15.0) % 24.0
    angle = math.cos((solar_hour - 12.0) * math.pi / 12.0) * 0.5
    return angle * math.cos(math.radians(latitude)) * 5.0


def cloud_term(cloud_cover_pct: float) -> float:
    return -(cloud_cover_pct / 100.0) * 8.0


def urban_heat_term(latitude: float, longitude: float) -> float:
    proximity = urban_proximity(latitude, longitude)
    if proximity <= 0.0:
        return 0.0
    return 2.0 + 3.0 * proximity


def data_quality_term(data_volume_mb: float, step: float = 0.5) -> float:
    if data_volume_mb > HIGH_VOLUME_MB:
        return step
    if data_volume_mb < LOW_VOLUME_MB:
        return -step
    return 0.0


# =========================
# confidence / method
# =========================
def confidence(cloud_cover_pct: float, data_volume_mb: float) -> float:
    score = 100.0
    if cloud_cover_pct > 80:
        score -= 30
    elif cloud_cover_pct > 60:
        score -= 15

    if data_volume_mb < LOW_VOLUME_MB:
        score -= 20
    elif data_volume_mb < MEDIUM_VOLUME_MB:
        score -= 10

    return max(MIN_CONFIDENCE_PCT, score)


def calculation_method(cloud_cover_pct: float, data_volume_mb: float) -> str:
    if cloud_cover_pct < 30 and data_volume_mb > MEDIUM_VOLUME_MB:
        return METHOD_HIGH
    if cloud_cover_pct < 60 and data_volume_mb > LOW_VOLUME_MB:
        return METHOD_MODERATE
    return METHOD_ESTIMATED


def _sample(value: float, unit: str, timestamp: datetime, cloud: float, volume: float) -> EstimationSample:
    conf = confidence(cloud, volume)
    return EstimationSample(
        value=value,
        unit=unit,
        confidence_pct=conf,
        method=calculation_method(cloud, volume),
        basis_timestamp=as_utc(timestamp),
        basis_cloud_cover_pct=cloud,
        basis_data_volume_mb=volume,
        low_confidence=conf < LOW_CONFIDENCE_PCT,
    )


# =========================
# estimators
# =========================
def estimate_land_surface_temperature(
    timestamp: datetime,
    latitude: float,
    longitude: float,
    cloud_cover_pct: float,
    data_volume_mb: float,
) -> EstimationSample:
    """LST in °C from granule metadata."""
    cloud, volume = _sanitize(cloud_cover_pct, data_volume_mb)
    value = (
        seasonal_temperature_base(timestamp, latitude)
        + solar_term(timestamp, latitude, longitude)
        + cloud_term(cloud)
        + urban_heat_term(latitude, longitude)
        + data_quality_term(volume)
    )
    value = round(_clamp(value, *LST_RANGE), 2)
    return _sample(value, "°C", timestamp, cloud, volume)


def estimate_vegetation_index(
    timestamp: datetime,
    latitude: float,
    longitude: float,
    cloud_cover_pct: float,
    data_volume_mb: float,
) -> EstimationSample:
    """
    NDVI from granule metadata. Same term structure as LST without the
    diurnal term: greenness does not follow the hour of day.
    """
    cloud, volume = _sanitize(cloud_cover_pct, data_volume_mb)
    lat_factor = abs(latitude) / 90.0
    # evergreen tropics, strong seasonal swing at mid latitudes
    base = 0.6 - 0.3 * lat_factor
    swing = 0.25 * min(1.0, lat_factor * 2.0)
    seasonal = base + swing * _season_phase(timestamp, latitude)

    proximity = urban_proximity(latitude, longitude)
    urban = -(0.1 + 0.15 * proximity) if proximity > 0.0 else 0.0

    value = (
        seasonal
        - 0.15 * (cloud / 100.0)
        + urban
        + data_quality_term(volume, step=0.02)
    )
    value = round(_clamp(value, *NDVI_RANGE), 3)
    return _sample(value, "NDVI", timestamp, cloud, volume)

# urban_snapshot/services/metrics.py
import math
from typing import Optional

from ..schemas.payloads import (
    AirQualityPayload,
    AqiStatus,
    EstimationSample,
    PopulationPayload,
    SatellitePayload,
    WeatherPayload,
)
from ..schemas.results import DerivedMetrics, Snapshot, UrbanHeatIsland, VegetationHealth

# AQI reported as exactly 0 is treated as "station reports nothing useful",
# not as perfect air.
AQI_ZERO_SCORE = 85.0
MISSING_COMPONENT_SCORE = 50.0
COMFORT_TEMP_C = 22.0

def round_half_up(x: float, ndigits: int = 0) -> float:
    m = 10 ** ndigits
    return math.floor(x * m + 0.5) / m

# -------- AQI presentation --------
_AQI_BANDS = (
    (50, "Good", "green", "Low risk - Air quality is satisfactory"),
    (100, "Moderate", "yellow", "Moderate risk - Sensitive people may experience minor issues"),
    (150, "Unhealthy for Sensitive Groups", "orange", "High risk - Sensitive groups should limit outdoor activity"),
    (200, "Unhealthy", "red", "Very high risk - Everyone should limit outdoor activity"),
    (300, "Very Unhealthy", "purple", "Extreme risk - Avoid outdoor activity"),
)

def aqi_status(aqi: Optional[float]) -> AqiStatus:
    if aqi is None:
        return AqiStatus(status="No Data Available", color="gray", level=0)
    for level, (upper, status, color, _) in enumerate(_AQI_BANDS, start=1):
        if aqi <= upper:
            return AqiStatus(status=status, color=color, level=level)
    return AqiStatus(status="Hazardous", color="maroon", level=6)

def health_impact(aqi: Optional[float]) -> str:
    if aqi is None:
        return "Air quality data is currently unavailable"
    for upper, _, _, impact in _AQI_BANDS:
        if aqi <= upper:
            return impact
    return "Dangerous - Stay indoors"

# -------- indices --------
def heat_index(temp_c: Optional[float], humidity_pct: Optional[float]) -> Optional[float]:
    """Rothfusz regression, computed in °F and returned in °C (0.1 precision)."""
    if temp_c is None or humidity_pct is None:
        return None
    t = temp_c * 9 / 5 + 32
    rh = humidity_pct
    hi = (
        -42.379
        + 2.04901523 * t
        + 10.14333127 * rh
        - 0.22475541 * t * rh
        - 6.83783e-3 * t * t
        - 5.481717e-2 * rh * rh
        + 1.22874e-3 * t * t * rh
        + 8.5282e-4 * t * rh * rh
        - 1.99e-6 * t * t * rh * rh
    )
    return round_half_up((hi - 32) * 5 / 9, 1)

def urban_heat_island(temp_c: Optional[float]) -> Optional[UrbanHeatIsland]:
    if temp_c is None:
        return None
    intensity = int(round_half_up((temp_c - 20) * 0.3))
    if temp_c > 25:
        level = "High"
    elif temp_c > 22:
        level = "Moderate"
    else:
        level = "Low"
    return UrbanHeatIsland(intensity=intensity, level=level)

def air_quality_score(aqi: Optional[float]) -> Optional[float]:
    if aqi is None:
        return None
    if aqi == 0:
        return AQI_ZERO_SCORE
    return max(0.0, 100 - aqi * 0.5)

def environmental_health(
    aqi: Optional[float],
    temp_c: Optional[float],
    population_density: Optional[float],
) -> int:
    """Unweighted mean of air, temperature and density scores; absent inputs score 50."""
    aqi_score = air_quality_score(aqi)
    if aqi_score is None:
        aqi_score = MISSING_COMPONENT_SCORE

    if temp_c is None:
        temp_score = MISSING_COMPONENT_SCORE
    else:
        temp_score = max(0.0, 100 - abs(temp_c - COMFORT_TEMP_C) * 2)

    if population_density is None:
        density_score = MISSING_COMPONENT_SCORE
    else:
        density_score = max(0.0, 100 - population_density / 1000)

    return int(round_half_up((aqi_score + temp_score + density_score) / 3))

def vegetation_label(ndvi: float) -> str:
    if ndvi >= 0.6:
        return "Healthy"
    if ndvi >= 0.3:
        return "Moderate"
    if ndvi >= 0.1:
        return "Sparse"
    return "Bare / Non-vegetated"

def vegetation_health(satellite: Optional[SatellitePayload]) -> Optional[VegetationHealth]:
    if satellite is None:
        return None
    sample: Optional[EstimationSample] = satellite.vegetation_index
    if sample is not None:
        return VegetationHealth(
            ndvi=sample.value,
            health=vegetation_label(sample.value),
            confidence=sample.confidence_pct,
            method=sample.method,
        )
    if satellite.ndvi is None:
        return None
    return VegetationHealth(ndvi=satellite.ndvi, health=satellite.health or vegetation_label(satellite.ndvi))

# -------- snapshot --------
def derive(snapshot: Snapshot) -> DerivedMetrics:
    air = snapshot.payload("air_quality")
    weather = snapshot.payload("weather")
    population = snapshot.payload("population")
    satellite = snapshot.payload("landsat")

    aqi = air.aqi if isinstance(air, AirQualityPayload) else None
    temp = weather.temperature_c if isinstance(weather, WeatherPayload) else None
    humidity = weather.humidity_pct if isinstance(weather, WeatherPayload) else None
    density = population.density if isinstance(population, PopulationPayload) else None

    return DerivedMetrics(
        heat_index=heat_index(temp, humidity),
        urban_heat_island=urban_heat_island(temp),
        air_quality_score=air_quality_score(aqi),
        vegetation_health=vegetation_health(satellite if isinstance(satellite, SatellitePayload) else None),
        population_density=density,
        environmental_health=environmental_health(aqi, temp, density),
    )

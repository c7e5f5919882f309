# urban_snapshot/schemas/payloads.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Union

FALLBACK_LABEL = "Fallback Data (API Unavailable)"

# frozen value objects, serialized with camelCase keys
FROZEN_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

class _Frozen(BaseModel):
    model_config = FROZEN_CAMEL

# -------- air quality --------
class AqiStatus(_Frozen):
    status: str
    color: str
    level: int

class Pollutants(_Frozen):
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    no2: Optional[float] = None
    o3: Optional[float] = None
    so2: Optional[float] = None
    co: Optional[float] = None

class AirQualityPayload(_Frozen):
    aqi: Optional[float]
    status: AqiStatus
    pollutants: Pollutants
    health_impact: str
    city: Optional[str] = None
    last_updated: Optional[str] = None
    source: str

# -------- weather --------
class WeatherPayload(_Frozen):
    temperature_c: Optional[float]
    humidity_pct: Optional[float]
    wind_speed_kmh: Optional[float] = None
    precipitation_mm: Optional[float] = None
    pressure_hpa: Optional[float] = None
    temp_max_c: Optional[float] = None
    temp_min_c: Optional[float] = None
    forecast: Optional[str] = None
    last_updated: Optional[str] = None
    source: str

# -------- population --------
class YearRange(_Frozen):
    start: int
    end: int

class PopulationPayload(_Frozen):
    density: Optional[float]
    growth_rate: Optional[float] = None
    year_range: Optional[YearRange] = None
    country: Optional[str] = None
    data_source: str
    last_updated: Optional[str] = None
    source: str

# -------- satellite --------
class EstimationSample(_Frozen):
    """Metadata-derived estimate of a physical quantity, never a measurement."""
    value: float
    unit: str
    confidence_pct: float = Field(..., ge=50, le=100)
    method: str
    basis_timestamp: datetime
    basis_cloud_cover_pct: float
    basis_data_volume_mb: float
    low_confidence: bool

class SatellitePayload(_Frozen):
    scene_id: Optional[str] = None
    acquired_at: Optional[str] = None
    platform: str
    cloud_cover: Optional[float] = None
    mean_cloud_cover: Optional[float] = None
    scene_count: int = 0
    available_bands: list[str] = []
    data_volume_mb: Optional[float] = None
    land_surface_temperature: Optional[EstimationSample] = None
    vegetation_index: Optional[EstimationSample] = None
    ndvi: Optional[float] = None
    health: Optional[str] = None
    has_error: bool = False
    source: str

SourcePayload = Union[AirQualityPayload, WeatherPayload, PopulationPayload, SatellitePayload]

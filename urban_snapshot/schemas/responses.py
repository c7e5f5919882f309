# urban_snapshot/schemas/responses.py
from pydantic import BaseModel
from typing import Optional

from .payloads import FROZEN_CAMEL, AirQualityPayload, PopulationPayload, SatellitePayload
from .results import DerivedMetrics

class LocationBlock(BaseModel):
    model_config = FROZEN_CAMEL

    name: str
    coordinates: tuple[float, float]
    country: str

class WeatherBlock(BaseModel):
    model_config = FROZEN_CAMEL

    temperature: Optional[float]
    humidity: Optional[float]
    wind_speed: Optional[float]
    precipitation: Optional[float]
    pressure: Optional[float] = None
    forecast: Optional[str]
    heat_index: Optional[float]
    units: str = "metric"
    last_updated: Optional[str]
    source: str

class ErrorsBlock(BaseModel):
    model_config = FROZEN_CAMEL

    air_quality: Optional[str] = None
    weather: Optional[str] = None
    population: Optional[str] = None
    landsat: Optional[str] = None

class AggregateResponse(BaseModel):
    model_config = FROZEN_CAMEL

    timestamp: str
    location: LocationBlock
    air_quality: Optional[AirQualityPayload]
    weather: Optional[WeatherBlock]
    population: Optional[PopulationPayload]
    satellite: Optional[SatellitePayload]
    metrics: DerivedMetrics
    errors: ErrorsBlock

class ErrorResponse(BaseModel):
    error: str
    message: str

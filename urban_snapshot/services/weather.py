# urban_snapshot/services/weather.py
import re
from typing import Any, Dict, Optional

from ..core.config import settings
from ..core.errors import FailureReason
from ..schemas.common import Query
from ..schemas.payloads import FALLBACK_LABEL, WeatherPayload
from ..utils.http import get_json
from .base import SourceClient

OPEN_METEO_LABEL = "Open-Meteo (Weather API Ground)"
NOAA_LABEL = "NOAA National Weather Service"

CURRENT_VARS = "temperature_2m,relative_humidity_2m,precipitation,pressure_msl,wind_speed_10m"
DAILY_VARS = "temperature_2m_max,temperature_2m_min,precipitation_sum"

KMH_PER_MPH = 1.609344

def _first(daily: Dict[str, Any], key: str):
    values = daily.get(key) or []
    return values[0] if values else None

def _forecast_text(date: Optional[str], tmin: Optional[float], tmax: Optional[float], rain: Optional[float]) -> str:
    if date is None or tmin is None or tmax is None:
        return "Current conditions"
    text = f"{date}: {tmin:.0f} to {tmax:.0f} °C"
    if rain:
        text += f", {rain:.1f} mm precipitation"
    return text

def _f_to_c(v: float) -> float:
    return round((v - 32) * 5 / 9, 1)

def _wind_kmh(text: Optional[str]) -> Optional[float]:
    """NWS reports wind as "10 mph" or "5 to 10 mph"; keep the upper figure."""
    speeds = [float(n) for n in re.findall(r"\d+(?:\.\d+)?", text or "")]
    if not speeds:
        return None
    return round(max(speeds) * KMH_PER_MPH, 1)


class WeatherClient(SourceClient):
    """Current conditions from Open-Meteo, then the NWS hourly forecast (US only)."""
    source_id = "weather"
    providers = ("open_meteo", "noaa")

    def __init__(self, base_url: Optional[str] = None, noaa_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.base_url = (base_url or settings.open_meteo_base).rstrip("/")
        self.noaa_url = (noaa_url or settings.noaa_base).rstrip("/")

    async def _from_open_meteo(self, query: Query) -> WeatherPayload:
        params = {
            "latitude": query.latitude,
            "longitude": query.longitude,
            "current": CURRENT_VARS,
            "daily": DAILY_VARS,
            "forecast_days": 1,
            "timezone": "auto",
        }
        body = await get_json(
            f"{self.base_url}/forecast", params=params, timeout=self.attempt_timeout, transport=self.transport
        )

        current = body.get("current") or {}
        if current.get("temperature_2m") is None:
            raise self.unavailable(FailureReason.NO_DATA, "Open-Meteo returned no current temperature")

        daily = body.get("daily") or {}
        tmax = _first(daily, "temperature_2m_max")
        tmin = _first(daily, "temperature_2m_min")
        return WeatherPayload(
            temperature_c=current["temperature_2m"],
            humidity_pct=current.get("relative_humidity_2m"),
            wind_speed_kmh=current.get("wind_speed_10m"),
            precipitation_mm=current.get("precipitation"),
            pressure_hpa=current.get("pressure_msl"),
            temp_max_c=tmax,
            temp_min_c=tmin,
            forecast=_forecast_text(_first(daily, "time"), tmin, tmax, _first(daily, "precipitation_sum")),
            last_updated=current.get("time"),
            source=OPEN_METEO_LABEL,
        )

    async def _from_noaa(self, query: Query) -> WeatherPayload:
        # the points lookup resolves a coordinate to its forecast grid
        point = await get_json(
            f"{self.noaa_url}/points/{query.latitude:.4f},{query.longitude:.4f}",
            headers={"Accept": "application/geo+json"},
            timeout=self.attempt_timeout,
            transport=self.transport,
        )
        hourly_url = (point.get("properties") or {}).get("forecastHourly")
        if not hourly_url:
            raise self.unavailable(FailureReason.NO_DATA, "NWS has no forecast grid for this point")

        forecast = await get_json(
            hourly_url, headers={"Accept": "application/geo+json"},
            timeout=self.attempt_timeout, transport=self.transport,
        )
        props = forecast.get("properties") or {}
        periods = props.get("periods") or []
        if not periods or not isinstance(periods[0].get("temperature"), (int, float)):
            raise self.unavailable(FailureReason.NO_DATA, "NWS returned no hourly forecast")

        now = periods[0]
        temp = float(now["temperature"])
        if now.get("temperatureUnit", "F") == "F":
            temp = _f_to_c(temp)
        return WeatherPayload(
            temperature_c=temp,
            humidity_pct=(now.get("relativeHumidity") or {}).get("value"),
            wind_speed_kmh=_wind_kmh(now.get("windSpeed")),
            forecast=now.get("shortForecast"),
            last_updated=props.get("updateTime") or now.get("startTime"),
            source=NOAA_LABEL,
        )

    def fallback(self, query: Query) -> WeatherPayload:
        return WeatherPayload(
            temperature_c=22.0,
            humidity_pct=50.0,
            wind_speed_kmh=10.0,
            precipitation_mm=0.0,
            pressure_hpa=1013.25,
            forecast="Weather data is currently unavailable",
            last_updated=None,
            source=FALLBACK_LABEL,
        )

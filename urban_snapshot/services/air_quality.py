# urban_snapshot/services/air_quality.py
from typing import Any, Dict, Optional

from ..core.config import settings
from ..core.errors import FailureReason
from ..schemas.common import Query
from ..schemas.payloads import FALLBACK_LABEL, AirQualityPayload, Pollutants
from ..utils.http import get_json
from .base import SourceClient
from .metrics import aqi_status, health_impact

OPEN_METEO_AIR_LABEL = "Open-Meteo Air Quality"
WAQI_LABEL = "WAQI (World Air Quality Index)"

# US AQI, so both providers share the same status bands
OPEN_METEO_AIR_VARS = "us_aqi,pm2_5,pm10,nitrogen_dioxide,ozone,sulphur_dioxide,carbon_monoxide"

def _iaqi(iaqi: Dict[str, Any], name: str) -> Optional[float]:
    v = (iaqi.get(name) or {}).get("v")
    return float(v) if isinstance(v, (int, float)) else None

def _number(current: Dict[str, Any], name: str) -> Optional[float]:
    v = current.get(name)
    return float(v) if isinstance(v, (int, float)) else None


class AirQualityClient(SourceClient):
    """Current AQI and pollutants: Open-Meteo's air-quality model, then the nearest WAQI station."""
    source_id = "air_quality"
    providers = ("open_meteo", "waqi")

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        open_meteo_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = (base_url or settings.waqi_base).rstrip("/")
        self.token = token or settings.waqi_token
        self.open_meteo_url = (open_meteo_url or settings.open_meteo_air_base).rstrip("/")

    async def _from_open_meteo(self, query: Query) -> AirQualityPayload:
        params = {
            "latitude": query.latitude,
            "longitude": query.longitude,
            "current": OPEN_METEO_AIR_VARS,
            "timezone": "auto",
        }
        body = await get_json(
            f"{self.open_meteo_url}/air-quality", params=params,
            timeout=self.attempt_timeout, transport=self.transport,
        )
        current = body.get("current") or {}
        aqi = _number(current, "us_aqi")
        if aqi is None:
            raise self.unavailable(FailureReason.NO_DATA, "Open-Meteo returned no current AQI")

        return AirQualityPayload(
            aqi=aqi,
            status=aqi_status(aqi),
            pollutants=Pollutants(
                pm25=_number(current, "pm2_5"),
                pm10=_number(current, "pm10"),
                no2=_number(current, "nitrogen_dioxide"),
                o3=_number(current, "ozone"),
                so2=_number(current, "sulphur_dioxide"),
                co=_number(current, "carbon_monoxide"),
            ),
            health_impact=health_impact(aqi),
            # gridded model output has no station name
            city=None,
            last_updated=current.get("time"),
            source=OPEN_METEO_AIR_LABEL,
        )

    async def _from_waqi(self, query: Query) -> AirQualityPayload:
        url = f"{self.base_url}/feed/geo:{query.latitude};{query.longitude}/"
        body = await get_json(url, params={"token": self.token}, timeout=self.attempt_timeout, transport=self.transport)

        if body.get("status") != "ok":
            raise self.unavailable(FailureReason.HTTP_STATUS, f"WAQI error: {body.get('data') or 'unknown'}")

        data = body["data"]
        aqi = data.get("aqi")
        # stations without a current reading report "-"
        if not isinstance(aqi, (int, float)):
            raise self.unavailable(FailureReason.NO_DATA, "WAQI station has no current AQI reading")

        iaqi = data.get("iaqi") or {}
        return AirQualityPayload(
            aqi=float(aqi),
            status=aqi_status(aqi),
            pollutants=Pollutants(
                pm25=_iaqi(iaqi, "pm25"),
                pm10=_iaqi(iaqi, "pm10"),
                no2=_iaqi(iaqi, "no2"),
                o3=_iaqi(iaqi, "o3"),
                so2=_iaqi(iaqi, "so2"),
                co=_iaqi(iaqi, "co"),
            ),
            health_impact=health_impact(aqi),
            city=(data.get("city") or {}).get("name"),
            last_updated=(data.get("time") or {}).get("iso"),
            source=WAQI_LABEL,
        )

    def fallback(self, query: Query) -> AirQualityPayload:
        return AirQualityPayload(
            aqi=45,
            status=aqi_status(45),
            pollutants=Pollutants(pm25=12.5, pm10=18.3, no2=25.7, o3=45.2, so2=8.9, co=1.2),
            health_impact="Air quality is acceptable for most people",
            city=query.location_name,
            last_updated=None,
            source=FALLBACK_LABEL,
        )

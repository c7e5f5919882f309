"""Shared fixtures: canned upstream bodies, a routing mock transport and scripted clients."""

import asyncio
from typing import Callable

import httpx
import pytest

from urban_snapshot.schemas.common import Query
from urban_snapshot.schemas.payloads import (
    AirQualityPayload,
    PopulationPayload,
    SatellitePayload,
    WeatherPayload,
    YearRange,
)
from urban_snapshot.services.air_quality import AirQualityClient
from urban_snapshot.services.landsat import LandsatClient
from urban_snapshot.services.metrics import aqi_status, health_impact
from urban_snapshot.services.population import PopulationClient
from urban_snapshot.services.weather import WeatherClient

NYC = (40.7128, -74.0060)
MB = 1024 * 1024

WAQI_OK = {
    "status": "ok",
    "data": {
        "aqi": 42,
        "city": {"name": "New York", "geo": [40.7128, -74.006]},
        "iaqi": {"pm25": {"v": 42}, "no2": {"v": 10.5}, "o3": {"v": 31}},
        "time": {"iso": "2026-10-18T10:00:00-04:00"},
    },
}

OPEN_METEO_OK = {
    "current": {
        "time": "2026-10-18T10:00",
        "temperature_2m": 24.0,
        "relative_humidity_2m": 60,
        "precipitation": 0.0,
        "pressure_msl": 1015.2,
        "wind_speed_10m": 12.3,
    },
    "daily": {
        "time": ["2026-10-18"],
        "temperature_2m_max": [26.1],
        "temperature_2m_min": [17.4],
        "precipitation_sum": [0.0],
    },
}

OPEN_METEO_AIR_OK = {
    "current": {
        "time": "2026-10-18T10:00",
        "us_aqi": 38,
        "pm2_5": 9.1,
        "pm10": 14.0,
        "nitrogen_dioxide": 21.4,
        "ozone": 52.0,
        "sulphur_dioxide": 3.2,
        "carbon_monoxide": 210.0,
    },
}

NOAA_POINT_OK = {"properties": {"forecastHourly": "https://api.weather.gov/gridpoints/OKX/33,35/forecast/hourly"}}

NOAA_HOURLY_OK = {
    "properties": {
        "updateTime": "2026-10-18T13:52:11+00:00",
        "periods": [{
            "startTime": "2026-10-18T10:00:00-04:00",
            "temperature": 68,
            "temperatureUnit": "F",
            "relativeHumidity": {"unitCode": "wmoUnit:percent", "value": 72},
            "windSpeed": "5 to 10 mph",
            "shortForecast": "Partly Sunny",
        }],
    },
}


def noaa_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.startswith("/points/"):
        return httpx.Response(200, json=NOAA_POINT_OK)
    return httpx.Response(200, json=NOAA_HOURLY_OK)


WORLDPOP_OK = {"data": [{"popyear": "2020", "title": "USA 2020"}, {"popyear": "2019", "title": "USA 2019"}]}

STAC_OK = {
    "type": "FeatureCollection",
    "features": [
        {
            "id": "LC08_older",
            "properties": {"datetime": "2026-10-01T15:40:00Z", "eo:cloud_cover": 50.0, "platform": "landsat-8"},
            "assets": {"red": {"file:size": 1 * MB}},
        },
        {
            "id": "LC09_latest",
            "properties": {"datetime": "2026-10-10T15:40:00Z", "eo:cloud_cover": 12.5, "platform": "landsat-9"},
            "assets": {
                "red": {"file:size": 3 * MB},
                "nir08": {"file:size": 2 * MB},
                "thumbnail": {"href": "https://example.test/thumb.jpg"},
            },
        },
    ],
}

HEALTHY_ROUTES = {
    "air-quality-api.open-meteo.com": OPEN_METEO_AIR_OK,
    "api.waqi.info": WAQI_OK,
    "api.open-meteo.com": OPEN_METEO_OK,
    "api.weather.gov": noaa_handler,
    "hub.worldpop.org": WORLDPOP_OK,
    "landsatlook.usgs.gov": STAC_OK,
}


def route_transport(routes: dict) -> httpx.MockTransport:
    """
    Map an exact host to either a JSON body, an ``httpx.Response`` or a
    callable ``(request) -> Response`` (sync or async).
    """
    def handler(request: httpx.Request):
        for host, target in routes.items():
            if request.url.host == host:
                if isinstance(target, httpx.Response):
                    return target
                if callable(target):
                    return target(request)
                return httpx.Response(200, json=target)
        return httpx.Response(404, json={"error": "no route"})
    return httpx.MockTransport(handler)


def real_clients(routes: dict, timeout: float = 5.0):
    transport = route_transport(routes)
    return [
        AirQualityClient(timeout=timeout, transport=transport),
        WeatherClient(timeout=timeout, transport=transport),
        PopulationClient(timeout=timeout, transport=transport),
        LandsatClient(timeout=timeout, transport=transport),
    ]


# -------- payload samples --------
def sample_air(aqi: float = 42) -> AirQualityPayload:
    return AirQualityPayload(
        aqi=aqi, status=aqi_status(aqi), pollutants={}, health_impact=health_impact(aqi), source="test"
    )

def sample_weather(temp: float = 24.0, humidity: float = 60.0) -> WeatherPayload:
    return WeatherPayload(temperature_c=temp, humidity_pct=humidity, source="test")

def sample_population(density: float = 36) -> PopulationPayload:
    return PopulationPayload(
        density=density, year_range=YearRange(start=2019, end=2020), data_source="test", source="test"
    )

def sample_satellite() -> SatellitePayload:
    return SatellitePayload(platform="landsat-9", ndvi=0.5, health="Moderate", source="test")


def scripted_client(base_cls, payload=None, exc: Exception | None = None, hang: bool = False,
                    delay: float = 0.0, timeout: float = 5.0, on_call: Callable[[], None] | None = None):
    """A real client class whose network call is replaced by a script."""
    class Scripted(base_cls):
        async def _fetch(self, query):
            if on_call is not None:
                on_call()
            if hang:
                await asyncio.Event().wait()
            if delay:
                await asyncio.sleep(delay)
            if exc is not None:
                raise exc
            return payload
    return Scripted(timeout=timeout)


def healthy_scripted(**overrides):
    clients = {
        "air_quality": scripted_client(AirQualityClient, payload=sample_air()),
        "weather": scripted_client(WeatherClient, payload=sample_weather()),
        "population": scripted_client(PopulationClient, payload=sample_population()),
        "landsat": scripted_client(LandsatClient, payload=sample_satellite()),
    }
    clients.update(overrides)
    return list(clients.values())


@pytest.fixture
def nyc_query() -> Query:
    return Query(latitude=NYC[0], longitude=NYC[1], country_hint="USA", location_name="New York")

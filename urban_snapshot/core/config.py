# urban_snapshot/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

class Settings(BaseSettings):
    app_name: str = Field(default="Urban Snapshot API", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Base URL of this service, used to build absolute self links
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # Keys
    waqi_token: str = Field(default="demo", alias="WAQI_TOKEN")

    # Bases
    waqi_base:        str = Field(default="https://api.waqi.info", alias="WAQI_BASE")
    open_meteo_base:  str = Field(default="https://api.open-meteo.com/v1", alias="OPEN_METEO_BASE")
    open_meteo_air_base: str = Field(default="https://air-quality-api.open-meteo.com/v1", alias="OPEN_METEO_AIR_BASE")
    noaa_base:        str = Field(default="https://api.weather.gov", alias="NOAA_BASE")
    worldpop_base:    str = Field(default="https://hub.worldpop.org/rest/data", alias="WORLDPOP_BASE")
    landsat_stac_base: str = Field(
        default="https://landsatlook.usgs.gov/stac-server/collections/landsat-c2l2-sr/items",
        alias="LANDSAT_STAC_BASE",
    )

    # Timeouts (seconds)
    source_timeout:    float = Field(default=8.0, gt=0, alias="SOURCE_TIMEOUT")
    aggregate_timeout: float = Field(default=10.0, gt=0, alias="AGGREGATE_TIMEOUT")

    # Cache
    cache_ttl_seconds: float = Field(default=900.0, gt=0, alias="CACHE_TTL_SECONDS")

    # Landsat scene search
    landsat_lookback_days: int = Field(default=30, ge=1, alias="LANDSAT_LOOKBACK_DAYS")
    landsat_scene_limit:   int = Field(default=10, ge=1, le=100, alias="LANDSAT_SCENE_LIMIT")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[1] / ".env"),  # urban_snapshot/.env
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

settings = Settings()

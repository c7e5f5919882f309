from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Any, Iterable

from ..core.errors import InvalidQuery
from ..utils.geo import BBox, clamp_latitude, point_bbox, radius_to_half_deg, wrap_longitude

UNIT_SYSTEMS = frozenset({"metric", "imperial"})
DEFAULT_RADIUS_KM = 11.1  # ~0.1° box around the point

class Query(BaseModel):
    """
    Immutable aggregation input. Coordinates are normalized on construction:
    latitude clamped into [-90, 90], longitude wrapped into [-180, 180).
    """
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., allow_inf_nan=False)
    longitude: float = Field(..., allow_inf_nan=False)
    country_hint: str = "USA"
    radius_km: float | None = Field(None, gt=0, le=500)
    location_name: str | None = None
    bbox: BBox | None = None
    units: frozenset[str] = frozenset({"metric"})

    @field_validator("latitude")
    @classmethod
    def _clamp_lat(cls, v: float) -> float:
        return clamp_latitude(v)

    @field_validator("longitude")
    @classmethod
    def _wrap_lon(cls, v: float) -> float:
        return wrap_longitude(v)

    @field_validator("country_hint")
    @classmethod
    def _country(cls, v: str) -> str:
        return (v or "USA").strip().upper() or "USA"

    @field_validator("units", mode="before")
    @classmethod
    def _units(cls, v: Any) -> frozenset[str]:
        if v is None:
            return frozenset({"metric"})
        if isinstance(v, str):
            v = v.split(",")
        names = {str(u).strip().lower() for u in v if str(u).strip()}
        unknown = names - UNIT_SYSTEMS
        if unknown:
            raise ValueError(f"unknown unit systems: {', '.join(sorted(unknown))}")
        return frozenset(names or {"metric"})

    def effective_bbox(self) -> BBox:
        if self.bbox is not None:
            return self.bbox
        half = radius_to_half_deg(self.radius_km or DEFAULT_RADIUS_KM)
        return point_bbox(self.latitude, self.longitude, half)

    @property
    def imperial(self) -> bool:
        return "imperial" in self.units and "metric" not in self.units

def make_query(
    latitude: float,
    longitude: float,
    country_hint: str | None = None,
    radius_km: float | None = None,
    location_name: str | None = None,
    bbox: BBox | None = None,
    units: str | Iterable[str] | None = None,
) -> Query:
    """Build a Query, turning validation failures into InvalidQuery."""
    try:
        return Query(
            latitude=latitude,
            longitude=longitude,
            country_hint=country_hint or "USA",
            radius_km=radius_km,
            location_name=location_name,
            bbox=bbox,
            units=units,
        )
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise InvalidQuery(f"{field}: {first.get('msg')}", field=field) from None

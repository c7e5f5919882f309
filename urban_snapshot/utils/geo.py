import math
from dataclasses import dataclass

from ..core.errors import InvalidQuery

@dataclass(frozen=True)
class BBox:
    west: float
    south: float
    east: float
    north: float

    def as_param(self) -> str:
        return f"{self.west},{self.south},{self.east},{self.north}"

def point_bbox(lat: float, lon: float, half_size_deg: float = 0.1) -> BBox:
    # edges never cross the poles
    return BBox(
        west=lon - half_size_deg,
        south=clamp_latitude(lat - half_size_deg),
        east=lon + half_size_deg,
        north=clamp_latitude(lat + half_size_deg)
    )

def radius_to_half_deg(radius_km: float) -> float:
    # ~111 km per degree of latitude
    return radius_km / 111.0

def clamp_latitude(lat: float) -> float:
    return max(-90.0, min(90.0, lat))

def wrap_longitude(lon: float) -> float:
    """Wrap into [-180, 180)."""
    return ((lon + 180.0) % 360.0) - 180.0

def _finite(value: str, field: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidQuery(f"'{value}' is not a number", field=field) from None
    if not math.isfinite(v):
        raise InvalidQuery(f"'{value}' is not a finite number", field=field)
    return v

def parse_coords(coords: str) -> tuple[float, float]:
    """Parse a ``"lat,lng"`` string. Range normalization happens in Query."""
    parts = [p.strip() for p in (coords or "").split(",")]
    if len(parts) != 2 or not all(parts):
        raise InvalidQuery(f"Invalid coords '{coords}'. Expected: lat,lng", field="coords")
    return _finite(parts[0], "coords"), _finite(parts[1], "coords")

def parse_bbox(bbox: str) -> BBox:
    parts = [p.strip() for p in (bbox or "").split(",")]
    if len(parts) != 4:
        raise InvalidQuery(f"Invalid bbox '{bbox}'. Expected: w,s,e,n", field="bbox")
    w, s, e, n = (_finite(p, "bbox") for p in parts)
    if s > n:
        raise InvalidQuery(f"Invalid bbox '{bbox}': south is above north", field="bbox")
    return BBox(west=w, south=s, east=e, north=n)

def planar_distance_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return math.hypot(lat1 - lat2, lon1 - lon2)

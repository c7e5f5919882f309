# urban_snapshot/services/landsat.py
"""
Landsat Collection 2 Level-2 scene search (STAC).

The STAC catalog only describes scenes; no band is downloaded. The most
recent scene's cloud cover and total asset size feed the metadata-driven
estimators for land-surface temperature and NDVI.
"""
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.config import settings
from ..core.errors import FailureReason
from ..schemas.common import Query
from ..schemas.payloads import FALLBACK_LABEL, SatellitePayload
from ..utils.http import get_json
from ..utils.time import iso_z, parse_date, time_range, utc_now
from .base import SourceClient
from .estimation import estimate_land_surface_temperature, estimate_vegetation_index
from .metrics import vegetation_label

logger = logging.getLogger(__name__)

LANDSAT_LABEL = "USGS Landsat C2 L2 (STAC metadata estimate)"
BYTES_PER_MB = 1024 * 1024


def _cloud_cover(feature: Dict[str, Any]) -> Optional[float]:
    v = (feature.get("properties") or {}).get("eo:cloud_cover")
    return float(v) if isinstance(v, (int, float)) else None

def _data_volume_mb(feature: Dict[str, Any]) -> float:
    sizes = [
        a.get("file:size") for a in (feature.get("assets") or {}).values()
        if isinstance(a, dict) and isinstance(a.get("file:size"), (int, float))
    ]
    return float(sum(sizes)) / BYTES_PER_MB

def _acquired(feature: Dict[str, Any]):
    return parse_date((feature.get("properties") or {})["datetime"])

def summarize_cloud_cover(features: List[Dict[str, Any]]) -> Optional[float]:
    values = np.array([c for c in map(_cloud_cover, features) if c is not None], dtype=float)
    if values.size == 0:
        return None
    return round(float(values.mean()), 1)


class LandsatClient(SourceClient):
    source_id = "landsat"
    providers = ("stac",)

    def __init__(
        self,
        base_url: Optional[str] = None,
        lookback_days: Optional[int] = None,
        scene_limit: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url or settings.landsat_stac_base
        self.lookback_days = lookback_days or settings.landsat_lookback_days
        self.scene_limit = scene_limit or settings.landsat_scene_limit

    async def _from_stac(self, query: Query) -> SatellitePayload:
        start, end = time_range(utc_now(), days_back=self.lookback_days)
        params = {
            "bbox": query.effective_bbox().as_param(),
            "limit": self.scene_limit,
            "datetime": f"{iso_z(start)}/{iso_z(end)}",
        }
        body = await get_json(self.base_url, params=params, timeout=self.attempt_timeout, transport=self.transport)

        features = [f for f in (body.get("features") or []) if (f.get("properties") or {}).get("datetime")]
        if not features:
            raise self.unavailable(FailureReason.NO_DATA, "No Landsat scenes in the search window")

        latest = max(features, key=_acquired)
        acquired = _acquired(latest)
        props = latest.get("properties") or {}
        cloud = _cloud_cover(latest)
        volume = _data_volume_mb(latest)
        # unknown cloud cover is scored as fully overcast
        basis_cloud = 100.0 if cloud is None else cloud

        lst = estimate_land_surface_temperature(acquired, query.latitude, query.longitude, basis_cloud, volume)
        ndvi = estimate_vegetation_index(acquired, query.latitude, query.longitude, basis_cloud, volume)
        if lst.low_confidence:
            logger.info("Low-confidence LST estimate for scene %s (%.0f%%)", latest.get("id"), lst.confidence_pct)

        return SatellitePayload(
            scene_id=latest.get("id"),
            acquired_at=iso_z(acquired),
            platform=props.get("platform") or "Unknown",
            cloud_cover=cloud,
            mean_cloud_cover=summarize_cloud_cover(features),
            scene_count=len(features),
            available_bands=sorted((latest.get("assets") or {}).keys()),
            data_volume_mb=round(volume, 2),
            land_surface_temperature=lst,
            vegetation_index=ndvi,
            ndvi=ndvi.value,
            health=vegetation_label(ndvi.value),
            has_error=False,
            source=LANDSAT_LABEL,
        )

    def fallback(self, query: Query) -> SatellitePayload:
        return SatellitePayload(
            platform="No Data Available",
            ndvi=0.65,
            health="Moderate",
            has_error=True,
            source=FALLBACK_LABEL,
        )

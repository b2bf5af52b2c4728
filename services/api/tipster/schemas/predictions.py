from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from tipster.services.backend.types import AvailabilityItem, AvailabilityMeta


class AvailabilityIn(BaseModel):
    match_ids: list[int] = Field(min_length=1)
    trigger: bool = True
    staleness_hours: int | None = Field(default=None, ge=1)


class PartitionOut(BaseModel):
    ready: list[int]
    waiting: list[AvailabilityItem]
    no_odds: list[AvailabilityItem]


class AvailabilityOut(BaseModel):
    availability: list[AvailabilityItem]
    meta: AvailabilityMeta
    partition: PartitionOut


class PredictionOut(BaseModel):
    match_id: int
    cache_key: str
    ttl: int
    source: str
    prediction: dict[str, Any]


class EnrichIn(BaseModel):
    match_ids: list[int] = Field(min_length=1)
    trigger: bool = True


class EnrichQueuedOut(BaseModel):
    job_id: str
    status: str = "queued"


class OddsOut(BaseModel):
    probability: float
    decimal: str
    american: str
    pct: str
    edge: float | None = None

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class TimeBucket(str, Enum):
    h3 = "3h"
    h6 = "6h"
    h12 = "12h"
    h24 = "24h"
    h48 = "48h"
    h72 = "72h"


class AvailabilityReason(str, Enum):
    ok = "ok"
    ready = "ready"
    waiting_consensus = "waiting_consensus"
    collecting_odds = "collecting_odds"
    no_bookmakers = "no_bookmakers"
    no_odds = "no_odds"
    no_consensus = "no_consensus"
    stale_data = "stale_data"
    match_started = "match_started"
    not_found = "not_found"

    @property
    def is_transient(self) -> bool:
        return self in TRANSIENT_REASONS


TRANSIENT_REASONS = frozenset(
    {AvailabilityReason.waiting_consensus, AvailabilityReason.collecting_odds}
)


class AvailabilityItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    match_id: int
    enrich: bool
    # Kept as the raw upstream string so new codes still decode.
    reason: str

    bookmakers: int | None = None
    time_bucket: TimeBucket | None = None
    last_updated: str | None = None
    min_secs_to_kickoff: int | None = None

    @field_validator("time_bucket", mode="before")
    @classmethod
    def _unknown_bucket_is_none(cls, v: Any) -> Any:
        # An unrecognised bucket falls back to the default TTL downstream.
        if v is None or isinstance(v, TimeBucket):
            return v
        try:
            return TimeBucket(v)
        except ValueError:
            logger.warning("unknown time bucket %r, ignoring", v)
            return None


class AvailabilityMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    requested: int = 0
    deduped: int = 0
    enrich_true: int = 0
    enrich_false: int = 0
    failure_breakdown: dict[str, Any] = Field(default_factory=dict)


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    availability: list[AvailabilityItem]
    meta: AvailabilityMeta


class PredictionBlock(BaseModel):
    """The part of a prediction that enrichment reads; the rest passes through."""

    model_config = ConfigDict(extra="allow")

    confidence: float | None = Field(default=None, strict=True)


class PredictionPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    predictions: PredictionBlock | None = None

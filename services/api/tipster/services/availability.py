from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence, TypeVar

from tipster.services.backend.client import DEFAULT_STALENESS_HOURS, BackendClient
from tipster.services.backend.errors import UnknownAvailabilityReason
from tipster.services.backend.types import (
    AvailabilityItem,
    AvailabilityMeta,
    AvailabilityReason,
    AvailabilityResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 100


@dataclass
class AvailabilityPartition:
    ready: list[int] = field(default_factory=list)
    waiting: list[AvailabilityItem] = field(default_factory=list)
    no_odds: list[AvailabilityItem] = field(default_factory=list)


async def fetch_availability(
    client: BackendClient,
    match_ids: Sequence[int],
    trigger: bool = True,
    staleness_hours: int = DEFAULT_STALENESS_HOURS,
) -> AvailabilityResponse:
    return await client.fetch_availability(
        match_ids, trigger=trigger, staleness_hours=staleness_hours
    )


def _known_reason(item: AvailabilityItem, *, strict: bool) -> AvailabilityReason | None:
    try:
        return AvailabilityReason(item.reason)
    except ValueError:
        if strict:
            raise UnknownAvailabilityReason(item.match_id, item.reason) from None
        logger.warning(
            "Unknown availability reason %r for match %s; treating as unavailable",
            item.reason,
            item.match_id,
        )
        return None


def partition_availability(
    items: Iterable[AvailabilityItem], *, strict: bool = False
) -> AvailabilityPartition:
    """Split availability items into ready / waiting / no_odds.

    - enrich=True: ready (match id only)
    - waiting_consensus, collecting_odds: waiting, worth retrying later
    - any other reason: no_odds, not expected to change

    Input order is kept inside each bucket. Reasons outside
    ``AvailabilityReason`` are logged (or raise with ``strict=True``).
    """
    out = AvailabilityPartition()
    for item in items:
        if item.enrich:
            out.ready.append(item.match_id)
            continue
        reason = _known_reason(item, strict=strict)
        if reason is not None and reason.is_transient:
            out.waiting.append(item)
        else:
            out.no_odds.append(item)
    return out


def chunk(items: Sequence[T], size: int = DEFAULT_BATCH_SIZE) -> list[list[T]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def merge_meta(metas: Iterable[AvailabilityMeta]) -> AvailabilityMeta:
    total = AvailabilityMeta()
    for m in metas:
        total.requested += m.requested
        total.deduped += m.deduped
        total.enrich_true += m.enrich_true
        total.enrich_false += m.enrich_false
    return total

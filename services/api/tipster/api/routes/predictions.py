from __future__ import annotations

import logging
from typing import Callable

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from rq import Queue

from tipster.api.deps import get_backend, get_prediction_cache, require_cron_secret
from tipster.core.config import Settings, get_settings
from tipster.schemas.predictions import (
    AvailabilityIn,
    AvailabilityOut,
    EnrichIn,
    EnrichQueuedOut,
    PartitionOut,
    PredictionOut,
)
from tipster.services.availability import fetch_availability, partition_availability
from tipster.services.backend.client import BackendClient
from tipster.services.backend.errors import BackendError, UpstreamError
from tipster.services.backend.types import TimeBucket
from tipster.services.enrichment import run_enrichment
from tipster.services.prediction_cache import PredictionCache
from tipster.services.prediction_cache_key import prediction_cache_key, ttl_for_match
from tipster.workers.queue import enqueue_enrichment, get_queue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["predictions"])


def get_enrichment_queue(
    settings: Settings = Depends(get_settings),
) -> Callable[[], Queue]:
    # Deferred so inline runs never open a Redis connection.
    return lambda: get_queue(settings)


def _bad_gateway(exc: Exception) -> HTTPException:
    if isinstance(exc, UpstreamError):
        detail = {
            "error": str(exc),
            "upstream_status": exc.status_code,
        }
    elif isinstance(exc, BackendError):
        detail = {"error": str(exc)}
    else:
        detail = {"error": f"Backend unreachable: {exc}"}
    return HTTPException(status_code=502, detail=detail)


@router.post("/predictions/availability", response_model=AvailabilityOut)
async def post_availability(
    payload: AvailabilityIn,
    client: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_settings),
):
    staleness = payload.staleness_hours or settings.availability_staleness_hours
    try:
        resp = await fetch_availability(
            client, payload.match_ids, trigger=payload.trigger, staleness_hours=staleness
        )
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("availability check failed: %s", e)
        raise _bad_gateway(e)

    partition = partition_availability(resp.availability)
    return AvailabilityOut(
        availability=resp.availability,
        meta=resp.meta,
        partition=PartitionOut(
            ready=partition.ready,
            waiting=partition.waiting,
            no_odds=partition.no_odds,
        ),
    )


@router.get("/predictions/{match_id}", response_model=PredictionOut)
async def get_prediction(
    match_id: int,
    last_updated: str | None = Query(default=None),
    time_bucket: TimeBucket | None = Query(default=None),
    client: BackendClient = Depends(get_backend),
    cache: PredictionCache = Depends(get_prediction_cache),
):
    try:
        prediction, source = await cache.get_or_fetch(
            client,
            match_id,
            consensus_created_at=last_updated,
            time_bucket=time_bucket,
        )
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("prediction fetch failed for match %s: %s", match_id, e)
        raise _bad_gateway(e)

    return PredictionOut(
        match_id=match_id,
        cache_key=prediction_cache_key(match_id, last_updated),
        ttl=ttl_for_match(time_bucket),
        source=source,
        prediction=prediction,
    )


@router.post(
    "/predictions/enrich",
    dependencies=[Depends(require_cron_secret)],
)
async def post_enrich(
    payload: EnrichIn,
    background: bool = Query(default=False),
    client: BackendClient = Depends(get_backend),
    cache: PredictionCache = Depends(get_prediction_cache),
    settings: Settings = Depends(get_settings),
    queue_factory: Callable[[], Queue] = Depends(get_enrichment_queue),
):
    if background:
        job = enqueue_enrichment(
            settings, payload.match_ids, trigger=payload.trigger, queue=queue_factory()
        )
        return EnrichQueuedOut(job_id=job.id)

    report = await run_enrichment(
        payload.match_ids,
        client=client,
        cache=cache,
        batch_size=settings.availability_batch_size,
        trigger=payload.trigger,
        staleness_hours=settings.availability_staleness_hours,
        delay_secs=settings.enrich_delay_secs,
    )
    return report.to_dict()

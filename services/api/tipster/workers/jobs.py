from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
import redis
from rq import get_current_job

from tipster.core.config import Settings, get_settings
from tipster.core.redis import create_redis_async
from tipster.services.backend.client import BackendClient
from tipster.services.enrichment import EnrichmentReport, ProgressCallback, run_enrichment
from tipster.services.prediction_cache import PredictionCache
from tipster.workers.events import publish_enrichment_event
from tipster.workers.queue import events_connection, progress_channel

logger = logging.getLogger(__name__)


async def _enrich(
    settings: Settings,
    match_ids: list[int],
    *,
    trigger: bool = True,
    on_progress: ProgressCallback | None = None,
    http: httpx.AsyncClient | None = None,
) -> EnrichmentReport:
    """Run one enrichment pass with clients owned by this call."""
    redis_client = await create_redis_async(settings.redis_url)
    try:
        async with BackendClient.from_settings(settings, http=http) as client:
            return await run_enrichment(
                match_ids,
                client=client,
                cache=PredictionCache(redis_client),
                batch_size=settings.availability_batch_size,
                trigger=trigger,
                staleness_hours=settings.availability_staleness_hours,
                delay_secs=settings.enrich_delay_secs,
                on_progress=on_progress,
            )
    finally:
        if redis_client is not None:
            await redis_client.aclose()


def enrichment_job(match_ids: list[int], trigger: bool = True) -> dict[str, Any]:
    settings = get_settings()
    job = get_current_job()
    channel = progress_channel(job.id if job is not None else "adhoc")
    r = events_connection(settings)

    def _publish(type_: str, payload: dict[str, Any]) -> None:
        try:
            publish_enrichment_event(r, channel=channel, type_=type_, payload=payload)
        except redis.RedisError:
            logger.exception("publish failed", extra={"channel": channel})

    def _progress(batch: int, total: int, report: EnrichmentReport) -> None:
        _publish(
            "enrichment_progress",
            {
                "batch": batch,
                "total_batches": total,
                "enriched": report.enriched,
                "failed": report.failed,
            },
        )

    try:
        try:
            report = asyncio.run(
                _enrich(settings, list(match_ids), trigger=trigger, on_progress=_progress)
            )
        except Exception as e:
            logger.exception("enrichment_job failed")
            _publish("enrichment_failed", {"error": str(e)})
            raise

        result = report.to_dict()
        _publish(
            "enrichment_succeeded",
            {k: result[k] for k in ("enriched", "skipped", "failed", "total_requested")},
        )
        return result
    finally:
        r.close()

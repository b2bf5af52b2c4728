from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterable

import httpx

from tipster.services.availability import (
    DEFAULT_BATCH_SIZE,
    chunk,
    merge_meta,
    partition_availability,
)
from tipster.services.backend.client import DEFAULT_STALENESS_HOURS, BackendClient
from tipster.services.backend.errors import BackendError
from tipster.services.backend.types import AvailabilityItem, AvailabilityMeta
from tipster.services.odds import implied_odds, value_rating
from tipster.services.prediction_cache import PredictionCache, PredictionSource

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_SUMMARY = "AI prediction available"


@dataclass(frozen=True)
class PredictionSummary:
    match_id: int
    prediction_type: str
    confidence_score: int  # 0-100
    value_rating: str
    implied_odds: dict[str, float | None] | None
    analysis_summary: str
    source: PredictionSource
    raw: dict[str, Any]


@dataclass(frozen=True)
class MatchStatus:
    match_id: int
    reason: str
    bookmakers: int | None
    time_bucket: str | None
    summary: str


@dataclass
class EnrichmentReport:
    total_requested: int = 0
    enriched: int = 0
    skipped: int = 0
    failed: int = 0
    predictions: list[PredictionSummary] = field(default_factory=list)
    statuses: list[MatchStatus] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    meta: AvailabilityMeta = field(default_factory=AvailabilityMeta)
    elapsed_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requested": self.total_requested,
            "enriched": self.enriched,
            "skipped": self.skipped,
            "failed": self.failed,
            "predictions": [
                {k: v for k, v in asdict(p).items() if k != "raw"}
                for p in self.predictions
            ],
            "statuses": [asdict(s) for s in self.statuses],
            "errors": list(self.errors),
            "meta": self.meta.model_dump(mode="json"),
            "elapsed_ms": self.elapsed_ms,
        }


ProgressCallback = Callable[[int, int, EnrichmentReport], None]


def _analysis_summary(prediction: dict[str, Any]) -> str:
    analysis = prediction.get("analysis") or {}
    if isinstance(analysis, dict) and analysis.get("explanation"):
        return str(analysis["explanation"])
    comprehensive = prediction.get("comprehensive_analysis") or {}
    verdict = comprehensive.get("ai_verdict") if isinstance(comprehensive, dict) else None
    if isinstance(verdict, dict) and verdict.get("confidence_level"):
        return str(verdict["confidence_level"])
    return DEFAULT_ANALYSIS_SUMMARY


def summarize_prediction(
    match_id: int, prediction: dict[str, Any], source: PredictionSource
) -> PredictionSummary | None:
    """Reduce a backend prediction to the fields stored on a match.

    Returns None when confidence is 0 or missing: the backend answered but
    the match is not ready for a tip yet. Raises ValueError when the payload
    does not have the expected shape.
    """
    predictions = prediction.get("predictions") or {}
    if not isinstance(predictions, dict):
        raise ValueError(f"predictions is {type(predictions).__name__}, expected an object")
    confidence = predictions.get("confidence") or 0
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ValueError(f"non-numeric confidence {confidence!r}")
    if not confidence:
        return None

    return PredictionSummary(
        match_id=match_id,
        prediction_type=predictions.get("recommended_bet") or "no_prediction",
        confidence_score=round(confidence * 100),
        value_rating=value_rating(confidence),
        implied_odds=implied_odds(predictions),
        analysis_summary=_analysis_summary(prediction),
        source=source,
        raw=prediction,
    )


def status_for(item: AvailabilityItem) -> MatchStatus:
    bucket = item.time_bucket.value if item.time_bucket else None
    return MatchStatus(
        match_id=item.match_id,
        reason=item.reason,
        bookmakers=item.bookmakers,
        time_bucket=bucket,
        summary=f"Status: {item.reason} ({item.bookmakers or 0} books, {bucket or 'unknown'})",
    )


def _dedupe(match_ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    out: list[int] = []
    for mid in match_ids:
        if mid in seen:
            continue
        seen.add(mid)
        out.append(mid)
    return out


async def run_enrichment(
    match_ids: Iterable[int],
    *,
    client: BackendClient,
    cache: PredictionCache,
    batch_size: int = DEFAULT_BATCH_SIZE,
    trigger: bool = True,
    staleness_hours: int = DEFAULT_STALENESS_HOURS,
    delay_secs: float = 0.0,
    on_progress: ProgressCallback | None = None,
) -> EnrichmentReport:
    """Check availability for ``match_ids`` and enrich the ready ones.

    Batches are processed sequentially. A failing match or batch is
    recorded in the report and the run carries on.
    """
    started = time.monotonic()
    ids = _dedupe(match_ids)
    report = EnrichmentReport(total_requested=len(ids))
    batches = chunk(ids, batch_size)
    metas: list[AvailabilityMeta] = []

    for index, batch in enumerate(batches, start=1):
        logger.info(
            "enrichment batch %s/%s: %s matches", index, len(batches), len(batch)
        )
        try:
            availability = await client.fetch_availability(
                batch, trigger=trigger, staleness_hours=staleness_hours
            )
        except (BackendError, httpx.HTTPError) as e:
            logger.error("enrichment batch %s failed: %s", index, e)
            report.failed += len(batch)
            report.errors.append(f"Batch {index}: {e}")
            if on_progress is not None:
                on_progress(index, len(batches), report)
            continue

        metas.append(availability.meta)
        partition = partition_availability(availability.availability)
        by_id = {item.match_id: item for item in availability.availability}
        logger.info(
            "enrichment batch %s: ready=%s waiting=%s no_odds=%s",
            index,
            len(partition.ready),
            len(partition.waiting),
            len(partition.no_odds),
        )

        for match_id in partition.ready:
            try:
                prediction, source = await cache.get_or_fetch_for(
                    client, by_id[match_id]
                )
                summary = summarize_prediction(match_id, prediction, source)
            except (BackendError, httpx.HTTPError, ValueError) as e:
                logger.error("enrichment failed for match %s: %s", match_id, e)
                report.failed += 1
                report.errors.append(f"Match {match_id}: {e}")
                continue

            if summary is None:
                logger.debug("skipping match %s with 0 confidence", match_id)
                report.skipped += 1
            else:
                report.predictions.append(summary)
                report.enriched += 1

            if source == "backend" and delay_secs > 0:
                await asyncio.sleep(delay_secs)

        for item in [*partition.waiting, *partition.no_odds]:
            report.statuses.append(status_for(item))

        if on_progress is not None:
            on_progress(index, len(batches), report)

    report.meta = merge_meta(metas)
    report.elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "enrichment finished: enriched=%s skipped=%s failed=%s in %sms",
        report.enriched,
        report.skipped,
        report.failed,
        report.elapsed_ms,
    )
    return report

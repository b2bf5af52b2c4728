from __future__ import annotations

from typing import Sequence

from redis import Redis
from rq import Queue, Retry
from rq.job import Job

from tipster.core.config import Settings
from tipster.core.redis import create_redis

QUEUE_NAME = "default"


def get_queue(settings: Settings, connection: Redis | None = None) -> Queue:
    # RQ stores pickled payloads, so it needs a connection without decode_responses.
    conn = connection or Redis.from_url(settings.redis_url)
    return Queue(QUEUE_NAME, connection=conn)


def enqueue_enrichment(
    settings: Settings,
    match_ids: Sequence[int],
    *,
    trigger: bool = True,
    queue: Queue | None = None,
) -> Job:
    q = queue or get_queue(settings)
    return q.enqueue(
        "tipster.workers.jobs.enrichment_job",
        list(match_ids),
        trigger=trigger,
        retry=Retry(max=2, interval=[5, 15]),
        job_timeout=settings.worker_job_timeout_secs,
    )


def progress_channel(job_id: str) -> str:
    return f"enrichment:{job_id}"


def events_connection(settings: Settings) -> Redis:
    return create_redis(settings.redis_url)

from __future__ import annotations

import json
import logging
from typing import Any, Literal

import redis
import redis.asyncio as redis_async

from tipster.services.backend.client import BackendClient
from tipster.services.backend.types import AvailabilityItem, TimeBucket
from tipster.services.prediction_cache_key import prediction_cache_key, ttl_for_match

logger = logging.getLogger(__name__)

PredictionSource = Literal["cache", "backend"]


class PredictionCache:
    """Read-through Redis cache for backend predictions.

    ``redis=None`` disables caching; Redis errors are logged and treated as
    misses so a cache outage never blocks predictions.
    """

    def __init__(self, redis_client: redis_async.Redis | None):
        self._redis = redis_client

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> dict[str, Any] | None:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except redis.RedisError as exc:
            logger.warning("prediction cache get failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("dropping undecodable cache entry %s", key)
            return None
        return payload if isinstance(payload, dict) else None

    async def set(self, key: str, prediction: dict[str, Any], ttl: int) -> bool:
        if self._redis is None:
            return False
        try:
            await self._redis.setex(key, ttl, json.dumps(prediction))
        except redis.RedisError as exc:
            logger.warning("prediction cache set failed for %s: %s", key, exc)
            return False
        return True

    async def get_or_fetch(
        self,
        client: BackendClient,
        match_id: int,
        *,
        consensus_created_at: str | None = None,
        time_bucket: TimeBucket | str | None = None,
        include_analysis: bool = True,
    ) -> tuple[dict[str, Any], PredictionSource]:
        """Return ``(prediction, source)`` for a match.

        The key is versioned by ``consensus_created_at`` and a miss is stored
        with the TTL of ``time_bucket``.
        """
        key = prediction_cache_key(match_id, consensus_created_at)
        cached = await self.get(key)
        if cached is not None:
            return cached, "cache"

        prediction = await client.fetch_prediction(
            match_id, include_analysis=include_analysis
        )
        await self.set(key, prediction, ttl_for_match(time_bucket))
        return prediction, "backend"

    async def get_or_fetch_for(
        self, client: BackendClient, item: AvailabilityItem
    ) -> tuple[dict[str, Any], PredictionSource]:
        return await self.get_or_fetch(
            client,
            item.match_id,
            consensus_created_at=item.last_updated,
            time_bucket=item.time_bucket,
        )

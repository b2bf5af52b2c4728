import json

import httpx
import pytest
from conftest import FakeAsyncRedis

from tipster.services.backend.types import AvailabilityItem
from tipster.services.prediction_cache import PredictionCache


def _predict_ok(req):
    body = json.loads(req.content)
    return httpx.Response(
        200, json={"match_id": body["match_id"], "predictions": {"confidence": 0.7}}
    )


@pytest.mark.asyncio
async def test_miss_fetches_and_stores_with_bucket_ttl(upstream, make_backend, fake_redis):
    upstream.on("/predict", _predict_ok)
    cache = PredictionCache(fake_redis)
    item = AvailabilityItem(
        match_id=42,
        enrich=True,
        reason="ok",
        time_bucket="3h",
        last_updated="2024-05-01T10:00:00Z",
    )

    async with make_backend() as client:
        prediction, source = await cache.get_or_fetch_for(client, item)

    assert source == "backend"
    assert prediction["match_id"] == 42
    key = "prediction:42:2024-05-01T10:00:00Z"
    assert json.loads(fake_redis.store[key]) == prediction
    assert fake_redis.ttls[key] == 600


@pytest.mark.asyncio
async def test_hit_skips_backend(upstream, make_backend, fake_redis):
    upstream.on("/predict", _predict_ok)
    fake_redis.store["prediction:42:none"] = json.dumps({"cached": True})
    cache = PredictionCache(fake_redis)

    async with make_backend() as client:
        prediction, source = await cache.get_or_fetch(client, 42)

    assert (prediction, source) == ({"cached": True}, "cache")
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_new_consensus_misses_old_entry(upstream, make_backend, fake_redis):
    upstream.on("/predict", _predict_ok)
    fake_redis.store["prediction:42:2024-05-01T10:00:00Z"] = json.dumps({"old": True})
    cache = PredictionCache(fake_redis)

    async with make_backend() as client:
        _, source = await cache.get_or_fetch(
            client, 42, consensus_created_at="2024-05-01T11:00:00Z"
        )

    assert source == "backend"
    assert fake_redis.ttls["prediction:42:2024-05-01T11:00:00Z"] == 5400


@pytest.mark.asyncio
async def test_redis_failure_fails_open(upstream, make_backend):
    upstream.on("/predict", _predict_ok)
    cache = PredictionCache(FakeAsyncRedis(fail=True))

    async with make_backend() as client:
        prediction, source = await cache.get_or_fetch(client, 8)

    assert source == "backend"
    assert prediction["match_id"] == 8


@pytest.mark.asyncio
async def test_disabled_cache(upstream, make_backend):
    upstream.on("/predict", _predict_ok)
    cache = PredictionCache(None)
    assert cache.enabled is False
    assert await cache.get("prediction:1:none") is None
    assert await cache.set("prediction:1:none", {}, 60) is False

    async with make_backend() as client:
        _, source = await cache.get_or_fetch(client, 1)
    assert source == "backend"


@pytest.mark.asyncio
async def test_undecodable_entry_is_a_miss(fake_redis):
    fake_redis.store["k"] = "{not json"
    assert await PredictionCache(fake_redis).get("k") is None

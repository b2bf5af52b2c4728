import json

import httpx
import pytest
from conftest import API_KEY, availability_payload

from tipster.services.availability import fetch_availability
from tipster.services.backend.errors import (
    MalformedUpstreamResponse,
    UpstreamAvailabilityError,
    UpstreamPredictionError,
)


@pytest.mark.asyncio
async def test_fetch_availability_request_shape(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(
            200,
            json=availability_payload(
                [
                    {
                        "match_id": 1,
                        "enrich": True,
                        "reason": "ok",
                        "bookmakers": 12,
                        "time_bucket": "24h",
                        "last_updated": "2024-01-01T00:00:00Z",
                        "min_secs_to_kickoff": 80000,
                    },
                    {"match_id": 2, "enrich": False, "reason": "no_bookmakers"},
                ]
            ),
        ),
    )

    async with make_backend() as client:
        resp = await fetch_availability(client, [1, 2])

    req = upstream.requests[0]
    assert req.method == "POST"
    assert str(req.url) == "http://backend.test/predict/availability"
    assert req.headers["Authorization"] == f"Bearer {API_KEY}"
    assert req.headers["Content-Type"] == "application/json"
    assert json.loads(req.content) == {
        "match_ids": [1, 2],
        "trigger_consensus": True,
        "staleness_hours": 168,
    }

    assert [i.match_id for i in resp.availability] == [1, 2]
    assert resp.availability[0].time_bucket.value == "24h"
    assert resp.availability[0].bookmakers == 12
    assert resp.availability[1].time_bucket is None
    assert resp.meta.enrich_true == 1
    assert resp.meta.requested == 2


@pytest.mark.asyncio
async def test_fetch_availability_passes_options(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(200, json=availability_payload([])),
    )
    async with make_backend() as client:
        await client.fetch_availability([5], trigger=False, staleness_hours=24)

    assert upstream.json_bodies("/predict/availability") == [
        {"match_ids": [5], "trigger_consensus": False, "staleness_hours": 24}
    ]


@pytest.mark.asyncio
async def test_non_success_raises_without_retry(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(500, text="consensus worker crashed"),
    )

    async with make_backend() as client:
        with pytest.raises(UpstreamAvailabilityError) as exc:
            await client.fetch_availability([1])

    assert exc.value.status_code == 500
    assert exc.value.body == "consensus worker crashed"
    assert "500" in str(exc.value)
    assert "consensus worker crashed" in str(exc.value)
    assert len(upstream.requests) == 1


@pytest.mark.asyncio
async def test_malformed_availability_payload(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(
            200, json={"availability": [{"match_id": "abc"}], "meta": {}}
        ),
    )
    async with make_backend() as client:
        with pytest.raises(MalformedUpstreamResponse) as exc:
            await client.fetch_availability([1])
    assert exc.value.endpoint == "availability"


@pytest.mark.asyncio
async def test_non_json_availability_payload(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(200, text="<html>gateway</html>"),
    )
    async with make_backend() as client:
        with pytest.raises(MalformedUpstreamResponse):
            await client.fetch_availability([1])


@pytest.mark.asyncio
async def test_transport_errors_propagate(upstream, make_backend):
    def _boom(req):
        raise httpx.ConnectError("connection refused", request=req)

    upstream.on("/predict/availability", _boom)
    async with make_backend() as client:
        with pytest.raises(httpx.ConnectError):
            await client.fetch_availability([1])


@pytest.mark.asyncio
async def test_fetch_prediction(upstream, make_backend):
    upstream.on(
        "/predict",
        lambda req: httpx.Response(200, json={"match_id": 3, "predictions": {}}),
    )
    async with make_backend() as client:
        out = await client.fetch_prediction(3)

    assert out == {"match_id": 3, "predictions": {}}
    assert upstream.json_bodies("/predict") == [
        {"match_id": 3, "include_analysis": True}
    ]


@pytest.mark.asyncio
async def test_fetch_prediction_errors(upstream, make_backend):
    upstream.on("/predict", lambda req: httpx.Response(404, text="unknown match"))
    async with make_backend() as client:
        with pytest.raises(UpstreamPredictionError) as exc:
            await client.fetch_prediction(3)
    assert exc.value.status_code == 404

    upstream.on("/predict", lambda req: httpx.Response(200, json=[1, 2]))
    async with make_backend() as client:
        with pytest.raises(MalformedUpstreamResponse):
            await client.fetch_prediction(3)


@pytest.mark.asyncio
async def test_fetch_prediction_rejects_non_numeric_confidence(upstream, make_backend):
    upstream.on(
        "/predict",
        lambda req: httpx.Response(200, json={"predictions": {"confidence": "high"}}),
    )
    async with make_backend() as client:
        with pytest.raises(MalformedUpstreamResponse) as exc:
            await client.fetch_prediction(3)
    assert exc.value.endpoint == "predict"


@pytest.mark.asyncio
async def test_unknown_time_bucket_decodes_as_none(upstream, make_backend):
    upstream.on(
        "/predict/availability",
        lambda req: httpx.Response(
            200,
            json=availability_payload(
                [{"match_id": 1, "enrich": True, "reason": "ok", "time_bucket": "96h"}]
            ),
        ),
    )
    async with make_backend() as client:
        out = await client.fetch_availability([1])

    assert out.availability[0].time_bucket is None

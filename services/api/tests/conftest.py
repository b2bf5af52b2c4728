import json
from typing import Any, Callable

import httpx
import pytest
import redis

from tipster.core.config import Settings
from tipster.services.backend.client import BackendClient

BACKEND_URL = "http://backend.test"
API_KEY = "test-key"


class FakeAsyncRedis:
    """Just enough of redis.asyncio.Redis for the prediction cache."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        if self.fail:
            raise redis.ConnectionError("redis down")
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        if self.fail:
            raise redis.ConnectionError("redis down")
        self.store[key] = value
        self.ttls[key] = int(ttl)
        return True

    async def aclose(self):
        return None


class RecordingBackend:
    """MockTransport handler that records requests and replies per path."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = handler

    def json_bodies(self, path: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)


def availability_payload(items: list[dict[str, Any]]) -> dict[str, Any]:
    enrich_true = sum(1 for i in items if i["enrich"])
    return {
        "availability": items,
        "meta": {
            "requested": len(items),
            "deduped": len(items),
            "enrich_true": enrich_true,
            "enrich_false": len(items) - enrich_true,
            "failure_breakdown": {},
        },
    }


def echo_availability(items_by_id: dict[int, dict[str, Any]]):
    """Availability handler answering only for the ids in the request."""

    def _handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        items = [items_by_id[mid] for mid in body["match_ids"] if mid in items_by_id]
        return httpx.Response(200, json=availability_payload(items))

    return _handler


@pytest.fixture()
def settings():
    return Settings(
        BACKEND_URL=BACKEND_URL,
        BACKEND_API_KEY=API_KEY,
        REDIS_URL="redis://localhost:6379/15",
        ENRICH_DELAY_SECS=0,
        CRON_SECRET="",
    )


@pytest.fixture()
def upstream():
    return RecordingBackend()


@pytest.fixture()
def make_backend(upstream):
    def _make() -> BackendClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        return BackendClient(base_url=BACKEND_URL, api_key=API_KEY, http=http)

    return _make


@pytest.fixture()
def fake_redis():
    return FakeAsyncRedis()

from __future__ import annotations

import json
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from tipster.core.config import Settings
from tipster.services.backend.errors import (
    MalformedUpstreamResponse,
    UpstreamAvailabilityError,
    UpstreamPredictionError,
)
from tipster.services.backend.types import AvailabilityResponse, PredictionPayload

DEFAULT_STALENESS_HOURS = 168


class BackendClient:
    """Thin async client for the prediction backend.

    Owns one ``httpx.AsyncClient``; construct it per process (or per job) and
    close it with ``aclose()`` / ``async with``. Pass ``http`` to inject a
    preconfigured client, e.g. one on an ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    @classmethod
    def from_settings(
        cls, settings: Settings, *, http: httpx.AsyncClient | None = None
    ) -> "BackendClient":
        return cls(
            base_url=settings.backend_url,
            api_key=settings.backend_api_key,
            timeout=settings.backend_timeout_secs,
            http=http,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        return await self._http.post(
            f"{self.base_url}{path}", json=body, headers=self._headers
        )

    async def fetch_availability(
        self,
        match_ids: Sequence[int],
        trigger: bool = True,
        staleness_hours: int = DEFAULT_STALENESS_HOURS,
    ) -> AvailabilityResponse:
        """POST /predict/availability for one batch of matches.

        ``trigger=True`` asks the backend to start consensus generation for
        matches that lack it, so repeating the call is wasteful but safe.
        No retries here; the caller owns retry policy.
        """
        resp = await self._post(
            "/predict/availability",
            {
                "match_ids": list(match_ids),
                "trigger_consensus": trigger,
                "staleness_hours": staleness_hours,
            },
        )
        if not resp.is_success:
            raise UpstreamAvailabilityError(resp.status_code, resp.text)

        try:
            return AvailabilityResponse.model_validate_json(resp.content)
        except ValidationError as e:
            errors = e.errors(include_url=False)[:3]
            raise MalformedUpstreamResponse(
                "availability", f"{e.error_count()} validation error(s): {errors}"
            ) from e

    async def fetch_prediction(
        self, match_id: int, include_analysis: bool = True
    ) -> dict[str, Any]:
        resp = await self._post(
            "/predict", {"match_id": match_id, "include_analysis": include_analysis}
        )
        if not resp.is_success:
            raise UpstreamPredictionError(resp.status_code, resp.text)

        try:
            payload = resp.json()
        except json.JSONDecodeError as e:
            raise MalformedUpstreamResponse("predict", f"invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedUpstreamResponse(
                "predict", f"expected an object, got {type(payload).__name__}"
            )
        try:
            PredictionPayload.model_validate(payload)
        except ValidationError as e:
            errors = e.errors(include_url=False)[:3]
            raise MalformedUpstreamResponse(
                "predict", f"{e.error_count()} validation error(s): {errors}"
            ) from e
        return payload

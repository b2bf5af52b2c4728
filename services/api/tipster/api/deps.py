from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from tipster.core.config import Settings, get_settings
from tipster.services.backend.client import BackendClient
from tipster.services.prediction_cache import PredictionCache


def get_backend(request: Request) -> BackendClient:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Prediction backend not configured",
        )
    return backend


def get_prediction_cache(request: Request) -> PredictionCache:
    return PredictionCache(getattr(request.app.state, "redis", None))


def _extract_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization")
    if not auth:
        return None
    parts = auth.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme.lower() != "bearer":
        return None
    return token


def require_cron_secret(
    request: Request, settings: Settings = Depends(get_settings)
) -> None:
    # No secret configured: open (local development).
    if not settings.cron_secret:
        return
    if _extract_bearer_token(request) != settings.cron_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

from __future__ import annotations

from fastapi import APIRouter

from tipster.api.routes import health, odds, predictions

api_router = APIRouter()

# Registration order
for _mod in (health, odds, predictions):
    api_router.include_router(_mod.router)

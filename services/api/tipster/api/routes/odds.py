from __future__ import annotations

from fastapi import APIRouter, Query

from tipster.schemas.predictions import OddsOut
from tipster.services.odds import (
    clamp_probability,
    edge_ev,
    to_american_odds,
    to_decimal_odds,
    to_pct,
)

router = APIRouter(prefix="/v1", tags=["odds"])


@router.get("/odds", response_model=OddsOut)
def get_odds(
    p: float = Query(..., description="Win probability, 0-1"),
    offered: float | None = Query(default=None, description="Offered decimal odds"),
):
    return OddsOut(
        probability=clamp_probability(p),
        decimal=to_decimal_odds(p),
        american=to_american_odds(p),
        pct=to_pct(p),
        edge=edge_ev(p, offered) if offered is not None else None,
    )

"""Probability -> odds renderings used by prediction cards and the odds endpoint.

The three display functions clamp the probability into [0.001, 0.999] so a
0% or 100% model output never divides by zero. ``edge_ev`` does not clamp.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

MIN_PROBABILITY = 0.001
MAX_PROBABILITY = 0.999


def _as_float(value: Any) -> float | None:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(f) else f


def clamp_probability(probability: Any) -> float:
    """Clamp into [0.001, 0.999]; NaN and non-numeric input map to 0.001."""
    p = _as_float(probability)
    if p is None:
        return MIN_PROBABILITY
    return min(max(p, MIN_PROBABILITY), MAX_PROBABILITY)


def _round_half_up(value: float, places: int) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def _round_int(value: float) -> int:
    # half toward +infinity, so -150.5 -> -150
    return math.floor(value + 0.5)


def to_decimal_odds(probability: Any) -> str:
    p = clamp_probability(probability)
    return f"{_round_half_up(1 / p, 2):.2f}"


def to_pct(probability: Any) -> str:
    p = clamp_probability(probability)
    return f"{_round_half_up(p * 100, 1):.1f}%"


def to_american_odds(probability: Any) -> str:
    p = clamp_probability(probability)
    decimal_odds = 1 / p
    if decimal_odds >= 2:
        return f"+{_round_int((decimal_odds - 1) * 100)}"
    return str(_round_int(-100 / (decimal_odds - 1)))


def edge_ev(probability: Any, offered_decimal_odds: Any) -> float:
    """Expected value per unit staked at ``offered_decimal_odds``.

    Missing odds or odds <= 1 can never be favorable and return -1, as does
    input that is not a number.

    Unlike the display helpers the probability is used as given: an EV on a
    model output of exactly 0 or 1 is meaningful, so callers clamp if they
    need to.
    """
    offered = _as_float(offered_decimal_odds)
    p = _as_float(probability)
    if offered is None or offered <= 1 or p is None:
        return -1.0
    return p * offered - 1


def value_rating(confidence: float) -> str:
    if confidence >= 0.8:
        return "Very High"
    if confidence >= 0.7:
        return "High"
    if confidence >= 0.6:
        return "Medium"
    if confidence >= 0.5:
        return "Low"
    return "Very Low"


def _implied(p: Any) -> float | None:
    if not isinstance(p, (int, float)) or isinstance(p, bool) or p <= 0:
        return None
    return float(_round_half_up(1 / p, 2))


def implied_odds(predictions: Mapping[str, Any] | None) -> dict[str, float | None] | None:
    """Fair decimal odds for the 1X2 probabilities of a backend prediction."""
    if not predictions:
        return None
    return {
        "home": _implied(predictions.get("home_win")),
        "draw": _implied(predictions.get("draw")),
        "away": _implied(predictions.get("away_win")),
    }

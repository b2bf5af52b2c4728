from __future__ import annotations

from typing import Any, Mapping

from tipster.services.backend.types import AvailabilityItem, TimeBucket

KEY_NAMESPACE = "prediction"
DEFAULT_TTL_SECS = 5400

# Closer to kickoff the consensus moves faster, so entries live shorter.
TTL_BY_TIME_BUCKET: dict[TimeBucket, int] = {
    TimeBucket.h72: 7200,
    TimeBucket.h48: 7200,
    TimeBucket.h24: 2700,
    TimeBucket.h12: 1800,
    TimeBucket.h6: 1200,
    TimeBucket.h3: 600,
}


def prediction_cache_key(match_id: int, consensus_created_at: str | None = None) -> str:
    """Versioned key: a new consensus timestamp always yields a new key."""
    return f"{KEY_NAMESPACE}:{match_id}:{consensus_created_at or 'none'}"


def _bucket_of(item: Any) -> Any:
    if item is None:
        return None
    if isinstance(item, AvailabilityItem):
        return item.time_bucket
    if isinstance(item, Mapping):
        return item.get("time_bucket")
    return item


def ttl_for_match(item: AvailabilityItem | Mapping[str, Any] | str | None = None) -> int:
    """TTL in seconds for the match's time-to-kickoff bucket.

    Accepts an availability item, a mapping with ``time_bucket``, a bare
    bucket value, or None. Unknown buckets get the 90 minute default.
    """
    bucket = _bucket_of(item)
    if bucket is None:
        return DEFAULT_TTL_SECS
    try:
        return TTL_BY_TIME_BUCKET[TimeBucket(bucket)]
    except (ValueError, KeyError):
        return DEFAULT_TTL_SECS

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from redis import Redis


def publish_enrichment_event(
    r: Redis, *, channel: str, type_: str, payload: dict[str, Any]
) -> None:
    body = {
        "type": type_,
        "payload": payload,
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    r.publish(channel, json.dumps(body))

from __future__ import annotations


class BackendError(Exception):
    """Base class for failures talking to the prediction backend."""


class UpstreamError(BackendError):
    endpoint = "backend"

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"{self.endpoint} responded with status {status_code}: {body}"
        )


class UpstreamAvailabilityError(UpstreamError):
    endpoint = "availability"


class UpstreamPredictionError(UpstreamError):
    endpoint = "predict"


class MalformedUpstreamResponse(BackendError):
    def __init__(self, endpoint: str, detail: str):
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"malformed {endpoint} response: {detail}")


class UnknownAvailabilityReason(ValueError):
    def __init__(self, match_id: int, reason: str):
        self.match_id = match_id
        self.reason = reason
        super().__init__(f"unknown availability reason {reason!r} for match {match_id}")

# urban_snapshot/core/errors.py
"""
Error taxonomy.

Only InvalidQuery ever reaches the HTTP caller. UpstreamError subclasses are
raised inside source clients and converted into failed SourceResults at the
``fetch`` boundary, so the aggregator never sees them as exceptions.
"""
from enum import Enum


class FailureReason(str, Enum):
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_PAYLOAD = "malformed_payload"
    NO_DATA = "no_data"
    TIMEOUT = "timeout"
    DEADLINE = "deadline"


class SnapshotError(Exception):
    """Base class for every error raised by the service."""


class InvalidQuery(SnapshotError, ValueError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class UpstreamError(SnapshotError):
    kind = "UpstreamError"

    def __init__(self, source_id: str, reason: FailureReason, message: str):
        super().__init__(message)
        self.source_id = source_id
        self.reason = reason
        self.message = message


class UpstreamUnavailable(UpstreamError):
    kind = "UpstreamUnavailable"


class UpstreamTimeout(UpstreamError):
    kind = "UpstreamTimeout"

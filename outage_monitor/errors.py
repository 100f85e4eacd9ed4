"""
Error taxonomy for the outage pipeline.

Every failure raised below the refresher carries an ``ErrorKind`` so the
refresher (and the metrics it exports) can branch on the kind of failure
instead of the message text.
"""

from enum import Enum


class ErrorKind(Enum):
    TRANSPORT = "transport"
    PARSE = "parse"
    PERSISTENCE = "persistence"
    CANCELLED = "cancelled"


class ParseFailure(Enum):
    MAP_NOT_FOUND = "map not found"
    MAP_MALFORMED = "map markers malformed"
    NO_OUTAGE_START = "outage start not found"
    NO_OUTAGE_END = "outage end not found"
    NO_AFFECTED_CUSTOMERS = "outage no affected customers"
    BAD_TIMESTAMP = "outage timestamp malformed"
    NO_ADDRESSES = "no addresses"


class OutageMonitorError(Exception):
    kind: ErrorKind


class FetchError(OutageMonitorError):
    """A document could not be retrieved (network error, bad status, empty body)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, url: str, reason: str):
        super().__init__(f"fetch html file at {url}: {reason}")
        self.url = url
        self.reason = reason


class ParseError(OutageMonitorError):
    """A listing or incident document did not have the expected structure."""

    kind = ErrorKind.PARSE

    def __init__(self, reason: ParseFailure, detail: str = ""):
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.detail = detail


class StoreError(OutageMonitorError):
    kind = ErrorKind.PERSISTENCE


class CycleCancelled(OutageMonitorError):
    kind = ErrorKind.CANCELLED

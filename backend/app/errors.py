"""Error taxonomy shared by ingestion, chain access and the resolution pipeline.

Every error raised on purpose carries an explicit :class:`ErrorKind` so the
batch driver can classify outcomes without inspecting messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    MARKET_ID_UNSET = "market_id_unset"
    TIMEOUT = "timeout"
    TRANSPORT_UNAVAILABLE = "transport_unavailable"
    NOT_READY_YET = "not_ready_yet"
    CHAIN_REJECTED = "chain_rejected"
    INVALID_PAYLOAD = "invalid_payload"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class OracleError(Exception):
    """Base class for classified oracle failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    retryable: bool = False


class NotFoundError(OracleError, LookupError):
    """Raised when a market subject is missing from the snapshot."""

    kind = ErrorKind.NOT_FOUND


class MarketIdUnsetError(OracleError):
    """Raised when a commitment is requested for a market without an id."""

    kind = ErrorKind.MARKET_ID_UNSET


class FetchTimeoutError(OracleError):
    kind = ErrorKind.TIMEOUT
    retryable = True


class TransportUnavailableError(OracleError):
    kind = ErrorKind.TRANSPORT_UNAVAILABLE
    retryable = True


class NotReadyYetError(OracleError):
    """Raised when a market's resolve time has not been reached on chain."""

    kind = ErrorKind.NOT_READY_YET


class ChainRejectedError(OracleError):
    """Raised when a submission reverts, fails, or is never confirmed."""

    kind = ErrorKind.CHAIN_REJECTED


class InvalidPayloadError(OracleError, ValueError):
    kind = ErrorKind.INVALID_PAYLOAD


class ConfigurationError(OracleError):
    kind = ErrorKind.CONFIGURATION


def classify(exc: BaseException) -> ErrorKind:
    """Return the kind carried by ``exc``; foreign exceptions are unexpected."""

    if isinstance(exc, OracleError):
        return exc.kind
    return ErrorKind.UNEXPECTED


__all__ = [
    "ChainRejectedError",
    "ConfigurationError",
    "ErrorKind",
    "FetchTimeoutError",
    "InvalidPayloadError",
    "MarketIdUnsetError",
    "NotFoundError",
    "NotReadyYetError",
    "OracleError",
    "TransportUnavailableError",
    "classify",
]

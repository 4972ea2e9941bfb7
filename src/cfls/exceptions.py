"""Error taxonomy for the cfls server core."""

from __future__ import annotations

from enum import StrEnum


class CflsError(RuntimeError):
    pass


class NeverThrown(CflsError):
    """Raised by ``never()`` when a path that must be unreachable is reached.

    The keyword environment passed to ``never()`` is kept on the exception so
    the log line carries the offending values.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})


class MalformedMessage(CflsError):
    """A decoded JSON object is not a request, notification or response."""


class TransportError(CflsError):
    pass


class ConnectionTerminated(CflsError):
    """The inbound channel closed without an ``exit`` notification."""


class DuplicateRequestId(CflsError):
    def __init__(self, request_id: int | str, method: str):
        super().__init__(f"Request id {request_id!r} is already outstanding ({method})")
        self.request_id = request_id
        self.method = method


class HandlerErrorKind(StrEnum):
    BAD_REQUEST = "bad_request"
    INTERNAL = "internal"


class HandlerError(CflsError):
    """Failure reported by a request or notification handler."""

    def __init__(
        self,
        message: str,
        *,
        kind: HandlerErrorKind = HandlerErrorKind.INTERNAL,
    ):
        super().__init__(message)
        self.kind = kind

    @classmethod
    def bad_request(cls, message: str) -> HandlerError:
        return cls(message, kind=HandlerErrorKind.BAD_REQUEST)


class RequestCancelled(CflsError):
    """Raised by a request handler that notices its request was cancelled.

    No built-in handler raises it: handlers run to completion and
    ``$/cancelRequest`` only drops the pending response. A handler that
    polls ``state.requests.is_outstanding(id)`` may raise it to answer
    with ``RequestCancelled`` instead of a result.
    """


class NotificationDecodeError(CflsError):
    def __init__(self, method: str, diagnostic: str):
        super().__init__(f"Failed to decode {method} params: {diagnostic}")
        self.method = method
        self.diagnostic = diagnostic


class ConfigUpdateError(CflsError):
    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic

"""First-match routing of one message to one typed handler.

Each dispatcher wraps a single message. Bindings are tried in the order
they are declared; the first whose method matches claims the message,
decodes its params into the declared lsprotocol type and runs the handler.
Every later binding on the same dispatcher is a no-op.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from lsprotocol.types import ErrorCodes, LSPErrorCodes

from cfls.exceptions import (
    HandlerError,
    HandlerErrorKind,
    NeverThrown,
    NotificationDecodeError,
    RequestCancelled,
)
from cfls.invariants import never
from cfls.messages import Notification, Request, Response
from cfls.payload_codec import PayloadDecodeError, decode_payload, encode_payload
from cfls.state import ServerState

logger = logging.getLogger(__name__)

RequestHandler = Callable[[ServerState, Any], object]
NotificationHandler = Callable[[ServerState, Any], None]

_HANDLER_ERROR_CODES: dict[HandlerErrorKind, int] = {
    HandlerErrorKind.BAD_REQUEST: ErrorCodes.InvalidRequest,
    HandlerErrorKind.INTERNAL: ErrorCodes.InternalError,
}


class _Bindings:
    def __init__(self) -> None:
        self._methods: set[str] = set()

    def bind(self, method: str) -> None:
        if method in self._methods:
            never("duplicate dispatcher binding", method=method)
        self._methods.add(method)


class RequestDispatcher:
    def __init__(self, state: ServerState, request: Request) -> None:
        self.state = state
        self.request: Request | None = request
        self._bindings = _Bindings()

    @property
    def claimed(self) -> bool:
        return self.request is None

    def on(
        self,
        method: str,
        params_type: type | None,
        handler: RequestHandler,
    ) -> RequestDispatcher:
        self._bindings.bind(method)
        request = self.request
        if request is None or request.method != method:
            return self
        self.request = None
        self.state.respond(self._run(request, params_type, handler))
        return self

    def reject(self, code: int, message: str) -> None:
        """Answer the unclaimed request with an error without running a handler."""
        request = self.request
        if request is None:
            return
        self.request = None
        self.state.respond(Response.err(request.id, code, message))

    def finish(self) -> None:
        request = self.request
        if request is None:
            return
        self.request = None
        logger.warning("unknown request %s - (%r)", request.method, request.id)
        self.state.respond(
            Response.err(
                request.id,
                ErrorCodes.MethodNotFound,
                f"Unhandled method {request.method}",
            )
        )

    def _run(
        self,
        request: Request,
        params_type: type | None,
        handler: RequestHandler,
    ) -> Response:
        params = None
        if params_type is not None:
            try:
                params = decode_payload(request.method, request.params, params_type)
            except PayloadDecodeError as exc:
                logger.warning("invalid params for %s - (%r): %s", request.method, request.id, exc.diagnostic)
                return Response.err(
                    request.id,
                    ErrorCodes.InvalidParams,
                    str(exc),
                    data=request.params,
                )
        try:
            result = handler(self.state, params)
            return Response.ok(request.id, encode_payload(result))
        except HandlerError as exc:
            logger.warning("%s - (%r) failed: %s", request.method, request.id, exc)
            return Response.err(request.id, _HANDLER_ERROR_CODES[exc.kind], str(exc))
        except NeverThrown:
            raise
        except RequestCancelled:
            return Response.err(request.id, LSPErrorCodes.RequestCancelled, "canceled by client")
        except Exception as exc:
            logger.exception("%s - (%r) crashed", request.method, request.id)
            return Response.err(
                request.id,
                ErrorCodes.InternalError,
                f"{request.method} failed: {type(exc).__name__}: {exc}",
            )


class NotificationDispatcher:
    def __init__(self, state: ServerState, notification: Notification) -> None:
        self.state = state
        self.notification: Notification | None = notification
        self._bindings = _Bindings()

    @property
    def claimed(self) -> bool:
        return self.notification is None

    def on(
        self,
        method: str,
        params_type: type | None,
        handler: NotificationHandler,
    ) -> NotificationDispatcher:
        """Run ``handler`` if it claims the notification.

        Decode and handler failures propagate to the caller since there is
        no response to carry them.
        """
        self._bindings.bind(method)
        notification = self.notification
        if notification is None or notification.method != method:
            return self
        self.notification = None
        params = None
        if params_type is not None:
            try:
                params = decode_payload(method, notification.params, params_type)
            except PayloadDecodeError as exc:
                raise NotificationDecodeError(method, exc.diagnostic) from exc
        handler(self.state, params)
        return self

    def finish(self) -> None:
        notification = self.notification
        if notification is None:
            return
        self.notification = None
        if not notification.method.startswith("$/"):
            logger.debug("unhandled notification %s", notification.method)

from __future__ import annotations

import pytest
from lsprotocol.types import CancelParams, CompletionParams, ErrorCodes, LSPErrorCodes

from cfls.dispatch import NotificationDispatcher, RequestDispatcher
from cfls.exceptions import HandlerError, NeverThrown, NotificationDecodeError, RequestCancelled
from cfls.messages import Notification, Request, Response
from cfls.state import ServerState

_COMPLETION_PARAMS = {
    "textDocument": {"uri": "file:///tmp/a.cfm"},
    "position": {"line": 0, "character": 0},
}


def _dispatch_request(state: ServerState, request: Request) -> RequestDispatcher:
    state.requests.register(request, 0.0)
    return RequestDispatcher(state, request)


def test_first_matching_binding_claims_request(state: ServerState, sent: list) -> None:
    calls: list[str] = []

    def first(_state: ServerState, params: CompletionParams) -> dict:
        calls.append("first")
        return {"line": params.position.line}

    def second(_state: ServerState, _params: None) -> None:
        calls.append("second")

    request = Request(id=1, method="textDocument/completion", params=_COMPLETION_PARAMS)
    dispatcher = _dispatch_request(state, request)
    dispatcher.on("shutdown", None, second).on(
        "textDocument/completion", CompletionParams, first
    ).on("completionItem/resolve", None, second).finish()

    assert calls == ["first"]
    assert sent == [Response.ok(1, {"line": 0})]
    assert len(state.requests) == 0


def test_decode_failure_answers_invalid_params_without_running_handler(
    state: ServerState, sent: list
) -> None:
    def handler(_state: ServerState, _params: CompletionParams) -> None:
        pytest.fail("handler must not run")

    params = {"textDocument": {"uri": "file:///tmp/a.cfm"}}
    request = Request(id="x", method="textDocument/completion", params=params)
    _dispatch_request(state, request).on("textDocument/completion", CompletionParams, handler).finish()

    assert len(sent) == 1
    response = sent[0]
    assert response.id == "x"
    assert response.error.code == ErrorCodes.InvalidParams
    assert "position" in response.error.message
    assert response.error.data == params


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (HandlerError.bad_request("bad position"), ErrorCodes.InvalidRequest),
        (HandlerError("boom"), ErrorCodes.InternalError),
        (RuntimeError("unexpected"), ErrorCodes.InternalError),
    ],
)
def test_handler_failures_map_to_error_codes(
    state: ServerState, sent: list, error: Exception, code: int
) -> None:
    def handler(_state: ServerState, _params: None) -> None:
        raise error

    _dispatch_request(state, Request(id=5, method="custom")).on("custom", None, handler).finish()

    assert [response.error.code for response in sent] == [code]
    assert sent[0].id == 5


def test_unclaimed_request_gets_method_not_found(state: ServerState, sent: list) -> None:
    _dispatch_request(state, Request(id=2, method="unknown/method")).on(
        "shutdown", None, lambda _s, _p: None
    ).finish()

    assert len(sent) == 1
    assert sent[0].error.code == ErrorCodes.MethodNotFound
    assert len(state.requests) == 0


def test_reject_short_circuits_later_bindings(state: ServerState, sent: list) -> None:
    dispatcher = _dispatch_request(state, Request(id=9, method="custom"))
    dispatcher.reject(ErrorCodes.InvalidRequest, "nope")
    dispatcher.on("custom", None, lambda _s, _p: pytest.fail("must not run")).finish()

    assert dispatcher.claimed
    assert [response.error.message for response in sent] == ["nope"]


def test_duplicate_binding_is_a_programming_error(state: ServerState) -> None:
    dispatcher = _dispatch_request(state, Request(id=1, method="other"))
    dispatcher.on("custom", None, lambda _s, _p: None)
    with pytest.raises(NeverThrown):
        dispatcher.on("custom", None, lambda _s, _p: None)


def test_notification_handler_runs_without_response(state: ServerState, sent: list) -> None:
    seen: list[object] = []
    notification = Notification(method="$/cancelRequest", params={"id": 3})

    NotificationDispatcher(state, notification).on(
        "$/cancelRequest", CancelParams, lambda _s, params: seen.append(params.id)
    ).finish()

    assert seen == [3]
    assert sent == []


def test_notification_decode_failure_propagates(state: ServerState, sent: list) -> None:
    notification = Notification(method="$/cancelRequest", params={})
    dispatcher = NotificationDispatcher(state, notification)

    with pytest.raises(NotificationDecodeError):
        dispatcher.on("$/cancelRequest", CancelParams, lambda _s, _p: None)
    assert sent == []


def test_notification_handler_failure_propagates(state: ServerState) -> None:
    def handler(_state: ServerState, _params: None) -> None:
        raise HandlerError("broken")

    with pytest.raises(HandlerError):
        NotificationDispatcher(state, Notification(method="custom")).on("custom", None, handler)


def test_unclaimed_notification_is_dropped(state: ServerState, sent: list) -> None:
    dispatcher = NotificationDispatcher(state, Notification(method="custom/unknown"))
    dispatcher.on("custom", None, lambda _s, _p: None).finish()
    assert dispatcher.claimed
    assert sent == []


def test_cancelled_handler_reports_request_cancelled(state: ServerState, sent: list) -> None:
    def handler(_state: ServerState, _params: None) -> None:
        raise RequestCancelled("stale")

    _dispatch_request(state, Request(id=6, method="custom")).on("custom", None, handler).finish()

    assert [response.error.code for response in sent] == [LSPErrorCodes.RequestCancelled]

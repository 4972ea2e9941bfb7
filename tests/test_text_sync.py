from __future__ import annotations

from pathlib import Path

from lsprotocol.types import ErrorCodes

from cfls.messages import Notification, Request
from cfls.server import EventLoop
from cfls.state import ServerState
from tests.lsp_helpers import EXIT, completion_request, did_change, did_open, responses, run_session


def _uri(root: Path) -> str:
    return (root / "index.cfm").resolve().as_uri()


def test_open_change_close_round_trip(state: ServerState) -> None:
    uri = _uri(state.config.root_path)
    loop = EventLoop(state)

    loop.handle_event(did_open(uri, "<cfset a = 1>"))
    assert state.workspace.get_text_document(uri).source == "<cfset a = 1>"

    loop.handle_event(did_change(uri, "<cfset total = 2>\n", version=2))
    document = state.workspace.get_text_document(uri)
    assert document.source == "<cfset total = 2>\n"
    assert document.version == 2

    loop.handle_event(Notification(method="textDocument/didClose", params={"textDocument": {"uri": uri}}))
    assert uri not in state.workspace.text_documents

    # Closing twice is tolerated.
    loop.handle_event(Notification(method="textDocument/didClose", params={"textDocument": {"uri": uri}}))
    assert uri not in state.workspace.text_documents


def test_completion_uses_open_document_words(tmp_path: Path) -> None:
    uri = _uri(tmp_path)
    text = "<cfset customerName = 1>\n<cfoutput>#cust"
    _, output = run_session(
        tmp_path,
        [
            did_open(uri, text),
            completion_request(1, uri, line=1, character=15),
            did_change(uri, "<cfset orderTotal = 1>\n#cust", version=2),
            completion_request(2, uri, line=1, character=5),
            EXIT,
        ],
    )

    first, second = responses(output)
    assert [item["label"] for item in first.result["items"]] == ["customerName"]
    assert second.result["items"] == []


def test_completion_outside_document_is_bad_request(state: ServerState, sent: list) -> None:
    uri = _uri(state.config.root_path)
    loop = EventLoop(state)
    loop.handle_event(did_open(uri, "one line\n"))
    loop.handle_event(completion_request(1, uri, line=1, character=0))
    loop.handle_event(completion_request(2, uri, line=5, character=0))

    assert sent[0].error is None
    assert sent[1].error.code == ErrorCodes.InvalidRequest
    assert "outside" in sent[1].error.message


def test_completion_resolve_through_loop(state: ServerState, sent: list) -> None:
    EventLoop(state).handle_event(
        Request(
            id=1,
            method="completionItem/resolve",
            params={"label": "cfquery", "data": {"source": "tag", "label": "cfquery"}},
        )
    )
    assert sent[0].result["detail"].startswith("<cfquery")
    assert sent[0].result["documentation"]["kind"] == "markdown"


def test_completion_columns_count_utf16_code_units(state: ServerState, sent: list) -> None:
    uri = _uri(state.config.root_path)
    loop = EventLoop(state)
    loop.handle_event(did_open(uri, "\U0001F600 le len"))
    # The emoji is two UTF-16 code units, so column 5 sits right after "le".
    loop.handle_event(completion_request(1, uri, line=0, character=5))

    assert [item["label"] for item in sent[0].result["items"]] == ["len"]

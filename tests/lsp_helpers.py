from __future__ import annotations

from pathlib import Path

from cfls.messages import Message, Notification, Request, Response
from cfls.server import serve
from cfls.transport import Connection


def initialize_request(
    root: Path,
    *,
    request_id: int = 0,
    options: object = None,
    workspace_folders: list[Path] | None = None,
) -> Request:
    params: dict[str, object] = {
        "processId": None,
        "rootUri": root.resolve().as_uri(),
        "capabilities": {},
    }
    if options is not None:
        params["initializationOptions"] = options
    if workspace_folders is not None:
        params["workspaceFolders"] = [
            {"uri": folder.resolve().as_uri(), "name": folder.name}
            for folder in workspace_folders
        ]
    return Request(id=request_id, method="initialize", params=params)


def completion_request(request_id: int | str, uri: str, line: int = 0, character: int = 0) -> Request:
    return Request(
        id=request_id,
        method="textDocument/completion",
        params={
            "textDocument": {"uri": uri},
            "position": {"line": line, "character": character},
        },
    )


def did_open(uri: str, text: str, version: int = 1) -> Notification:
    return Notification(
        method="textDocument/didOpen",
        params={
            "textDocument": {"uri": uri, "languageId": "cfml", "version": version, "text": text}
        },
    )


def did_change(uri: str, text: str, version: int) -> Notification:
    return Notification(
        method="textDocument/didChange",
        params={
            "textDocument": {"uri": uri, "version": version},
            "contentChanges": [{"text": text}],
        },
    )


EXIT = Notification(method="exit")
INITIALIZED = Notification(method="initialized", params={})


def run_session(
    root: Path,
    messages: list[Message],
    *,
    options: object = None,
) -> tuple[int, list[Message]]:
    """Initialize, replay ``messages`` and return (exit code, server output).

    The initialize response is stripped from the output.
    """
    server, client = Connection.memory()
    client.sender(initialize_request(root, options=options))
    client.sender(INITIALIZED)
    for message in messages:
        client.sender(message)
    exit_code = serve(server, cwd=root)
    output = client.receiver.drain()
    return exit_code, [
        message
        for message in output
        if not (isinstance(message, Response) and message.id == 0)
    ]


def responses(messages: list[Message]) -> list[Response]:
    return [message for message in messages if isinstance(message, Response)]


def notifications(messages: list[Message], method: str) -> list[Notification]:
    return [
        message
        for message in messages
        if isinstance(message, Notification) and message.method == method
    ]

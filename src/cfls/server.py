from __future__ import annotations

import logging
import os
import re
import time
from pathlib import Path

from lsprotocol.types import (
    CANCEL_REQUEST,
    COMPLETION_ITEM_RESOLVE,
    INITIALIZE,
    INITIALIZED,
    SHUTDOWN,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CancelParams,
    CompletionItem,
    CompletionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    ErrorCodes,
    InitializeParams,
)
from pygls.uris import to_fs_path

from cfls.capabilities import initialize_result
from cfls.config import Configuration, load_project_options
from cfls.dispatch import NotificationDispatcher, RequestDispatcher
from cfls.exceptions import (
    ConnectionTerminated,
    DuplicateRequestId,
    HandlerError,
    NotificationDecodeError,
)
from cfls.handlers import notifications as notification_handlers
from cfls.handlers import request as request_handlers
from cfls.messages import Message, Notification, Request, Response
from cfls.payload_codec import PayloadDecodeError, decode_payload, encode_payload
from cfls.state import ServerState
from cfls.transport import Channel, Connection

logger = logging.getLogger(__name__)

_DRIVE_PREFIX_RE = re.compile(r"^(\\\\\?\\)?([A-Za-z]):")


def patch_path_prefix(path: str, *, windows: bool | None = None) -> str:
    """Upper-case the drive letter of a Windows path.

    Editors may report ``c:\\`` while tools and build scripts see ``C:\\``;
    normalizing keeps both spellings of one root equal.
    """
    if windows is None:
        windows = os.name == "nt"
    if not windows:
        return path
    match = _DRIVE_PREFIX_RE.match(path)
    if match is None:
        return path
    verbatim = match.group(1) or ""
    return f"{verbatim}{match.group(2).upper()}:{path[match.end():]}"


def _uri_to_abs_path(uri: str | None) -> Path | None:
    if not uri:
        return None
    fs_path = to_fs_path(uri)
    if not fs_path:
        return None
    path = Path(patch_path_prefix(fs_path))
    return path if path.is_absolute() else None


def _root_path(params: InitializeParams, cwd: Path | None) -> Path:
    root = _uri_to_abs_path(params.root_uri)
    if root is None and params.root_path:
        candidate = Path(patch_path_prefix(params.root_path))
        root = candidate if candidate.is_absolute() else None
    if root is None:
        root = (cwd or Path.cwd()).resolve()
    return root


def _workspace_roots(params: InitializeParams) -> list[Path]:
    roots: list[Path] = []
    for folder in params.workspace_folders or []:
        path = _uri_to_abs_path(folder.uri)
        if path is not None:
            roots.append(path)
    return roots


def initialize_start(connection: Connection) -> Request | None:
    """Wait for the ``initialize`` request; ``None`` if the client exits first."""
    while True:
        message = connection.receiver.get()
        if message is None:
            raise ConnectionTerminated("Connection was terminated before initialization")
        if isinstance(message, Request):
            if message.method == INITIALIZE:
                return message
            connection.sender(
                Response.err(
                    message.id,
                    ErrorCodes.ServerNotInitialized,
                    f"expected initialize request, got {message.method}",
                )
            )
        elif isinstance(message, Notification) and message.is_exit:
            return None
        else:
            logger.debug("dropping %r before initialization", message)


def initialize(connection: Connection, *, cwd: Path | None = None) -> ServerState | None:
    while True:
        request = initialize_start(connection)
        if request is None:
            return None
        try:
            params = decode_payload("InitializeParams", request.params, InitializeParams)
        except PayloadDecodeError as exc:
            connection.sender(
                Response.err(request.id, ErrorCodes.InvalidParams, str(exc), data=request.params)
            )
            continue
        break

    config = Configuration.new(_root_path(params, cwd), params.capabilities, _workspace_roots(params))
    state = ServerState(connection.sender, config)
    project_options = load_project_options(config.root_path)
    if project_options:
        state.update_configuration(project_options)
    if params.initialization_options is not None:
        state.update_configuration(params.initialization_options)

    connection.sender(Response.ok(request.id, encode_payload(initialize_result(state.config))))
    logger.info("initialized: root=%s workspace_roots=%d", config.root_path, len(config.workspace_roots))
    return state


class EventLoop:
    def __init__(self, state: ServerState) -> None:
        self.state = state

    def run(self, inbox: Channel) -> None:
        while True:
            message = inbox.get()
            if message is None:
                raise ConnectionTerminated("Connection was terminated")
            if isinstance(message, Notification) and message.is_exit:
                logger.info("exit received")
                return
            self.handle_event(message)

    def handle_event(self, message: Message) -> None:
        loop_start = time.monotonic()
        if isinstance(message, Request):
            self.on_new_request(loop_start, message)
        elif isinstance(message, Notification):
            self.on_notification(message)
        else:
            self.complete_request(message)
        logger.debug(
            "%s handled in %0.2fms",
            type(message).__name__,
            (time.monotonic() - loop_start) * 1000.0,
        )

    def on_new_request(self, request_received: float, request: Request) -> None:
        try:
            self.state.requests.register(request, request_received)
        except DuplicateRequestId as exc:
            logger.warning("%s", exc)
            self.state.send(Response.err(request.id, ErrorCodes.InvalidRequest, str(exc)))
            return
        self.on_request(request)

    def on_request(self, request: Request) -> None:
        dispatcher = RequestDispatcher(self.state, request)
        dispatcher.on(SHUTDOWN, None, request_handlers.handle_shutdown)
        if self.state.shutdown_requested:
            dispatcher.reject(ErrorCodes.InvalidRequest, "Shutdown already requested")

        (
            dispatcher.on(TEXT_DOCUMENT_COMPLETION, CompletionParams, request_handlers.handle_completion)
            .on(COMPLETION_ITEM_RESOLVE, CompletionItem, request_handlers.handle_completion_resolve)
            .finish()
        )

    def on_notification(self, notification: Notification) -> None:
        handlers = notification_handlers
        dispatcher = NotificationDispatcher(self.state, notification)
        try:
            (
                dispatcher.on(CANCEL_REQUEST, CancelParams, handlers.handle_cancel)
                .on(INITIALIZED, None, handlers.handle_initialized)
                .on(
                    TEXT_DOCUMENT_DID_OPEN,
                    DidOpenTextDocumentParams,
                    handlers.handle_did_open_text_document,
                )
                .on(
                    TEXT_DOCUMENT_DID_CLOSE,
                    DidCloseTextDocumentParams,
                    handlers.handle_did_close_text_document,
                )
                .on(
                    TEXT_DOCUMENT_DID_CHANGE,
                    DidChangeTextDocumentParams,
                    handlers.handle_did_change_text_document,
                )
                .on(
                    WORKSPACE_DID_CHANGE_CONFIGURATION,
                    DidChangeConfigurationParams,
                    handlers.handle_did_change_configuration,
                )
                .finish()
            )
        except (NotificationDecodeError, HandlerError) as exc:
            logger.error("%s failed: %s", notification.method, exc)

    def complete_request(self, response: Response) -> None:
        # No requests are sent to the client, so nothing can match.
        logger.debug("dropping response %r: no outbound request is pending", response.id)


def serve(connection: Connection, *, cwd: Path | None = None) -> int:
    """Run the handshake and the event loop; return the process exit code."""
    state = initialize(connection, cwd=cwd)
    if state is None:
        return 1
    EventLoop(state).run(connection.receiver)
    return 0 if state.shutdown_requested else 1


def start() -> int:
    logger.info("Starting ColdFusion Language Server...")
    connection, io_threads = Connection.stdio()
    try:
        return serve(connection)
    finally:
        io_threads.join()
        logger.info("ColdFusion Language Server has stopped.")

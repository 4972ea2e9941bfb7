from __future__ import annotations

import logging

from lsprotocol.types import (
    CancelParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
)

from cfls.config import CONFIG_SECTION
from cfls.exceptions import HandlerError
from cfls.state import ServerState

logger = logging.getLogger(__name__)


def handle_cancel(state: ServerState, params: CancelParams) -> None:
    # Advisory: a running handler is never interrupted, the entry is only
    # dropped so a late response is discarded.
    state.requests.cancel(params.id)


def handle_initialized(state: ServerState, _params: None) -> None:
    logger.info("client initialized")


def handle_did_open_text_document(state: ServerState, params: DidOpenTextDocumentParams) -> None:
    state.workspace.put_text_document(params.text_document)


def handle_did_change_text_document(state: ServerState, params: DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    if uri not in state.workspace.text_documents:
        raise HandlerError.bad_request(f"didChange for a document that is not open: {uri}")
    for change in params.content_changes:
        state.workspace.update_text_document(params.text_document, change)


def handle_did_close_text_document(state: ServerState, params: DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    if uri not in state.workspace.text_documents:
        logger.debug("didClose for a document that is not open: %s", uri)
        return
    state.workspace.remove_text_document(uri)


def handle_did_change_configuration(state: ServerState, params: DidChangeConfigurationParams) -> None:
    settings = params.settings
    if isinstance(settings, dict) and CONFIG_SECTION in settings:
        settings = settings[CONFIG_SECTION]
    if settings is None:
        return
    state.update_configuration(settings)

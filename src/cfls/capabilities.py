from __future__ import annotations

from lsprotocol.types import (
    CompletionOptions,
    InitializeResult,
    ServerCapabilities,
    ServerInfo,
    TextDocumentSyncKind,
)

from cfls import __version__
from cfls.config import Configuration

SERVER_NAME = "ColdFusion Language Server"


def server_capabilities(config: Configuration) -> ServerCapabilities:
    return ServerCapabilities(
        text_document_sync=TextDocumentSyncKind.Full,
        completion_provider=CompletionOptions(
            resolve_provider=True,
            trigger_characters=list(config.options.completion.trigger_characters),
        ),
    )


def initialize_result(config: Configuration) -> InitializeResult:
    return InitializeResult(
        capabilities=server_capabilities(config),
        server_info=ServerInfo(name=SERVER_NAME, version=__version__),
    )

from __future__ import annotations

from lsprotocol.types import CompletionItem, CompletionList, CompletionParams

from cfls import completion
from cfls.exceptions import HandlerError
from cfls.state import ServerState


def handle_shutdown(state: ServerState, _params: None) -> None:
    state.request_shutdown()


def handle_completion(state: ServerState, params: CompletionParams) -> CompletionList:
    uri = params.text_document.uri
    position = params.position
    source_text: str | None = None
    line = ""
    character = position.character
    if uri in state.workspace.text_documents:
        document = state.workspace.get_text_document(uri)
        source_text = document.source
        lines = document.lines
        if position.line > len(lines):
            raise HandlerError.bad_request(
                f"Position {position.line}:{position.character} is outside {uri}"
            )
        if position.line < len(lines):
            line = lines[position.line].rstrip("\r\n")
            # Client columns count UTF-16 code units, not str indices.
            character = document.position_codec.position_from_client_units(lines, position).character
    trigger = params.context.trigger_character if params.context is not None else None
    return completion.complete(
        line,
        character,
        source_text=source_text,
        settings=state.config.options.completion,
        trigger_character=trigger,
    )


def handle_completion_resolve(state: ServerState, item: CompletionItem) -> CompletionItem:
    return completion.resolve(item)

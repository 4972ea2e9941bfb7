from __future__ import annotations

import logging
from typing import Callable

from lsprotocol.types import (
    WINDOW_SHOW_MESSAGE,
    MessageType,
    ShowMessageParams,
    TextDocumentSyncKind,
)
from pygls.workspace import Workspace

from cfls.config import Configuration
from cfls.exceptions import ConfigUpdateError
from cfls.messages import Message, Notification, Response
from cfls.payload_codec import encode_payload
from cfls.registry import RequestRegistry

logger = logging.getLogger(__name__)

Sender = Callable[[Message], None]


class ServerState:
    """Mutable server aggregate, owned by the event loop.

    Handlers receive it for the duration of one dispatch call and must not
    keep a reference to it after returning.
    """

    def __init__(self, sender: Sender, config: Configuration) -> None:
        self.sender = sender
        self.config = config
        self.requests = RequestRegistry()
        self._shutdown_requested = False
        self.workspace = Workspace(
            config.root_path.as_uri(),
            sync_kind=TextDocumentSyncKind.Full,
        )

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def request_shutdown(self) -> None:
        if not self._shutdown_requested:
            logger.info("shutdown requested")
        self._shutdown_requested = True

    def send(self, message: Message) -> None:
        self.sender(message)

    def respond(self, response: Response) -> None:
        if response.id is None or self.requests.complete(response.id) is None:
            logger.debug("dropping response for request %r that is no longer outstanding", response.id)
            return
        self.send(response)

    def send_notification(self, method: str, params: object) -> None:
        self.send(Notification(method=method, params=encode_payload(params)))

    def show_message(self, message_type: MessageType, message: str) -> None:
        self.send_notification(
            WINDOW_SHOW_MESSAGE,
            ShowMessageParams(type=message_type, message=message),
        )

    def update_configuration(self, payload: object) -> bool:
        try:
            updated = self.config.update(payload)
        except ConfigUpdateError as exc:
            logger.warning("configuration update rejected: %s", exc.diagnostic)
            self.show_message(
                MessageType.Warning,
                f"Failed to update configuration: {exc.diagnostic}",
            )
            return False
        self.config = updated
        return True

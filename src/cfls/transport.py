"""Byte stream framing and the message channels the event loop reads from.

The stdio connection moves frames between the process streams and two
queues on a pair of daemon threads. Those threads never touch server
state; the event loop thread is the only consumer of the inbound channel.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable

from lsprotocol.types import ErrorCodes

from cfls.exceptions import MalformedMessage, TransportError
from cfls.json_types import JSONObject
from cfls.messages import Message, Response, parse_message

logger = logging.getLogger(__name__)

_CLOSED = object()


class Channel:
    """Unbounded FIFO of messages that can be closed by its producer."""

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False

    def put(self, message: Message) -> None:
        self._queue.put(message)

    def close(self) -> None:
        self._queue.put(_CLOSED)

    def get(self) -> Message | None:
        """Block for the next message; ``None`` once closed and drained."""
        if self._closed:
            return None
        item = self._queue.get()
        if item is _CLOSED:
            self._closed = True
            return None
        return item

    def drain(self) -> list[Message]:
        messages: list[Message] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return messages
            if item is _CLOSED:
                self._closed = True
                return messages
            messages.append(item)


def read_frame(stream: BinaryIO) -> JSONObject | None:
    """Read one ``Content-Length`` framed JSON body; ``None`` on clean EOF."""
    length = -1
    saw_header = False
    while True:
        line = stream.readline()
        if not line:
            if saw_header:
                raise TransportError("LSP stream closed inside a header")
            return None
        saw_header = True
        line = line.rstrip(b"\r\n")
        if not line:
            break
        name, sep, value = line.partition(b":")
        if not sep:
            raise TransportError(f"Invalid LSP header: {line!r}")
        if name.strip().lower() == b"content-length":
            try:
                length = int(value.strip())
            except ValueError as exc:
                raise TransportError("Invalid LSP Content-Length") from exc
    if length < 0:
        raise TransportError("Missing LSP Content-Length")
    body = stream.read(length)
    if len(body) < length:
        raise TransportError("LSP stream closed inside a message body")
    try:
        message = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedMessage(f"Invalid JSON body: {exc}") from exc
    if not isinstance(message, dict):
        raise MalformedMessage("Invalid LSP message payload")
    return message


def write_frame(stream: BinaryIO, payload: JSONObject) -> None:
    body = json.dumps(payload).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("utf-8")
    stream.write(header + body)
    stream.flush()


def _reject_request(payload: JSONObject, exc: MalformedMessage, reply: Callable[[Message], None]) -> None:
    """Answer a request-shaped message that could not be classified.

    Its id is unusable, so the error goes out with a null id.
    """
    logger.warning("rejecting invalid request %r: %s", payload.get("method"), exc)
    reply(Response.err(None, ErrorCodes.InvalidRequest, str(exc)))


def _reader_loop(stream: BinaryIO, inbox: Channel, reply: Callable[[Message], None]) -> None:
    try:
        while True:
            try:
                payload = read_frame(stream)
            except MalformedMessage as exc:
                logger.warning("dropping malformed message: %s", exc)
                continue
            if payload is None:
                return
            try:
                message = parse_message(payload)
            except MalformedMessage as exc:
                if "method" in payload and "id" in payload:
                    _reject_request(payload, exc, reply)
                else:
                    logger.warning("dropping malformed message: %s", exc)
                continue
            inbox.put(message)
    except (TransportError, OSError, ValueError) as exc:
        logger.error("reader stopped: %s", exc)
    finally:
        inbox.close()


def _writer_loop(stream: BinaryIO, outbox: queue.Queue[Message | None]) -> None:
    while True:
        message = outbox.get()
        if message is None:
            return
        try:
            write_frame(stream, message.to_json())
        except (OSError, ValueError) as exc:
            logger.error("writer stopped: %s", exc)
            return


@dataclass
class IoThreads:
    reader: threading.Thread
    writer: threading.Thread
    outbox: queue.Queue[Message | None]

    def join(self, reader_timeout: float = 1.0) -> None:
        self.outbox.put(None)
        self.writer.join()
        # The reader may still be blocked on a stream the client never closes.
        self.reader.join(timeout=reader_timeout)


@dataclass
class Connection:
    receiver: Channel
    sender: Callable[[Message], None]

    @classmethod
    def streams(cls, reader: BinaryIO, writer: BinaryIO) -> tuple[Connection, IoThreads]:
        inbox = Channel()
        outbox: queue.Queue[Message | None] = queue.Queue()
        reader_thread = threading.Thread(
            target=_reader_loop,
            args=(reader, inbox, outbox.put),
            name="cfls-reader",
            daemon=True,
        )
        writer_thread = threading.Thread(
            target=_writer_loop, args=(writer, outbox), name="cfls-writer", daemon=True
        )
        reader_thread.start()
        writer_thread.start()
        return cls(receiver=inbox, sender=outbox.put), IoThreads(reader_thread, writer_thread, outbox)

    @classmethod
    def stdio(cls) -> tuple[Connection, IoThreads]:
        return cls.streams(sys.stdin.buffer, sys.stdout.buffer)

    @classmethod
    def memory(cls) -> tuple[Connection, Connection]:
        """Return a (server, client) pair joined by in-process channels."""
        to_server = Channel()
        to_client = Channel()
        server = cls(receiver=to_server, sender=to_client.put)
        client = cls(receiver=to_client, sender=to_server.put)
        return server, client

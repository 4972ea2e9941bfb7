from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from cfls.exceptions import DuplicateRequestId
from cfls.json_types import RequestId
from cfls.messages import Request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutstandingRequest:
    id: RequestId
    method: str
    start_time: float

    def elapsed_ms(self, now: float | None = None) -> float:
        end = time.monotonic() if now is None else now
        return (end - self.start_time) * 1000.0


class RequestRegistry:
    """Requests received from the client that have not been answered yet."""

    def __init__(self) -> None:
        self._entries: dict[RequestId, OutstandingRequest] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    def is_outstanding(self, request_id: RequestId) -> bool:
        return request_id in self._entries

    def get(self, request_id: RequestId) -> OutstandingRequest | None:
        return self._entries.get(request_id)

    def register(self, request: Request, received_at: float) -> OutstandingRequest:
        existing = self._entries.get(request.id)
        if existing is not None:
            raise DuplicateRequestId(request.id, existing.method)
        entry = OutstandingRequest(id=request.id, method=request.method, start_time=received_at)
        self._entries[request.id] = entry
        return entry

    def complete(self, request_id: RequestId) -> OutstandingRequest | None:
        entry = self._entries.pop(request_id, None)
        if entry is not None:
            logger.debug(
                "handled %s - (%r) in %0.2fms",
                entry.method,
                entry.id,
                entry.elapsed_ms(),
            )
        return entry

    def cancel(self, request_id: RequestId) -> OutstandingRequest | None:
        entry = self._entries.pop(request_id, None)
        if entry is None:
            logger.debug("cancel for unknown request %r ignored", request_id)
        else:
            logger.debug("cancelled %s - (%r)", entry.method, entry.id)
        return entry

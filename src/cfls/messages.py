"""JSON-RPC message shapes exchanged with the client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from cfls.exceptions import MalformedMessage
from cfls.json_types import JSONObject, JSONValue, RequestId

JSONRPC_VERSION = "2.0"
EXIT_METHOD = "exit"


def _require_id(value: object) -> RequestId:
    # bool is an int subclass but never a valid id.
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise MalformedMessage(f"Invalid request id: {value!r}")
    return value


@dataclass(frozen=True)
class Request:
    id: RequestId
    method: str
    params: JSONValue = None

    def to_json(self) -> JSONObject:
        message: JSONObject = {"jsonrpc": JSONRPC_VERSION, "id": self.id, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message


@dataclass(frozen=True)
class Notification:
    method: str
    params: JSONValue = None

    def to_json(self) -> JSONObject:
        message: JSONObject = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message

    @property
    def is_exit(self) -> bool:
        return self.method == EXIT_METHOD


@dataclass(frozen=True)
class ResponseError:
    code: int
    message: str
    data: JSONValue = None

    def to_json(self) -> JSONObject:
        error: JSONObject = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass(frozen=True)
class Response:
    id: RequestId | None
    result: JSONValue = None
    error: ResponseError | None = None

    @classmethod
    def ok(cls, request_id: RequestId, result: JSONValue) -> Response:
        return cls(id=request_id, result=result)

    @classmethod
    def err(
        cls,
        request_id: RequestId | None,
        code: int,
        message: str,
        data: JSONValue = None,
    ) -> Response:
        return cls(id=request_id, error=ResponseError(code=int(code), message=message, data=data))

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_json(self) -> JSONObject:
        message: JSONObject = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            message["error"] = self.error.to_json()
        else:
            message["result"] = self.result
        return message


Message: TypeAlias = Request | Notification | Response


def _parse_error(raw: object) -> ResponseError:
    if not isinstance(raw, dict):
        raise MalformedMessage(f"Invalid response error: {raw!r}")
    code = raw.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        raise MalformedMessage(f"Invalid response error code: {code!r}")
    return ResponseError(code=code, message=str(raw.get("message", "")), data=raw.get("data"))


def parse_message(payload: JSONObject) -> Message:
    """Classify one decoded JSON object into a message variant."""
    if not isinstance(payload, dict):
        raise MalformedMessage(f"Message must be a JSON object, got {type(payload).__name__}")
    method = payload.get("method")
    if method is not None:
        if not isinstance(method, str):
            raise MalformedMessage(f"Invalid method: {method!r}")
        params = payload.get("params")
        if "id" in payload:
            return Request(id=_require_id(payload["id"]), method=method, params=params)
        return Notification(method=method, params=params)
    if "id" in payload and ("result" in payload or "error" in payload):
        raw_id = payload["id"]
        response_id = None if raw_id is None else _require_id(raw_id)
        if payload.get("error") is not None:
            return Response(id=response_id, error=_parse_error(payload["error"]))
        return Response(id=response_id, result=payload.get("result"))
    raise MalformedMessage(f"Unrecognized message: keys={sorted(payload)}")

from __future__ import annotations

from typing import TypeVar

import cattrs
from lsprotocol.converters import get_converter

from cfls.json_types import JSONValue

T = TypeVar("T")

_CONVERTER = get_converter()

# Everything the lsprotocol converter raises for a payload of the wrong shape.
DECODE_ERRORS: tuple[type[Exception], ...] = (
    cattrs.BaseValidationError,
    KeyError,
    TypeError,
    ValueError,
    AttributeError,
)


class PayloadDecodeError(ValueError):
    def __init__(self, what: str, diagnostic: str, payload: JSONValue):
        super().__init__(f"Failed to deserialize {what} from JSON: {diagnostic}")
        self.what = what
        self.diagnostic = diagnostic
        self.payload = payload


def _diagnostic(exc: Exception) -> str:
    if isinstance(exc, cattrs.BaseValidationError):
        return "; ".join(cattrs.transform_error(exc))
    return f"{type(exc).__name__}: {exc}"


def decode_payload(what: str, payload: JSONValue, target: type[T]) -> T:
    """Decode an untyped JSON payload into ``target`` or raise PayloadDecodeError."""
    try:
        return _CONVERTER.structure(payload, target)
    except DECODE_ERRORS as exc:
        raise PayloadDecodeError(what, _diagnostic(exc), payload) from exc


def encode_payload(value: object) -> JSONValue:
    if value is None:
        return None
    return _CONVERTER.unstructure(value)

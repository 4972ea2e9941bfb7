from __future__ import annotations

"""JSON-like value types used at the protocol boundary.

Payloads arrive untyped and are only decoded into lsprotocol types when a
handler claims them, so everything before that point is declared in this
value space.
"""

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
RequestId: TypeAlias = int | str

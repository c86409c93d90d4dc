"""Initial-state encoding shared by the server and the browser.

Loader results travel to the browser inside an inline ``<script>``.
Plain JSON cannot carry dates, sets, bytes, non-finite floats, or maps
with non-string keys, so those are written as tagged objects::

    {"$t": "Date", "v": "2024-05-01T12:00:00+00:00"}
    {"$t": "Set", "v": [1, 2, 3]}

Everything else is ordinary JSON, so a loader returning ``{"title": "X"}``
encodes to exactly ``{"title": "X"}``.  A dict that happens to use the
tag key itself is wrapped (``"Object"``) so decoding stays unambiguous.

The output is safe to embed in HTML: ``<``, ``>``, ``&``, U+2028 and
U+2029 are written as ``\\uXXXX`` escapes.  ``JS_REVIVER`` is the browser
half of the codec; the generated client entry inlines it.
"""

import base64
import dataclasses
import json
import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

TAG = "$t"
VALUE = "v"

# Largest integer a JavaScript number holds exactly
_MAX_SAFE_INT = 2**53 - 1

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _tagged(tag: str, value: Any) -> dict[str, Any]:
    return {TAG: tag, VALUE: value}


def to_wire(value: Any) -> Any:
    """Convert *value* to a JSON-compatible structure with tags.

    Raises ``TypeError`` for values with no encoding.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        if abs(value) > _MAX_SAFE_INT:
            return _tagged("BigInt", str(value))
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return _tagged("Number", "NaN")
        if math.isinf(value):
            return _tagged("Number", "Infinity" if value > 0 else "-Infinity")
        return value
    if isinstance(value, datetime | date):
        return _tagged("Date", value.isoformat())
    if isinstance(value, Decimal):
        return _tagged("Decimal", str(value))
    if isinstance(value, bytes | bytearray | memoryview):
        return _tagged("Bytes", base64.b64encode(bytes(value)).decode("ascii"))
    if isinstance(value, set | frozenset):
        return _tagged("Set", [to_wire(item) for item in value])
    if isinstance(value, list | tuple):
        return [to_wire(item) for item in value]
    if isinstance(value, Mapping):
        if all(isinstance(k, str) for k in value) and TAG not in value:
            return {k: to_wire(v) for k, v in value.items()}
        pairs = [[to_wire(k), to_wire(v)] for k, v in value.items()]
        if all(isinstance(k, str) for k in value):
            return _tagged("Object", pairs)
        return _tagged("Map", pairs)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    msg = f"Cannot encode value of type {type(value).__name__} into the initial state"
    raise TypeError(msg)


def encode(value: Any) -> str:
    """Encode *value* as a script-safe JSON document."""
    text = json.dumps(to_wire(value), ensure_ascii=False, separators=(",", ":"))
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    return value


def _revive(obj: dict[str, Any]) -> Any:
    if set(obj) != {TAG, VALUE} or not isinstance(obj[TAG], str):
        return obj
    tag, value = obj[TAG], obj[VALUE]
    match tag:
        case "Date":
            return datetime.fromisoformat(value) if "T" in value else date.fromisoformat(value)
        case "Number":
            return float(value.lower().replace("infinity", "inf"))
        case "BigInt":
            return int(value)
        case "Decimal":
            return Decimal(value)
        case "Bytes":
            return base64.b64decode(value)
        case "Set":
            return {_hashable(item) for item in value}
        case "Map":
            return {_hashable(k): v for k, v in value}
        case "Object":
            return dict(value)
    return obj


def decode(text: str | bytes) -> Any:
    """Decode a document produced by :func:`encode`."""
    return json.loads(text, object_hook=_revive)


JS_REVIVER = """\
function __trillRevive(value) {
  if (Array.isArray(value)) return value.map(__trillRevive);
  if (value === null || typeof value !== "object") return value;
  const keys = Object.keys(value);
  if (keys.length === 2 && typeof value.$t === "string" && "v" in value) {
    const v = value.v;
    switch (value.$t) {
      case "Date": return new Date(v);
      case "Number": return Number(v);
      case "BigInt": return BigInt(v);
      case "Decimal": return Number(v);
      case "Bytes": return Uint8Array.from(atob(v), (c) => c.charCodeAt(0));
      case "Set": return new Set(v.map(__trillRevive));
      case "Map": return new Map(v.map(([k, x]) => [__trillRevive(k), __trillRevive(x)]));
      case "Object": return Object.fromEntries(v.map(([k, x]) => [k, __trillRevive(x)]));
    }
  }
  const out = {};
  for (const key of keys) out[key] = __trillRevive(value[key]);
  return out;
}
"""

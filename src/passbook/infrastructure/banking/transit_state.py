"""Decoder for nested-array application state embedded in HTML pages.

Some banking front ends ship their client-side state as a JSON string
assigned to ``window.__INITIAL_STATE__``. The document is a nested array
using reader-macro conventions:

    value      := array | string | number | bool | null
    orderedMap := ["~#iM", [key, value, key, value, ...]]
    mapShort   := ["^ ", key, value, key, value, ...]
    tagged     := ["~#<tag>", value]
    backref    := ["^", index] | "^<digits>"       (key position only)

A back-reference names the key already established at ``index`` within
the map that is currently being read, never a key of an enclosing map.
``TransitReader`` keeps an explicit stack of open maps for that reason.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

logger = logging.getLogger(__name__)

ORDERED_MAP_TAG = "~#iM"
MAP_SHORTHAND = "^ "
BACKREF_MARKER = "^"
TAG_PREFIX = "~#"

_STATE_ASSIGNMENT = re.compile(
    r"window\.__INITIAL_STATE__\s*=\s*(.+?);\s*window\.__holocron",
    re.DOTALL,
)
_STRING_BACKREF = re.compile(r"^\^(\d+)$")


class TransitDecodeError(ValueError):
    """Raised when the embedded state cannot be located or decoded."""


def extract_state_literal(html: str) -> str:
    """Isolate the right-hand side of the ``__INITIAL_STATE__`` assignment."""
    match = _STATE_ASSIGNMENT.search(html)
    if not match:
        msg = "Could not find __INITIAL_STATE__ in page"
        raise TransitDecodeError(msg)
    return match.group(1).strip()


def decode_state_literal(literal: str) -> list[Any]:
    """Decode the escaped string literal into the raw nested array.

    The literal is normally a quoted JSON string whose content is itself
    JSON. A literal that already is an array is accepted as well.
    """
    try:
        value = json.loads(literal)
        if isinstance(value, str):
            value = json.loads(value)
    except json.JSONDecodeError as e:
        msg = f"Malformed state literal: {e.msg}"
        raise TransitDecodeError(msg) from e

    if not isinstance(value, list):
        msg = f"State literal decoded to {type(value).__name__}, expected array"
        raise TransitDecodeError(msg)
    return value


class TransitReader:
    """Recursive-descent reader that rebuilds plain dicts and lists."""

    def __init__(self) -> None:
        self._open_maps: list[list[str]] = []

    def read(self, value: Any) -> Any:
        self._open_maps = []
        return self._read_value(value)

    def _read_value(self, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        if not value:
            return []

        head = value[0]
        if head == ORDERED_MAP_TAG:
            if len(value) != 2 or not isinstance(value[1], list):
                msg = "Ordered map must be ['~#iM', [k, v, ...]]"
                raise TransitDecodeError(msg)
            return self._read_map(value[1])
        if head == MAP_SHORTHAND:
            return self._read_map(value[1:])
        if isinstance(head, str) and head.startswith(TAG_PREFIX) and len(value) == 2:
            return self._read_value(value[1])

        return [self._read_value(item) for item in value]

    def _read_map(self, pairs: list[Any]) -> dict[str, Any]:
        if len(pairs) % 2:
            msg = f"Map has an odd number of elements ({len(pairs)})"
            raise TransitDecodeError(msg)

        keys: list[str] = []
        self._open_maps.append(keys)
        try:
            result: dict[str, Any] = {}
            for i in range(0, len(pairs), 2):
                key = self._read_key(pairs[i])
                keys.append(key)
                result[key] = self._read_value(pairs[i + 1])
            return result
        finally:
            self._open_maps.pop()

    def _read_key(self, raw: Any) -> str:
        index = _backref_index(raw)
        if index is None:
            if isinstance(raw, list):
                msg = f"Unsupported composite map key: {raw!r}"
                raise TransitDecodeError(msg)
            return str(raw)

        current = self._open_maps[-1]
        if index >= len(current):
            msg = f"Back-reference ^{index} outside current map ({len(current)} keys)"
            raise TransitDecodeError(msg)
        return current[index]


def _backref_index(raw: Any) -> int | None:
    if (
        isinstance(raw, list)
        and len(raw) == 2
        and raw[0] == BACKREF_MARKER
        and isinstance(raw[1], int)
    ):
        return raw[1]
    if isinstance(raw, str):
        match = _STRING_BACKREF.match(raw)
        if match:
            return int(match.group(1))
    return None


def parse_initial_state(html: str) -> Any:
    """Locate, decode and read the embedded state of a page."""
    raw = decode_state_literal(extract_state_literal(html))
    return TransitReader().read(raw)


def iter_mappings(tree: Any) -> Iterator[dict[str, Any]]:
    """Yield every dict in the tree, depth first, in document order."""
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            yield node
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))


def find_first(tree: Any, key: str) -> Any:
    """Return the value of the first ``key`` found depth first, or None."""
    for mapping in iter_mappings(tree):
        if key in mapping:
            return mapping[key]
    return None


def first_of(mapping: Any, *keys: str) -> Any:
    """Return the first present, non-empty value among alternative spellings."""
    if not isinstance(mapping, dict):
        return None
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ""):
            return value
    return None

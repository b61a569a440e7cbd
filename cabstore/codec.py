"""
Whole-snapshot codec for a cab.

The wire form is compact UTF-8 JSON: a flat array of nodes in post-order.
Leaves are ``[kind, value]``; maps are ``["map", {key: index}]`` where every
index points at an earlier node. The last node is the cab itself:

    {"a": Int(1), "m": {"x": String("y")}}
    -> [["int",1],["string","y"],["map",{"x":1}],["map",{"a":0,"m":2}]]

The array never nests deeper than three levels, and both directions walk the
value tree with an explicit stack, so nesting depth is bounded by memory only.

No header, no version tag, no checksum. Keys are visited in sorted order, so
equal mappings always produce identical bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import ValidationError

from .errors import DecodeFailure, EncodeFailure
from .values import Entries, FloatValue, IntValue, MapValue, StringValue, Value

_LEAVES: dict[str, tuple[type, type]] = {
    "string": (StringValue, str),
    "int": (IntValue, int),
    "float": (FloatValue, float),
}


@dataclass
class _Frame:
    key: str | None
    node_id: int
    items: list[tuple[str, Value]]
    pos: int = 0
    refs: dict[str, int] = field(default_factory=dict)


def _sorted_items(entries: Mapping[Any, Any]) -> list[tuple[str, Value]]:
    for key in entries:
        if not isinstance(key, str):
            raise EncodeFailure(f"could not encode cab: key {key!r} is not a str")
    return sorted(entries.items())


def _flatten(entries: Mapping[str, Value]) -> list[list[Any]]:
    nodes: list[list[Any]] = []
    stack = [_Frame(None, id(entries), _sorted_items(entries))]
    open_maps = {id(entries)}

    while stack:
        frame = stack[-1]
        if frame.pos < len(frame.items):
            key, value = frame.items[frame.pos]
            frame.pos += 1
            if isinstance(value, MapValue):
                if id(value) in open_maps:
                    raise EncodeFailure(f"could not encode cab: {key!r} contains itself")
                open_maps.add(id(value))
                stack.append(_Frame(key, id(value), _sorted_items(value.entries)))
            elif isinstance(value, (StringValue, IntValue, FloatValue)):
                frame.refs[key] = len(nodes)
                nodes.append([value.kind, value.value])
            else:
                raise EncodeFailure(f"could not encode cab: {key!r} holds a {type(value).__name__}")
            continue

        stack.pop()
        open_maps.discard(frame.node_id)
        if stack:
            stack[-1].refs[frame.key] = len(nodes)  # type: ignore[index]
        nodes.append(["map", frame.refs])
    return nodes


def _rebuild(doc: Any) -> Entries:
    if not isinstance(doc, list) or not doc:
        raise DecodeFailure("could not decode cab: expected a non-empty node array")

    # a slot is set back to None once its parent map takes ownership of it
    built: list[Value | None] = []
    for i, node in enumerate(doc):
        if not isinstance(node, list) or len(node) != 2 or not isinstance(node[0], str):
            raise DecodeFailure(f"could not decode cab: node {i} is malformed")
        kind, payload = node

        if kind == "map":
            if not isinstance(payload, dict):
                raise DecodeFailure(f"could not decode cab: map node {i} has no entries")
            children: dict[str, Value] = {}
            for key, ref in payload.items():
                if type(ref) is not int or not 0 <= ref < i or built[ref] is None:
                    raise DecodeFailure(f"could not decode cab: node {i} has a bad reference {ref!r}")
                children[key] = built[ref]  # type: ignore[assignment]
                built[ref] = None
            built.append(MapValue(entries=children))
            continue

        leaf = _LEAVES.get(kind)
        if leaf is None:
            raise DecodeFailure(f"could not decode cab: node {i} has unknown kind {kind!r}")
        cls, pytype = leaf
        # exact type: bool must not pass for int, nor int for float
        if type(payload) is not pytype:
            raise DecodeFailure(f"could not decode cab: {kind} node {i} holds a {type(payload).__name__}")
        built.append(cls(value=payload))

    root = built[-1]
    if not isinstance(root, MapValue):
        raise DecodeFailure("could not decode cab: last node is not a map")
    if any(v is not None for v in built[:-1]):
        raise DecodeFailure("could not decode cab: unreferenced nodes")
    return dict(root.entries)


def encode(entries: Mapping[str, Value]) -> bytes:
    nodes = _flatten(entries)
    try:
        # allow_nan (the default) writes inf/nan as Infinity/NaN, which json.loads reads back
        text = json.dumps(nodes, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise EncodeFailure(f"could not encode cab: {e!r}") from e
    return text.encode("utf-8")


def decode(payload: bytes) -> Entries:
    try:
        doc = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise DecodeFailure(f"could not decode cab: {e.__class__.__name__}") from e
    try:
        return _rebuild(doc)
    except ValidationError as e:
        raise DecodeFailure(f"could not decode cab: {e.error_count()} invalid values") from e


def copy_value(value: Value) -> Value:
    """Deep copy of a value tree without recursion."""
    if not isinstance(value, MapValue):
        return value.model_copy()
    return _rebuild(_flatten({"": value}))[""]

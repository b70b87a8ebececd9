"""Translate between caller objects and the store's JSON representations.

Store representations look like::

    {"self": ".../node/7", "data": {"name": "Jon"}, "properties": ".../node/7/properties", ...}
    {"self": ".../relationship/3", "start": ".../node/7", "end": ".../node/9",
     "type": "knows", "data": {"since": 2001}, ...}

Everything except the id and `data` is store metadata and is dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import DecodeError, ValidationError
from .ids import id_from_uri, uri_from_id
from .models import Node, Relationship


def _require(raw: Any, *keys: str) -> None:
    if not isinstance(raw, Mapping):
        raise DecodeError(f"expected an entity representation, got {type(raw).__name__}")
    missing = [k for k in keys if raw.get(k) is None]
    if missing:
        raise DecodeError(f"entity representation is missing {', '.join(missing)}")


def _check_id(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{what} id must be a non-negative integer, got {value!r}")
    return value


def as_node(value: Node | Mapping[str, Any]) -> Node:
    """Accept a Node or a plain mapping; a mapping's "id" key is the identity."""
    if isinstance(value, Node):
        return value
    if isinstance(value, Mapping):
        props = {k: v for k, v in value.items() if k != "id"}
        node_id = value.get("id")
        if node_id is not None:
            _check_id(node_id, "node")
        return Node(properties=props, id=node_id)
    raise ValidationError(f"cannot save {type(value).__name__} as a node")


def node_id(value: Any) -> int:
    """Resolve a Node, a mapping with an "id" or a raw int to a node id."""
    if isinstance(value, Node):
        if value.id is None:
            raise ValidationError("node has not been saved and has no id")
        return value.id
    if isinstance(value, Relationship):
        raise ValidationError("expected a node, got a relationship")
    if isinstance(value, Mapping):
        if value.get("id") is None:
            raise ValidationError("mapping has no id")
        return _check_id(value["id"], "node")
    return _check_id(value, "node")


def relationship_id(value: Any) -> int:
    if isinstance(value, Relationship):
        if value.id is None:
            raise ValidationError("relationship has no id")
        return value.id
    if isinstance(value, Node):
        raise ValidationError("expected a relationship, got a node")
    return _check_id(value, "relationship")


def to_node(raw: Mapping[str, Any]) -> Node:
    _require(raw, "self")
    return Node(properties=dict(raw.get("data") or {}), id=id_from_uri(raw["self"]))


def to_relationship(raw: Mapping[str, Any]) -> Relationship:
    _require(raw, "self", "start", "end", "type")
    return Relationship(
        start=id_from_uri(raw["start"]),
        end=id_from_uri(raw["end"]),
        type=raw["type"],
        properties=dict(raw.get("data") or {}),
        id=id_from_uri(raw["self"]),
    )


def from_node(node: Node | Mapping[str, Any]) -> dict[str, Any]:
    """Request body for a node: its properties only; the id lives in the path."""
    return dict(as_node(node).properties)


def from_relationship(
    start: Any,
    rel_type: str,
    end: Any,
    properties: Mapping[str, Any] | None = None,
    *,
    node_template: str,
) -> dict[str, Any]:
    """Request body creating `start -[rel_type]-> end`.

    The start node is addressed by the request path, so only the end node's
    reference goes into the body.
    """
    if not isinstance(rel_type, str) or not rel_type:
        raise ValidationError(f"relationship type must be a non-empty string, got {rel_type!r}")
    node_id(start)
    return {
        "to": uri_from_id(node_template, node_id(end)),
        "type": rel_type,
        "data": dict(properties or {}),
    }

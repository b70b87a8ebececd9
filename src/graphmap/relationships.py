from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from .batch import Operation
from .errors import ValidationError
from .mapper import from_relationship, node_id
from .models import DIRECTIONS, Direction


def normalize_types(types: str | Sequence[str] | None) -> list[str]:
    if types is None:
        return []
    if isinstance(types, str):
        types = [types]
    out = []
    for t in types:
        if not isinstance(t, str) or not t:
            raise ValidationError(f"relationship type must be a non-empty string, got {t!r}")
        out.append(t)
    return out


def traversal_path(node: Any, direction: Direction = "all", types: str | Sequence[str] | None = None) -> str:
    """Path listing a node's relationships.

    `in` keeps relationships ending at the node, `out` those starting at it,
    `all` both. Types are passed through to the store joined with `&`.
    """
    if direction not in DIRECTIONS:
        raise ValidationError(f"direction must be one of {', '.join(DIRECTIONS)}, got {direction!r}")
    path = f"node/{node_id(node)}/relationships/{direction}"
    names = normalize_types(types)
    if names:
        path += "/" + "&".join(quote(t, safe="") for t in names)
    return path


def traversal_operation(node: Any, direction: Direction = "all", types=None) -> Operation:
    return Operation.build(traversal_path(node, direction, types))


def create_operation(
    start: Any,
    rel_type: str,
    end: Any,
    properties: dict[str, Any] | None = None,
    *,
    node_template: str,
) -> Operation:
    body = from_relationship(start, rel_type, end, properties, node_template=node_template)
    return Operation.build(f"node/{node_id(start)}/relationships", body)

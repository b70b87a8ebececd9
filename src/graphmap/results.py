"""Decide what each cell of a tabular query result is.

One response shape serves scalar projections (`RETURN n.age`), whole nodes
(`RETURN n`), whole relationships (`RETURN r`) and any mix of them. Every
cell is checked on its own, in a fixed order:

1. node: `self` ends in `/node/<id>`, carries `data`, and has none of
   start/end/type;
2. relationship: `self` ends in `/relationship/<id>` and carries
   start/end/type;
3. anything else is returned exactly as received.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .mapper import to_node, to_relationship
from .models import QueryResult

_NODE_SELF = re.compile(r"/node/\d+/?$")
_RELATIONSHIP_SELF = re.compile(r"/relationship/\d+/?$")
_RELATIONSHIP_FIELDS = ("start", "end", "type")


class CellKind(Enum):
    NODE = "node"
    RELATIONSHIP = "relationship"
    SCALAR = "scalar"


def classify(cell: Any) -> CellKind:
    if not isinstance(cell, Mapping) or not isinstance(cell.get("self"), str):
        return CellKind.SCALAR
    ref = cell["self"]
    if _NODE_SELF.search(ref) and "data" in cell and not any(k in cell for k in _RELATIONSHIP_FIELDS):
        return CellKind.NODE
    if _RELATIONSHIP_SELF.search(ref) and all(k in cell for k in _RELATIONSHIP_FIELDS):
        return CellKind.RELATIONSHIP
    return CellKind.SCALAR


def decode_cell(cell: Any) -> Any:
    kind = classify(cell)
    if kind is CellKind.NODE:
        return to_node(cell)
    if kind is CellKind.RELATIONSHIP:
        return to_relationship(cell)
    return cell


def interpret(result: QueryResult) -> list[Any]:
    """Rebuild entities and shape rows.

    A single-column result yields bare values; several columns yield one
    {column: value} mapping per row.
    """
    rows = [[decode_cell(cell) for cell in row] for row in result.data]
    if len(result.columns) == 1:
        return [row[0] for row in rows]
    return [dict(zip(result.columns, row)) for row in rows]

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from pydantic import BaseModel, Field

Direction = Literal["in", "out", "all"]
IndexKind = Literal["node", "relationship"]

DIRECTIONS: tuple[str, ...] = ("in", "out", "all")
INDEX_KINDS: tuple[str, ...] = ("node", "relationship")


@dataclass(frozen=True, slots=True)
class Node:
    """A graph vertex as the caller sees it.

    `id` is assigned by the store and is None until the node has been saved.
    It is kept apart from `properties` and never sent as one.
    """

    properties: dict[str, Any] = field(default_factory=dict)
    id: int | None = None

    def __getitem__(self, key: str) -> Any:
        return self.properties[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def with_properties(self, **updates: Any) -> Node:
        return replace(self, properties={**self.properties, **updates})

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.properties}


@dataclass(frozen=True, slots=True)
class Relationship:
    """A typed, directed edge between two saved nodes.

    start/end/type are fixed once created; only `properties` can be updated.
    """

    start: int
    end: int
    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    id: int | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "type": self.type,
            "properties": dict(self.properties),
        }


class IndexConfig(BaseModel):
    type: Literal["exact", "fulltext"] = "exact"
    provider: str = "lucene"


class Index(BaseModel):
    """A secondary index.

    Named (legacy) indexes carry `name`/`kind`/`config`; label indexes carry
    `label` and `property_keys`.
    """

    kind: IndexKind = "node"
    name: str | None = None
    config: IndexConfig | None = None
    template: str | None = None
    label: str | None = None
    property_keys: list[str] = Field(default_factory=list)


class QueryResult(BaseModel):
    """Tabular query result exactly as the store shaped it."""

    columns: list[str] = Field(default_factory=list)
    data: list[list[Any]] = Field(default_factory=list)

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

import pydantic

from .batch import BatchCoordinator, Operation
from .errors import DecodeError, QueryError, RequestError, ValidationError
from .indexes import IndexApi, LabelIndexApi
from .mapper import as_node, from_node, node_id, relationship_id, to_node, to_relationship
from .models import Direction, Node, QueryResult, Relationship
from .relationships import create_operation, traversal_operation
from .results import interpret
from .settings import GraphSettings
from .settings import settings as default_settings
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


class GraphClient:
    """Async client exposing the graph store as plain Python objects.

    Every CRUD operation takes either one item or a list/tuple of items. One
    item costs one request; a list costs one batch request and comes back as
    a list in input order.

    Usage:

        async with GraphClient("http://localhost:7474") as db:
            jon = await db.save({"name": "Jon", "age": 23})
            helge = await db.save({"name": "Helge"})
            await db.relate(jon, "coworker", helge)
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        transport: Transport | None = None,
        settings: GraphSettings | None = None,
    ):
        cfg = settings or default_settings
        if url:
            cfg = cfg.model_copy(update={"url": url})
        self.settings = cfg
        self.root = cfg.root

        self._transport = transport or HttpTransport(
            self.root,
            username=cfg.username,
            password=cfg.password,
            connect_timeout=cfg.connect_timeout,
            read_timeout=cfg.read_timeout,
            connect_retries=cfg.connect_retries,
        )
        self._batch = BatchCoordinator(self._transport)
        self._node_template = self.root + "/node/{id}"

        self.index = IndexApi(self._batch, root=self.root)
        self.schema = LabelIndexApi(self._batch)
        self.node = NodeApi(self)
        self.rel = RelationshipApi(self)

    async def __aenter__(self) -> GraphClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def call(self, path: str, method: str | None = None, body: Any = None) -> Any:
        """Send one raw request relative to the REST root."""
        return await self._batch.run_one(Operation.build(path, body, method))

    # --- nodes ---

    @staticmethod
    def _save_operation(value) -> Operation:
        node = as_node(value)
        if node.id is None:
            return Operation.build("node", from_node(node))
        return Operation.build(f"node/{node.id}/properties", from_node(node), method="PUT")

    @staticmethod
    def _saved(value, raw) -> Node:
        node = as_node(value)
        if node.id is None:
            return to_node(raw)
        # property replacement answers 204; the saved state is what we sent
        return Node(properties=dict(node.properties), id=node.id)

    async def save(self, node):
        """Create nodes without an id, replace the properties of those with one."""
        return await self._batch.dispatch(node, self._save_operation, self._saved)

    async def read(self, node):
        return await self._batch.dispatch(
            node,
            lambda v: Operation.build(f"node/{node_id(v)}"),
            lambda _v, raw: to_node(raw),
        )

    async def delete(self, node) -> None:
        await self._batch.dispatch(
            node,
            lambda v: Operation.build(f"node/{node_id(v)}", method="DELETE"),
            lambda _v, _raw: None,
        )

    # --- relationships ---

    async def relate(self, start, rel_type: str, end, properties: Mapping[str, Any] | None = None):
        """Create `start -[rel_type]-> end`; a list of ends creates one each."""
        return await self._batch.dispatch(
            end,
            lambda e: create_operation(start, rel_type, e, properties, node_template=self._node_template),
            lambda _e, raw: to_relationship(raw),
        )

    async def relationships(self, node, direction: Direction = "all", types=None):
        """Relationships of a node, or one list per node for a list of nodes."""
        return await self._batch.dispatch(
            node,
            lambda n: traversal_operation(n, direction, types),
            lambda _n, raw: [to_relationship(item) for item in raw or []],
        )

    # --- queries ---

    async def query_raw(self, query: str, params: Mapping[str, Any] | None = None) -> QueryResult:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        op = Operation.build("cypher", {"query": query, "params": dict(params or {})})
        try:
            raw = await self._batch.run_one(op)
        except RequestError as e:
            exception = e.body.get("exception") if isinstance(e.body, dict) else None
            logger.warning("query failed (%s): %s", exception or e.status, e.message)
            raise QueryError(e.message, exception=exception, status=e.status) from e
        try:
            return QueryResult.model_validate(raw)
        except pydantic.ValidationError as e:
            raise DecodeError("query response is not a columns/data table") from e

    async def query(self, query: str, params: Mapping[str, Any] | None = None) -> list[Any]:
        return interpret(await self.query_raw(query, params))

    async def find(self, predicate: Mapping[str, Any], *, any_match: bool = False) -> list[Any]:
        """Nodes whose properties equal all (or any) of the predicate's pairs."""
        if not predicate:
            raise ValidationError("find needs at least one property to match")
        clauses = []
        params: dict[str, Any] = {}
        for i, (key, value) in enumerate(predicate.items()):
            if not isinstance(key, str) or not key:
                raise ValidationError(f"property names must be non-empty strings, got {key!r}")
            escaped = key.replace("`", "``")
            clauses.append(f"n.`{escaped}`! = {{p{i}}}")
            params[f"p{i}"] = value
        joiner = " OR " if any_match else " AND "
        return await self.query(f"START n = node(*) WHERE {joiner.join(clauses)} RETURN n", params)


class NodeApi:
    def __init__(self, db: GraphClient):
        self._db = db
        self.index = IndexApi(db._batch, root=db.root, kind="node")

    async def save(self, node):
        return await self._db.save(node)

    async def read(self, node):
        return await self._db.read(node)

    async def delete(self, node) -> None:
        await self._db.delete(node)


class RelationshipApi:
    def __init__(self, db: GraphClient):
        self._db = db
        self._batch = db._batch
        self.index = IndexApi(db._batch, root=db.root, kind="relationship")

    async def create(self, start, rel_type: str, end, properties: Mapping[str, Any] | None = None):
        return await self._db.relate(start, rel_type, end, properties)

    async def read(self, rel):
        return await self._batch.dispatch(
            rel,
            lambda r: Operation.build(f"relationship/{relationship_id(r)}"),
            lambda _r, raw: to_relationship(raw),
        )

    @staticmethod
    def _update_operation(rel) -> Operation:
        if not isinstance(rel, Relationship):
            raise ValidationError(f"expected a Relationship, got {type(rel).__name__}")
        return Operation.build(
            f"relationship/{relationship_id(rel)}/properties", dict(rel.properties), method="PUT"
        )

    async def update(self, rel):
        """Replace a relationship's properties; start, end and type never change."""
        return await self._batch.dispatch(
            rel,
            self._update_operation,
            lambda r, _raw: replace(r, properties=dict(r.properties)),
        )

    async def delete(self, rel) -> None:
        await self._batch.dispatch(
            rel,
            lambda r: Operation.build(f"relationship/{relationship_id(r)}", method="DELETE"),
            lambda _r, _raw: None,
        )

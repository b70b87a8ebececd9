"""In-memory stand-in for the graph store's REST interface.

Implements the Transport protocol so the whole client runs without a server.
Batch responses come back in reverse submission order to make sure results
are matched by correlation token and not by position.
"""

from __future__ import annotations

import itertools
from typing import Any
from urllib.parse import unquote

import pytest

from graphmap.client import GraphClient
from graphmap.errors import RequestError
from graphmap.ids import id_from_uri
from graphmap.settings import GraphSettings

ROOT = "http://localhost:7474/db/data"


def _fail(status: int, message: str, exception: str = "NotFoundException"):
    raise RequestError(f"fake store: {message}", status=status, body={"message": message, "exception": exception})


class FakeStore:
    def __init__(self, root: str = ROOT, *, reverse_batches: bool = True):
        self.root = root
        self.reverse_batches = reverse_batches
        self.nodes: dict[int, dict[str, Any]] = {}
        self.rels: dict[int, dict[str, Any]] = {}
        self.indexes: dict[str, dict[str, dict[str, Any]]] = {"node": {}, "relationship": {}}
        self.label_indexes: dict[str, list[str]] = {}
        self.queries: dict[str, Any] = {}
        self.requests: list[tuple[str, str, Any]] = []
        self.closed = False
        self._node_ids = itertools.count(0)
        self._rel_ids = itertools.count(0)

    # --- Transport protocol ---

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        self.requests.append((method, path, body))
        if method == "POST" and path.strip("/") == "batch":
            return self._batch(body)
        return self.handle(method, path, body)

    async def aclose(self) -> None:
        self.closed = True

    # --- representations ---

    def node_rep(self, node_id: int) -> dict[str, Any]:
        base = f"{self.root}/node/{node_id}"
        return {
            "self": base,
            "data": dict(self.nodes[node_id]),
            "properties": f"{base}/properties",
            "outgoing_relationships": f"{base}/relationships/out",
            "incoming_relationships": f"{base}/relationships/in",
            "extensions": {},
        }

    def rel_rep(self, rel_id: int) -> dict[str, Any]:
        rel = self.rels[rel_id]
        base = f"{self.root}/relationship/{rel_id}"
        return {
            "self": base,
            "start": f"{self.root}/node/{rel['start']}",
            "end": f"{self.root}/node/{rel['end']}",
            "type": rel["type"],
            "data": dict(rel["data"]),
            "properties": f"{base}/properties",
            "extensions": {},
        }

    # --- routing ---

    def _batch(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        out = []
        for item in items:
            result = {"id": item["id"], "from": item["to"]}
            try:
                result["body"] = self.handle(item["method"], item["to"], item.get("body"))
                result["status"] = 200
            except RequestError as e:
                result["body"] = e.body
                result["status"] = e.status
            out.append(result)
        return list(reversed(out)) if self.reverse_batches else out

    def _node(self, raw: str) -> int:
        node_id = int(raw)
        if node_id not in self.nodes:
            _fail(404, f"Cannot find node with id [{node_id}] in database.", "NodeNotFoundException")
        return node_id

    def _rel(self, raw: str) -> int:
        rel_id = int(raw)
        if rel_id not in self.rels:
            _fail(404, f"Relationship [{rel_id}] not found.", "RelationshipNotFoundException")
        return rel_id

    def handle(self, method: str, path: str, body: Any) -> Any:
        stripped = path.strip("/")
        parts = [unquote(p) for p in stripped.split("/")] if stripped else []

        if not parts and method == "GET":
            return {"node": f"{self.root}/node", "batch": f"{self.root}/batch", "cypher": f"{self.root}/cypher"}

        head = parts[0] if parts else ""
        if head == "node":
            return self._handle_node(method, parts[1:], body)
        if head == "relationship":
            return self._handle_relationship(method, parts[1:], body)
        if head == "cypher" and method == "POST":
            return self._cypher(body)
        if head == "index":
            return self._handle_index(method, parts[1:], body)
        if head == "schema" and parts[1:2] == ["index"]:
            return self._handle_schema(method, parts[2:], body)
        _fail(404, f"no route for {method} /{stripped}")

    def _handle_node(self, method, parts, body):
        if not parts and method == "POST":
            node_id = next(self._node_ids)
            self.nodes[node_id] = dict(body or {})
            return self.node_rep(node_id)
        if len(parts) == 1:
            node_id = self._node(parts[0])
            if method == "GET":
                return self.node_rep(node_id)
            if method == "DELETE":
                if any(node_id in (r["start"], r["end"]) for r in self.rels.values()):
                    _fail(409, f"node {node_id} still has relationships", "OperationFailureException")
                del self.nodes[node_id]
                return None
        if len(parts) == 2 and parts[1] == "properties" and method == "PUT":
            self.nodes[self._node(parts[0])] = dict(body or {})
            return None
        if len(parts) == 2 and parts[1] == "relationships" and method == "POST":
            start = self._node(parts[0])
            try:
                end = id_from_uri(body["to"])
            except Exception:
                _fail(400, "invalid 'to' reference", "BadInputException")
            self._node(str(end))
            rel_id = next(self._rel_ids)
            self.rels[rel_id] = {"start": start, "end": end, "type": body["type"], "data": dict(body.get("data") or {})}
            return self.rel_rep(rel_id)
        if len(parts) in (3, 4) and parts[1] == "relationships" and method == "GET":
            node_id = self._node(parts[0])
            direction = parts[2]
            types = parts[3].split("&") if len(parts) == 4 else None
            out = []
            for rel_id, rel in self.rels.items():
                if direction == "out" and rel["start"] != node_id:
                    continue
                if direction == "in" and rel["end"] != node_id:
                    continue
                if direction == "all" and node_id not in (rel["start"], rel["end"]):
                    continue
                if types and rel["type"] not in types:
                    continue
                out.append(self.rel_rep(rel_id))
            return out
        _fail(404, f"no node route for {method} {parts}")

    def _handle_relationship(self, method, parts, body):
        rel_id = self._rel(parts[0])
        if len(parts) == 1 and method == "GET":
            return self.rel_rep(rel_id)
        if len(parts) == 1 and method == "DELETE":
            del self.rels[rel_id]
            return None
        if len(parts) == 2 and parts[1] == "properties" and method == "PUT":
            self.rels[rel_id]["data"] = dict(body or {})
            return None
        _fail(404, f"no relationship route for {method} {parts}")

    def _cypher(self, body):
        answer = self.queries.get(body["query"])
        if answer is None:
            _fail(400, f"Unknown query: {body['query']}", "SyntaxException")
        if callable(answer):
            return answer(body.get("params") or {})
        return answer

    def _entity_rep(self, kind: str, uri: str) -> dict[str, Any]:
        entity_id = id_from_uri(uri)
        if kind == "node":
            return self.node_rep(self._node(str(entity_id)))
        return self.rel_rep(self._rel(str(entity_id)))

    def _handle_index(self, method, parts, body):
        kind = parts[0] if parts else ""
        if kind not in self.indexes:
            _fail(400, f"unknown index kind {kind!r}", "BadInputException")
        indexes = self.indexes[kind]
        if len(parts) == 1 and method == "POST":
            config = body.get("config") or {"type": "exact", "provider": "lucene"}
            indexes.setdefault(body["name"], {"config": config, "entries": {}})
            return {
                "template": f"{self.root}/index/{kind}/{body['name']}/{{key}}/{{value}}",
                **config,
            }
        if len(parts) == 1 and method == "GET":
            if not indexes:
                return None
            return {
                name: {"template": f"{self.root}/index/{kind}/{name}/{{key}}/{{value}}", **idx["config"]}
                for name, idx in indexes.items()
            }
        if len(parts) == 2 and method == "DELETE":
            if parts[1] not in indexes:
                _fail(404, f"no index {parts[1]}")
            del indexes[parts[1]]
            return None
        if len(parts) == 2 and method == "POST":
            idx = indexes.setdefault(parts[1], {"config": {"type": "exact", "provider": "lucene"}, "entries": {}})
            rep = self._entity_rep(kind, body["uri"])
            idx["entries"].setdefault((body["key"], str(body["value"])), []).append(body["uri"])
            return {**rep, "indexed": f"{self.root}/index/{kind}/{parts[1]}/{body['key']}/{body['value']}"}
        if len(parts) == 4 and method == "GET":
            if parts[1] not in indexes:
                _fail(404, f"no index {parts[1]}")
            uris = indexes[parts[1]]["entries"].get((parts[2], parts[3]), [])
            return [self._entity_rep(kind, uri) for uri in uris]
        _fail(404, f"no index route for {method} {parts}")

    def _handle_schema(self, method, parts, body):
        label = parts[0]
        if len(parts) == 1 and method == "POST":
            key = body["property_keys"][0]
            self.label_indexes.setdefault(label, []).append(key)
            return {"label": label, "property_keys": [key]}
        if len(parts) == 1 and method == "GET":
            return [{"label": label, "property_keys": [k]} for k in self.label_indexes.get(label, [])]
        if len(parts) == 2 and method == "DELETE":
            self.label_indexes.get(label, []).remove(parts[1])
            return None
        _fail(404, f"no schema route for {method} {parts}")


class NeverCalledTransport:
    """Fails the test if anything reaches the network."""

    async def request(self, method, path, body=None):
        raise AssertionError(f"unexpected request {method} {path}")

    async def aclose(self) -> None:
        pass


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def db(store: FakeStore) -> GraphClient:
    return GraphClient(transport=store, settings=GraphSettings(url="http://localhost:7474", endpoint="/db/data"))


@pytest.fixture
def offline_db() -> GraphClient:
    return GraphClient(transport=NeverCalledTransport(), settings=GraphSettings(url="http://localhost:7474"))

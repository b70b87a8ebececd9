from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import pydantic

from .batch import BatchCoordinator, Operation
from .errors import InvalidIndexTargetError, ValidationError
from .ids import uri_from_id
from .mapper import node_id, relationship_id, to_node, to_relationship
from .models import INDEX_KINDS, Index, IndexConfig, IndexKind, Node, Relationship

logger = logging.getLogger(__name__)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


def _check_name(name: Any, what: str = "index name") -> str:
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{what} must be a non-empty string, got {name!r}")
    return name


def check_kind(kind: Any) -> IndexKind:
    if kind not in INDEX_KINDS:
        raise InvalidIndexTargetError(f"index target must be 'node' or 'relationship', got {kind!r}")
    return kind


class IndexApi:
    """Named (key/value) indexes over nodes or relationships.

    An instance may be bound to one target kind (`db.node.index`,
    `db.rel.index`); the unbound `db.index` defaults to nodes and infers the
    kind of indexed entities from their type.
    """

    def __init__(self, batch: BatchCoordinator, *, root: str, kind: IndexKind | None = None):
        self._batch = batch
        self._templates = {
            "node": root + "/node/{id}",
            "relationship": root + "/relationship/{id}",
        }
        self._bound = check_kind(kind) if kind is not None else None

    def _target(self, kind: str | None) -> IndexKind:
        return check_kind(kind if kind is not None else (self._bound or "node"))

    def _entity_target(self, entity: Any, kind: str | None) -> IndexKind:
        known = kind if kind is not None else self._bound
        if known is None:
            return "relationship" if isinstance(entity, Relationship) else "node"
        known = check_kind(known)
        if known == "node" and isinstance(entity, Relationship):
            raise ValidationError("cannot add a relationship to a node index")
        if known == "relationship" and isinstance(entity, Node):
            raise ValidationError("cannot add a node to a relationship index")
        return known

    @staticmethod
    def _decode(target: str, raw: Any):
        return to_relationship(raw) if target == "relationship" else to_node(raw)

    async def create(self, name, config: IndexConfig | Mapping[str, Any] | None = None, *, kind: str | None = None):
        target = self._target(kind)
        try:
            cfg = IndexConfig.model_validate(config) if config is not None else None
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid index config: {config!r}") from e

        def build(index_name):
            body: dict[str, Any] = {"name": _check_name(index_name)}
            if cfg is not None:
                body["config"] = cfg.model_dump()
            return Operation.build(f"index/{target}", body)

        def decode(index_name, raw):
            raw = raw or {}
            return Index(
                kind=target,
                name=index_name,
                config=IndexConfig(
                    type=raw.get("type") or (cfg.type if cfg else "exact"),
                    provider=raw.get("provider") or (cfg.provider if cfg else "lucene"),
                ),
                template=raw.get("template"),
            )

        return await self._batch.dispatch(name, build, decode)

    async def add(self, name: str, entity, key: str, value: Any, *, kind: str | None = None):
        """Index `entity` (or each of a list of entities) under key=value."""
        _check_name(name)
        _check_name(key, "index key")

        def build(item):
            target = self._entity_target(item, kind)
            entity_id = relationship_id(item) if target == "relationship" else node_id(item)
            body = {"uri": uri_from_id(self._templates[target], entity_id), "key": key, "value": value}
            return Operation.build(f"index/{target}/{_segment(name)}", body)

        def decode(item, raw):
            return self._decode(self._entity_target(item, kind), raw)

        return await self._batch.dispatch(entity, build, decode)

    __call__ = add

    async def read(self, name: str, key: str, value: Any, *, kind: str | None = None):
        """Entities indexed under key=value.

        Exactly one match is returned bare; otherwise a list (possibly empty).
        """
        target = self._target(kind)
        path = f"index/{target}/{_segment(_check_name(name))}/{_segment(key)}/{_segment(value)}"
        raw = await self._batch.run_one(Operation.build(path))
        found = [self._decode(target, item) for item in raw or []]
        return found[0] if len(found) == 1 else found

    async def list(self, *, kind: str | None = None) -> list[Index]:
        target = self._target(kind)
        raw = await self._batch.run_one(Operation.build(f"index/{target}"))
        return [
            Index(
                kind=target,
                name=index_name,
                config=IndexConfig(
                    type=meta.get("type") or "exact",
                    provider=meta.get("provider") or "lucene",
                ),
                template=meta.get("template"),
            )
            for index_name, meta in (raw or {}).items()
        ]

    async def delete(self, name: str, *, kind: str | None = None) -> None:
        target = self._target(kind)
        await self._batch.run_one(Operation.build(f"index/{target}/{_segment(_check_name(name))}", method="DELETE"))
        logger.debug("dropped %s index %s", target, name)


class LabelIndexApi:
    """Property indexes declared per node label."""

    def __init__(self, batch: BatchCoordinator):
        self._batch = batch

    @staticmethod
    def _to_index(raw: Mapping[str, Any]) -> Index:
        return Index(kind="node", label=raw.get("label"), property_keys=list(raw.get("property_keys") or []))

    async def create(self, label: str, key):
        """Index `key` (or each key of a list) on nodes labelled `label`."""
        path = f"schema/index/{_segment(_check_name(label, 'label'))}"

        def build(k):
            return Operation.build(path, {"property_keys": [_check_name(k, "property key")]})

        return await self._batch.dispatch(key, build, lambda _k, raw: self._to_index(raw))

    async def list(self, label: str) -> list[Index]:
        raw = await self._batch.run_one(Operation.build(f"schema/index/{_segment(_check_name(label, 'label'))}"))
        return [self._to_index(item) for item in raw or []]

    async def drop(self, label: str, key: str) -> None:
        path = f"schema/index/{_segment(_check_name(label, 'label'))}/{_segment(_check_name(key, 'property key'))}"
        await self._batch.run_one(Operation.build(path, method="DELETE"))

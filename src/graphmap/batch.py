"""Single-request vs batch-request execution.

A batch is one POST to `batch` carrying every sub-operation tagged with a
correlation token equal to its input position::

    [{"id": 0, "method": "POST", "to": "/node", "body": {...}}, ...]

The store answers with one item per sub-operation, each echoing its token.
Results are written into a slot list by token, never by response position,
because the store does not promise to keep submission order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from .errors import BatchError, DecodeError
from .transport import Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EMPTY = object()


def is_many(value: Any) -> bool:
    """True when a public operation was handed several items at once."""
    return isinstance(value, (list, tuple))


@dataclass(frozen=True, slots=True)
class Operation:
    """One logical request: method, path relative to the REST root, body."""

    method: str
    path: str
    body: Any = None

    @classmethod
    def build(cls, path: str, body: Any = None, method: str | None = None) -> Operation:
        if method is None:
            method = "GET" if body is None else "POST"
        return cls(method=method.upper(), path=path.lstrip("/"), body=body)

    def as_batch_item(self, token: int) -> dict[str, Any]:
        item: dict[str, Any] = {"id": token, "method": self.method, "to": "/" + self.path}
        if self.body is not None:
            item["body"] = self.body
        return item


def demultiplex(response: Any, size: int) -> list[Any]:
    """Put each sub-result back at the position of the operation that made it."""
    if not isinstance(response, list):
        raise DecodeError(f"batch response must be a list, got {type(response).__name__}")

    slots: list[Any] = [_EMPTY] * size
    for item in response:
        token = item.get("id") if isinstance(item, dict) else None
        if isinstance(token, bool) or not isinstance(token, int) or not 0 <= token < size:
            raise DecodeError(f"batch result carries an unknown correlation token: {token!r}")
        if slots[token] is not _EMPTY:
            raise DecodeError(f"batch result token {token} appears twice")

        status = item.get("status")
        if status is not None and (isinstance(status, bool) or not isinstance(status, int)):
            raise DecodeError(f"batch result {token} carries a non-numeric status: {status!r}")
        if status is not None and not 200 <= status < 300:
            logger.debug("batch sub-operation %d failed with %s", token, status)
            raise BatchError(
                f"batch operation {token} ({item.get('from', '?')}) returned {status}",
                token=token,
                status=status,
                body=item.get("body"),
            )
        slots[token] = item.get("body")

    missing = [i for i, slot in enumerate(slots) if slot is _EMPTY]
    if missing:
        raise DecodeError(f"batch response has no result for operations {missing}")
    return slots


class BatchCoordinator:
    def __init__(self, transport: Transport):
        self._transport = transport

    async def run_one(self, op: Operation) -> Any:
        return await self._transport.request(op.method, op.path, op.body)

    async def run_many(self, ops: Sequence[Operation]) -> list[Any]:
        if not ops:
            return []
        payload = [op.as_batch_item(token) for token, op in enumerate(ops)]
        logger.debug("submitting batch with %d operations", len(payload))
        response = await self._transport.request("POST", "batch", payload)
        return demultiplex(response, len(payload))

    async def dispatch(
        self,
        items: Any,
        build: Callable[[Any], Operation],
        decode: Callable[[Any, Any], T],
    ) -> T | list[T]:
        """Run `items` as one request or as a batch, branching once.

        `build` turns an input item into its Operation; `decode(item, body)`
        turns the item and the store's answer into the caller's result.
        """
        if is_many(items):
            return await self._dispatch_many(list(items), build, decode)
        return await self._dispatch_one(items, build, decode)

    async def _dispatch_one(self, item, build, decode):
        return decode(item, await self.run_one(build(item)))

    async def _dispatch_many(self, items, build, decode):
        ops = [build(item) for item in items]
        bodies = await self.run_many(ops)
        return [decode(item, body) for item, body in zip(items, bodies)]

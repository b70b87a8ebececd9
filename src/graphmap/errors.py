from __future__ import annotations

from typing import Any


class GraphError(Exception):
    """Base class for every error raised by graphmap."""


class MalformedReferenceError(GraphError, ValueError):
    """A self/start/end reference in a store response carries no usable id."""


class ValidationError(GraphError, ValueError):
    """Caller input rejected before any request was sent."""


class InvalidIndexTargetError(ValidationError):
    pass


class DecodeError(GraphError):
    """A store response is missing fields the mapper needs."""


class RequestError(GraphError):
    """A request failed in the transport or came back with a non-2xx status."""

    def __init__(self, message: str, *, status: int | None = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def message(self) -> str:
        if isinstance(self.body, dict) and self.body.get("message"):
            return str(self.body["message"])
        return str(self)


class BatchError(RequestError):
    """One sub-operation of a batch failed; the whole batch is reported failed."""

    def __init__(self, message: str, *, token: int, status: int | None = None, body: Any = None):
        super().__init__(message, status=status, body=body)
        self.token = token


class QueryError(GraphError):
    """The store rejected or failed to execute a query."""

    def __init__(self, message: str, *, exception: str | None = None, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.exception = exception
        self.status = status

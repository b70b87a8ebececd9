"""
graphmap - plain Python objects over a REST graph database.

Nodes, relationships, indexes and query results are mapped to and from the
store's JSON representations; lists of items are sent as one batch request.
"""

from .client import GraphClient
from .errors import (
    BatchError,
    DecodeError,
    GraphError,
    InvalidIndexTargetError,
    MalformedReferenceError,
    QueryError,
    RequestError,
    ValidationError,
)
from .models import Index, IndexConfig, Node, QueryResult, Relationship
from .settings import GraphSettings

__version__ = "0.1.0"

__all__ = [
    "GraphClient",
    "GraphSettings",
    "Node",
    "Relationship",
    "Index",
    "IndexConfig",
    "QueryResult",
    "GraphError",
    "MalformedReferenceError",
    "ValidationError",
    "InvalidIndexTargetError",
    "DecodeError",
    "QueryError",
    "RequestError",
    "BatchError",
]

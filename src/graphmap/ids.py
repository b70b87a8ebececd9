from __future__ import annotations

import re

from .errors import MalformedReferenceError, ValidationError

_TRAILING_ID = re.compile(r"[0-9]+")


def id_from_uri(uri: str) -> int:
    """Return the numeric id encoded in the last path segment of ``uri``.

    ``http://localhost:7474/db/data/node/12`` -> ``12``. A trailing slash is
    tolerated; anything else that is not a non-negative integer is a protocol
    mismatch.
    """
    if not isinstance(uri, str):
        raise MalformedReferenceError(f"expected a reference string, got {uri!r}")
    segment = uri.rstrip("/").rsplit("/", 1)[-1]
    if not _TRAILING_ID.fullmatch(segment):
        raise MalformedReferenceError(f"no entity id at the end of {uri!r}")
    return int(segment)


def uri_from_id(template: str, entity_id: int) -> str:
    """Substitute ``entity_id`` into ``template`` (``.../node/{id}``)."""
    if isinstance(entity_id, bool) or not isinstance(entity_id, int) or entity_id < 0:
        raise ValidationError(f"entity id must be a non-negative integer, got {entity_id!r}")
    return template.format(id=entity_id)

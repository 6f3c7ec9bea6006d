from __future__ import annotations

from typing import TypeAlias

Primitive: TypeAlias = str | int | float | bool | None
QueryKey: TypeAlias = tuple[Primitive, ...]

_PRIMITIVES = (str, int, float, bool, type(None))


def query_key(resource: str, *params: Primitive) -> QueryKey:
    """Build a QueryKey: resource name followed by its parameters."""
    if not isinstance(resource, str) or not resource:
        raise TypeError(f"QueryKey resource must be a non-empty str, got {resource!r}")
    for p in params:
        if not isinstance(p, _PRIMITIVES):
            raise TypeError(f"QueryKey parts must be primitive values, got {type(p).__name__}")
    return (resource, *params)


def has_prefix(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix

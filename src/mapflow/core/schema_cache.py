# src/mapflow/core/schema_cache.py
"""Session-scoped caching in front of a schema provider.

Field lists are fetched lazily, the first time an object is needed, and kept
for the life of the cache. Failures are never cached: the next lookup of a
failed object asks the provider again.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from mapflow.contracts.collaborators import SchemaProvider
from mapflow.contracts.errors import CollaboratorError, SchemaFetchError
from mapflow.contracts.schema import FieldInfo

logger = structlog.get_logger(__name__)


class CachingSchemaProvider:
    """SchemaProvider wrapper that remembers successful lookups per object name."""

    def __init__(self, provider: SchemaProvider) -> None:
        self._provider = provider
        self._cache: dict[str, tuple[FieldInfo, ...]] = {}

    def get_fields(self, object_name: str) -> list[FieldInfo]:
        """Return the object's fields, fetching them on first use.

        Raises:
            SchemaFetchError: If the provider fails; provider errors that
                are not already collaborator errors are wrapped
        """
        cached = self._cache.get(object_name)
        if cached is not None:
            return list(cached)

        try:
            fields = self._provider.get_fields(object_name)
        except CollaboratorError:
            raise
        except Exception as exc:
            raise SchemaFetchError(f"Failed to fetch fields for {object_name}: {exc}") from exc

        self._cache[object_name] = tuple(fields)
        logger.debug("schema_cached", object_name=object_name, field_count=len(fields))
        return list(fields)

    def is_cached(self, object_name: str) -> bool:
        return object_name in self._cache

    def field_types(self, object_name: str) -> dict[str, str] | None:
        """Field types of an already-cached object, without fetching."""
        cached = self._cache.get(object_name)
        if cached is None:
            return None
        return {field.name: field.type for field in cached}

    def invalidate(self, object_name: str | None = None) -> None:
        """Forget one object's fields, or everything when no name is given."""
        if object_name is None:
            self._cache.clear()
        else:
            self._cache.pop(object_name, None)


class StaticSchemaProvider:
    """Serves field lists from a fixed mapping (e.g., embedded in a document)."""

    def __init__(self, objects: Mapping[str, Sequence[FieldInfo]]) -> None:
        self._objects = {name: tuple(fields) for name, fields in objects.items()}

    def get_fields(self, object_name: str) -> list[FieldInfo]:
        if object_name not in self._objects:
            raise SchemaFetchError(f"Unknown object '{object_name}'")
        return list(self._objects[object_name])


class NoSchemaProvider:
    """Placeholder used when no schema source is configured."""

    def get_fields(self, object_name: str) -> list[FieldInfo]:
        raise SchemaFetchError(f"No schema provider is configured; cannot fetch fields for '{object_name}'")

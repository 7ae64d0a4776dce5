# src/mapflow/contracts/collaborators.py
"""Protocols for the external collaborators of the core.

The core never talks to the record store, the persistence service, or the
identity provider directly. It depends on these protocols; concrete
adapters live in mapflow.clients and mapflow.core.schema_cache.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from mapflow.contracts.records import MappingRecord, SaveReceipt
from mapflow.contracts.schema import FieldInfo


@runtime_checkable
class SchemaProvider(Protocol):
    """Supplies field metadata for record-store objects."""

    def get_fields(self, object_name: str) -> list[FieldInfo]:
        """Return the field list of an object.

        Raises:
            SchemaFetchError: If the metadata cannot be fetched
        """
        ...


@runtime_checkable
class PersistenceBackend(Protocol):
    """Stores compiled mapping records for a form version."""

    def save(
        self,
        records: Sequence[MappingRecord],
        *,
        form_version_id: str,
        credential: str,
    ) -> SaveReceipt:
        """Persist records.

        Raises:
            PersistenceError: If the backend rejects or fails the save
        """
        ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies the opaque bearer credential attached to persistence calls.

    Refresh and expiry handling belong to the implementation.
    """

    def bearer_token(self) -> str:
        """Return a bearer token.

        Raises:
            CredentialError: If no credential is available
        """
        ...

# src/mapflow/clients/__init__.py
"""Concrete collaborator adapters (HTTP services, credentials)."""

from mapflow.clients.credentials import EnvironmentCredentialProvider, StaticCredentialProvider
from mapflow.clients.http import HttpPersistenceBackend, HttpSchemaProvider

__all__ = [
    "EnvironmentCredentialProvider",
    "HttpPersistenceBackend",
    "HttpSchemaProvider",
    "StaticCredentialProvider",
]

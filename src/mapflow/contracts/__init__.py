# src/mapflow/contracts/__init__.py
"""Shared contracts: enums, identifiers, errors, records, collaborator protocols.

Leaf package: nothing here imports from mapflow.core.
"""

from mapflow.contracts.collaborators import (
    CredentialProvider,
    PersistenceBackend,
    SchemaProvider,
)
from mapflow.contracts.enums import (
    BranchMode,
    ConnectionRejection,
    FormatterCategory,
    LogicType,
    NodeKind,
    SortOrder,
)
from mapflow.contracts.errors import (
    STALE_LOOP_COLLECTION,
    CollaboratorError,
    CompileError,
    ConnectionRejectedError,
    CredentialError,
    GraphStructureError,
    GraphWarning,
    MapflowError,
    NodeConfigError,
    PersistenceError,
    SchemaFetchError,
)
from mapflow.contracts.records import MappingRecord, SaveReceipt
from mapflow.contracts.schema import FieldInfo, FormField
from mapflow.contracts.types import (
    END_NODE_ID,
    START_NODE_ID,
    BranchGroupID,
    EdgeID,
    NodeID,
)

__all__ = [
    "END_NODE_ID",
    "STALE_LOOP_COLLECTION",
    "START_NODE_ID",
    "BranchGroupID",
    "BranchMode",
    "CollaboratorError",
    "CompileError",
    "ConnectionRejectedError",
    "ConnectionRejection",
    "CredentialError",
    "CredentialProvider",
    "EdgeID",
    "FieldInfo",
    "FormField",
    "FormatterCategory",
    "GraphStructureError",
    "GraphWarning",
    "LogicType",
    "MapflowError",
    "MappingRecord",
    "NodeConfigError",
    "NodeID",
    "NodeKind",
    "PersistenceBackend",
    "PersistenceError",
    "SaveReceipt",
    "SchemaFetchError",
    "SchemaProvider",
    "SortOrder",
]

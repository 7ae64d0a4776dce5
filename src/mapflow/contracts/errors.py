# src/mapflow/contracts/errors.py
"""Error taxonomy for graph editing, node validation, and compilation.

Every error here is recoverable: the graph stays editable and unchanged
after any of them is raised. Warnings are plain records rather than
exceptions because they never block an operation.
"""

from __future__ import annotations

from dataclasses import dataclass

from mapflow.contracts.enums import ConnectionRejection


class MapflowError(Exception):
    """Base class for all mapflow errors."""


# =============================================================================
# Structural graph errors
# =============================================================================


class GraphStructureError(MapflowError, ValueError):
    """Raised when a mutation or a loaded document breaks graph structure."""


class ConnectionRejectedError(GraphStructureError):
    """Raised when a proposed edge is not allowed.

    Attributes:
        reason: Machine-readable rejection code
        source: Proposed source node ID
        target: Proposed target node ID
    """

    def __init__(self, reason: ConnectionRejection, message: str, *, source: str, target: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.source = source
        self.target = target


# =============================================================================
# Configuration errors
# =============================================================================


class NodeConfigError(MapflowError, ValueError):
    """Raised when a node's configuration fails save-time validation.

    Scoped to a single node: only that node's save is blocked.
    """

    def __init__(self, node_id: str, message: str) -> None:
        super().__init__(message)
        self.node_id = node_id
        self.message = message


class CompileError(MapflowError):
    """Raised when the whole graph cannot be compiled into mapping records."""

    def __init__(self, message: str, *, node_id: str | None = None) -> None:
        super().__init__(message)
        self.node_id = node_id


# =============================================================================
# Collaborator errors
# =============================================================================


class CollaboratorError(MapflowError):
    """Raised when an external collaborator fails.

    The collaborator's message is propagated verbatim. Nothing is retried
    and negative results are never cached.
    """


class SchemaFetchError(CollaboratorError):
    """Raised when field metadata for a record-store object cannot be fetched."""


class PersistenceError(CollaboratorError):
    """Raised when compiled mapping records cannot be persisted."""


class CredentialError(CollaboratorError):
    """Raised when no bearer credential is available for persistence."""


# =============================================================================
# Warnings
# =============================================================================


@dataclass(frozen=True, slots=True)
class GraphWarning:
    """Non-fatal warning raised while reconciling the graph after a change.

    Unlike GraphStructureError, warnings don't block the mutation. They
    report state that was repaired (e.g., a stale loop collection
    reference that was cleared).
    """

    code: str
    message: str
    node_ids: tuple[str, ...]


STALE_LOOP_COLLECTION = "stale_loop_collection"
"""Warning code: a Loop's collection no longer names an ancestor Find node"""

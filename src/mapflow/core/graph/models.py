# src/mapflow/core/graph/models.py
"""Node, edge, and placement records held by the graph store."""

from __future__ import annotations

from dataclasses import dataclass

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.types import BranchGroupID, EdgeID, NodeID
from mapflow.core.nodes.configs import NodeConfig


@dataclass(frozen=True, slots=True)
class Position:
    """Canvas coordinates. Only used to place synthesized nodes."""

    x: float = 0.0
    y: float = 0.0

    def midpoint(self, other: Position) -> Position:
        return Position((self.x + other.x) / 2, (self.y + other.y) / 2)


@dataclass(frozen=True, slots=True)
class Node:
    """A node in the workflow graph.

    ``order``, ``level``, ``label`` and ``display_label`` are derived by
    the level/order assigner after every structural change and are never
    edited directly.
    """

    id: NodeID
    kind: NodeKind
    position: Position
    config: NodeConfig
    order: int | None = None
    level: int | None = None
    label: str = ""
    display_label: str = ""

    @property
    def name(self) -> str:
        """Best name for user-facing messages."""
        return self.display_label or self.label or self.id


@dataclass(frozen=True, slots=True)
class Edge:
    """A directed edge. Branch edges share a ``branch_group_id``."""

    id: EdgeID
    source: NodeID
    target: NodeID
    branch_group_id: BranchGroupID | None = None

    @property
    def is_branch(self) -> bool:
        return self.branch_group_id is not None


@dataclass(frozen=True, slots=True)
class Placement:
    """Derived ordering data for one node."""

    order: int
    level: int
    label: str
    display_label: str

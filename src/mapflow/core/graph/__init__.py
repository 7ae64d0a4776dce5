# src/mapflow/core/graph/__init__.py
"""Workflow graph: store, connection rules, cycle guard, ordering."""

from mapflow.core.graph.models import Edge, Node, Placement, Position
from mapflow.core.graph.ordering import apply_placements, assign_positions, recompute
from mapflow.core.graph.rules import PATH_BRANCH_LIMIT, ConnectionPlan, check_structure, plan_connection
from mapflow.core.graph.store import GraphStore

__all__ = [
    "PATH_BRANCH_LIMIT",
    "ConnectionPlan",
    "Edge",
    "GraphStore",
    "Node",
    "Placement",
    "Position",
    "apply_placements",
    "assign_positions",
    "check_structure",
    "plan_connection",
    "recompute",
]

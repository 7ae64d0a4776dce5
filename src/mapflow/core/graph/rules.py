# src/mapflow/core/graph/rules.py
"""Connection rule engine and whole-graph structural checks.

``plan_connection`` decides whether a proposed edge is legal and, for Path
sources, synthesizes the Condition node that guards the new branch. It
never mutates the store: the caller applies the returned plan inside a
transaction. ``check_structure`` verifies the same rules over a complete
graph, for documents loaded from disk.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from mapflow.contracts.enums import BranchMode, ConnectionRejection, NodeKind
from mapflow.contracts.errors import ConnectionRejectedError, GraphStructureError
from mapflow.contracts.types import END_NODE_ID, START_NODE_ID, BranchGroupID, EdgeID, NodeID
from mapflow.core.graph.cycles import find_cycle, would_create_cycle
from mapflow.core.graph.models import Edge, Node
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.configs import ConditionConfig

# A Path fans out to at most this many guarded branches
PATH_BRANCH_LIMIT = 2


def _short_token() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True, slots=True)
class ConnectionPlan:
    """Accepted connection: the edges to insert and any synthesized guard."""

    edges: tuple[Edge, ...]
    synthesized: Node | None = None


def edge_id_for(source: str, target: str) -> EdgeID:
    return EdgeID(f"e{source}-{target}")


def _reject(reason: ConnectionRejection, message: str, source: str, target: str) -> ConnectionRejectedError:
    return ConnectionRejectedError(reason, message, source=source, target=target)


def path_branches(store: GraphStore, path_id: str) -> list[tuple[Edge, Edge]]:
    """Branches of a Path as ``(path -> guard, guard -> target)`` edge pairs."""
    branches: list[tuple[Edge, Edge]] = []
    for first in store.outgoing(path_id):
        if first.branch_group_id is None:
            continue
        second = [edge for edge in store.outgoing(first.target) if edge.branch_group_id == first.branch_group_id]
        if second:
            branches.append((first, second[0]))
    return branches


def plan_connection(
    store: GraphStore,
    source_id: str,
    target_id: str,
    *,
    token: Callable[[], str] = _short_token,
) -> ConnectionPlan:
    """Decide whether ``source -> target`` may be added.

    Args:
        store: Current graph
        source_id: Proposed edge source
        target_id: Proposed edge target
        token: Supplies random suffixes for synthesized IDs

    Returns:
        The edges (and synthesized Condition, for Path sources) to insert

    Raises:
        ConnectionRejectedError: If the connection breaks a graph rule
    """
    for node_id in (source_id, target_id):
        if not store.has_node(node_id):
            raise _reject(ConnectionRejection.UNKNOWN_NODE, f"Node '{node_id}' does not exist.", source_id, target_id)
    if source_id == target_id:
        raise _reject(ConnectionRejection.SELF_LOOP, "Cannot connect a node to itself.", source_id, target_id)
    if target_id == START_NODE_ID:
        raise _reject(ConnectionRejection.INTO_START, "The start node cannot have incoming connections.", source_id, target_id)
    if source_id == END_NODE_ID:
        raise _reject(ConnectionRejection.OUT_OF_END, "The end node cannot have outgoing connections.", source_id, target_id)
    if would_create_cycle(store.graph, NodeID(source_id), NodeID(target_id)):
        raise _reject(ConnectionRejection.CYCLE, "Cannot create a connection that forms a cycle.", source_id, target_id)

    source = store.get_node(source_id)
    if source.kind != NodeKind.PATH:
        if store.outgoing(source_id):
            raise _reject(
                ConnectionRejection.SUCCESSOR_TAKEN,
                "Each node can have only one outgoing connection, except Path nodes.",
                source_id,
                target_id,
            )
        return ConnectionPlan(edges=(Edge(edge_id_for(source_id, target_id), NodeID(source_id), NodeID(target_id)),))

    branches = path_branches(store, source_id)
    if any(second.target == target_id for _, second in branches):
        raise _reject(
            ConnectionRejection.BRANCH_EXISTS,
            "This Path node is already connected to the target node.",
            source_id,
            target_id,
        )
    if len(store.outgoing(source_id)) >= PATH_BRANCH_LIMIT:
        raise _reject(
            ConnectionRejection.BRANCH_LIMIT,
            f"Path nodes can have at most {PATH_BRANCH_LIMIT} outgoing branches.",
            source_id,
            target_id,
        )
    return _synthesize_branch(store, source, store.get_node(target_id), len(branches) + 1, token)


def _synthesize_branch(
    store: GraphStore,
    path: Node,
    target: Node,
    branch_number: int,
    token: Callable[[], str],
) -> ConnectionPlan:
    guard_id = NodeID(f"{path.id}_cond_{branch_number}_{token()}")
    while store.has_node(guard_id):
        guard_id = NodeID(f"{path.id}_cond_{branch_number}_{token()}")
    taken_groups = {edge.branch_group_id for edge in store.edges()}
    group_id = BranchGroupID(f"branch_{token()}")
    while group_id in taken_groups:
        group_id = BranchGroupID(f"branch_{token()}")

    guard = Node(
        id=guard_id,
        kind=NodeKind.CONDITION,
        position=path.position.midpoint(target.position),
        config=ConditionConfig(branch_mode=BranchMode.RULES, path_node_id=path.id, target_node_id=target.id),
    )
    edges = (
        Edge(edge_id_for(path.id, guard_id), path.id, guard_id, group_id),
        Edge(edge_id_for(guard_id, target.id), guard_id, target.id, group_id),
    )
    return ConnectionPlan(edges=edges, synthesized=guard)


def check_structure(store: GraphStore) -> None:
    """Verify every structural invariant of a complete graph.

    Checks that both sentinels exist with the right kinds, nothing enters
    ``start`` or leaves ``end``, the graph is acyclic, non-Path nodes have
    at most one successor, and every Path branch is a well-formed
    ``Path -> Condition -> target`` pair sharing one branch group.

    Raises:
        GraphStructureError: Describing the first violation found
    """
    for sentinel, kind in ((START_NODE_ID, NodeKind.START), (END_NODE_ID, NodeKind.END)):
        if not store.has_node(sentinel):
            raise GraphStructureError(f"Graph is missing the '{sentinel}' node")
        if store.get_node(sentinel).kind != kind:
            raise GraphStructureError(f"Node '{sentinel}' must be of kind {kind}")
    for node in store.nodes():
        if node.kind.is_sentinel and node.id not in (START_NODE_ID, END_NODE_ID):
            raise GraphStructureError(f"Node '{node.id}' cannot be of kind {node.kind}; only one {node.kind} node may exist")

    if store.incoming(START_NODE_ID):
        raise GraphStructureError("The start node cannot have incoming connections")
    if store.outgoing(END_NODE_ID):
        raise GraphStructureError("The end node cannot have outgoing connections")

    cycle = find_cycle(store.graph)
    if cycle is not None:
        raise GraphStructureError(f"Graph contains a cycle: {' -> '.join(cycle)}")

    group_sizes = Counter(edge.branch_group_id for edge in store.edges() if edge.branch_group_id is not None)
    for node in store.nodes():
        outgoing = store.outgoing(node.id)
        if node.kind != NodeKind.PATH:
            if len(outgoing) > 1:
                raise GraphStructureError(f"Node '{node.id}' has {len(outgoing)} outgoing connections; only Path nodes may branch")
            continue
        if len(outgoing) > PATH_BRANCH_LIMIT:
            raise GraphStructureError(f"Path node '{node.id}' has {len(outgoing)} branches; the limit is {PATH_BRANCH_LIMIT}")
        for edge in outgoing:
            _check_branch(store, node, edge, group_sizes)

    for group_id, size in group_sizes.items():
        if size != 2:
            raise GraphStructureError(f"Branch group '{group_id}' has {size} edges; expected exactly 2")


def _check_branch(store: GraphStore, path: Node, first: Edge, group_sizes: Counter[BranchGroupID | None]) -> None:
    if first.branch_group_id is None:
        raise GraphStructureError(f"Path node '{path.id}' connects to '{first.target}' without a branch condition")
    guard = store.get_node(first.target)
    if guard.kind != NodeKind.CONDITION:
        raise GraphStructureError(f"Branch of Path node '{path.id}' must go through a Condition node, not '{guard.id}'")
    second = store.outgoing(guard.id)
    if len(second) != 1 or second[0].branch_group_id != first.branch_group_id:
        raise GraphStructureError(f"Branch condition '{guard.id}' must continue its branch group with exactly one edge")
    if group_sizes[first.branch_group_id] != 2:
        raise GraphStructureError(f"Branch group '{first.branch_group_id}' has {group_sizes[first.branch_group_id]} edges; expected exactly 2")

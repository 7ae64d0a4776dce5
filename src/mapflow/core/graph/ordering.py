# src/mapflow/core/graph/ordering.py
"""Level/order assigner.

Recomputes, from scratch, a level, an execution order, and labels for every
node. It is a pure function of the node and edge lists and is rerun after
every structural change; there is no incremental maintenance.

Levels are longest-path depths: every root (in-degree 0) sits at level 1
and a child sits one level below its deepest parent. ``end`` is kept out of
the general pass and placed one level below its deepest parent, or below
everything when nothing reaches it yet.

Orders come from a depth-first, first-visit numbering that starts at
``start``. A node is only numbered once all of its parents are, so for every
edge ``u -> v`` the order of ``u`` is less than the order of ``v``. Nodes
the walk from ``start`` never reaches are swept afterwards in their
previously stored order, which makes a second run over the same graph give
the same answer. ``end`` always gets ``max(order) + 1``.
"""

from __future__ import annotations

import itertools
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import replace

import networkx as nx

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.types import END_NODE_ID, START_NODE_ID, NodeID
from mapflow.core.graph.models import Edge, Node, Placement
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.configs import ConditionConfig


def _build_graph(nodes: Sequence[Node], edges: Sequence[Edge]) -> nx.DiGraph:
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(node.id for node in nodes)
    graph.add_edges_from((edge.source, edge.target) for edge in edges)
    return graph


def compute_levels(graph: nx.DiGraph) -> dict[NodeID, int]:
    """Longest-path level of every node, roots at 1."""
    inner = graph.subgraph(n for n in graph if n != END_NODE_ID)
    levels: dict[NodeID, int] = {}
    for node_id in nx.topological_sort(inner):
        parents = list(inner.predecessors(node_id))
        levels[node_id] = max((levels[p] for p in parents), default=0) + 1

    if END_NODE_ID in graph:
        parents = list(graph.predecessors(END_NODE_ID))
        if parents:
            levels[END_NODE_ID] = max(levels[p] for p in parents) + 1
        else:
            levels[END_NODE_ID] = max(levels.values(), default=0) + 1
    return levels


def compute_orders(graph: nx.DiGraph, sweep: Sequence[NodeID]) -> dict[NodeID, int]:
    """Topologically valid first-visit order of every node.

    Args:
        graph: The workflow graph (must be acyclic)
        sweep: All node IDs in the sequence used to pick up nodes the walk
            from ``start`` does not reach
    """
    counter = itertools.count(1)
    orders: dict[NodeID, int] = {}
    waiting = {node_id: graph.in_degree(node_id) for node_id in graph}

    def walk(root: NodeID) -> None:
        stack = [root]
        while stack:
            node_id = stack.pop()
            orders[node_id] = next(counter)
            ready = []
            for child in graph.successors(node_id):
                if child == END_NODE_ID:
                    continue
                waiting[child] -= 1
                if waiting[child] == 0:
                    ready.append(child)
            # Reversed so the first child is visited first
            stack.extend(reversed(ready))

    if START_NODE_ID in graph:
        walk(START_NODE_ID)
    for node_id in sweep:
        if node_id != END_NODE_ID and node_id not in orders and waiting[node_id] == 0:
            walk(node_id)

    if END_NODE_ID in graph:
        orders[END_NODE_ID] = max(orders.values(), default=0) + 1
    return orders


def _display_label(node: Node, branch_numbers: dict[NodeID, int]) -> str:
    if node.id in branch_numbers:
        return f"Condition {branch_numbers[node.id]}"
    return node.kind.display_name


def assign_positions(nodes: Sequence[Node], edges: Sequence[Edge]) -> dict[NodeID, Placement]:
    """Compute order, level, and labels for every node.

    Args:
        nodes: All nodes, in insertion order
        edges: All edges

    Returns:
        Placement per node ID
    """
    graph = _build_graph(nodes, edges)
    levels = compute_levels(graph)

    by_id = {node.id: node for node in nodes}
    insertion = {node.id: index for index, node in enumerate(nodes)}
    sweep = sorted(
        by_id,
        key=lambda node_id: (by_id[node_id].order is None, by_id[node_id].order or 0, insertion[node_id]),
    )
    orders = compute_orders(graph, sweep)

    sequence = sorted(by_id, key=lambda node_id: orders[node_id])

    # Synthesized guards are numbered per Path, in execution order
    branch_numbers: dict[NodeID, int] = {}
    per_path: Counter[str] = Counter()
    for node_id in sequence:
        config = by_id[node_id].config
        if isinstance(config, ConditionConfig) and config.path_node_id is not None:
            per_path[config.path_node_id] += 1
            branch_numbers[node_id] = per_path[config.path_node_id]

    siblings: defaultdict[tuple[int, NodeKind], int] = defaultdict(int)
    placements: dict[NodeID, Placement] = {}
    for node_id in sequence:
        node = by_id[node_id]
        level = levels[node_id]
        siblings[(level, node.kind)] += 1
        placements[node_id] = Placement(
            order=orders[node_id],
            level=level,
            label=f"{node.kind.label_prefix}_{siblings[(level, node.kind)]}_Level{level}",
            display_label=_display_label(node, branch_numbers),
        )
    return placements


def apply_placements(store: GraphStore, placements: dict[NodeID, Placement]) -> None:
    """Write placements back onto the store's node records."""
    for node in store.nodes():
        placement = placements[node.id]
        store.replace_node(
            replace(
                node,
                order=placement.order,
                level=placement.level,
                label=placement.label,
                display_label=placement.display_label,
            )
        )


def recompute(store: GraphStore) -> None:
    """Rerun the assigner over the whole store."""
    apply_placements(store, assign_positions(store.nodes(), store.edges()))

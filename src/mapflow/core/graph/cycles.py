# src/mapflow/core/graph/cycles.py
"""Reachability checks that keep the workflow graph acyclic."""

from __future__ import annotations

import networkx as nx

from mapflow.contracts.types import NodeID


def would_create_cycle(graph: nx.DiGraph, source: NodeID, target: NodeID) -> bool:
    """Check whether adding ``source -> target`` would close a cycle.

    Walks depth-first from ``target`` along outgoing edges; the edge closes
    a cycle exactly when that walk reaches ``source``. A self-loop is a
    cycle. Nodes missing from the graph reach nothing.
    """
    if source == target:
        return True
    if source not in graph or target not in graph:
        return False
    return any(node == source for node in nx.dfs_preorder_nodes(graph, target))


def find_cycle(graph: nx.DiGraph) -> list[NodeID] | None:
    """Return the nodes of one cycle in ``graph``, or None if it is acyclic."""
    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return None
    return [NodeID(edge[0]) for edge in cycle]

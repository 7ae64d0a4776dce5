# src/mapflow/core/graph/store.py
"""Graph store: the single source of truth for nodes and edges.

Wraps a NetworkX DiGraph. Each graph node carries its ``Node`` record under
the ``"node"`` attribute and each graph edge its ``Edge`` record under
``"edge"``. Records are immutable, so replacing a node means storing a new
record under the same ID.

Mutations that touch several nodes/edges go through ``transaction()``,
which works on a private copy and swaps it in only when the block exits
cleanly. Readers never observe a half-applied change.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import networkx as nx

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.errors import GraphStructureError
from mapflow.contracts.types import END_NODE_ID, START_NODE_ID, BranchGroupID, EdgeID, NodeID
from mapflow.core.graph.models import Edge, Node, Position
from mapflow.core.nodes.configs import default_config


class GraphStore:
    """Owned, encapsulated node/edge set of one workflow."""

    def __init__(self) -> None:
        self._graph: nx.DiGraph = nx.DiGraph()
        self._edge_index: dict[EdgeID, tuple[NodeID, NodeID]] = {}

    @classmethod
    def with_sentinels(cls) -> GraphStore:
        """Create a store holding only the ``start`` and ``end`` nodes."""
        store = cls()
        store.add_node(Node(START_NODE_ID, NodeKind.START, Position(0.0, 0.0), default_config(NodeKind.START)))
        store.add_node(Node(END_NODE_ID, NodeKind.END, Position(0.0, 400.0), default_config(NodeKind.END)))
        return store

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    @property
    def graph(self) -> nx.DiGraph:
        """Read-only view of the underlying NetworkX graph."""
        view: nx.DiGraph = self._graph.copy(as_view=True)
        return view

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edge_index

    def get_node(self, node_id: str) -> Node:
        """Return the node record.

        Raises:
            GraphStructureError: If no such node exists
        """
        if not self._graph.has_node(node_id):
            raise GraphStructureError(f"Unknown node '{node_id}'")
        node: Node = self._graph.nodes[node_id]["node"]
        return node

    def get_edge(self, edge_id: str) -> Edge:
        """Return the edge record.

        Raises:
            GraphStructureError: If no such edge exists
        """
        if edge_id not in self._edge_index:
            raise GraphStructureError(f"Unknown edge '{edge_id}'")
        source, target = self._edge_index[EdgeID(edge_id)]
        edge: Edge = self._graph.edges[source, target]["edge"]
        return edge

    def nodes(self) -> list[Node]:
        """All nodes, in insertion order."""
        return [data["node"] for _, data in self._graph.nodes(data=True)]

    def edges(self) -> list[Edge]:
        """All edges, grouped by source in node insertion order."""
        return [data["edge"] for _, _, data in self._graph.edges(data=True)]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [data["edge"] for _, _, data in self._graph.out_edges(node_id, data=True)]

    def incoming(self, node_id: str) -> list[Edge]:
        return [data["edge"] for _, _, data in self._graph.in_edges(node_id, data=True)]

    def branch_edges(self, group_id: BranchGroupID) -> list[Edge]:
        """Both edges of one synthesized branch (source-side first)."""
        edges = [edge for edge in self.edges() if edge.branch_group_id == group_id]
        return sorted(edges, key=lambda edge: self.get_node(edge.source).kind != NodeKind.PATH)

    def ancestors(self, node_id: str) -> set[NodeID]:
        if not self._graph.has_node(node_id):
            return set()
        return {NodeID(n) for n in nx.ancestors(self._graph, node_id)}

    def descendants(self, node_id: str) -> set[NodeID]:
        if not self._graph.has_node(node_id):
            return set()
        return {NodeID(n) for n in nx.descendants(self._graph, node_id)}

    def upstream_of(self, node_id: str) -> set[NodeID]:
        """Ancestors of ``node_id`` that themselves hang off ``start``.

        These are the nodes whose results exist by the time ``node_id``
        runs in a pipeline entered at ``start``.
        """
        reachable = self.descendants(START_NODE_ID) | {START_NODE_ID}
        return self.ancestors(node_id) & reachable

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> None:
        """Insert a new node.

        Raises:
            GraphStructureError: If the ID is already taken
        """
        if self._graph.has_node(node.id):
            raise GraphStructureError(f"Duplicate node ID '{node.id}'")
        self._graph.add_node(node.id, node=node)

    def replace_node(self, node: Node) -> None:
        """Store a new record for an existing node, keeping its edges."""
        current = self.get_node(node.id)
        if current.kind != node.kind:
            raise GraphStructureError(f"Cannot change kind of node '{node.id}' from {current.kind} to {node.kind}")
        self._graph.nodes[node.id]["node"] = node

    def remove_node(self, node_id: str) -> list[Edge]:
        """Remove a node and every edge touching it.

        Returns:
            The edges that were removed with the node
        """
        self.get_node(node_id)
        removed = self.incoming(node_id) + self.outgoing(node_id)
        for edge in removed:
            del self._edge_index[edge.id]
        self._graph.remove_node(node_id)
        return removed

    def add_edge(self, edge: Edge) -> None:
        """Insert a new edge between two existing nodes.

        Raises:
            GraphStructureError: If an endpoint is unknown, the ID is taken,
                or the two nodes are already connected
        """
        self.get_node(edge.source)
        self.get_node(edge.target)
        if edge.id in self._edge_index:
            raise GraphStructureError(f"Duplicate edge ID '{edge.id}'")
        if self._graph.has_edge(edge.source, edge.target):
            raise GraphStructureError(f"Nodes '{edge.source}' and '{edge.target}' are already connected")
        self._graph.add_edge(edge.source, edge.target, edge=edge)
        self._edge_index[edge.id] = (edge.source, edge.target)

    def remove_edge(self, edge_id: str) -> Edge:
        """Remove one edge and return it."""
        edge = self.get_edge(edge_id)
        self._graph.remove_edge(edge.source, edge.target)
        del self._edge_index[edge.id]
        return edge

    # ------------------------------------------------------------------
    # Copy-on-write
    # ------------------------------------------------------------------

    def copy(self) -> GraphStore:
        clone = GraphStore()
        clone._graph = self._graph.copy()
        clone._edge_index = dict(self._edge_index)
        return clone

    @contextmanager
    def transaction(self) -> Iterator[GraphStore]:
        """Apply a group of mutations atomically.

        Yields a draft copy. If the block raises, the draft is discarded
        and this store is untouched; otherwise the draft replaces this
        store's contents.
        """
        draft = self.copy()
        yield draft
        self._graph = draft._graph
        self._edge_index = draft._edge_index

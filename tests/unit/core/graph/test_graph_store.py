# tests/unit/core/graph/test_graph_store.py
"""Tests for GraphStore queries, mutations, and transactions."""

import networkx as nx
import pytest

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.errors import GraphStructureError
from mapflow.contracts.types import END_NODE_ID, START_NODE_ID, BranchGroupID, EdgeID, NodeID
from mapflow.core.graph.models import Edge, Node, Position
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.configs import default_config


def _node(node_id: str, kind: NodeKind = NodeKind.FIND) -> Node:
    return Node(NodeID(node_id), kind, Position(), default_config(kind))


def _edge(source: str, target: str, group: str | None = None) -> Edge:
    return Edge(
        EdgeID(f"e{source}-{target}"),
        NodeID(source),
        NodeID(target),
        BranchGroupID(group) if group is not None else None,
    )


class TestSentinels:
    """A fresh store holds exactly the two sentinels."""

    def test_with_sentinels(self) -> None:
        store = GraphStore.with_sentinels()

        assert store.node_count == 2
        assert store.edge_count == 0
        assert store.get_node(START_NODE_ID).kind == NodeKind.START
        assert store.get_node(END_NODE_ID).kind == NodeKind.END


class TestNodeMutations:
    def test_duplicate_node_rejected(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("a"))

        with pytest.raises(GraphStructureError, match="Duplicate node ID"):
            store.add_node(_node("a"))

    def test_unknown_node_lookup_raises(self) -> None:
        store = GraphStore.with_sentinels()

        with pytest.raises(GraphStructureError, match="Unknown node 'missing'"):
            store.get_node("missing")

    def test_replace_node_cannot_change_kind(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("a"))

        with pytest.raises(GraphStructureError, match="Cannot change kind"):
            store.replace_node(_node("a", NodeKind.LOOP))

    def test_remove_node_returns_touching_edges(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("a"))
        store.add_edge(_edge("start", "a"))
        store.add_edge(_edge("a", "end"))

        removed = store.remove_node("a")

        assert {edge.id for edge in removed} == {"estart-a", "ea-end"}
        assert store.edge_count == 0
        assert not store.has_edge("estart-a")
        assert not store.has_node("a")


class TestEdgeMutations:
    def test_edge_to_unknown_node_rejected(self) -> None:
        store = GraphStore.with_sentinels()

        with pytest.raises(GraphStructureError):
            store.add_edge(_edge("start", "ghost"))

    def test_second_edge_between_same_pair_rejected(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("a"))
        store.add_edge(_edge("start", "a"))

        with pytest.raises(GraphStructureError, match="already connected"):
            store.add_edge(Edge(EdgeID("other"), NodeID("start"), NodeID("a")))

    def test_remove_edge(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("a"))
        store.add_edge(_edge("start", "a"))

        removed = store.remove_edge("estart-a")

        assert removed.target == "a"
        assert store.outgoing("start") == []
        with pytest.raises(GraphStructureError, match="Unknown edge"):
            store.get_edge("estart-a")

    def test_branch_edges_path_side_first(self) -> None:
        store = GraphStore.with_sentinels()
        store.add_node(_node("p", NodeKind.PATH))
        store.add_node(_node("c", NodeKind.CONDITION))
        store.add_node(_node("t"))
        # Insert the guard's edge first so ordering isn't insertion luck
        store.add_edge(_edge("c", "t", "g1"))
        store.add_edge(_edge("p", "c", "g1"))

        first, second = store.branch_edges(BranchGroupID("g1"))

        assert (first.source, second.source) == ("p", "c")


class TestReachability:
    def test_upstream_excludes_nodes_not_hanging_off_start(self) -> None:
        store = GraphStore.with_sentinels()
        for node_id in ("f", "island", "loop"):
            store.add_node(_node(node_id))
        store.add_edge(_edge("start", "f"))
        store.add_edge(_edge("f", "loop"))
        store.add_edge(_edge("island", "loop"))

        assert store.ancestors("loop") == {"start", "f", "island"}
        assert store.upstream_of("loop") == {"start", "f"}

    def test_unknown_node_has_no_relatives(self) -> None:
        store = GraphStore.with_sentinels()

        assert store.ancestors("ghost") == set()
        assert store.descendants("ghost") == set()


class TestTransaction:
    def test_commit_swaps_in_draft(self) -> None:
        store = GraphStore.with_sentinels()

        with store.transaction() as draft:
            draft.add_node(_node("a"))
            draft.add_edge(_edge("start", "a"))

        assert store.has_node("a")
        assert store.has_edge("estart-a")

    def test_failure_leaves_store_untouched(self) -> None:
        store = GraphStore.with_sentinels()

        with pytest.raises(GraphStructureError), store.transaction() as draft:
            draft.add_node(_node("a"))
            draft.add_edge(_edge("a", "ghost"))

        assert not store.has_node("a")
        assert store.node_count == 2

    def test_copy_is_independent(self) -> None:
        store = GraphStore.with_sentinels()
        clone = store.copy()

        clone.add_node(_node("a"))

        assert not store.has_node("a")

    def test_graph_view_is_read_only(self) -> None:
        store = GraphStore.with_sentinels()

        with pytest.raises(nx.NetworkXError, match="Frozen"):
            store.graph.add_node("x")

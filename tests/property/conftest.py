# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Node kinds that may be dropped onto a workflow
- Edit scripts (sequences of add/connect/delete commands)
- Custom logic expressions built from the grammar

Usage:
    from tests.property.conftest import edit_scripts

    @given(script=edit_scripts())
    def test_graph_stays_acyclic(script) -> None:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass

from hypothesis import strategies as st

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.errors import ConnectionRejectedError
from mapflow.core.editor import WorkflowEditor

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS
#
# Tiers: STATE_MACHINE (200), STANDARD (100), QUICK (20)
# =============================================================================

DROPPABLE_KINDS = [kind for kind in NodeKind if not kind.is_sentinel]

droppable_kinds = st.sampled_from(DROPPABLE_KINDS)


# =============================================================================
# Edit scripts
# =============================================================================


@dataclass(frozen=True)
class AddStep:
    kind: NodeKind


@dataclass(frozen=True)
class ConnectStep:
    """Connect two nodes picked by index into the current node list."""

    source: int
    target: int


@dataclass(frozen=True)
class DeleteStep:
    index: int


EditStep = AddStep | ConnectStep | DeleteStep

_indexes = st.integers(min_value=0, max_value=50)

edit_steps = st.one_of(
    st.builds(AddStep, kind=droppable_kinds),
    st.builds(ConnectStep, source=_indexes, target=_indexes),
    st.builds(ConnectStep, source=_indexes, target=_indexes),
    st.builds(DeleteStep, index=_indexes),
)


def edit_scripts(max_size: int = 30) -> st.SearchStrategy[list[EditStep]]:
    return st.lists(edit_steps, max_size=max_size)


def run_script(editor: WorkflowEditor, script: list[EditStep]) -> None:
    """Apply an edit script, skipping connects the rule engine rejects.

    Indexes wrap around the current node list (execution order), so every
    step names a real node.
    """
    for step in script:
        nodes = editor.nodes()
        match step:
            case AddStep(kind=kind):
                editor.add_node(kind)
            case ConnectStep(source=source, target=target):
                try:
                    editor.connect(nodes[source % len(nodes)].id, nodes[target % len(nodes)].id)
                except ConnectionRejectedError:
                    pass
            case DeleteStep(index=index):
                node = nodes[index % len(nodes)]
                if not node.kind.is_sentinel:
                    editor.delete_node(node.id)


# =============================================================================
# Custom logic expressions
# =============================================================================


@st.composite
def logic_expressions(draw: st.DrawFn, condition_count: int) -> str:
    """Syntactically valid expressions over conditions 1..condition_count."""

    def operand(depth: int) -> str:
        if depth > 0 and draw(st.booleans()):
            return f"({expression(depth - 1)})"
        return str(draw(st.integers(min_value=1, max_value=condition_count)))

    def expression(depth: int) -> str:
        parts = [operand(depth)]
        for _ in range(draw(st.integers(min_value=0, max_value=3))):
            parts.append(draw(st.sampled_from(["AND", "OR", "and", "or"])))
            parts.append(operand(depth))
        return " ".join(parts)

    return expression(2)

"""All node kinds, modes, and categories used across subsystem boundaries.

Values are the strings stored in workflow documents and compiled mapping
records, so renaming a member is a breaking change for persisted data.
"""

from enum import StrEnum


class NodeKind(StrEnum):
    """Kind of node in the workflow graph.

    START and END are sentinels: they always exist and are never deleted.
    CONDITION nodes are either placed by the user or synthesized as the
    guard of one outgoing branch of a PATH node.
    """

    START = "start"
    END = "end"
    CREATE_OR_UPDATE = "create_or_update"
    FIND = "find"
    FILTER = "filter"
    LOOP = "loop"
    FORMATTER = "formatter"
    CONDITION = "condition"
    PATH = "path"

    @property
    def is_sentinel(self) -> bool:
        """Whether this kind bounds the graph (start/end)."""
        return self in (NodeKind.START, NodeKind.END)

    @property
    def label_prefix(self) -> str:
        """Prefix used for generated node labels (``Kind_Index_LevelN``)."""
        return _LABEL_PREFIXES[self]

    @property
    def display_name(self) -> str:
        """Human-readable name shown in the editor."""
        return _DISPLAY_NAMES[self]


_LABEL_PREFIXES: dict[NodeKind, str] = {
    NodeKind.START: "Start",
    NodeKind.END: "End",
    NodeKind.CREATE_OR_UPDATE: "CreateOrUpdate",
    NodeKind.FIND: "Find",
    NodeKind.FILTER: "Filter",
    NodeKind.LOOP: "Loop",
    NodeKind.FORMATTER: "Formatter",
    NodeKind.CONDITION: "Cond",
    NodeKind.PATH: "Path",
}

_DISPLAY_NAMES: dict[NodeKind, str] = {
    NodeKind.START: "Start",
    NodeKind.END: "End",
    NodeKind.CREATE_OR_UPDATE: "Create/Update",
    NodeKind.FIND: "Find",
    NodeKind.FILTER: "Filter",
    NodeKind.LOOP: "Loop",
    NodeKind.FORMATTER: "Formatter",
    NodeKind.CONDITION: "Condition",
    NodeKind.PATH: "Path",
}


class BranchMode(StrEnum):
    """How a Condition node decides whether its branch runs.

    RULES evaluates the node's condition group; ALWAYS_RUN and FALLBACK
    carry no conditions.
    """

    RULES = "Rules"
    ALWAYS_RUN = "AlwaysRun"
    FALLBACK = "Fallback"


class LogicType(StrEnum):
    """Combinator for a condition group."""

    AND = "AND"
    OR = "OR"
    CUSTOM = "Custom"


class SortOrder(StrEnum):
    """Sort direction for Find/Filter results."""

    ASC = "ASC"
    DESC = "DESC"


class FormatterCategory(StrEnum):
    """Family of formatter operations."""

    DATE = "date"
    NUMBER = "number"
    TEXT = "text"


class ConnectionRejection(StrEnum):
    """Reason code attached to a rejected connection attempt."""

    UNKNOWN_NODE = "unknown_node"
    SELF_LOOP = "self_loop"
    INTO_START = "into_start"
    OUT_OF_END = "out_of_end"
    CYCLE = "cycle"
    SUCCESSOR_TAKEN = "successor_taken"
    BRANCH_EXISTS = "branch_exists"
    BRANCH_LIMIT = "branch_limit"

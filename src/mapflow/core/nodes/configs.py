# src/mapflow/core/nodes/configs.py
"""Per-kind node configuration models.

NodeConfig is a tagged union keyed by ``kind``: each node kind has its own
frozen model carrying only the fields that apply to it. Field types here
are deliberately loose (a half-filled mapping is a valid *stored* state);
the semantic rules run at save time in ``mapflow.core.nodes.validation``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from mapflow.contracts.enums import BranchMode, FormatterCategory, NodeKind, SortOrder
from mapflow.core.nodes.conditions import ConditionGroup


class _KindConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}


class StartConfig(_KindConfig):
    kind: Literal["start"] = "start"


class EndConfig(_KindConfig):
    kind: Literal["end"] = "end"


class PathConfig(_KindConfig):
    """Path nodes carry no data; their branches live in the graph."""

    kind: Literal["path"] = "path"


class FieldMapping(BaseModel):
    """One target field fed by a form field, a literal, or a picklist value."""

    model_config = {"frozen": True, "extra": "forbid"}

    target_field: str = ""
    source_field_id: str | None = None
    literal_value: str | None = None
    picklist_value: str | None = None

    @property
    def source_kind(self) -> str | None:
        """Which source the mapping uses, or None when it has none yet."""
        if self.source_field_id:
            return "form_field"
        if self.picklist_value:
            return "picklist"
        if self.literal_value is not None and self.literal_value != "":
            return "literal"
        return None

    @property
    def is_complete(self) -> bool:
        return bool(self.target_field) and self.source_kind is not None


class CreateOrUpdateConfig(_KindConfig):
    kind: Literal["create_or_update"] = "create_or_update"
    target_object: str = ""
    field_mappings: tuple[FieldMapping, ...] = ()
    enable_conditions: bool = False
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)


class FindConfig(_KindConfig):
    kind: Literal["find"] = "find"
    target_object: str = ""
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)
    return_limit: int | None = Field(default=None, description="Maximum records returned (1-100)")
    sort_field: str | None = None
    sort_order: SortOrder = SortOrder.ASC


class FilterConfig(_KindConfig):
    kind: Literal["filter"] = "filter"
    target_object: str = ""
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)
    return_limit: int | None = Field(default=None, description="Maximum records returned (1-100)")
    sort_field: str | None = None
    sort_order: SortOrder = SortOrder.ASC
    source_find_node: str | None = Field(default=None, description="Upstream Find node whose result this filter narrows")


class LoopConfig(_KindConfig):
    kind: Literal["loop"] = "loop"
    loop_collection: str | None = Field(default=None, description="ID of the upstream Find node to iterate")
    item_variable: str = "item"
    max_iterations: int | None = None
    include_index: bool = False
    include_counter: bool = False
    exit_conditions: ConditionGroup = Field(default_factory=ConditionGroup)
    description: str = ""


class FormatterConfig(_KindConfig):
    kind: Literal["formatter"] = "formatter"
    category: FormatterCategory | None = None
    operation: str = ""
    input_field: str = ""
    second_input_field: str | None = None
    use_literal_input: bool = False
    literal_value: str | int | float | None = None
    options: dict[str, Any] = Field(default_factory=dict)


class ConditionConfig(_KindConfig):
    """Branch guard. Synthesized guards record the path and target they sit between."""

    kind: Literal["condition"] = "condition"
    branch_mode: BranchMode = BranchMode.RULES
    target_object: str = ""
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)
    path_node_id: str | None = None
    target_node_id: str | None = None

    @property
    def is_branch_guard(self) -> bool:
        """Whether this condition was synthesized for a Path branch."""
        return self.path_node_id is not None


NodeConfig = Annotated[
    StartConfig
    | EndConfig
    | CreateOrUpdateConfig
    | FindConfig
    | FilterConfig
    | LoopConfig
    | FormatterConfig
    | ConditionConfig
    | PathConfig,
    Field(discriminator="kind"),
]

_CONFIG_ADAPTER: TypeAdapter[NodeConfig] = TypeAdapter(NodeConfig)

_CONFIG_TYPES: dict[NodeKind, type[_KindConfig]] = {
    NodeKind.START: StartConfig,
    NodeKind.END: EndConfig,
    NodeKind.CREATE_OR_UPDATE: CreateOrUpdateConfig,
    NodeKind.FIND: FindConfig,
    NodeKind.FILTER: FilterConfig,
    NodeKind.LOOP: LoopConfig,
    NodeKind.FORMATTER: FormatterConfig,
    NodeKind.CONDITION: ConditionConfig,
    NodeKind.PATH: PathConfig,
}


def config_type_for(kind: NodeKind) -> type[_KindConfig]:
    """Return the configuration model class for a node kind."""
    return _CONFIG_TYPES[kind]


def default_config(kind: NodeKind) -> NodeConfig:
    """Return an empty configuration for a freshly dropped node."""
    config: NodeConfig = _CONFIG_TYPES[kind]()  # type: ignore[assignment]
    return config


def parse_config(kind: NodeKind, data: Mapping[str, Any] | None) -> NodeConfig:
    """Build a configuration for ``kind`` from plain data.

    A ``kind`` key in ``data`` must agree with ``kind``.

    Raises:
        pydantic.ValidationError: If the data does not fit the kind's model
        ValueError: If the data names a different kind
    """
    payload = dict(data or {})
    declared = payload.pop("kind", kind)
    if NodeKind(declared) != kind:
        raise ValueError(f"Configuration is for kind '{declared}', expected '{kind}'")
    payload["kind"] = kind.value
    return _CONFIG_ADAPTER.validate_python(payload)


def merge_config(config: NodeConfig, partial: Mapping[str, Any]) -> NodeConfig:
    """Overlay ``partial`` onto ``config`` and revalidate.

    Top-level keys in ``partial`` replace the stored values wholesale
    (nested groups and mapping lists are not deep-merged). Keys that do
    not belong to the node's kind are rejected.

    Raises:
        pydantic.ValidationError: If the merged data does not validate
        ValueError: If ``partial`` tries to change the kind
    """
    kind = NodeKind(config.kind)
    merged = config.model_dump()
    merged.update(partial)
    return parse_config(kind, merged)

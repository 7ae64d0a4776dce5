# src/mapflow/core/nodes/validation.py
"""Save-time validation of node configurations.

Each node kind has one checker. A checker either returns quietly or raises
NodeConfigError with a single message describing the first problem found.
Validation reads the graph and the schema provider but never changes
stored state.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from mapflow.contracts.enums import BranchMode, NodeKind
from mapflow.contracts.errors import NodeConfigError
from mapflow.contracts.schema import FieldInfo, FormField
from mapflow.contracts.types import NodeID
from mapflow.core.nodes.compatibility import (
    EMPTY_ALLOWED_OPTIONS,
    FORMATTER_OPERATIONS,
    OPERATION_REQUIRED_OPTIONS,
    PICKLIST_FIELD_TYPES,
    SECOND_INPUT_OPERATIONS,
    is_mapping_compatible,
    operation_input_types,
)
from mapflow.core.nodes.conditions import ConditionGroup, check_condition_group
from mapflow.core.nodes.configs import (
    ConditionConfig,
    CreateOrUpdateConfig,
    FilterConfig,
    FindConfig,
    FormatterConfig,
    LoopConfig,
)

if TYPE_CHECKING:
    from mapflow.contracts.collaborators import SchemaProvider
    from mapflow.core.graph.models import Node
    from mapflow.core.graph.store import GraphStore

RETURN_LIMIT_MIN = 1
RETURN_LIMIT_MAX = 100


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def upstream_finds(store: GraphStore, node_id: str) -> set[NodeID]:
    """Find nodes whose results are available to ``node_id``.

    A Find qualifies when it is an ancestor of ``node_id`` and is itself
    reachable from ``start``.
    """
    return {n for n in store.upstream_of(node_id) if store.get_node(n).kind == NodeKind.FIND}


class NodeValidator:
    """Validates node configurations against the graph, schemas, and form.

    Args:
        store: Graph the nodes belong to
        schemas: Record-store field metadata (should be caching)
        form_fields: Source-form fields by ID; references not listed are
            not type-checked
    """

    def __init__(
        self,
        store: GraphStore,
        schemas: SchemaProvider,
        form_fields: Mapping[str, FormField] | None = None,
    ) -> None:
        self._store = store
        self._schemas = schemas
        self._form_fields = dict(form_fields or {})

    def validate(self, node_id: str) -> None:
        """Validate one node's configuration.

        Start, End and Path nodes have nothing to validate.

        Raises:
            NodeConfigError: If the configuration cannot be saved
            GraphStructureError: If the node does not exist
            SchemaFetchError: If field metadata is needed and unavailable
        """
        node = self._store.get_node(node_id)
        match node.config:
            case CreateOrUpdateConfig() as config:
                self._check_create_or_update(node, config)
            case FindConfig() | FilterConfig() as config:
                self._check_find_or_filter(node, config)
            case LoopConfig() as config:
                self._check_loop(node, config)
            case FormatterConfig() as config:
                self._check_formatter(node, config)
            case ConditionConfig() as config:
                self._check_condition(node, config)
            case _:
                return

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail(self, node: Node, message: str) -> NodeConfigError:
        return NodeConfigError(node.id, f"{node.name} ({node.id}): {message}")

    def _fields_of(self, object_name: str) -> dict[str, FieldInfo]:
        return {field.name: field for field in self._schemas.get_fields(object_name)}

    def _check_group(
        self,
        node: Node,
        group: ConditionGroup,
        *,
        required: bool,
        fields: Mapping[str, FieldInfo] | None = None,
        what: str = "",
    ) -> None:
        field_types = {name: info.type for name, info in fields.items()} if fields is not None else None
        problem = check_condition_group(group, required=required, field_types=field_types)
        if problem is not None:
            raise self._fail(node, f"{what}{problem}")

    def _check_form_input(self, node: Node, field_id: str, accepted: tuple[str, ...], operation: str, which: str) -> None:
        form_field = self._form_fields.get(field_id)
        if form_field is not None and form_field.type not in accepted:
            raise self._fail(
                node,
                f"{which} field type ({form_field.type}) is not compatible with operation {operation}.",
            )

    # ------------------------------------------------------------------
    # Per-kind checkers
    # ------------------------------------------------------------------

    def _check_create_or_update(self, node: Node, config: CreateOrUpdateConfig) -> None:
        if _missing(config.target_object):
            raise self._fail(node, "Please select a target object.")
        fields = self._fields_of(config.target_object)

        mapped = {mapping.target_field for mapping in config.field_mappings if mapping.is_complete}
        unmapped = [field.display_name for field in fields.values() if field.required and field.name not in mapped]
        if unmapped:
            raise self._fail(node, f"Please map all required fields: {', '.join(unmapped)}")

        for position, mapping in enumerate(config.field_mappings, start=1):
            if not mapping.is_complete:
                raise self._fail(
                    node,
                    f"Mapping {position} is incomplete: choose a target field and a form field, literal, or picklist value.",
                )
        if not config.field_mappings:
            raise self._fail(node, "Please add at least one complete field mapping.")

        for position, mapping in enumerate(config.field_mappings, start=1):
            target = fields.get(mapping.target_field)
            if target is None:
                raise self._fail(node, f"Mapping {position}: '{mapping.target_field}' is not a field of {config.target_object}.")
            if mapping.picklist_value:
                if target.type.lower() not in PICKLIST_FIELD_TYPES:
                    raise self._fail(node, f"Mapping {position}: {target.display_name} is not a picklist field.")
                if target.picklist_values is not None and mapping.picklist_value not in target.picklist_values:
                    raise self._fail(
                        node,
                        f"Mapping {position}: '{mapping.picklist_value}' is not an allowed value for {target.display_name}.",
                    )
            if mapping.source_field_id:
                source = self._form_fields.get(mapping.source_field_id)
                if source is not None and not is_mapping_compatible(target, source):
                    raise self._fail(
                        node,
                        f"Mapping {position}: form field '{source.label or source.id}' ({source.type}) "
                        f"cannot be mapped to {target.display_name} ({target.type}).",
                    )

        if config.enable_conditions:
            self._check_group(node, config.conditions, required=True, fields=fields)

    def _check_find_or_filter(self, node: Node, config: FindConfig | FilterConfig) -> None:
        if _missing(config.target_object):
            raise self._fail(node, "Please select a target object.")
        fields = self._fields_of(config.target_object)
        self._check_group(node, config.conditions, required=True, fields=fields)

        if config.return_limit is not None and not RETURN_LIMIT_MIN <= config.return_limit <= RETURN_LIMIT_MAX:
            raise self._fail(node, f"Return limit must be a number between {RETURN_LIMIT_MIN} and {RETURN_LIMIT_MAX}.")
        if config.sort_field and config.sort_field not in fields:
            raise self._fail(node, f"Sort field '{config.sort_field}' is not a field of {config.target_object}.")

        if isinstance(config, FilterConfig):
            finds = upstream_finds(self._store, node.id)
            if _missing(config.source_find_node):
                if finds:
                    raise self._fail(node, "Please select a Find node.")
            elif config.source_find_node not in finds:
                raise self._fail(node, f"Invalid source Find node '{config.source_find_node}': it must be a Find node upstream of this filter.")

    def _check_loop(self, node: Node, config: LoopConfig) -> None:
        if _missing(config.loop_collection) or _missing(config.item_variable):
            raise self._fail(node, "Please select a loop collection and provide a current item variable name.")
        candidates = upstream_finds(self._store, node.id)
        if config.loop_collection not in candidates:
            available = ", ".join(sorted(candidates)) or "none"
            raise self._fail(
                node,
                f"Invalid loop collection '{config.loop_collection}': select a Find node upstream of this loop (available: {available}).",
            )
        if config.max_iterations is not None and config.max_iterations < 1:
            raise self._fail(node, "Max iterations must be a positive number.")
        self._check_group(node, config.exit_conditions, required=False, what="Exit conditions: ")

    def _check_formatter(self, node: Node, config: FormatterConfig) -> None:
        if _missing(config.input_field) or _missing(config.operation):
            raise self._fail(node, "Please provide an input field and operation.")
        if config.category is None:
            raise self._fail(node, "Please select a formatter category.")
        accepted = operation_input_types(config.category, config.operation)
        if accepted is None:
            choices = ", ".join(FORMATTER_OPERATIONS[config.category])
            raise self._fail(node, f"Operation '{config.operation}' is not a {config.category} operation (choose from {choices}).")
        self._check_form_input(node, config.input_field, accepted, config.operation, "Selected input")

        missing = [
            option
            for option in OPERATION_REQUIRED_OPTIONS.get(config.operation, ())
            if (config.options.get(option) is None if option in EMPTY_ALLOWED_OPTIONS else _missing(config.options.get(option)))
        ]
        if missing:
            raise self._fail(node, f"Operation {config.operation} requires option(s): {', '.join(missing)}")

        if config.operation in SECOND_INPUT_OPERATIONS:
            if config.use_literal_input:
                if _missing(config.literal_value):
                    raise self._fail(node, "Please provide a literal value for the second input.")
            elif _missing(config.second_input_field):
                raise self._fail(node, "Please provide a second input field or enable literal input.")
        if config.second_input_field and not config.use_literal_input:
            self._check_form_input(node, config.second_input_field, accepted, config.operation, "Second input")

    def _check_condition(self, node: Node, config: ConditionConfig) -> None:
        if config.branch_mode != BranchMode.RULES:
            return
        fields = self._fields_of(config.target_object) if config.target_object else None
        self._check_group(node, config.conditions, required=True, fields=fields)

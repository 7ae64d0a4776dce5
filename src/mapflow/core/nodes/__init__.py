"""Per-kind node configuration: models, condition groups, type tables, validation."""

from mapflow.core.nodes.conditions import (
    Condition,
    ConditionGroup,
    check_condition_group,
    check_custom_logic,
    operators_for_field_type,
    reconcile_operators,
)
from mapflow.core.nodes.configs import (
    ConditionConfig,
    CreateOrUpdateConfig,
    EndConfig,
    FieldMapping,
    FilterConfig,
    FindConfig,
    FormatterConfig,
    LoopConfig,
    NodeConfig,
    PathConfig,
    StartConfig,
    default_config,
    merge_config,
    parse_config,
)
from mapflow.core.nodes.validation import NodeValidator, upstream_finds

__all__ = [
    "Condition",
    "ConditionConfig",
    "ConditionGroup",
    "CreateOrUpdateConfig",
    "EndConfig",
    "FieldMapping",
    "FilterConfig",
    "FindConfig",
    "FormatterConfig",
    "LoopConfig",
    "NodeConfig",
    "NodeValidator",
    "PathConfig",
    "StartConfig",
    "check_condition_group",
    "check_custom_logic",
    "default_config",
    "merge_config",
    "operators_for_field_type",
    "parse_config",
    "reconcile_operators",
    "upstream_finds",
]

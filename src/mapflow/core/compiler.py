# src/mapflow/core/compiler.py
"""Mapping compiler: turns a workflow graph into ordered mapping records.

Each node becomes one record carrying its flattened, kind-relevant
configuration, its immediate predecessor, its deduplicated successors, and
its execution order and label. Before compiling, every non-sentinel node
must be connected to at least one edge.
"""

from __future__ import annotations

from typing import Any

import structlog

from mapflow.contracts.enums import BranchMode
from mapflow.contracts.errors import CompileError
from mapflow.contracts.records import MappingRecord
from mapflow.contracts.types import NodeID
from mapflow.core.graph.models import Node, Placement
from mapflow.core.graph.ordering import assign_positions
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.configs import (
    ConditionConfig,
    CreateOrUpdateConfig,
    FilterConfig,
    FindConfig,
    FormatterConfig,
    LoopConfig,
)

logger = structlog.get_logger(__name__)


def check_connected(store: GraphStore) -> None:
    """Reject graphs containing a non-sentinel node with no edges.

    Raises:
        CompileError: Naming the first isolated node
    """
    for node in store.nodes():
        if node.kind.is_sentinel:
            continue
        if not store.incoming(node.id) and not store.outgoing(node.id):
            raise CompileError(
                f"Node {node.name} ({node.id}) is not connected to the workflow. Connect or delete it before saving.",
                node_id=node.id,
            )


def flatten_config(node: Node) -> dict[str, Any]:
    """Kind-relevant configuration of a node as plain data; unset fields omitted."""
    match node.config:
        case CreateOrUpdateConfig() as config:
            record: dict[str, Any] = {
                "target_object": config.target_object,
                "field_mappings": [
                    mapping.model_dump(exclude_none=True) for mapping in config.field_mappings if mapping.is_complete
                ],
            }
            if config.enable_conditions:
                record["enable_conditions"] = True
                record.update(config.conditions.to_record())
            return record

        case FindConfig() | FilterConfig() as config:
            record = {"target_object": config.target_object, **config.conditions.to_record()}
            if config.return_limit is not None:
                record["return_limit"] = config.return_limit
            if config.sort_field:
                record["sort_field"] = config.sort_field
                record["sort_order"] = config.sort_order.value
            if isinstance(config, FilterConfig) and config.source_find_node:
                record["source_find_node"] = config.source_find_node
            return record

        case LoopConfig() as config:
            record = {
                "loop_collection": config.loop_collection,
                "item_variable": config.item_variable,
                "include_index": config.include_index,
                "include_counter": config.include_counter,
            }
            if config.max_iterations is not None:
                record["max_iterations"] = config.max_iterations
            if config.exit_conditions.complete_conditions():
                record["exit_conditions"] = config.exit_conditions.to_record()
            if config.description:
                record["description"] = config.description
            return record

        case FormatterConfig() as config:
            record = {
                "category": config.category.value if config.category is not None else None,
                "operation": config.operation,
                "input_field": config.input_field,
                "options": dict(config.options),
            }
            if config.use_literal_input:
                record["literal_value"] = config.literal_value
            elif config.second_input_field:
                record["second_input_field"] = config.second_input_field
            return record

        case ConditionConfig() as config:
            record = {"branch_mode": config.branch_mode.value}
            if config.branch_mode == BranchMode.RULES:
                if config.target_object:
                    record["target_object"] = config.target_object
                record.update(config.conditions.to_record())
            if config.path_node_id is not None:
                record["path_node_id"] = config.path_node_id
                record["target_node_id"] = config.target_node_id
            return record

        case _:
            return {}


def compile_mappings(store: GraphStore) -> list[MappingRecord]:
    """Compile the graph into mapping records ordered by execution order.

    Node configurations are assumed to be validated already; this only
    applies the connectivity gate.

    Raises:
        CompileError: If a non-sentinel node is isolated
    """
    check_connected(store)
    placements: dict[NodeID, Placement] = assign_positions(store.nodes(), store.edges())

    records: list[MappingRecord] = []
    for node in sorted(store.nodes(), key=lambda n: placements[n.id].order):
        parents = sorted((edge.source for edge in store.incoming(node.id)), key=lambda n: placements[n].order)
        successors = list(dict.fromkeys(edge.target for edge in store.outgoing(node.id)))
        records.append(
            MappingRecord(
                node_id=node.id,
                action_type=node.kind,
                config=flatten_config(node),
                previous_node_id=parents[0] if parents else None,
                next_node_ids=tuple(sorted(successors, key=lambda n: placements[n].order)),
                order=placements[node.id].order,
                label=placements[node.id].label,
            )
        )

    logger.info("workflow_compiled", record_count=len(records))
    return records

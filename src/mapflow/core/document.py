# src/mapflow/core/document.py
"""Workflow documents: the on-disk form of a workflow graph.

A document lists nodes (with their per-kind configuration as plain data),
edges, the source form's fields, and optionally the field lists of the
record-store objects it uses, so a workflow can be validated offline.
Documents are YAML or JSON.

Example YAML:
    form_version_id: fv-42
    nodes:
      - id: create_1
        kind: create_or_update
        config:
          target_object: Contact
          field_mappings:
            - {target_field: LastName, source_field_id: f_last}
    edges:
      - {source: start, target: create_1}
      - {source: create_1, target: end}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from mapflow.contracts.enums import NodeKind
from mapflow.contracts.errors import NodeConfigError
from mapflow.contracts.schema import FieldInfo, FormField
from mapflow.contracts.types import END_NODE_ID, START_NODE_ID, BranchGroupID, EdgeID, NodeID
from mapflow.core.graph.models import Edge, Node, Position
from mapflow.core.graph.rules import edge_id_for
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.configs import default_config, parse_config


class PositionSpec(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    x: float = 0.0
    y: float = 0.0


class NodeSpec(BaseModel):
    """A node as written in a document."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1)
    kind: NodeKind
    position: PositionSpec = Field(default_factory=PositionSpec)
    config: dict[str, Any] = Field(default_factory=dict)
    order: int | None = Field(default=None, description="Last computed order; keeps island ordering stable")


class EdgeSpec(BaseModel):
    """An edge as written in a document. The ID defaults to ``e{source}-{target}``."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str | None = None
    source: str
    target: str
    branch_group_id: str | None = None


class WorkflowDocument(BaseModel):
    """A complete workflow as stored on disk."""

    model_config = {"frozen": True, "extra": "forbid"}

    form_version_id: str = ""
    nodes: list[NodeSpec] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)
    form_fields: list[FormField] = Field(default_factory=list)
    objects: dict[str, list[FieldInfo]] = Field(default_factory=dict, description="Record-store object name -> fields")

    @model_validator(mode="after")
    def validate_unique_ids(self) -> WorkflowDocument:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
        edge_ids = [edge.id or edge_id_for(edge.source, edge.target) for edge in self.edges]
        duplicates = sorted({edge_id for edge_id in edge_ids if edge_ids.count(edge_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate edge id(s): {', '.join(duplicates)}")
        return self


def load_document(path: Path) -> WorkflowDocument:
    """Read a workflow document from a ``.json`` or YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a mapping (yaml.YAMLError and
            json.JSONDecodeError for malformed files)
        ValidationError: If the content doesn't match the document model
    """
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Workflow document {path} must contain a mapping at the top level")
    return WorkflowDocument.model_validate(data)


def dump_document(document: WorkflowDocument, path: Path) -> None:
    """Write a document as JSON (``.json``) or YAML (anything else)."""
    data = document.model_dump(mode="json", exclude_none=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def _format_validation_error(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}" for error in exc.errors())


def build_store(document: WorkflowDocument) -> GraphStore:
    """Build a graph store from a document.

    Sentinel nodes missing from the document are added. Structural rules
    are not checked here; see ``mapflow.core.graph.rules.check_structure``.

    Raises:
        NodeConfigError: If a node's configuration doesn't fit its kind
        GraphStructureError: If IDs collide or an edge names an unknown node
    """
    store = GraphStore()
    declared = {node.id for node in document.nodes}
    if START_NODE_ID not in declared:
        store.add_node(Node(START_NODE_ID, NodeKind.START, Position(), default_config(NodeKind.START)))

    for node_spec in document.nodes:
        try:
            config = parse_config(node_spec.kind, node_spec.config)
        except ValidationError as exc:
            raise NodeConfigError(node_spec.id, f"Invalid configuration for node '{node_spec.id}': {_format_validation_error(exc)}") from exc
        except ValueError as exc:
            raise NodeConfigError(node_spec.id, f"Invalid configuration for node '{node_spec.id}': {exc}") from exc
        store.add_node(
            Node(
                id=NodeID(node_spec.id),
                kind=node_spec.kind,
                position=Position(node_spec.position.x, node_spec.position.y),
                config=config,
                order=node_spec.order,
            )
        )

    if END_NODE_ID not in declared:
        store.add_node(Node(END_NODE_ID, NodeKind.END, Position(), default_config(NodeKind.END)))

    for edge_spec in document.edges:
        store.add_edge(
            Edge(
                id=EdgeID(edge_spec.id or edge_id_for(edge_spec.source, edge_spec.target)),
                source=NodeID(edge_spec.source),
                target=NodeID(edge_spec.target),
                branch_group_id=BranchGroupID(edge_spec.branch_group_id) if edge_spec.branch_group_id else None,
            )
        )
    return store


def document_from_store(
    store: GraphStore,
    *,
    form_version_id: str = "",
    form_fields: list[FormField] | None = None,
    objects: dict[str, list[FieldInfo]] | None = None,
) -> WorkflowDocument:
    """Snapshot a graph store as a document."""
    return WorkflowDocument(
        form_version_id=form_version_id,
        nodes=[
            NodeSpec(
                id=node.id,
                kind=node.kind,
                position=PositionSpec(x=node.position.x, y=node.position.y),
                config=node.config.model_dump(mode="json", exclude={"kind"}),
                order=node.order,
            )
            for node in store.nodes()
        ],
        edges=[
            EdgeSpec(id=edge.id, source=edge.source, target=edge.target, branch_group_id=edge.branch_group_id)
            for edge in store.edges()
        ],
        form_fields=list(form_fields or []),
        objects=dict(objects or {}),
    )

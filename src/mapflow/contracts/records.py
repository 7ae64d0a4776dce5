# src/mapflow/contracts/records.py
"""Compiled output records handed to the persistence collaborator."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from mapflow.contracts.enums import NodeKind


class MappingRecord(BaseModel):
    """One compiled node of a workflow.

    The config mapping contains only the fields relevant to the node's
    kind; irrelevant or unset fields are omitted.
    """

    model_config = {"frozen": True}

    node_id: str
    action_type: NodeKind
    config: dict[str, Any] = Field(default_factory=dict)
    previous_node_id: str | None = None
    next_node_ids: tuple[str, ...] = ()
    order: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable mapping."""
        return self.model_dump(mode="json")


class SaveReceipt(BaseModel):
    """Acknowledgement returned by a persistence backend."""

    model_config = {"frozen": True}

    form_version_id: str
    record_ids: tuple[str, ...] = ()
    message: str = ""

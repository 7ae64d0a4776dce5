# src/mapflow/contracts/schema.py
"""Field metadata records exchanged with collaborators.

FieldInfo describes a field of a record-store object (as returned by the
schema provider). FormField describes an input of the source form whose
values feed mappings and formatter inputs.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class FieldInfo(BaseModel):
    """A field of a record-store object."""

    model_config = {"frozen": True}

    name: str = Field(description="API name of the field")
    label: str = Field(default="", description="Human-readable label")
    type: str = Field(description="Record-store field type (e.g., 'string', 'picklist')")
    required: bool = Field(default=False, description="Whether a create must supply a value")
    picklist_values: tuple[str, ...] | None = Field(default=None, description="Allowed values for picklist fields")

    @property
    def display_name(self) -> str:
        """Name used in user-facing messages."""
        if self.label and self.label != self.name:
            return f"{self.name} ({self.label})"
        return self.name


class FormField(BaseModel):
    """An input of the source form."""

    model_config = {"frozen": True}

    id: str
    type: str = Field(description="Form field type (e.g., 'shorttext', 'dropdown', 'date')")
    label: str = ""
    options: tuple[str, ...] = Field(default=(), description="Choices for dropdown/checkbox/radio fields")

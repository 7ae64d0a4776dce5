# src/mapflow/core/nodes/conditions.py
"""Condition groups: completeness, type-scoped operators, custom logic.

A condition group is an ordered list of field/operator/value predicates
combined by AND, OR, or a custom boolean expression that references the
conditions by 1-based position. The expression is validated here but never
evaluated; evaluation belongs to the execution engine.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from mapflow.contracts.enums import LogicType

DEFAULT_OPERATOR = "="

NULL_CHECK_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})
RANGE_OPERATOR = "BETWEEN"

OPERATOR_GROUPS: dict[str, tuple[str, ...]] = {
    "text": ("=", "!=", "LIKE", "NOT LIKE", "STARTS WITH", "ENDS WITH", "IS NULL", "IS NOT NULL"),
    "number": ("=", "!=", ">", "<", ">=", "<=", "BETWEEN", "IS NULL", "IS NOT NULL"),
    "date": ("=", "!=", ">", "<", ">=", "<=", "BETWEEN", "IS NULL", "IS NOT NULL"),
    "boolean": ("=", "!=", "IS NULL", "IS NOT NULL"),
    "picklist": ("=", "!=", "IN", "NOT IN", "IS NULL", "IS NOT NULL"),
    "default": ("=", "!=", "IS NULL", "IS NOT NULL"),
}

# Record-store field type -> operator group
FIELD_TYPE_OPERATOR_GROUP: dict[str, str] = {
    "string": "text",
    "email": "text",
    "phone": "text",
    "textarea": "text",
    "url": "text",
    "double": "number",
    "currency": "number",
    "percent": "number",
    "date": "date",
    "datetime": "date",
    "time": "date",
    "boolean": "boolean",
    "picklist": "picklist",
    "multipicklist": "picklist",
}

_LOGIC_TOKEN = re.compile(r"\(|\)|[0-9]+|[A-Za-z]+|\S")
_INDEX_TOKEN = re.compile(r"[0-9]+")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Condition(BaseModel):
    """A single field/operator/value predicate."""

    model_config = {"frozen": True, "extra": "forbid"}

    field: str = ""
    operator: str = DEFAULT_OPERATOR
    value: Any = None
    value2: Any = None

    @property
    def is_complete(self) -> bool:
        """Whether the condition can be compiled.

        Needs a field and operator; null checks need no value, BETWEEN
        needs two, everything else needs one.
        """
        if not self.field or not self.operator:
            return False
        if self.operator in NULL_CHECK_OPERATORS:
            return True
        if self.operator == RANGE_OPERATOR:
            return not _is_blank(self.value) and not _is_blank(self.value2)
        return not _is_blank(self.value)


class ConditionGroup(BaseModel):
    """Ordered conditions plus the combinator that joins them."""

    model_config = {"frozen": True, "extra": "forbid"}

    conditions: tuple[Condition, ...] = ()
    logic: LogicType = LogicType.AND
    custom_logic: str = Field(default="", description="Boolean expression over 1-based condition positions")

    def complete_conditions(self) -> tuple[Condition, ...]:
        """Conditions that are complete, in their original order."""
        return tuple(condition for condition in self.conditions if condition.is_complete)

    def to_record(self) -> dict[str, Any]:
        """Flatten to the compiled form (complete conditions only)."""
        record: dict[str, Any] = {
            "conditions": [condition.model_dump(mode="json", exclude_none=True) for condition in self.complete_conditions()],
            "logic": self.logic.value,
        }
        if self.logic == LogicType.CUSTOM:
            record["custom_logic"] = self.custom_logic.strip()
        return record


def operators_for_field_type(field_type: str | None) -> tuple[str, ...]:
    """Return the operators available for a record-store field type."""
    group = FIELD_TYPE_OPERATOR_GROUP.get((field_type or "").lower(), "default")
    return OPERATOR_GROUPS[group]


def reconcile_operators(group: ConditionGroup, field_types: Mapping[str, str]) -> ConditionGroup:
    """Reset operators that are not available for their field's type.

    Conditions whose field is not in ``field_types`` are left untouched.
    Returns the same group when nothing changed.
    """
    changed = False
    conditions: list[Condition] = []
    for condition in group.conditions:
        field_type = field_types.get(condition.field)
        if field_type is not None and condition.operator not in operators_for_field_type(field_type):
            condition = condition.model_copy(update={"operator": DEFAULT_OPERATOR})
            changed = True
        conditions.append(condition)
    if not changed:
        return group
    return group.model_copy(update={"conditions": tuple(conditions)})


def check_custom_logic(expression: str, condition_count: int) -> str | None:
    """Syntactically validate a custom logic expression.

    Accepts condition numbers (1..condition_count), AND, OR (any case) and
    parentheses, with operands and operators alternating.

    Returns:
        A description of the first problem found, or None if valid.
    """
    tokens = _LOGIC_TOKEN.findall(expression or "")
    if not tokens:
        return "Custom logic expression is required."

    expect_operand = True
    depth = 0
    for position, token in enumerate(tokens, start=1):
        if expect_operand:
            if _INDEX_TOKEN.fullmatch(token):
                index = int(token)
                if index < 1 or index > condition_count:
                    return f"Condition {index} does not exist; use numbers between 1 and {condition_count}."
                expect_operand = False
            elif token == "(":
                depth += 1
            else:
                return f"Invalid token at position {position}: expected a condition number or '(', got '{token}'."
        elif token.upper() in ("AND", "OR"):
            expect_operand = True
        elif token == ")":
            depth -= 1
            if depth < 0:
                return "Unmatched closing parenthesis."
        else:
            return f"Invalid token at position {position}: expected 'AND', 'OR' or ')', got '{token}'."

    if expect_operand:
        return "Expression ends unexpectedly; missing a condition number."
    if depth != 0:
        return "Unmatched opening parenthesis."
    return None


def check_condition_group(
    group: ConditionGroup,
    *,
    required: bool,
    field_types: Mapping[str, str] | None = None,
) -> str | None:
    """Validate a condition group for saving.

    Args:
        group: The group to check
        required: Whether at least one complete condition is mandatory
        field_types: Known record-store field types by field name; when
            given, every complete condition's operator must be available
            for its field's type

    Returns:
        A description of the first problem found, or None if valid.
    """
    complete = group.complete_conditions()
    if required and not complete:
        return "Please add at least one complete condition."

    if field_types is not None:
        for position, condition in enumerate(group.conditions, start=1):
            if not condition.is_complete:
                continue
            field_type = field_types.get(condition.field)
            if field_type is None:
                return f"Condition {position} references unknown field '{condition.field}'."
            if condition.operator not in operators_for_field_type(field_type):
                return f"Condition {position}: operator '{condition.operator}' is not available for {field_type} field '{condition.field}'."

    if group.logic == LogicType.CUSTOM:
        # Custom logic numbers every row, so every row must compile
        for position, condition in enumerate(group.conditions, start=1):
            if not condition.is_complete:
                return f"Condition {position} is incomplete; complete or remove it before using custom logic."
        if len(group.conditions) > 1 and not group.custom_logic.strip():
            return "Please provide a custom logic expression."
        if group.custom_logic.strip():
            problem = check_custom_logic(group.custom_logic, len(group.conditions))
            if problem is not None:
                return f"Invalid custom logic: {problem}"
    return None

# tests/unit/core/nodes/test_conditions.py
"""Tests for condition groups, operator tables, and custom logic checks."""

import pytest
from pydantic import ValidationError

from mapflow.contracts.enums import LogicType
from mapflow.core.nodes.conditions import (
    Condition,
    ConditionGroup,
    check_condition_group,
    check_custom_logic,
    operators_for_field_type,
    reconcile_operators,
)


def _group(*conditions: Condition, logic: LogicType = LogicType.AND, custom_logic: str = "") -> ConditionGroup:
    return ConditionGroup(conditions=conditions, logic=logic, custom_logic=custom_logic)


EMAIL_SET = Condition(field="Email", operator="IS NOT NULL")
NAME_IS_ACME = Condition(field="Name", operator="=", value="Acme")
HALF_FILLED = Condition(field="Name", operator="=")
AMOUNT_OVER_5 = Condition(field="Amount", operator=">", value=5)


class TestConditionCompleteness:
    def test_null_checks_need_no_value(self) -> None:
        assert EMAIL_SET.is_complete

    def test_missing_value(self) -> None:
        assert not HALF_FILLED.is_complete
        assert not Condition(field="Name", value="   ").is_complete

    def test_missing_field(self) -> None:
        assert not Condition(value="x").is_complete

    def test_between_needs_both_bounds(self) -> None:
        assert not Condition(field="Amount", operator="BETWEEN", value=1).is_complete
        assert Condition(field="Amount", operator="BETWEEN", value=1, value2=5).is_complete

    def test_zero_is_a_value(self) -> None:
        assert Condition(field="Amount", operator=">", value=0).is_complete

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValidationError, match="extra"):
            Condition(field="Name", operator="=", value="x", negate=True)  # type: ignore[call-arg]
        with pytest.raises(ValidationError, match="extra"):
            ConditionGroup(conditions=(EMAIL_SET,), mode="any")  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            EMAIL_SET.value = "x"  # type: ignore[misc]


class TestOperators:
    def test_number_types(self) -> None:
        operators = operators_for_field_type("currency")

        assert ">" in operators
        assert "BETWEEN" in operators
        assert "LIKE" not in operators

    def test_text_types(self) -> None:
        assert "STARTS WITH" in operators_for_field_type("Email")

    @pytest.mark.parametrize("field_type", [None, "", "reference", "geolocation"])
    def test_unknown_types_fall_back_to_default(self, field_type: str | None) -> None:
        assert operators_for_field_type(field_type) == ("=", "!=", "IS NULL", "IS NOT NULL")


class TestReconcileOperators:
    def test_unavailable_operator_reset(self) -> None:
        group = _group(Condition(field="Amount", operator="LIKE", value="1"), NAME_IS_ACME)

        reconciled = reconcile_operators(group, {"Amount": "currency", "Name": "string"})

        assert [c.operator for c in reconciled.conditions] == ["=", "="]
        assert reconciled.conditions[0].value == "1"

    def test_unchanged_group_returned_as_is(self) -> None:
        group = _group(NAME_IS_ACME, Condition(field="Unknown", operator="LIKE", value="x"))

        assert reconcile_operators(group, {"Name": "string"}) is group


class TestCustomLogic:
    @pytest.mark.parametrize(
        "expression",
        ["1", "1 AND 2", "1 and (2 OR 3)", "((1))", "(1 OR 2) AND 3", "1AND2"],
    )
    def test_valid(self, expression: str) -> None:
        assert check_custom_logic(expression, 3) is None

    @pytest.mark.parametrize(
        ("expression", "message"),
        [
            ("", "Custom logic expression is required."),
            ("   ", "Custom logic expression is required."),
            ("4", "Condition 4 does not exist; use numbers between 1 and 3."),
            ("0 OR 1", "Condition 0 does not exist"),
            ("(1 AND 2", "Unmatched opening parenthesis."),
            ("1 AND 2)", "Unmatched closing parenthesis."),
            ("1 AND", "Expression ends unexpectedly"),
            ("1 2", "Invalid token at position 2"),
            ("1 XOR 2", "Invalid token at position 2"),
            ("AND 1", "Invalid token at position 1"),
            ("1 & 2", "got '&'"),
            ("()", "Invalid token at position 2"),
        ],
    )
    def test_invalid(self, expression: str, message: str) -> None:
        problem = check_custom_logic(expression, 3)

        assert problem is not None
        assert message in problem


class TestCheckConditionGroup:
    def test_required_group_needs_complete_condition(self) -> None:
        assert check_condition_group(_group(HALF_FILLED), required=True) == "Please add at least one complete condition."

    def test_optional_group_may_be_empty(self) -> None:
        assert check_condition_group(_group(), required=False) is None

    def test_unknown_field(self) -> None:
        problem = check_condition_group(_group(NAME_IS_ACME), required=True, field_types={"Email": "email"})

        assert problem == "Condition 1 references unknown field 'Name'."

    def test_operator_not_available_for_type(self) -> None:
        group = _group(Condition(field="Amount", operator="LIKE", value="1"))

        problem = check_condition_group(group, required=True, field_types={"Amount": "double"})

        assert problem is not None
        assert "operator 'LIKE' is not available for double field 'Amount'" in problem

    def test_custom_logic_required_for_several_conditions(self) -> None:
        group = _group(NAME_IS_ACME, EMAIL_SET, logic=LogicType.CUSTOM)

        assert check_condition_group(group, required=True) == "Please provide a custom logic expression."

    def test_custom_logic_optional_for_single_condition(self) -> None:
        assert check_condition_group(_group(NAME_IS_ACME, logic=LogicType.CUSTOM), required=True) is None

    def test_custom_logic_rejects_incomplete_rows(self) -> None:
        group = _group(NAME_IS_ACME, HALF_FILLED, EMAIL_SET, logic=LogicType.CUSTOM, custom_logic="1 AND 3")

        problem = check_condition_group(group, required=True)

        assert problem == "Condition 2 is incomplete; complete or remove it before using custom logic."

    def test_custom_logic_indexes_every_row(self) -> None:
        group = _group(NAME_IS_ACME, EMAIL_SET, AMOUNT_OVER_5, logic=LogicType.CUSTOM, custom_logic="1 AND 3")

        assert check_condition_group(group, required=True) is None

    def test_custom_logic_index_beyond_rows(self) -> None:
        group = _group(NAME_IS_ACME, EMAIL_SET, logic=LogicType.CUSTOM, custom_logic="1 AND 3")

        problem = check_condition_group(group, required=True)

        assert problem == "Invalid custom logic: Condition 3 does not exist; use numbers between 1 and 2."

    def test_incomplete_rows_allowed_outside_custom_logic(self) -> None:
        assert check_condition_group(_group(NAME_IS_ACME, HALF_FILLED, logic=LogicType.OR), required=True) is None

    def test_field_errors_use_row_positions(self) -> None:
        group = _group(HALF_FILLED, NAME_IS_ACME)

        problem = check_condition_group(group, required=True, field_types={"Email": "email"})

        assert problem == "Condition 2 references unknown field 'Name'."

    def test_valid_custom_logic(self) -> None:
        group = _group(NAME_IS_ACME, EMAIL_SET, logic=LogicType.CUSTOM, custom_logic="1 OR 2")

        assert check_condition_group(group, required=True) is None


class TestToRecord:
    def test_drops_incomplete_conditions(self) -> None:
        record = _group(NAME_IS_ACME, HALF_FILLED, EMAIL_SET).to_record()

        assert record == {
            "conditions": [
                {"field": "Name", "operator": "=", "value": "Acme"},
                {"field": "Email", "operator": "IS NOT NULL"},
            ],
            "logic": "AND",
        }

    def test_custom_logic_only_for_custom(self) -> None:
        assert "custom_logic" not in _group(NAME_IS_ACME, logic=LogicType.OR, custom_logic="1").to_record()
        assert _group(NAME_IS_ACME, logic=LogicType.CUSTOM, custom_logic=" 1 ").to_record()["custom_logic"] == "1"

    def test_custom_logic_rows_keep_their_positions(self) -> None:
        group = _group(NAME_IS_ACME, EMAIL_SET, AMOUNT_OVER_5, logic=LogicType.CUSTOM, custom_logic="1 AND 2")
        assert check_condition_group(group, required=True) is None

        record = group.to_record()

        assert [condition["field"] for condition in record["conditions"]] == ["Name", "Email", "Amount"]
        assert record["custom_logic"] == "1 AND 2"

# src/mapflow/core/nodes/compatibility.py
"""Type-compatibility tables for mappings and formatter operations.

Form-field types (``shorttext``, ``number``, ``dropdown``...) come from the
source form; record-store field types (``string``, ``double``,
``picklist``...) come from the schema provider.
"""

from __future__ import annotations

from mapflow.contracts.enums import FormatterCategory
from mapflow.contracts.schema import FieldInfo, FormField

# Record-store field type -> form-field types that may feed it
MAPPING_TYPE_COMPATIBILITY: dict[str, frozenset[str]] = {
    "string": frozenset(
        {
            "shorttext",
            "fullname",
            "section",
            "address",
            "longtext",
            "number",
            "price",
            "date",
            "datetime",
            "time",
            "email",
            "phone",
            "dropdown",
            "checkbox",
            "radio",
            "picklist",
        }
    ),
    "double": frozenset({"number", "price"}),
    "currency": frozenset({"price", "number"}),
    "boolean": frozenset({"checkbox"}),
    "date": frozenset({"date"}),
    "datetime": frozenset({"datetime"}),
    "email": frozenset({"email"}),
    "phone": frozenset({"phone"}),
    "picklist": frozenset({"dropdown", "checkbox", "radio", "picklist"}),
    "multipicklist": frozenset({"dropdown", "checkbox", "radio", "picklist"}),
    "textarea": frozenset({"shorttext", "longtext", "fullname", "section", "address"}),
    "url": frozenset({"shorttext"}),
    "percent": frozenset({"number"}),
    "time": frozenset({"time"}),
}

PICKLIST_FIELD_TYPES = frozenset({"picklist", "multipicklist"})

# Single-choice widgets that only make sense for a picklist with real choices
MULTI_OPTION_SOURCE_TYPES = frozenset({"checkbox", "radio"})

_TEXT_INPUTS = ("shorttext", "longtext", "address", "fullname", "email")

FORMATTER_OPERATIONS: dict[FormatterCategory, dict[str, tuple[str, ...]]] = {
    FormatterCategory.DATE: {
        "format_date": ("date", "datetime"),
        "format_time": ("time", "datetime"),
        "format_datetime": ("datetime",),
        "timezone_conversion": ("time", "datetime"),
        "add_date": ("date", "datetime"),
        "subtract_date": ("date", "datetime"),
        "date_difference": ("date", "datetime"),
    },
    FormatterCategory.NUMBER: {
        "locale_format": ("number", "price"),
        "currency_format": ("price", "number"),
        "round_number": ("number", "price"),
        "phone_format": ("phone",),
        "math_operation": ("number", "price"),
    },
    FormatterCategory.TEXT: {
        "uppercase": _TEXT_INPUTS,
        "lowercase": _TEXT_INPUTS,
        "title_case": _TEXT_INPUTS,
        "trim_whitespace": _TEXT_INPUTS,
        "replace": _TEXT_INPUTS,
        "extract_email": _TEXT_INPUTS,
        "split": _TEXT_INPUTS,
        "word_count": _TEXT_INPUTS,
        "url_encode": _TEXT_INPUTS,
    },
}

OPERATION_REQUIRED_OPTIONS: dict[str, tuple[str, ...]] = {
    "format_date": ("format",),
    "format_time": ("format", "timezone"),
    "format_datetime": ("format", "timezone"),
    "timezone_conversion": ("timezone", "target_timezone"),
    "add_date": ("unit", "value"),
    "subtract_date": ("unit", "value"),
    "locale_format": ("locale",),
    "currency_format": ("currency", "locale"),
    "round_number": ("decimals",),
    "phone_format": ("country_code", "format"),
    "math_operation": ("operator",),
    "replace": ("search_value", "replace_value"),
    "split": ("delimiter", "index"),
}

# Options where an empty string is a meaningful value
EMPTY_ALLOWED_OPTIONS = frozenset({"replace_value"})

SECOND_INPUT_OPERATIONS = frozenset({"date_difference", "math_operation"})


def operation_input_types(category: FormatterCategory, operation: str) -> tuple[str, ...] | None:
    """Form-field types accepted by an operation, or None if it is not in the category."""
    return FORMATTER_OPERATIONS[category].get(operation)


def is_mapping_compatible(target: FieldInfo, source: FormField) -> bool:
    """Whether a form field may feed a record-store field.

    Unknown target types fall back to the ``string`` row.
    """
    accepted = MAPPING_TYPE_COMPATIBILITY.get(target.type.lower(), MAPPING_TYPE_COMPATIBILITY["string"])
    if source.type not in accepted:
        return False
    if target.type.lower() in PICKLIST_FIELD_TYPES and source.type in MULTI_OPTION_SOURCE_TYPES:
        return len(source.options) > 1
    return True

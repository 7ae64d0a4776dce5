# tests/conftest.py
"""Shared test fixtures.

Fixtures build editors with deterministic IDs and a frozen clock, plus a
small record-store schema and source-form catalogue used across the
validation, compiler, and CLI tests.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import itertools
import logging
import os
from collections.abc import Callable

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from mapflow.contracts.schema import FieldInfo, FormField
from mapflow.core.clock import MockClock
from mapflow.core.editor import WorkflowEditor
from mapflow.core.schema_cache import StaticSchemaProvider

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Schema and form fixtures
# =============================================================================

CONTACT_FIELDS = [
    FieldInfo(name="LastName", label="Last Name", type="string", required=True),
    FieldInfo(name="Email", type="email"),
    FieldInfo(name="Amount", type="currency"),
    FieldInfo(name="Subscribed", type="boolean"),
    FieldInfo(name="Birthdate", type="date"),
    FieldInfo(name="Status", type="picklist", required=True, picklist_values=("New", "Active", "Closed")),
]

ACCOUNT_FIELDS = [
    FieldInfo(name="Name", type="string", required=True),
    FieldInfo(name="Industry", type="picklist", picklist_values=("Tech", "Retail")),
    FieldInfo(name="Employees", type="double"),
]

FORM_FIELDS = [
    FormField(id="f_last", type="shorttext", label="Last name"),
    FormField(id="f_email", type="email", label="Email"),
    FormField(id="f_amount", type="price", label="Amount"),
    FormField(id="f_agree", type="checkbox", label="Agree", options=("yes",)),
    FormField(id="f_status", type="radio", label="Status", options=("New", "Active")),
    FormField(id="f_born", type="date", label="Born"),
    FormField(id="f_count", type="number", label="Count"),
    FormField(id="f_phone", type="phone", label="Phone"),
]


def make_token_factory() -> Callable[[], str]:
    """Deterministic replacement for random ID suffixes."""
    counter = itertools.count(1)
    return lambda: f"{next(counter):08x}"


@pytest.fixture
def schemas() -> StaticSchemaProvider:
    return StaticSchemaProvider({"Contact": CONTACT_FIELDS, "Account": ACCOUNT_FIELDS})


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=1000.0)


@pytest.fixture
def editor(schemas: StaticSchemaProvider, clock: MockClock) -> WorkflowEditor:
    """Editor with schemas, a form catalogue, a frozen clock, and no debounce."""
    return WorkflowEditor(
        schemas=schemas,
        form_fields=FORM_FIELDS,
        clock=clock,
        debounce_seconds=0.0,
        token=make_token_factory(),
    )


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo configure_logging() calls made by CLI and logging tests."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()

# tests/property/settings.py
"""Standardized Hypothesis settings profiles for property tests.

Import these instead of using inline @settings(max_examples=...).

Usage:
    from tests.property.settings import STANDARD_SETTINGS

    @given(ops=operation_sequences())
    @STANDARD_SETTINGS
    def test_something(ops):
        ...

Tiers:
- STATE_MACHINE_SETTINGS: 200 examples - Stateful editor tests
- STANDARD_SETTINGS: 100 examples - Regular property tests
- QUICK_SETTINGS: 20 examples - Fast validation tests (simple rejection)
"""

from hypothesis import HealthCheck, settings

# RuleBasedStateMachine tests need enough runs to explore edit sequences
STATE_MACHINE_SETTINGS = settings(
    max_examples=200,
    stateful_step_count=40,
    suppress_health_check=[HealthCheck.too_slow],
)

STANDARD_SETTINGS = settings(max_examples=100)

QUICK_SETTINGS = settings(max_examples=20)

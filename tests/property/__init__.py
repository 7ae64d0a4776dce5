# tests/property/__init__.py
"""Property-based tests for mapflow.

Property-based testing validates invariants that must hold for ALL inputs:
acyclicity and successor limits under arbitrary edit sequences, order
monotonicity, idempotent recomputation, and the custom logic grammar.
"""

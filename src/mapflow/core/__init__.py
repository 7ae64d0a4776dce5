# src/mapflow/core/__init__.py
"""Core of mapflow: graph editing, validation, ordering, and compilation."""

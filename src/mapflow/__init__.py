"""
mapflow: visual data-integration workflows compiled into ordered pipelines.

Nodes wired together in an editor are checked against the connection
rules, ordered, validated per kind, and compiled into mapping records that
an execution engine can run later.
"""

__version__ = "0.1.0"

"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import NewType

NodeID = NewType("NodeID", str)
"""Unique, stable node identifier (e.g., 'find_3f2a9c1e')"""

EdgeID = NewType("EdgeID", str)
"""Unique edge identifier (e.g., 'estart-find_3f2a9c1e')"""

BranchGroupID = NewType("BranchGroupID", str)
"""Identifier shared by the two edges of one synthesized Path branch"""

START_NODE_ID = NodeID("start")
"""Identifier of the start sentinel"""

END_NODE_ID = NodeID("end")
"""Identifier of the end sentinel"""

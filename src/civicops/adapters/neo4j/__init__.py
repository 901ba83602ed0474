"""Graph database adapter."""

from __future__ import annotations

from .driver import Neo4jGraphDriver
from .store import GraphStore, flatten_properties

__all__ = ["GraphStore", "Neo4jGraphDriver", "flatten_properties"]

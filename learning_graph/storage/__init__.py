"""
Storage layer for the learning graph.

Course content stores (graph and path catalog) are immutable once
loaded; progress storage is pluggable behind a protocol.
"""

from .graph import GraphStore
from .paths import PathCatalog
from .progress import ProgressStore, InMemoryProgressStore

__all__ = [
    "GraphStore",
    "PathCatalog",
    "ProgressStore",
    "InMemoryProgressStore",
]

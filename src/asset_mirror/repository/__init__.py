"""Repository back-end contract and the in-memory reference back-end."""

from .base import Node, PropertyValue, RepositorySession
from .memory import MemoryRepository, MemorySession

__all__ = [
    "MemoryRepository",
    "MemorySession",
    "Node",
    "PropertyValue",
    "RepositorySession",
]

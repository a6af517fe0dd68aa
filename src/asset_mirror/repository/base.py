"""Repository back-end contract consumed by the sync engine.

The engine never talks to a concrete repository.  It receives a
``RepositorySession`` explicitly on every call and reads nodes as immutable
``Node`` snapshots; all writes go back through the session by path.

Session semantics:

* Writes are buffered in the session until ``save()`` publishes them.
* ``refresh(keep_changes=False)`` discards everything not yet saved.
* Every failure is raised as an ``asset_mirror.errors.RepositoryError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable

PropertyValue = Union[str, list[str]]


@dataclass(frozen=True)
class Node:
    """Point-in-time view of a repository node.

    Attributes:
        identifier: Stable identifier, unchanged by moves and renames.
        path: Absolute path, with ``[n]`` indices for same-name siblings.
        primary_type: The node's primary type name.
        mixins: Mixin (marker tag) names attached to the node.
        properties: Property name to single or multi-valued string.
    """

    identifier: str
    path: str
    primary_type: str
    mixins: tuple[str, ...] = ()
    properties: dict[str, PropertyValue] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Leaf name without a same-name-sibling index."""
        leaf = self.path.rsplit("/", 1)[-1]
        return leaf.split("[", 1)[0]

    @property
    def parent_path(self) -> str:
        """Path of the parent node (``/`` for top-level nodes)."""
        parent = self.path.rsplit("/", 1)[0]
        return parent or "/"

    def is_node_type(self, node_type: str) -> bool:
        """True if *node_type* is the primary type or an attached mixin."""
        return node_type == self.primary_type or node_type in self.mixins

    def get_string(self, name: str) -> str | None:
        """Return a single-valued property, or the first of a multi-value."""
        value = self.properties.get(name)
        if isinstance(value, list):
            return value[0] if value else None
        return value


@runtime_checkable
class RepositorySession(Protocol):
    """Transactional session over a hierarchical repository."""

    def get_node(self, path: str) -> Node: ...

    def get_node_by_identifier(self, identifier: str) -> Node: ...

    def node_exists(self, path: str) -> bool: ...

    def get_children(self, path: str, name: str | None = None) -> list[Node]: ...

    def add_node(self, parent_path: str, name: str, node_type: str) -> Node: ...

    def add_mixin(self, path: str, mixin: str) -> None: ...

    def set_property(self, path: str, name: str, value: PropertyValue) -> None: ...

    def remove_node(self, path: str) -> None: ...

    def move(self, src_path: str, dest_path: str) -> None: ...

    def query(self, statement: str) -> list[Node]: ...

    def save(self) -> None: ...

    def refresh(self, keep_changes: bool = False) -> None: ...

    def has_pending_changes(self) -> bool: ...

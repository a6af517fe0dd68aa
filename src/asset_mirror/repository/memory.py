"""In-memory transactional repository.

``MemoryRepository`` holds the committed tree.  Each ``MemorySession``
works on a private copy: writes stay invisible to other sessions until
``save()`` publishes them, and ``refresh(False)`` throws them away.

Nodes are stored by identifier, children as ordered identifier lists, so
same-name siblings are supported and addressed as ``name[2]``, ``name[3]``
and so on, like in a JCR workspace.

Two counters make write behaviour observable in tests:

* ``MemorySession.writes`` -- mutating calls made through the session.
* ``MemoryRepository.commits`` -- successful ``save()`` calls with changes.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field

from ..errors import ItemExistsError, ItemNotFoundError, RepositoryError
from .base import Node, PropertyValue
from .xpath import DescendantQuery, parse_query

logger = logging.getLogger(__name__)

ROOT_TYPE = "rep:root"


@dataclass
class _Record:
    identifier: str
    name: str
    primary_type: str
    parent: str | None
    mixins: list[str] = field(default_factory=list)
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    children: list[str] = field(default_factory=list)


def _parse_segment(segment: str) -> tuple[str, int]:
    name, bracket, rest = segment.partition("[")
    if not bracket:
        return name, 1
    try:
        index = int(rest.rstrip("]"))
    except ValueError:
        raise RepositoryError(f"Invalid path segment '{segment}'") from None
    if index < 1:
        raise RepositoryError(f"Invalid path segment '{segment}'")
    return name, index


def _check_name(name: str) -> None:
    if not name or "/" in name or "[" in name or name in (".", ".."):
        raise RepositoryError(f"Invalid node name '{name}'")


class MemoryRepository:
    """Committed state shared by every session opened on it."""

    def __init__(self) -> None:
        self.root_id = str(uuid.uuid4())
        self._records: dict[str, _Record] = {
            self.root_id: _Record(
                identifier=self.root_id,
                name="",
                primary_type=ROOT_TYPE,
                parent=None,
            )
        }
        self.commits = 0

    def login(self) -> MemorySession:
        """Open a new session on the current committed state."""
        return MemorySession(self)

    def _snapshot(self) -> dict[str, _Record]:
        return copy.deepcopy(self._records)

    def _publish(self, records: dict[str, _Record]) -> None:
        self._records = copy.deepcopy(records)
        self.commits += 1


class MemorySession:
    """Session with a private working copy of a ``MemoryRepository``."""

    def __init__(self, repository: MemoryRepository) -> None:
        self._repository = repository
        self._records = repository._snapshot()
        self._dirty = False
        self.writes = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_node(self, path: str) -> Node:
        return self._to_node(self._resolve(path))

    def get_node_by_identifier(self, identifier: str) -> Node:
        record = self._records.get(identifier)
        if record is None:
            raise ItemNotFoundError(f"No node with identifier '{identifier}'")
        return self._to_node(record)

    def node_exists(self, path: str) -> bool:
        try:
            self._resolve(path)
        except RepositoryError:
            return False
        return True

    def get_children(self, path: str, name: str | None = None) -> list[Node]:
        record = self._resolve(path)
        return [
            self._to_node(self._records[child_id])
            for child_id in record.children
            if name is None or self._records[child_id].name == name
        ]

    def query(self, statement: str) -> list[Node]:
        parsed = parse_query(statement)
        try:
            scope = self._resolve(parsed.scope)
        except ItemNotFoundError:
            logger.warning("Query scope %s does not exist: %s", parsed.scope, statement)
            return []
        return [
            self._to_node(record)
            for record in self._descendants(scope)
            if self._matches(record, parsed)
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_node(
        self,
        parent_path: str,
        name: str,
        node_type: str,
        identifier: str | None = None,
    ) -> Node:
        _check_name(name)
        parent = self._resolve(parent_path)
        identifier = identifier or str(uuid.uuid4())
        if identifier in self._records:
            raise ItemExistsError(f"Identifier '{identifier}' already in use")
        record = _Record(
            identifier=identifier,
            name=name,
            primary_type=node_type,
            parent=parent.identifier,
        )
        self._records[identifier] = record
        parent.children.append(identifier)
        self._touch()
        return self._to_node(record)

    def add_mixin(self, path: str, mixin: str) -> None:
        record = self._resolve(path)
        if mixin not in record.mixins:
            record.mixins.append(mixin)
        self._touch()

    def set_property(self, path: str, name: str, value: PropertyValue) -> None:
        record = self._resolve(path)
        record.properties[name] = list(value) if isinstance(value, list) else value
        self._touch()

    def remove_node(self, path: str) -> None:
        record = self._resolve(path)
        if record.parent is None:
            raise RepositoryError("Cannot remove the root node")
        self._records[record.parent].children.remove(record.identifier)
        for doomed in [record, *self._descendants(record)]:
            del self._records[doomed.identifier]
        self._touch()

    def move(self, src_path: str, dest_path: str) -> None:
        record = self._resolve(src_path)
        if record.parent is None:
            raise RepositoryError("Cannot move the root node")

        parent_path, _, new_name = dest_path.rstrip("/").rpartition("/")
        _check_name(new_name)
        new_parent = self._resolve(parent_path or "/")

        if any(
            self._records[child].name == new_name
            for child in new_parent.children
            if child != record.identifier
        ):
            raise ItemExistsError(f"Node already exists at {dest_path}")

        ancestor: _Record | None = new_parent
        while ancestor is not None:
            if ancestor.identifier == record.identifier:
                raise RepositoryError(
                    f"Cannot move {src_path} below itself ({dest_path})"
                )
            ancestor = (
                self._records[ancestor.parent]
                if ancestor.parent is not None
                else None
            )

        self._records[record.parent].children.remove(record.identifier)
        record.name = new_name
        record.parent = new_parent.identifier
        new_parent.children.append(record.identifier)
        self._touch()

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------

    def save(self) -> None:
        if not self._dirty:
            return
        self._repository._publish(self._records)
        self._dirty = False
        logger.debug("Session saved after %d write(s)", self.writes)

    def refresh(self, keep_changes: bool = False) -> None:
        if keep_changes:
            return
        if self._dirty:
            logger.debug("Discarding unsaved session changes")
        self._records = self._repository._snapshot()
        self._dirty = False

    def has_pending_changes(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        self._dirty = True
        self.writes += 1

    def _resolve(self, path: str) -> _Record:
        if not path.startswith("/"):
            raise RepositoryError(f"Path must be absolute: '{path}'")
        record = self._records[self._repository.root_id]
        for segment in path.split("/"):
            if not segment:
                continue
            name, index = _parse_segment(segment)
            same_name = [
                child
                for child in record.children
                if self._records[child].name == name
            ]
            if len(same_name) < index:
                raise ItemNotFoundError(f"No node at {path}")
            record = self._records[same_name[index - 1]]
        return record

    def _path_of(self, record: _Record) -> str:
        segments: list[str] = []
        while record.parent is not None:
            parent = self._records[record.parent]
            siblings = [
                child
                for child in parent.children
                if self._records[child].name == record.name
            ]
            index = siblings.index(record.identifier) + 1
            segments.append(
                record.name if index == 1 else f"{record.name}[{index}]"
            )
            record = parent
        return "/" + "/".join(reversed(segments))

    def _to_node(self, record: _Record) -> Node:
        return Node(
            identifier=record.identifier,
            path=self._path_of(record),
            primary_type=record.primary_type,
            mixins=tuple(record.mixins),
            properties=copy.deepcopy(record.properties),
        )

    def _descendants(self, record: _Record) -> Iterator[_Record]:
        for child_id in list(record.children):
            child = self._records[child_id]
            yield child
            yield from self._descendants(child)

    @staticmethod
    def _matches(record: _Record, query: DescendantQuery) -> bool:
        if (
            record.primary_type != query.node_type
            and query.node_type not in record.mixins
        ):
            return False
        for predicate in query.predicates:
            value = record.properties.get(predicate.prop)
            if value is None:
                return False
            values = value if isinstance(value, list) else [value]
            if predicate.op == "=" and predicate.value not in values:
                return False
            if predicate.op == "!=" and predicate.value in values:
                return False
        return True

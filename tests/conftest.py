"""Shared pytest fixtures for asset-mirror-sync tests."""

from __future__ import annotations

import pytest

from asset_mirror.config_schema import MirrorConfig, build_config
from asset_mirror.repository import MemoryRepository, MemorySession, Node

PRIMARY = "/content/documents"
MIRROR = "/content/gallery"


class TreeBuilder:
    """Seed a ``MemoryRepository`` with content, containers and assets.

    Every helper saves immediately so sessions opened afterwards see the
    seeded state.  Relative paths are relative to both tree roots.
    """

    def __init__(self, repository: MemoryRepository, config: MirrorConfig) -> None:
        self.repository = repository
        self.config = config
        self.session: MemorySession = repository.login()
        for path in ("/content", PRIMARY, MIRROR):
            self._ensure(path, "hippostd:folder")
        self.session.save()

    # -- primary tree --------------------------------------------------

    def folder(self, rel: str, names: dict[str, str] | None = None) -> Node:
        """Create primary folders along *rel*; *names* go on the last one."""
        path = self._ensure(f"{PRIMARY}/{rel}", "hippostd:folder")
        self.display_names(path, names or {})
        self.session.save()
        return self.session.get_node(path)

    def document(
        self,
        rel: str,
        links: list[str] | None = None,
        names: dict[str, str] | None = None,
    ) -> Node:
        """Create a document handle with one variant holding *links*."""
        parent, _, name = f"{PRIMARY}/{rel}".rpartition("/")
        self._ensure(parent, "hippostd:folder")
        handle = self.session.add_node(parent, name, "hippo:handle")
        variant = self.session.add_node(handle.path, name, "demo:newsdocument")
        self.session.add_mixin(variant.path, "hippostdpubwf:document")
        for target in links or []:
            link = self.session.add_node(variant.path, "demo:image", "hippo:facetselect")
            self.session.set_property(link.path, "hippo:docbase", target)
        self.display_names(handle.path, names or {})
        self.session.save()
        return self.session.get_node(handle.path)

    # -- mirror tree ---------------------------------------------------

    def container(
        self,
        rel: str,
        names: dict[str, str] | None = None,
        markers: bool = True,
    ) -> Node:
        """Create mirror containers along *rel*."""
        path = MIRROR
        for segment in rel.split("/"):
            path = f"{path}/{segment}"
            if self.session.node_exists(path):
                continue
            parent, _, name = path.rpartition("/")
            self.session.add_node(parent, name, self.config.container.node_type)
            if markers:
                for mixin in self.config.container.mixins:
                    self.session.add_mixin(path, mixin)
                for prop, values in self.config.container.properties.items():
                    self.session.set_property(path, prop, list(values))
        self.display_names(path, names or {})
        self.session.save()
        return self.session.get_node(path)

    def asset(self, container_rel: str, name: str = "image.png") -> str:
        """Create an asset handle in a container and return its identifier.

        An empty *container_rel* stores the asset directly under the mirror
        root.
        """
        parent = self.container(container_rel).path if container_rel else MIRROR
        handle = self.session.add_node(parent, name, "hippo:handle")
        self.session.add_node(handle.path, name, "hippogallery:imageset")
        self.session.save()
        return handle.identifier

    # -- shared --------------------------------------------------------

    def display_names(self, path: str, names: dict[str, str]) -> None:
        for language, message in names.items():
            node = self.session.add_node(path, "hippo:translation", "hippo:translation")
            self.session.set_property(node.path, "hippo:language", language)
            self.session.set_property(node.path, "hippo:message", message)

    def _ensure(self, path: str, node_type: str) -> str:
        current = ""
        for segment in path.strip("/").split("/"):
            parent = current or "/"
            current = f"{current}/{segment}"
            if not self.session.node_exists(current):
                self.session.add_node(parent, segment, node_type)
        return current


def _names_of(session, path: str) -> dict[str, str]:
    return {
        node.get_string("hippo:language"): node.get_string("hippo:message")
        for node in session.get_children(path, "hippo:translation")
    }


@pytest.fixture
def config() -> MirrorConfig:
    """Default layout with a fixed fallback locale."""
    return build_config({"display_names": {"default_locale": "en"}})


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def tree(repository, config) -> TreeBuilder:
    return TreeBuilder(repository, config)


@pytest.fixture
def names_of():
    """Read display names under a path as ``{language: message}``."""
    return _names_of

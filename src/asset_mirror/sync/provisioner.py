"""Idempotent provisioning of mirror ancestor folders.

Walks a relative path segment by segment below the mirror root, descending
into folders that exist and creating the ones that do not.  A created
folder gets the container type, both marker tags, both marker properties
and the display names of the matching primary-tree folder.

Nothing is saved here: the caller's transaction commits the whole chain or
discards it, so a partially created chain is never visible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from asset_mirror.config import default_language
from asset_mirror.config_schema import MirrorConfig
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.sync.paths import PathMapper, join, split_segments, strip_index
from asset_mirror.sync.translations import copy_display_names

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Outcome of ``FolderProvisioner.ensure_folders``.

    Attributes:
        folder: The deepest folder of the requested chain.
        created: Absolute paths of folders created, shallowest first.
    """

    folder: Node
    created: list[str] = field(default_factory=list)


class FolderProvisioner:
    """Create missing mirror folders along a relative path.

    Args:
        config: Layout configuration.
    """

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self.mapper = PathMapper(config)
        self.default_language = default_language(config)

    def ensure_folders(
        self, session: RepositorySession, relative_path: str
    ) -> ProvisionResult:
        """Make sure ``<mirror_root>/<relative_path>`` exists.

        Args:
            session: Session the writes are buffered in.
            relative_path: Path relative to both tree roots.  Same-name
                sibling indices are dropped from each segment.

        Returns:
            ``ProvisionResult`` with the deepest folder and created paths.

        Raises:
            RepositoryError: If a primary ancestor is missing or a write
                fails; the caller is expected to discard the session.
        """
        mirror_path = self.mapper.mirror_root
        primary_path = self.mapper.primary_root
        created: list[str] = []

        for segment in split_segments(relative_path):
            name = strip_index(segment)
            mirror_path = join(mirror_path, name)
            primary_path = join(primary_path, name)

            if session.node_exists(mirror_path):
                continue

            # Display names come from the primary folder at the same depth.
            primary_folder = session.get_node(primary_path)
            self._create_container(session, mirror_path)
            copy_display_names(
                session,
                primary_folder.path,
                mirror_path,
                self.config.display_names,
                self.default_language,
            )
            created.append(mirror_path)
            logger.info("Provisioned mirror folder %s", mirror_path)

        return ProvisionResult(folder=session.get_node(mirror_path), created=created)

    def _create_container(self, session: RepositorySession, path: str) -> Node:
        container = self.config.container
        parent, _, name = path.rpartition("/")
        node = session.add_node(parent, name, container.node_type)
        for mixin in container.mixins:
            session.add_mixin(node.path, mixin)
        for prop, values in container.properties.items():
            session.set_property(node.path, prop, list(values))
        return node

    def heal_markers(self, session: RepositorySession, path: str) -> bool:
        """Re-attach marker tags and properties missing on *path*.

        Marker properties that are present keep their values.

        Returns:
            True if anything was written.
        """
        container = self.config.container
        node = session.get_node(path)
        updated = False

        for mixin in container.mixins:
            if not node.is_node_type(mixin):
                session.add_mixin(path, mixin)
                updated = True
        for prop, values in container.properties.items():
            if not node.properties.get(prop):
                session.set_property(path, prop, list(values))
                updated = True

        if updated:
            logger.debug("Restored container markers on %s", path)
        return updated

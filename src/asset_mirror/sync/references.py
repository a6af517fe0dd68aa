"""Reverse reference discovery.

Finds the mirror containers a content subtree links to: one structural
query collects every link node below the subtree root whose reference is
set and not the null sentinel; each reference is resolved to its target
handle, targets outside the mirror root are ignored, and each target maps
to its parent folder (the container).  Containers are deduplicated by path
and returned in discovery order.
"""

from __future__ import annotations

import logging

from asset_mirror.config_schema import MirrorConfig
from asset_mirror.errors import ItemNotFoundError, UnresolvableReferenceError
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.repository.xpath import build_descendant_query
from asset_mirror.sync.paths import PathMapper

logger = logging.getLogger(__name__)


class ReferenceFinder:
    """Find mirror containers referenced from a content subtree.

    Args:
        config: Layout configuration (link type, reference property,
            null sentinel, handle type, mirror root).
    """

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self.mapper = PathMapper(config)

    def build_query(self, subtree_path: str) -> str:
        link = self.config.link
        return build_descendant_query(
            subtree_path,
            link.node_type,
            required_property=link.reference_property,
            excluded_value=link.null_reference,
        )

    def find_containers(
        self, session: RepositorySession, subtree_path: str
    ) -> list[Node]:
        """Return the containers referenced from below *subtree_path*.

        Unresolvable references are logged and skipped.  Query failures
        propagate as ``RepositoryError``.
        """
        containers: dict[str, Node] = {}
        reference_property = self.config.link.reference_property

        for link_node in session.query(self.build_query(subtree_path)):
            reference = link_node.get_string(reference_property)
            if not reference:
                continue
            try:
                target = self._resolve(session, reference, link_node.path)
            except UnresolvableReferenceError as exc:
                logger.warning("%s", exc)
                continue

            if not self.mapper.is_under_mirror(target.path):
                logger.debug(
                    "Ignoring link %s -> %s outside the mirror root",
                    link_node.path,
                    target.path,
                )
                continue

            container = session.get_node(target.parent_path)
            if not self.mapper.is_under_mirror(container.path):
                # Assets stored directly under the mirror root have no container.
                logger.debug(
                    "Ignoring link %s -> %s without a container",
                    link_node.path,
                    target.path,
                )
                continue
            containers.setdefault(container.path, container)

        logger.debug(
            "Found %d linked container(s) under %s",
            len(containers),
            subtree_path,
        )
        return list(containers.values())

    def _resolve(
        self, session: RepositorySession, reference: str, link_path: str
    ) -> Node:
        try:
            target = session.get_node_by_identifier(reference)
        except ItemNotFoundError:
            raise UnresolvableReferenceError(
                reference, link_path, "target node does not exist"
            ) from None

        handle_type = self.config.repository.handle_type
        if not target.is_node_type(handle_type):
            raise UnresolvableReferenceError(
                reference,
                link_path,
                f"target {target.path} is not a {handle_type}",
            )
        return target

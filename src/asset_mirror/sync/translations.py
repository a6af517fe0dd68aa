"""Display-name (translation) copying between folders.

Display names are child nodes of a folder, one per language, each holding a
language and a message property.  Copying from a primary node to a mirror
container merges by language:

* an existing target entry for the language gets the source message;
* a missing one is appended;
* a blank source language matches the target's default-language entry
  and is dropped when the target has none.

Under the ``strict`` policy target languages absent from the source are
removed afterwards; the default ``additive`` policy keeps them.
"""

from __future__ import annotations

import logging

from asset_mirror.config_schema import DisplayNameConfig
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.sync.models import LocalizedName

logger = logging.getLogger(__name__)


def read_display_names(
    session: RepositorySession, path: str, config: DisplayNameConfig
) -> list[tuple[Node, LocalizedName]]:
    """Return the display-name nodes under *path* with their values."""
    entries: list[tuple[Node, LocalizedName]] = []
    for node in session.get_children(path, config.node_name):
        entries.append(
            (
                node,
                LocalizedName(
                    language=node.get_string(config.language_property) or "",
                    message=node.get_string(config.message_property) or "",
                ),
            )
        )
    return entries


def _find(
    entries: list[tuple[Node, LocalizedName]], language: str
) -> tuple[Node, LocalizedName] | None:
    for entry in entries:
        if entry[1].language == language:
            return entry
    return None


def copy_display_names(
    session: RepositorySession,
    source_path: str,
    target_path: str,
    config: DisplayNameConfig,
    default_language: str,
    policy: str | None = None,
) -> bool:
    """Copy display names from *source_path* onto *target_path*.

    Args:
        session: Session the writes are buffered in.
        source_path: Primary node providing the names.
        target_path: Mirror container receiving them.
        config: Display-name node and property names.
        default_language: Fallback for blank source languages.
        policy: ``additive`` or ``strict``; the configured policy when None.

    Returns:
        True if anything was written.
    """
    policy = policy or config.policy
    source = read_display_names(session, source_path, config)
    target = read_display_names(session, target_path, config)
    updated = False
    kept: set[str] = set()

    for _, name in source:
        match = _find(target, name.language)
        if match is None and not name.language.strip():
            match = _find(target, default_language)
            if match is None:
                logger.debug(
                    "No '%s' display name on %s for blank-language entry of %s",
                    default_language,
                    target_path,
                    source_path,
                )
                continue

        if match is None:
            node = session.add_node(
                target_path, config.node_name, config.node_type
            )
            session.set_property(
                node.path, config.language_property, name.language
            )
            session.set_property(
                node.path, config.message_property, name.message
            )
            target.append((node, name))
            kept.add(node.identifier)
            updated = True
            continue

        node, existing = match
        kept.add(node.identifier)
        if existing.message != name.message:
            session.set_property(
                node.path, config.message_property, name.message
            )
            updated = True

    if policy == "strict":
        # Remove from the end so same-name-sibling indices stay valid.
        for node, name in reversed(target):
            if node.identifier not in kept:
                logger.debug(
                    "Removing display name '%s' from %s", name.language, target_path
                )
                session.remove_node(node.path)
                updated = True

    return updated

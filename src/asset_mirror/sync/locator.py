"""Default upload location for newly linked assets.

When an editor picks an asset from inside a document, the picker should
open at the document's own mirror container.  ``UploadLocationResolver``
finds (and on first use creates) that container; ``PickerSettings``
exposes it through a plain lookup-with-override map on top of the picker's
own settings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from asset_mirror.config_schema import MirrorConfig
from asset_mirror.errors import RepositoryError
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.sync.paths import PathMapper
from asset_mirror.sync.provisioner import FolderProvisioner

logger = logging.getLogger(__name__)

BASE_UUID = "base.uuid"
LAST_VISITED_ENABLED = "last.visited.enabled"


class UploadLocationResolver:
    """Resolve the mirror container for the document owning a field node.

    Args:
        config: Layout configuration.
    """

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self.mapper = PathMapper(config)
        self.provisioner = FolderProvisioner(config)

    def find_handle(self, session: RepositorySession, field_path: str) -> Node | None:
        """Walk up from *field_path* to the handle of the enclosing document."""
        document_type = self.config.repository.document_type
        node = session.get_node(field_path)
        while not node.is_node_type(document_type):
            if node.path == "/":
                return None
            node = session.get_node(node.parent_path)
        return session.get_node(node.parent_path)

    def resolve(self, session: RepositorySession, field_path: str) -> str | None:
        """Return the identifier of the upload container for *field_path*.

        Missing mirror folders are created and saved.  Returns ``None``
        when the field is not inside a document of the primary tree or the
        repository fails (changes are then discarded).
        """
        try:
            handle = self.find_handle(session, field_path)
            if handle is None or not self.mapper.is_under_primary(handle.path):
                logger.debug("No primary-tree document encloses %s", field_path)
                return None

            result = self.provisioner.ensure_folders(
                session, self.mapper.to_primary_relative(handle.path)
            )
            if result.created:
                session.save()
            logger.debug("Upload folder for %s: %s", field_path, result.folder.path)
            return result.folder.identifier
        except RepositoryError as exc:
            logger.error(
                "Repository exception while resolving upload folder for %s: %s",
                field_path,
                exc,
            )
            try:
                session.refresh(False)
            except RepositoryError as refresh_exc:
                logger.error("Failed to refresh the session: %s", refresh_exc)
            return None


class PickerSettings:
    """Picker settings with per-key overrides.

    ``get`` returns the override for a key when one is registered,
    otherwise the upstream value.  Overrides are either constants or
    zero-argument callables evaluated on lookup.

    Args:
        upstream: The picker's own settings.
        overrides: Key to value (or value factory).
    """

    def __init__(
        self,
        upstream: Mapping[str, Any],
        overrides: Mapping[str, Any | Callable[[], Any]] | None = None,
    ) -> None:
        self.upstream = upstream
        self.overrides = dict(overrides or {})

    @classmethod
    def for_field(
        cls,
        upstream: Mapping[str, Any],
        resolver: UploadLocationResolver,
        session: RepositorySession,
        field_path: str,
    ) -> PickerSettings:
        """Settings that open the picker at the field's upload folder."""
        return cls(
            upstream,
            {
                BASE_UUID: lambda: resolver.resolve(session, field_path),
                LAST_VISITED_ENABLED: "false",
            },
        )

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.overrides:
            value = self.overrides[key]
            value = value() if callable(value) else value
            return default if value is None else value
        return self.upstream.get(key, default)

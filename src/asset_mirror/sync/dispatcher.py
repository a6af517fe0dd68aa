"""Workflow event dispatcher.

Filters the host's event stream down to the three structural changes the
mirror follows and hands each to the ``MirrorSynchronizer``:

=============================  ==================  ===================
action                         subject             change
=============================  ==================  ===================
``rename``                     folder              ``FOLDER_RENAME``
``replaceAllLocalizedNames``   handle              ``LEAF_RENAME``
``move``                       handle              ``SUBTREE_MOVE``
=============================  ==================  ===================

A document rename fires ``rename`` followed by ``replaceAllLocalizedNames``
when the URL name changes, but only ``replaceAllLocalizedNames`` when just
the label changes, so the leaf rename is keyed on the latter and must be
idempotent.

Whatever happens, the session's unsaved state is discarded afterwards and
no exception escapes to the channel.
"""

from __future__ import annotations

import logging

from asset_mirror.config_schema import MirrorConfig
from asset_mirror.errors import (
    ItemNotFoundError,
    MalformedEventError,
    RepositoryError,
)
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.sync.engine import MirrorSynchronizer
from asset_mirror.sync.models import (
    ChangeKind,
    StructuralChangeEvent,
    SyncReport,
    WorkflowEvent,
)
from asset_mirror.sync.paths import PathMapper, join

logger = logging.getLogger(__name__)

WORKFLOW_CATEGORY = "workflow"
ACTION_RENAME = "rename"
ACTION_LOCALIZED_NAMES = "replaceAllLocalizedNames"
ACTION_MOVE = "move"


class EventDispatcher:
    """Classify workflow events and run the synchronizer on each.

    Args:
        session: Session used for every event (one writer, one event at
            a time).
        config: Layout configuration.
        synchronizer: Synchronizer to run; built from *config* when omitted.
    """

    def __init__(
        self,
        session: RepositorySession,
        config: MirrorConfig,
        synchronizer: MirrorSynchronizer | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.mapper = PathMapper(config)
        self.synchronizer = synchronizer or MirrorSynchronizer(config)

    def __call__(self, event: WorkflowEvent) -> None:
        self.handle_event(event)

    def handle_event(self, event: WorkflowEvent) -> SyncReport | None:
        """Handle one event from the channel.  Never raises.

        Returns:
            The synchronizer's report, or ``None`` when the event was not
            one the mirror follows.
        """
        if event.category != WORKFLOW_CATEGORY:
            return None

        try:
            if not self.mapper.is_under_primary(event.subject_path):
                logger.info(
                    "Ignoring event on '%s' because it's not under '%s'.",
                    event.subject_path,
                    self.mapper.primary_root,
                )
                return None

            change = self.classify(event)
            if change is None:
                return None
            return self.synchronizer.synchronize(self.session, change)
        except MalformedEventError as exc:
            logger.warning("Ignoring malformed %s event: %s", event.action, exc)
            return None
        except RepositoryError as exc:
            logger.error(
                "Repository exception while handling %s workflow event on %s: %s",
                event.action,
                event.subject_path,
                exc,
            )
            return None
        except Exception:
            logger.exception(
                "Unexpected error while handling %s workflow event on %s",
                event.action,
                event.subject_path,
            )
            return None
        finally:
            self._discard()

    def classify(self, event: WorkflowEvent) -> StructuralChangeEvent | None:
        """Map a workflow event to a structural change, if it is one.

        Raises:
            MalformedEventError: A folder rename lacks its name arguments.
            RepositoryError: The subject could not be read.
        """
        if event.action not in (ACTION_RENAME, ACTION_LOCALIZED_NAMES, ACTION_MOVE):
            return None

        try:
            subject = self.session.get_node_by_identifier(event.subject_id)
        except ItemNotFoundError:
            logger.warning(
                "Subject %s of %s event not found", event.subject_id, event.action
            )
            return None

        if event.action == ACTION_RENAME:
            if not subject.is_node_type(self.config.repository.folder_type):
                return None
            if len(event.arguments) < 2 or not all(
                arg and arg.strip() for arg in event.arguments[:2]
            ):
                raise MalformedEventError(
                    f"rename on {event.subject_path} needs old and new names, "
                    f"got {event.arguments!r}"
                )
            return StructuralChangeEvent(
                kind=ChangeKind.FOLDER_RENAME,
                subject_id=event.subject_id,
                path_before=event.subject_path,
                path_after=subject.path,
                old_name=event.arguments[0],
                new_name=event.arguments[1],
            )

        if not self._is_handle(subject):
            return None

        kind = (
            ChangeKind.LEAF_RENAME
            if event.action == ACTION_LOCALIZED_NAMES
            else ChangeKind.SUBTREE_MOVE
        )
        return StructuralChangeEvent(
            kind=kind,
            subject_id=event.subject_id,
            path_before=event.subject_path,
            path_after=subject.path,
        )

    def _is_handle(self, node: Node) -> bool:
        """A handle has the handle type and a child sharing its own name."""
        return node.is_node_type(
            self.config.repository.handle_type
        ) and self.session.node_exists(join(node.path, node.name))

    def _discard(self) -> None:
        try:
            self.session.refresh(False)
        except RepositoryError as exc:
            logger.error("Failed to refresh the session: %s", exc)

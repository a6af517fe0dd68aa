"""Pydantic models for the mirror sync engine.

Defines the core data contracts used across all sync modules:

- ``WorkflowEvent``: Inbound event as delivered by the host channel.
- ``ChangeKind``: Classified structural change.
- ``StructuralChangeEvent``: A classified event handed to the synchronizer.
- ``LocalizedName``: One (language, message) display name.
- ``SyncPhase`` / ``SyncStatus``: State machine phase and final status.
- ``MoveResult``: One planned container relocation.
- ``SyncReport``: Outcome of handling one event.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class WorkflowEvent(BaseModel):
    """Event shape delivered on the host's event channel.

    Attributes:
        category: Event category; only ``workflow`` is handled.
        action: Workflow action name (``rename``, ``move`` ...).
        subject_id: Identifier of the node the action applied to.
        subject_path: Subject path as seen when the event was raised.
        arguments: Action arguments, in order.
    """

    category: str
    action: str
    subject_id: str
    subject_path: str
    arguments: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ChangeKind(str, Enum):
    """Structural changes the mirror follows."""

    LEAF_RENAME = "leaf_rename"
    FOLDER_RENAME = "folder_rename"
    SUBTREE_MOVE = "subtree_move"


class StructuralChangeEvent(BaseModel):
    """A classified structural change.

    Attributes:
        kind: What changed.
        subject_id: Identifier of the handle or folder that changed.
        path_before: Subject path before the change (for folder renames,
            the parent folder holding the renamed child).
        path_after: Subject path after the change, when known.
        old_name: Previous leaf name (folder renames).
        new_name: New leaf name (folder renames).
    """

    kind: ChangeKind
    subject_id: str
    path_before: str
    path_after: str | None = None
    old_name: str | None = None
    new_name: str | None = None

    model_config = {"frozen": True}


class LocalizedName(BaseModel):
    """A display name for one language; language is unique per node."""

    language: str
    message: str

    model_config = {"frozen": True}


class SyncPhase(str, Enum):
    """States of the per-event state machine."""

    RESOLVE = "resolve"
    LOCATE = "locate"
    COMPUTE = "compute"
    APPLY = "apply"
    COMMIT = "commit"
    ROLLBACK = "rollback"


class SyncStatus(str, Enum):
    """Final status of one handled event."""

    SKIPPED = "skipped"
    NOOP = "noop"
    UNCHANGED = "unchanged"
    COMMITTED = "committed"
    FAILED = "failed"


class MoveResult(BaseModel):
    """One container relocation computed for an event.

    Attributes:
        source: Absolute mirror path before the move.
        target: Absolute mirror path after the move.
        source_node: Absolute primary path display names are copied from.
        moved: Whether a move was applied (False when already in place).
        healed: Whether marker tags, properties or display names were
            (re)written.
    """

    source: str
    target: str
    source_node: str
    moved: bool = False
    healed: bool = False

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Outcome of handling one structural change event.

    Attributes:
        kind: Kind of change handled, if the event got that far.
        subject_path: Current subject path, if resolved.
        status: Final status.
        phase: Last phase reached (the failing phase for ``FAILED``).
        moves: Planned relocations, with what was applied.
        created_folders: Mirror folders provisioned for this event.
        error: Error message when the event failed.
    """

    kind: ChangeKind | None = None
    subject_path: str | None = None
    status: SyncStatus
    phase: SyncPhase
    moves: list[MoveResult] = []
    created_folders: list[str] = []
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def applied(self) -> list[MoveResult]:
        """Moves that actually relocated a container."""
        return [m for m in self.moves if m.moved]

    @property
    def changed(self) -> bool:
        """True if the event committed any write."""
        return self.status == SyncStatus.COMMITTED

    def summary(self) -> str:
        """Format a one-line summary for logging."""
        kind = self.kind.value if self.kind else "unclassified"
        text = (
            f"{kind} {self.subject_path or '?'}: {self.status.value} "
            f"(moved={len(self.applied)}, planned={len(self.moves)}, "
            f"created={len(self.created_folders)})"
        )
        if self.error:
            text += f" error={self.error}"
        return text

"""Mirror tree synchronisation engine.

Public API for keeping the asset container tree (the *mirror*) aligned
with the content tree (the *primary*) after structural changes.

Architecture
------------
Each workflow event is classified by the ``EventDispatcher`` and handled
by the ``MirrorSynchronizer`` as one transaction: Resolve, Locate,
Compute, Apply, then Commit or Rollback.  Containers are found through
the links content holds to mirror assets, never by scanning the mirror.

Modules:

- ``dispatcher``  -- ``EventDispatcher``: event filtering and classification.
- ``engine``      -- ``MirrorSynchronizer``: the per-event state machine.
- ``references``  -- ``ReferenceFinder``: linked container discovery.
- ``provisioner`` -- ``FolderProvisioner``: idempotent mirror folder creation.
- ``translations`` -- display-name merging between folders.
- ``paths``       -- ``PathMapper`` and root-prefix path algebra.
- ``locator``     -- default upload folder for the asset picker.
- ``models``      -- event, report and display-name contracts.

Deletions in the primary tree are not propagated; containers of deleted
documents stay in the mirror.

Usage example
-------------
::

    from asset_mirror.config import load_config
    from asset_mirror.repository import MemoryRepository
    from asset_mirror.sync import EventDispatcher, WorkflowEvent

    config = load_config()
    session = MemoryRepository().login()
    dispatcher = EventDispatcher(session, config)

    report = dispatcher.handle_event(
        WorkflowEvent(
            category="workflow",
            action="replaceAllLocalizedNames",
            subject_id=handle_id,
            subject_path="/content/documents/news/hello-world-2",
        )
    )
    print(report.summary())
"""

from .dispatcher import EventDispatcher
from .engine import MirrorSynchronizer
from .locator import PickerSettings, UploadLocationResolver
from .models import (
    ChangeKind,
    LocalizedName,
    MoveResult,
    StructuralChangeEvent,
    SyncPhase,
    SyncReport,
    SyncStatus,
    WorkflowEvent,
)
from .paths import PathMapper, absolutize, relativize
from .provisioner import FolderProvisioner, ProvisionResult
from .references import ReferenceFinder
from .translations import copy_display_names, read_display_names

__all__ = [
    "ChangeKind",
    "EventDispatcher",
    "FolderProvisioner",
    "LocalizedName",
    "MirrorSynchronizer",
    "MoveResult",
    "PathMapper",
    "PickerSettings",
    "ProvisionResult",
    "ReferenceFinder",
    "StructuralChangeEvent",
    "SyncPhase",
    "SyncReport",
    "SyncStatus",
    "UploadLocationResolver",
    "WorkflowEvent",
    "absolutize",
    "copy_display_names",
    "read_display_names",
    "relativize",
]

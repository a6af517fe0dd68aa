"""Core mirror synchronizer.

The ``MirrorSynchronizer`` handles one ``StructuralChangeEvent`` as one
transaction, moving through these phases:

1. **Resolve** -- load the subject by identifier; subjects outside the
   primary root are skipped silently.
2. **Locate** -- find the mirror containers linked from the affected
   subtree (the renamed child folder, or the handle itself).
3. **Compute** -- decide which containers qualify and where each must go.
4. **Apply** -- provision missing ancestors, move, restore container
   markers and re-copy display names.
5. **Commit** -- save once if anything changed, otherwise write nothing.
6. **Rollback** -- on any failure discard all unsaved changes and log.

Failures never propagate: the event is reported as ``FAILED`` and is not
retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from asset_mirror.config import default_language
from asset_mirror.config_schema import MirrorConfig
from asset_mirror.errors import ItemNotFoundError, RepositoryError
from asset_mirror.repository.base import Node, RepositorySession
from asset_mirror.sync.models import (
    ChangeKind,
    MoveResult,
    StructuralChangeEvent,
    SyncPhase,
    SyncReport,
    SyncStatus,
)
from asset_mirror.sync.paths import (
    PathMapper,
    is_same_or_descendant,
    join,
    parent_of,
    replace_prefix,
)
from asset_mirror.sync.provisioner import FolderProvisioner
from asset_mirror.sync.references import ReferenceFinder
from asset_mirror.sync.translations import copy_display_names

logger = logging.getLogger(__name__)


@dataclass
class _Plan:
    source: str
    target: str
    source_node: str


class MirrorSynchronizer:
    """Restructure the mirror tree after one structural change.

    Args:
        config: Layout configuration shared by all components.
    """

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self.mapper = PathMapper(config)
        self.finder = ReferenceFinder(config)
        self.provisioner = FolderProvisioner(config)
        self.default_language = default_language(config)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def synchronize(
        self, session: RepositorySession, event: StructuralChangeEvent
    ) -> SyncReport:
        """Handle one event.  Never raises.

        Args:
            session: Session all reads and writes go through.
            event: The classified structural change.

        Returns:
            A ``SyncReport`` describing what was (or was not) done.
        """
        phase = SyncPhase.RESOLVE
        subject_path: str | None = None
        plans: list[_Plan] = []
        created: list[str] = []
        results: list[MoveResult] = []

        try:
            subject = self._resolve(session, event)
            if subject is None:
                return self._report(event, SyncStatus.SKIPPED, phase)
            subject_path = subject.path

            phase = SyncPhase.LOCATE
            located = self._locate(session, event, subject)
            if located is None:
                return self._report(
                    event, SyncStatus.NOOP, phase, subject_path=subject_path
                )
            scope, candidates = located

            phase = SyncPhase.COMPUTE
            computed = self._compute(event, subject, scope, candidates)
            if computed is None:
                return self._report(
                    event, SyncStatus.NOOP, phase, subject_path=subject_path
                )
            plans = computed

            phase = SyncPhase.APPLY
            changed = False
            for plan in plans:
                result = self._apply(session, plan, created)
                results.append(result)
                changed = changed or result.moved or result.healed
            changed = changed or bool(created)

            if not changed:
                logger.debug("Mirror already in sync for %s", subject_path)
                return self._report(
                    event,
                    SyncStatus.UNCHANGED,
                    phase,
                    subject_path=subject_path,
                    moves=results,
                )

            phase = SyncPhase.COMMIT
            session.save()
        except RepositoryError as exc:
            logger.exception(
                "Repository failure during %s of %s event on %s: %s",
                phase.value,
                event.kind.value,
                subject_path or event.path_before,
                exc,
            )
            self._discard(session)
            return self._report(
                event,
                SyncStatus.FAILED,
                phase,
                subject_path=subject_path,
                moves=[
                    MoveResult(
                        source=p.source,
                        target=p.target,
                        source_node=p.source_node,
                    )
                    for p in plans
                ],
                error=str(exc),
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error during %s of %s event on %s",
                phase.value,
                event.kind.value,
                subject_path or event.path_before,
            )
            self._discard(session)
            return self._report(
                event,
                SyncStatus.FAILED,
                phase,
                subject_path=subject_path,
                error=str(exc),
            )

        report = self._report(
            event,
            SyncStatus.COMMITTED,
            phase,
            subject_path=subject_path,
            moves=results,
            created=created,
        )
        logger.info("Mirror sync %s", report.summary())
        return report

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _resolve(
        self, session: RepositorySession, event: StructuralChangeEvent
    ) -> Node | None:
        try:
            subject = session.get_node_by_identifier(event.subject_id)
        except ItemNotFoundError:
            logger.warning(
                "Subject %s (%s) no longer exists", event.subject_id, event.path_before
            )
            return None

        if not self.mapper.is_under_primary(subject.path):
            logger.debug("Ignoring subject outside the primary tree: %s", subject.path)
            return None
        return subject

    def _locate(
        self,
        session: RepositorySession,
        event: StructuralChangeEvent,
        subject: Node,
    ) -> tuple[str, list[Node]] | None:
        """Return the subtree scanned for links and the containers found."""
        if event.kind == ChangeKind.FOLDER_RENAME:
            if not event.old_name or not event.new_name:
                logger.warning(
                    "Folder rename on %s lacks old/new names, ignoring", subject.path
                )
                return None
            scope = join(subject.path, event.new_name)
            if not session.node_exists(scope):
                logger.warning("Renamed folder %s not found, ignoring", scope)
                return None
        else:
            scope = subject.path

        candidates = self.finder.find_containers(session, scope)

        if event.kind == ChangeKind.SUBTREE_MOVE:
            # The directly mapped container moves even when nothing links to it.
            direct = self.mapper.primary_to_mirror(event.path_before)
            if session.node_exists(direct) and all(
                c.path != direct for c in candidates
            ):
                candidates.append(session.get_node(direct))

        return scope, candidates

    def _compute(
        self,
        event: StructuralChangeEvent,
        subject: Node,
        scope: str,
        candidates: list[Node],
    ) -> list[_Plan] | None:
        """Compute the relocations for *candidates*, or None for a no-op."""
        plans: dict[str, _Plan] = {}
        to_mirror_rel = self.mapper.to_mirror_relative

        if event.kind == ChangeKind.FOLDER_RENAME:
            old_rel = self.mapper.to_primary_relative(
                join(subject.path, event.old_name or "")
            )
            new_rel = self.mapper.to_primary_relative(scope)
            for candidate in candidates:
                if is_same_or_descendant(to_mirror_rel(candidate.path), old_rel):
                    self._add_plan(
                        plans,
                        _Plan(
                            source=self.mapper.mirror_path(old_rel),
                            target=self.mapper.mirror_path(new_rel),
                            source_node=scope,
                        ),
                    )
            return list(plans.values())

        subject_parent_rel = self.mapper.to_primary_relative(subject.parent_path)
        old_rel = new_rel = ""
        if event.kind == ChangeKind.SUBTREE_MOVE:
            old_rel = self.mapper.to_primary_relative(event.path_before)
            new_rel = self.mapper.to_primary_relative(subject.path)
            if old_rel == new_rel:
                logger.warning(
                    "Move of %s leaves the mirror path unchanged, nothing to do",
                    subject.path,
                )
                return None

        for candidate in candidates:
            rel = to_mirror_rel(candidate.path)
            if not rel:
                logger.debug(
                    "Skipping the mirror root as a candidate for %s", subject.path
                )
                continue
            if event.kind == ChangeKind.SUBTREE_MOVE:
                rel = replace_prefix(rel, old_rel, new_rel)
            if parent_of(rel) != subject_parent_rel:
                logger.debug(
                    "Container %s does not mirror %s", candidate.path, subject.path
                )
                continue
            self._add_plan(
                plans,
                _Plan(
                    source=candidate.path,
                    target=self.mapper.mirror_path(join(parent_of(rel), subject.name)),
                    source_node=subject.path,
                ),
            )
        return list(plans.values())

    def _apply(
        self,
        session: RepositorySession,
        plan: _Plan,
        created: list[str],
    ) -> MoveResult:
        moved = False
        if plan.source != plan.target:
            if not session.node_exists(plan.source) and session.node_exists(plan.target):
                logger.debug("Container already moved to %s", plan.target)
            else:
                parent_rel = self.mapper.to_mirror_relative(parent_of(plan.target))
                created.extend(
                    self.provisioner.ensure_folders(session, parent_rel).created
                )
                session.move(plan.source, plan.target)
                logger.info("Moved mirror container %s -> %s", plan.source, plan.target)
                moved = True
        else:
            logger.debug("The node paths were already synchronized: %s", plan.target)

        healed = self.provisioner.heal_markers(session, plan.target)
        if copy_display_names(
            session,
            plan.source_node,
            plan.target,
            self.config.display_names,
            self.default_language,
        ):
            healed = True

        return MoveResult(
            source=plan.source,
            target=plan.target,
            source_node=plan.source_node,
            moved=moved,
            healed=healed,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _add_plan(plans: dict[str, _Plan], plan: _Plan) -> None:
        existing = plans.get(plan.target)
        if existing is not None and existing.source != plan.source:
            logger.warning(
                "Containers %s and %s both map to %s; keeping %s",
                existing.source,
                plan.source,
                plan.target,
                plan.source,
            )
        plans[plan.target] = plan

    @staticmethod
    def _discard(session: RepositorySession) -> None:
        try:
            session.refresh(False)
        except RepositoryError as exc:
            logger.error("Failed to discard session changes: %s", exc)

    @staticmethod
    def _report(
        event: StructuralChangeEvent,
        status: SyncStatus,
        phase: SyncPhase,
        subject_path: str | None = None,
        moves: list[MoveResult] | None = None,
        created: list[str] | None = None,
        error: str | None = None,
    ) -> SyncReport:
        return SyncReport(
            kind=event.kind,
            subject_path=subject_path,
            status=status,
            phase=phase,
            moves=moves or [],
            created_folders=created or [],
            error=error,
        )

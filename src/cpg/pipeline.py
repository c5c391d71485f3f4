# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Ten-stage catalog pipeline with conflict checkpoints."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Iterable, TypeVar

from cpg.aggregation import Aggregator
from cpg.allocation import AllocationJoiner
from cpg.catalogs import CatalogEmitter
from cpg.codegen.orchestrator import ComponentCodeOrchestrator
from cpg.components import ComponentLibraryBuilder
from cpg.errors import ConflictPending, ConflictResolutionError, StageFailure
from cpg.model import (
    BCatalogRow,
    CatalogProfile,
    CCatalogRow,
    CodeAllocation,
    ComponentCodeEntry,
    Conflict,
    FailureSetCheck,
    FiveCatalogRow,
    LoadsheetRow,
    ObjectPartGroup,
    ProcessingSession,
    RawRecord,
    Resolution,
)
from cpg.persistence import CatalogRepository
from cpg.profiles import GroupAssigner, ProfileAssigner
from cpg.taxonomy import CAUSE_LIBRARY, MECHANISM_LIBRARY, LibrarySpec, TaxonomyLibrary

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_NAMES: dict[int, str] = {
    1: "catalog_profiles",
    2: "object_part_groups",
    3: "damage_code_library",
    4: "cause_code_library",
    5: "failure_set_check",
    6: "component_code_library",
    7: "code_allocation",
    8: "b_catalog",
    9: "c_catalog",
    10: "five_catalog",
}
TOTAL_STAGES: int = len(STAGE_NAMES)


@dataclass(frozen=True)
class StageOutputs:
    """Hold the output of every stage of a completed run."""

    profiles: list[CatalogProfile]
    groups: list[ObjectPartGroup]
    mechanism_library: TaxonomyLibrary
    cause_library: TaxonomyLibrary
    checks: list[FailureSetCheck]
    component_library: list[ComponentCodeEntry]
    allocations: list[CodeAllocation]
    b_catalog: list[BCatalogRow]
    c_catalog: list[CCatalogRow]
    five_catalog: list[FiveCatalogRow]
    load_sheet: list[LoadsheetRow]


@dataclass(frozen=True)
class PipelineResult:
    """Represent the outcome of starting or resuming a run.

    Attributes:
        session: Session state after the call.
        outputs: Stage outputs when the run completed, otherwise ``None``.
        conflicts: Conflicts the caller must resolve before the run resumes.
    """

    session: ProcessingSession
    outputs: StageOutputs | None = None
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def awaiting_resolution(self) -> bool:
        """Return whether the run is paused on conflicts."""
        return self.session.status == "awaiting_resolution"


class CatalogPipeline:
    """Run the fixed stage sequence over one set of records.

    Stages run in order and each persists its library before the next
    starts. A library stage that raises conflicts pauses the run; ``resolve``
    records the decisions and runs the stages again from the start. Stages
    1 and 2 are pure and completed library stages find nothing new, so only
    the paused stage does new work on resume.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        orchestrator: ComponentCodeOrchestrator,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ) -> None:
        """Initialize the pipeline.

        Args:
            repository: Storage of libraries and sessions.
            orchestrator: Component code resolver.
            clock: Source of session timestamps.
        """
        self._repository = repository
        self._orchestrator = orchestrator
        self._clock = clock

    def start(self, records: Iterable[RawRecord], session_name: str = "") -> PipelineResult:
        """Create a session and run it as far as possible.

        Args:
            records: Validated raw records.
            session_name: Optional display name.

        Returns:
            A completed result or one awaiting conflict resolution.

        Raises:
            StageFailure: If a stage fails unexpectedly.
        """
        now = self._now()
        session = ProcessingSession(
            session_id=f"session_{uuid.uuid4().hex[:12]}",
            session_name=session_name or f"Session {now}",
            input_data=list(records),
            total_steps=TOTAL_STAGES,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Catalog run started (session={session.session_id} "
            f"records={len(session.input_data)})"
        )
        self._repository.save_session(session)
        return self._execute(session)

    def resolve(self, session_id: str, resolutions: Iterable[Resolution]) -> PipelineResult:
        """Submit decisions for a paused session and resume it.

        Args:
            session_id: Session awaiting resolution.
            resolutions: One decision per pending conflict.

        Returns:
            A completed result or one awaiting the next checkpoint.

        Raises:
            ConflictResolutionError: If the session is not paused, a decision
                names an unknown conflict or candidate, or a pending conflict
                is left without a decision.
            StageFailure: If a stage fails unexpectedly.
        """
        session = self._repository.load_session(session_id)
        if session is None:
            raise ConflictResolutionError(f"Unknown session: {session_id}")
        if session.status != "awaiting_resolution":
            raise ConflictResolutionError(
                f"Session {session_id} is not awaiting resolution (status={session.status})."
            )

        submitted = list(resolutions)
        pending = {conflict.conflict_id: conflict for conflict in session.qa_conflicts}
        for resolution in submitted:
            conflict = pending.get(resolution.conflict_id)
            if conflict is None:
                raise ConflictResolutionError(
                    f"Conflict {resolution.conflict_id} is not pending in {session_id}."
                )
            _check_resolution(conflict, resolution)
        missing = sorted(set(pending) - {resolution.conflict_id for resolution in submitted})
        if missing:
            raise ConflictResolutionError(
                f"Conflicts without a decision: {', '.join(missing)}"
            )

        session.resolutions.extend(submitted)
        session.qa_conflicts = [
            replace(conflict, resolved=True) for conflict in session.qa_conflicts
        ]
        session.status = "in_progress"
        self._touch(session)
        self._repository.save_session(session)
        logger.info(
            f"Conflicts resolved (session={session_id} decisions={len(submitted)})"
        )
        return self._execute(session)

    def _execute(self, session: ProcessingSession) -> PipelineResult:
        records = session.input_data
        try:
            profiles = self._stage(session, 1, lambda: ProfileAssigner().assign(records))
            groups = self._stage(
                session, 2, lambda: GroupAssigner().assign(records, profiles)
            )
            mechanism_library = self._stage(
                session,
                3,
                lambda: self._reconcile(
                    session, 3, MECHANISM_LIBRARY, [r.failure_mechanism for r in records]
                ),
            )
            cause_library = self._stage(
                session,
                4,
                lambda: self._reconcile(
                    session, 4, CAUSE_LIBRARY, [r.failure_cause for r in records]
                ),
            )
        except ConflictPending as pending:
            session.status = "awaiting_resolution"
            session.current_step = pending.stage
            session.qa_conflicts = list(pending.conflicts)
            self._touch(session)
            self._repository.save_session(session)
            logger.info(
                f"Catalog run paused (session={session.session_id} stage={pending.stage} "
                f"conflicts={len(pending.conflicts)})"
            )
            return PipelineResult(session=session, conflicts=list(pending.conflicts))

        checks = self._stage(
            session,
            5,
            lambda: Aggregator().aggregate(records, mechanism_library, cause_library),
        )
        component_library = self._stage(session, 6, lambda: self._build_components(checks))
        allocations = self._stage(
            session,
            7,
            lambda: AllocationJoiner().join(
                checks, mechanism_library, cause_library, component_library
            ),
        )
        emitter = CatalogEmitter()
        b_rows = self._stage(session, 8, lambda: emitter.b_catalog(allocations, groups))
        c_rows = self._stage(session, 9, lambda: emitter.c_catalog(allocations))

        def five_and_load_sheet() -> tuple[list[FiveCatalogRow], list[LoadsheetRow]]:
            five = emitter.five_catalog(allocations)
            return five, emitter.load_sheet(profiles, b_rows, c_rows, five)

        five_rows, load_sheet = self._stage(session, 10, five_and_load_sheet)

        session.status = "completed"
        session.qa_conflicts = []
        self._touch(session)
        self._repository.save_session(session)
        outputs = StageOutputs(
            profiles=profiles,
            groups=groups,
            mechanism_library=mechanism_library,
            cause_library=cause_library,
            checks=checks,
            component_library=component_library,
            allocations=allocations,
            b_catalog=b_rows,
            c_catalog=c_rows,
            five_catalog=five_rows,
            load_sheet=load_sheet,
        )
        logger.info(
            f"Catalog run completed (session={session.session_id} "
            f"load_sheet_rows={len(outputs.load_sheet)})"
        )
        return PipelineResult(session=session, outputs=outputs)

    def _stage(self, session: ProcessingSession, stage: int, action: Callable[[], T]) -> T:
        """Run one stage, converting unexpected failures to ``StageFailure``."""
        name = STAGE_NAMES[stage]
        session.current_step = stage
        logger.info(
            f"catalog_stage_progress stage={stage} name={name} session={session.session_id}"
        )
        try:
            result = action()
        except ConflictPending:
            raise
        except Exception as exc:
            session.status = "error"
            session.error = f"{name}: {exc}"
            self._touch(session)
            self._repository.save_session(session)
            logger.warning(
                f"Catalog stage failed (session={session.session_id} stage={stage} "
                f"name={name} error={exc})"
            )
            raise StageFailure(stage=stage, name=name, message=str(exc)) from exc
        self._touch(session)
        self._repository.save_session(session)
        return result

    def _reconcile(
        self,
        session: ProcessingSession,
        stage: int,
        spec: LibrarySpec,
        values: list[str],
    ) -> TaxonomyLibrary:
        """Reconcile one library, applying decisions already on the session."""
        library = self._repository.load_library(spec)
        updated, conflicts = library.reconcile(values)
        decided = {resolution.conflict_id for resolution in session.resolutions}
        unresolved = [c for c in conflicts if c.conflict_id not in decided]
        if unresolved:
            raise ConflictPending(stage=stage, conflicts=unresolved)
        if conflicts:
            updated = updated.resolve(conflicts, session.resolutions)
        self._repository.save_library(updated)
        return updated

    def _build_components(self, checks: list[FailureSetCheck]) -> list[ComponentCodeEntry]:
        existing = self._repository.load_component_library()
        library = ComponentLibraryBuilder(self._orchestrator).build(checks, existing)
        self._repository.save_component_library(library)
        return library

    def _touch(self, session: ProcessingSession) -> None:
        session.updated_at = self._now()

    def _now(self) -> str:
        return self._clock().isoformat()


def _check_resolution(conflict: Conflict, resolution: Resolution) -> None:
    """Validate a decision against the conflict it answers."""
    if resolution.action == "accept":
        candidates = {match.name for match in conflict.suggested_matches}
        if resolution.selected_match not in candidates:
            raise ConflictResolutionError(
                f"{resolution.selected_match!r} is not a candidate for "
                f"{conflict.original_name!r}."
            )
    elif resolution.action == "custom":
        if not (resolution.custom_value or "").strip():
            raise ConflictResolutionError(
                f"Custom resolution for {conflict.conflict_id} needs a value."
            )
    elif resolution.action != "reject":
        raise ConflictResolutionError(f"Unsupported resolution action: {resolution.action}")

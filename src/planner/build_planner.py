"""Build planner.

Combines export map resolution and the target matrix into a BuildPlan.

Batched kinds (esnext, module, node, browser) become one BatchJob per kind
spanning every entry point so shared code is emitted once as a chunk.
Script bundles become one PerEntryJob each: a global bundle is
self-contained and owns its own global identifier. The two are produced by
separate methods and stored in separate plan fields.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from src.errors import PlanningError
from src.models.exports import EntryPlan
from src.models.plan import (
    BatchJob,
    BuildMode,
    BuildPlan,
    PerEntryJob,
    Platform,
    TargetKind,
    TypesTask,
)
from src.planner.context import PlanningContext
from src.planner.export_map import ExportMapResolver
from src.planner.global_name import (
    entry_global_name,
    package_global_name,
    read_global_name_marker,
)
from src.planner.plan_validator import validate_plan
from src.planner.targets import BATCHED_KINDS, TYPES_SUFFIX, TargetMatrix

logger = logging.getLogger(__name__)

# Sources written for node only opt out of browser builds
NODE_ONLY_PATTERN = re.compile(r"^/\*\s*eslint-env\s+node\b")
TYPESCRIPT_PATTERN = re.compile(r"\.tsx?$")

CHUNK_ROOT = "./_chunks"

SourceReader = Callable[[str], str]


class BuildPlanner:
    """Plans every compilation for one package."""

    def __init__(
        self,
        package_name: str,
        matrix: TargetMatrix | None = None,
        read_source: SourceReader | None = None,
        emit_types: bool = False,
    ):
        """Initialize planner.

        Args:
            package_name: ``name`` from the package manifest
            matrix: Enabled targets (defaults to every target)
            read_source: Reads a source file relative to the package root.
                Without it, source markers are not inspected and planning
                does no I/O.
            emit_types: Schedule declaration bundles for TypeScript entries
        """
        self.package_name = package_name
        self.matrix = matrix or TargetMatrix()
        self.resolver = ExportMapResolver(package_name)
        self.read_source = read_source
        self.emit_types = emit_types
        self.package_global = package_global_name(package_name)
        self._sources: dict[str, str] = {}

    def plan(
        self,
        export_map: Mapping[str, Any],
        mode: BuildMode = BuildMode.PRODUCTION,
    ) -> BuildPlan:
        """Plan all compilations for ``export_map``.

        The development plan only contains batched jobs: script bundles and
        declarations are mode independent and are built once.

        Raises:
            PlanningError: If two tasks would write the same file
        """
        resolved = self.resolver.resolve(export_map)
        ctx = PlanningContext(mode=mode)

        self._plan_batched(resolved.entries, ctx)
        if mode is BuildMode.PRODUCTION:
            self._plan_per_entry(resolved.entries, ctx)
            self._plan_types(resolved.entries, ctx)

        plan = BuildPlan(
            package_name=self.package_name,
            mode=mode,
            entries=resolved.entries,
            declared=resolved.declared,
            batches=[
                BatchJob(
                    target=self.matrix.descriptor(kind),
                    mode=mode,
                    tasks=ctx.batched[kind],
                    chunk_dir=self._chunk_dir(kind, mode),
                )
                for kind in BATCHED_KINDS
                if ctx.batched.get(kind)
            ],
            per_entry=ctx.per_entry,
            types=ctx.types,
        )

        result = validate_plan(plan)
        if not result.is_valid:
            raise PlanningError(f"Invalid build plan: {result.summary()}")

        logger.info(
            f"Planned {len(plan.entries)} entry points: {len(plan.batches)} batches, "
            f"{len(plan.per_entry)} global bundles, {len(plan.types)} declarations ({mode.value})"
        )
        return plan

    def plan_development(self, export_map: Mapping[str, Any]) -> BuildPlan:
        """Second pass of all batched targets with development constants."""
        return self.plan(export_map, mode=BuildMode.DEVELOPMENT)

    # =========================================================================
    # Batched targets
    # =========================================================================

    def _plan_batched(self, entries: list[EntryPlan], ctx: PlanningContext) -> None:
        for entry in entries:
            for kind in BATCHED_KINDS:
                task = self.matrix.task_for(entry, kind, ctx.mode)
                if task is None:
                    continue
                if task.target.platform == Platform.BROWSER and self._is_node_only(task.source):
                    logger.debug(f"Skipping {kind.value} build of {entry.subpath}: node only source")
                    continue
                ctx.add_batched(task)

    @staticmethod
    def _chunk_dir(kind: TargetKind, mode: BuildMode) -> str:
        suffix = ".dev" if mode is BuildMode.DEVELOPMENT else ""
        return f"{CHUNK_ROOT}/{kind.value}{suffix}"

    # =========================================================================
    # Per-entry (global script) targets
    # =========================================================================

    def _plan_per_entry(self, entries: list[EntryPlan], ctx: PlanningContext) -> None:
        for entry in entries:
            task = self.matrix.task_for(entry, TargetKind.SCRIPT, ctx.mode)
            if task is None:
                continue
            if self._is_node_only(task.source):
                logger.debug(f"Skipping script build of {entry.subpath}: node only source")
                continue
            ctx.add_per_entry(
                PerEntryJob(
                    target=task.target,
                    mode=ctx.mode,
                    task=task,
                    global_name=self.global_name(entry, task.source),
                )
            )

    def global_name(self, entry: EntryPlan, source: str) -> str:
        """Source marker override, else derived from the package name."""
        override = read_global_name_marker(self._read(source))
        if override:
            return override
        return entry_global_name(self.package_global, entry.subpath, entry.is_main)

    # =========================================================================
    # Type declarations
    # =========================================================================

    def _plan_types(self, entries: list[EntryPlan], ctx: PlanningContext) -> None:
        if not self.emit_types:
            return
        for entry in entries:
            source = self._types_source(entry, ctx)
            if source is None:
                continue
            ctx.add_types(
                TypesTask(entry=entry, source=source, output_path=entry.stem + TYPES_SUFFIX)
            )

    def _types_source(self, entry: EntryPlan, ctx: PlanningContext) -> str | None:
        """Declarations follow the source of the module build, else any build."""
        candidates = [
            self.matrix.resolve_source(entry, kind, ctx.mode)
            for kind in (TargetKind.MODULE, *BATCHED_KINDS, TargetKind.SCRIPT)
        ]
        for source in candidates:
            if source and TYPESCRIPT_PATTERN.search(source):
                return source
        return None

    # =========================================================================
    # Source inspection
    # =========================================================================

    def _read(self, source: str) -> str:
        if self.read_source is None:
            return ""
        if source not in self._sources:
            self._sources[source] = self.read_source(source)
        return self._sources[source]

    def _is_node_only(self, source: str) -> bool:
        return bool(NODE_ONLY_PATTERN.match(self._read(source)))

"""Build plan models.

The planner turns EntryPlans into BuildTasks and groups them into jobs:

- BatchJob: one compilation per target kind spanning every entry point,
  so code shared between entry points lands in common chunks.
- PerEntryJob: one compilation per entry point for global (script) bundles,
  which are self-contained and never share chunks.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.exports import EntryPlan

# =============================================================================
# Enums
# =============================================================================


class TargetKind(str, Enum):
    """Compiled output flavor."""

    ESNEXT = "esnext"
    MODULE = "module"
    NODE = "node"
    SCRIPT = "script"
    BROWSER = "browser"


class Platform(str, Enum):
    NODE = "node"
    BROWSER = "browser"
    NEUTRAL = "neutral"


class ModuleFormat(str, Enum):
    ESM = "esm"
    CJS = "cjs"
    IIFE = "iife"


class BuildMode(str, Enum):
    """Value of the build-mode constants substituted into the env module."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"

    def env_values(self) -> dict[str, Any]:
        """Exported constants of the build-mode module for this mode."""
        match self:
            case BuildMode.PRODUCTION:
                return {"MODE": "production", "DEV": False, "PROD": True}
            case BuildMode.DEVELOPMENT:
                return {"MODE": "development", "DEV": True, "PROD": False}


# =============================================================================
# Targets and tasks
# =============================================================================


class TargetDescriptor(BaseModel):
    """One compilation target."""

    model_config = ConfigDict(frozen=True)

    kind: TargetKind
    platform: Platform
    language_level: str
    module_format: ModuleFormat
    minify: bool = False
    suffix: str


class BuildTask(BaseModel):
    """Compile ``source`` for ``target`` into ``output_path`` (relative to dist)."""

    model_config = ConfigDict(frozen=True)

    entry: EntryPlan
    target: TargetDescriptor
    source: str
    output_path: str
    mode: BuildMode = BuildMode.PRODUCTION


class BatchJob(BaseModel):
    """All tasks of one target kind, compiled together."""

    target: TargetDescriptor
    mode: BuildMode
    tasks: list[BuildTask]
    chunk_dir: str

    def inputs(self) -> dict[str, str]:
        """Output path -> source file, in entry declaration order."""
        return {task.output_path: task.source for task in self.tasks}


class PerEntryJob(BaseModel):
    """A single self-contained global bundle."""

    target: TargetDescriptor
    mode: BuildMode = BuildMode.PRODUCTION
    task: BuildTask
    global_name: str


class TypesTask(BaseModel):
    """Emit bundled type declarations for one entry point."""

    entry: EntryPlan
    source: str
    output_path: str


class BuildPlan(BaseModel):
    """Everything one invocation compiles, in deterministic order."""

    package_name: str
    mode: BuildMode = BuildMode.PRODUCTION
    entries: list[EntryPlan] = Field(default_factory=list)
    declared: dict[str, Any] = Field(
        default_factory=dict,
        description="Full declared export map, including passthrough subpaths",
    )
    batches: list[BatchJob] = Field(default_factory=list)
    per_entry: list[PerEntryJob] = Field(default_factory=list)
    types: list[TypesTask] = Field(default_factory=list)

    def tasks(self) -> list[BuildTask]:
        """All build tasks, batched first."""
        tasks = [task for batch in self.batches for task in batch.tasks]
        tasks.extend(job.task for job in self.per_entry)
        return tasks

    def tasks_for(self, subpath: str) -> dict[TargetKind, BuildTask]:
        return {task.target.kind: task for task in self.tasks() if task.entry.subpath == subpath}

    def types_for(self, subpath: str) -> TypesTask | None:
        for task in self.types:
            if task.entry.subpath == subpath:
                return task
        return None

    def batch(self, kind: TargetKind) -> BatchJob | None:
        for batch in self.batches:
            if batch.target.kind == kind:
                return batch
        return None

    def entry(self, subpath: str) -> EntryPlan | None:
        for entry in self.entries:
            if entry.subpath == subpath:
                return entry
        return None

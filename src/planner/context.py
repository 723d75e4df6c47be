"""Planning context for accumulating tasks while walking entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.models.plan import BuildMode

if TYPE_CHECKING:
    from src.models.plan import BuildTask, PerEntryJob, TargetKind, TypesTask


@dataclass
class PlanningContext:
    """Accumulates planner output for one invocation.

    Batched tasks are grouped by target kind as they are discovered;
    insertion order follows entry declaration order so plans are
    reproducible.
    """

    mode: BuildMode = BuildMode.PRODUCTION

    batched: dict[TargetKind, list[BuildTask]] = field(default_factory=dict)
    per_entry: list[PerEntryJob] = field(default_factory=list)
    types: list[TypesTask] = field(default_factory=list)

    def add_batched(self, task: BuildTask) -> None:
        self.batched.setdefault(task.target.kind, []).append(task)

    def add_per_entry(self, job: PerEntryJob) -> None:
        self.per_entry.append(job)

    def add_types(self, task: TypesTask) -> None:
        """Add a declaration task, first registration per output wins."""
        if all(existing.output_path != task.output_path for existing in self.types):
            self.types.append(task)

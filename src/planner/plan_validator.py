"""Build plan validator - checks that a plan can be executed safely.

Every artifact must land on its own filename so concurrent jobs never
write the same file. Two subpaths can still collide, e.g. a package named
``web`` exporting both ``.`` and ``./web``.
"""

from dataclasses import dataclass, field

from src.models.plan import BuildPlan, TargetKind
from src.planner.targets import node_wrapper_path


@dataclass
class ValidationError:
    """A single validation error."""

    path: str  # Where in the plan the error occurred
    message: str  # What's wrong


@dataclass
class ValidationResult:
    """Result of validating a plan."""

    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, path: str, message: str) -> None:
        self.errors.append(ValidationError(path=path, message=message))

    def summary(self) -> str:
        return "; ".join(f"{error.path}: {error.message}" for error in self.errors)


class PlanValidator:
    """Validates a BuildPlan for output collisions and global names."""

    def __init__(self, plan: BuildPlan):
        self.plan = plan
        self.result = ValidationResult()
        self._owners: dict[str, str] = {}

    def validate(self) -> ValidationResult:
        for task in self.plan.tasks():
            owner = f"{task.entry.subpath} ({task.target.kind.value})"
            self._claim(task.output_path, owner)
            if task.target.kind == TargetKind.NODE:
                self._claim(node_wrapper_path(task), f"{task.entry.subpath} (node wrapper)")

        for types_task in self.plan.types:
            self._claim(types_task.output_path, f"{types_task.entry.subpath} (types)")

        self._validate_global_names()
        return self.result

    def _claim(self, output_path: str, owner: str) -> None:
        previous = self._owners.setdefault(output_path, owner)
        if previous != owner:
            self.result.add_error(output_path, f"written by both {previous} and {owner}")

    def _validate_global_names(self) -> None:
        seen: dict[str, str] = {}
        for job in self.plan.per_entry:
            previous = seen.setdefault(job.global_name, job.task.entry.subpath)
            if previous != job.task.entry.subpath:
                self.result.add_error(
                    job.task.output_path,
                    f"global name {job.global_name} already used by {previous}",
                )


def validate_plan(plan: BuildPlan) -> ValidationResult:
    """Convenience wrapper around PlanValidator."""
    return PlanValidator(plan).validate()

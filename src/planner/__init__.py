"""Export map to build plan.

The planning pipeline:
  1. Export map → ExportMapResolver → EntryPlans
  2. EntryPlans → TargetMatrix → BuildTasks
  3. BuildTasks → BuildPlanner → BuildPlan (BatchJobs + PerEntryJobs)
  4. BuildPlan → ManifestSynthesizer → published package.json
"""

from .build_planner import BuildPlanner
from .export_map import ExportMapResolver, declared_export_map
from .manifest import ManifestSynthesizer
from .targets import TargetMatrix

__all__ = [
    "BuildPlanner",
    "ExportMapResolver",
    "ManifestSynthesizer",
    "TargetMatrix",
    "declared_export_map",
]

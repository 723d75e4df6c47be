"""Planning routes.

Plans a build for a posted manifest without compiling anything, so editors
and CI checks can preview artifacts and the published ``exports`` block.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, ValidationError

from src.config import BuildConfig
from src.errors import PkgforgeError
from src.models.plan import BuildPlan
from src.planner.build_planner import BuildPlanner
from src.planner.export_map import declared_export_map
from src.planner.manifest import ManifestSynthesizer
from src.planner.targets import TargetMatrix

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plan", tags=["plan"])


class PlanRequestModel(BaseModel):
    """Request to plan a package build.

    Source files are not read, so global name markers and node-only
    markers are not applied.
    """

    manifest: dict[str, Any]
    # Schedule the development pass as if the build-mode module were used
    development: bool = False


class PlanResponseModel(BaseModel):
    """Planned compilations and the manifest they would publish."""

    package_name: str
    plan: BuildPlan
    dev_plan: BuildPlan | None = None
    outputs: list[str] = Field(default_factory=list)
    manifest: dict[str, Any]


@router.post("", response_model=PlanResponseModel)
async def plan_build(request: PlanRequestModel) -> PlanResponseModel:
    """Plan every compilation for the posted manifest."""
    name = request.manifest.get("name")
    if not name:
        raise HTTPException(status_code=422, detail="manifest.name is required")

    try:
        config = BuildConfig.load(request.manifest)
        planner = BuildPlanner(name, matrix=TargetMatrix(config.targets))
        export_map = declared_export_map(request.manifest)

        plan = planner.plan(export_map)
        dev_plan = planner.plan_development(export_map) if request.development else None
        manifest = ManifestSynthesizer(config.default_precedence).synthesize(
            request.manifest, plan, dev_plan
        )
    except (PkgforgeError, ValidationError, ValueError) as e:
        logger.warning(f"Planning {name} failed: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e

    outputs = [task.output_path for task in plan.tasks()]
    if dev_plan is not None:
        outputs.extend(task.output_path for task in dev_plan.tasks())

    return PlanResponseModel(
        package_name=name,
        plan=plan,
        dev_plan=dev_plan,
        outputs=outputs,
        manifest=manifest,
    )

"""Parse esbuild metafiles into CompileResults."""

import os
from pathlib import Path
from typing import Any

from src.models.compile_result import CompileResult, ImportRecord, OutputMeta
from src.models.plan import ModuleFormat
from src.service.compiler import CompileJob


def dist_relative(path: Path, dist: Path) -> str:
    """``/pkg/dist/web/index.js`` -> ``./web/index.js``"""
    return "./" + os.path.relpath(path, dist).replace(os.sep, "/")


def parse_metafile(
    metafile: dict[str, Any],
    job: CompileJob,
    root: Path,
    dist: Path,
    env_file: Path | None = None,
) -> CompileResult:
    """Convert an esbuild metafile to a CompileResult.

    esbuild reports paths relative to its working directory, which is the
    package root.

    Args:
        metafile: Parsed ``--metafile`` JSON
        job: The job that produced it
        root: esbuild working directory
        dist: Output directory
        env_file: Generated build-mode module, to detect references to it

    Returns:
        CompileResult with one OutputMeta per emitted JavaScript file
    """
    is_cjs = job.target.module_format == ModuleFormat.CJS
    outputs = []
    for output_path, output in metafile.get("outputs", {}).items():
        if output_path.endswith(".map"):
            continue
        entry_point = output.get("entryPoint")
        outputs.append(
            OutputMeta(
                path=dist_relative(root / output_path, dist),
                entry_point=entry_point,
                # esbuild lists no exports for CommonJS outputs
                exports=output.get("exports") if entry_point and not is_cjs else None,
                imports=[
                    ImportRecord(
                        path=record["path"],
                        kind=record.get("kind", "import-statement"),
                        external=record.get("external", False),
                    )
                    for record in output.get("imports", [])
                ],
            )
        )

    uses_env_module = False
    if env_file is not None:
        env_resolved = env_file.resolve()
        uses_env_module = any(
            (root / input_path).resolve() == env_resolved for input_path in metafile.get("inputs", {})
        )

    return CompileResult(
        target=job.target.kind,
        mode=job.mode,
        outputs=outputs,
        uses_env_module=uses_env_module,
    )

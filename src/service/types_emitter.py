"""Type declaration bundling.

Runs a declaration bundler (dts-bundle-generator by default) once per
TypeScript entry point.
"""

import asyncio
import logging
from pathlib import Path

from src.errors import CompileError
from src.models.plan import TypesTask

logger = logging.getLogger(__name__)


class TypesEmitter:
    """Emits one bundled ``.d.ts`` per entry point."""

    def __init__(
        self,
        root: Path,
        command: list[str] | None = None,
        tsconfig: Path | None = None,
    ):
        self.root = root
        self.command = command or ["dts-bundle-generator"]
        self.tsconfig = tsconfig

    def arguments(self, task: TypesTask, dist: Path) -> list[str]:
        cmd = [*self.command, "--out-file", str(dist / task.output_path)]
        if self.tsconfig:
            cmd.extend(["--project", str(self.tsconfig)])
        cmd.append(task.source)
        return cmd

    async def emit(self, task: TypesTask, dist: Path) -> Path:
        """Write ``task.output_path`` under ``dist``.

        Raises:
            CompileError: If the declaration bundler fails
        """
        output = dist / task.output_path
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.arguments(task, dist)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=self.root,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CompileError(f"{self.command[0]} not available: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise CompileError(
                f"Declaration bundling failed for {task.source}",
                stderr=stderr.decode(errors="replace"),
            )
        return output

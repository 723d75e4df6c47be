"""Compiler protocol for turning planned jobs into artifacts.

This module defines the interface between build orchestration and the
bundler. The protocol allows different implementations:
- EsbuildCompiler: Production, runs the esbuild binary
- HttpCompiler: Delegates to a remote compile service
- MockCompiler: Testing, writes canned artifacts
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from src.errors import CompileError
from src.models.compile_result import CompileResult, ImportRecord, OutputMeta
from src.models.plan import BatchJob, BuildMode, ModuleFormat, PerEntryJob, TargetDescriptor


class CompileJob(BaseModel):
    """One compiler invocation."""

    target: TargetDescriptor
    mode: BuildMode = BuildMode.PRODUCTION
    inputs: dict[str, str] = Field(..., description="Output path (relative to dist) -> source file")
    chunk_dir: str | None = Field(default=None, description="Shared chunk directory, batches only")
    global_name: str | None = Field(default=None, description="IIFE global, script jobs only")
    external: list[str] = Field(default_factory=list, description="Specifiers left unbundled")
    env_module: str = "pkgforge/env"

    @classmethod
    def from_batch(cls, batch: BatchJob, external: list[str], env_module: str) -> CompileJob:
        return cls(
            target=batch.target,
            mode=batch.mode,
            inputs=batch.inputs(),
            chunk_dir=batch.chunk_dir,
            external=external,
            env_module=env_module,
        )

    @classmethod
    def from_entry(cls, job: PerEntryJob, external: list[str], env_module: str) -> CompileJob:
        return cls(
            target=job.target,
            mode=job.mode,
            inputs={job.task.output_path: job.task.source},
            global_name=job.global_name,
            external=external,
            env_module=env_module,
        )


class Compiler(Protocol):
    """Protocol for compiling one job into the dist directory.

    Implementations should:
    - Write one artifact per input (plus chunks and .map files)
    - Substitute the build-mode constants of ``job.mode`` for ``job.env_module``
    - Report static export names and external imports when available
    """

    async def compile(self, job: CompileJob) -> CompileResult:
        """Compile ``job``.

        Raises:
            CompileError: If compilation fails
        """
        ...


class MockCompiler:
    """In-memory Compiler for testing.

    Writes a small module per input. Seed contents per output path to shape
    what dedup sees, and mark sources that reference the build-mode module.

    Usage:
        compiler = MockCompiler(dist)
        compiler.seed("./twind.js", "export const a = 1;\\n")
        service = BuildService(root, manifest, config, compiler=compiler)
    """

    def __init__(
        self,
        dist: Path,
        env_sources: set[str] | None = None,
        externals: dict[str, list[str]] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.dist = dist
        self.env_sources = env_sources or set()
        self.externals = externals or {}
        self.delay = delay
        self.jobs: list[CompileJob] = []
        self._contents: dict[str, str] = {}
        self._failures: dict[str, str] = {}

    def seed(self, output_path: str, content: str) -> None:
        """Content written for ``output_path`` (relative to dist)."""
        self._contents[output_path] = content

    def fail(self, output_path: str, message: str = "mock failure") -> None:
        """Make any job producing ``output_path`` raise CompileError."""
        self._failures[output_path] = message

    def default_content(self, job: CompileJob, source: str) -> str:
        if job.target.module_format == ModuleFormat.CJS:
            return f'// {source}\nexports.value = "{job.mode.value}";\n'
        if job.target.module_format == ModuleFormat.IIFE:
            return f'var {job.global_name}=(()=>({{value:"{job.mode.value}"}}))();\n'
        return f'// {source}\nconst value = "{job.mode.value}";\nexport {{ value }};\n'

    async def compile(self, job: CompileJob) -> CompileResult:
        self.jobs.append(job)
        if self.delay:
            await asyncio.sleep(self.delay)

        outputs = []
        for output_path, source in job.inputs.items():
            if output_path in self._failures:
                raise CompileError(f"{output_path}: {self._failures[output_path]}")

            content = self._contents.get(output_path, self.default_content(job, source))
            target = self.dist / output_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content + f"//# sourceMappingURL={target.name}.map\n")
            target.with_name(target.name + ".map").write_text("{}")

            outputs.append(
                OutputMeta(
                    path=output_path,
                    entry_point=source,
                    imports=[
                        ImportRecord(path=spec, external=True)
                        for spec in self.externals.get(source, [])
                    ],
                )
            )

        return CompileResult(
            target=job.target.kind,
            mode=job.mode,
            outputs=outputs,
            uses_env_module=any(source in self.env_sources for source in job.inputs.values()),
        )

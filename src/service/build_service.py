"""Build service - orchestrates one package build.

This service:
1. Prepares the dist directory
2. Plans all compilations from the package's export map
3. Runs batched jobs, global bundles, declarations and file copying concurrently
4. Writes the published manifest once the development latch is known
5. Runs the development pass when any production output used the build-mode module
6. Collapses duplicate artifacts into facades, last

Ordering:
    first batched pass ──> latch ──> manifest write
                               └──> development pass ─┐
    script bundles ───────────────────────────────────┼──> dedup
    declarations, file copy ──────────────────────────┘
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.config import BuildConfig, DevMode
from src.dedup.facade import DedupFacadeGenerator, FacadeCandidate
from src.dedup.node_wrapper import write_node_wrapper
from src.errors import UnresolvedImportError
from src.models.compile_result import CompileResult
from src.models.plan import BatchJob, BuildMode, BuildPlan, PerEntryJob, TargetKind, TypesTask
from src.planner.build_planner import BuildPlanner
from src.planner.export_map import declared_export_map
from src.planner.manifest import ManifestSynthesizer
from src.planner.targets import TargetMatrix, node_wrapper_path
from src.service.compiler import CompileJob, Compiler
from src.service.types_emitter import TypesEmitter
from src.service.workspace import copy_package_files, prepare_dist

logger = logging.getLogger(__name__)

# Node builtins; imports of these cannot be satisfied inside a global script
NODE_BUILTINS = frozenset(
    """
    assert async_hooks buffer child_process cluster console constants crypto dgram
    diagnostics_channel dns domain events fs http http2 https inspector module net os
    path perf_hooks process punycode querystring readline repl stream string_decoder
    sys timers tls trace_events tty url util v8 vm wasi worker_threads zlib
    """.split()
)

DEPENDENCY_FIELDS = ("dependencies", "peerDependencies", "devDependencies", "optionalDependencies")


def is_platform_specifier(specifier: str) -> bool:
    """``node:fs``, ``fs`` and ``fs/promises`` are platform modules."""
    return specifier.startswith("node:") or specifier.split("/")[0] in NODE_BUILTINS


def package_name(specifier: str) -> str:
    """``@scope/pkg/sub`` -> ``@scope/pkg``, ``pkg/sub`` -> ``pkg``"""
    segments = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(segments[:2])
    return segments[0]


def external_dependencies(manifest: dict[str, Any], bundle_dependencies: bool = False) -> list[str]:
    """Specifiers left to the consumer's resolver.

    Global scripts inline bundled dependencies; every other target keeps
    all declared dependencies and the package itself external.
    """
    external: list[str] = []
    for field_name in DEPENDENCY_FIELDS:
        external.extend(manifest.get(field_name) or {})
    if manifest.get("name"):
        external.append(manifest["name"])

    if bundle_dependencies:
        bundled = {*manifest.get("bundledDependencies", []), *manifest.get("bundleDependencies", [])}
        external = [dependency for dependency in external if dependency not in bundled]
    return list(dict.fromkeys(external))


@dataclass
class BuildReport:
    """Outcome of a successful build."""

    plan: BuildPlan
    manifest: dict[str, Any]
    dev_plan: BuildPlan | None = None
    results: list[CompileResult] = field(default_factory=list)
    facades: list[FacadeCandidate] = field(default_factory=list)
    copied: list[Path] = field(default_factory=list)

    @property
    def needs_development(self) -> bool:
        return self.dev_plan is not None


class BuildService:
    """Builds one package into its dist directory."""

    def __init__(
        self,
        root: Path,
        manifest: dict[str, Any],
        config: BuildConfig,
        compiler: Compiler,
        types_emitter: TypesEmitter | None = None,
    ):
        """Initialize build service.

        Args:
            root: Package root, source paths in the export map are relative to it
            manifest: Merged package manifest
            config: Build configuration
            compiler: Backend that executes compile jobs
            types_emitter: Declaration bundler, None to skip declarations
        """
        self.root = root
        self.manifest = manifest
        self.config = config
        self.compiler = compiler
        self.types_emitter = types_emitter
        self.dist = root / config.dist_dir

        self.export_map = declared_export_map(manifest)
        self.planner = BuildPlanner(
            manifest["name"],
            matrix=TargetMatrix(config.targets),
            read_source=self._read_source,
            emit_types=types_emitter is not None,
        )
        self.synthesizer = ManifestSynthesizer(config.default_precedence)
        self.external = external_dependencies(manifest)
        self.script_external = external_dependencies(manifest, bundle_dependencies=True)

    def _read_source(self, source: str) -> str:
        return (self.root / source).read_text(encoding="utf-8")

    # =========================================================================
    # Run
    # =========================================================================

    async def build(self) -> BuildReport:
        """Run the whole build. Any failing task fails the run."""
        logger.info(f"Bundling {self.manifest['name']}@{self.manifest.get('version', '0.0.0')}")
        prepare_dist(self.dist)

        plan = self.planner.plan(self.export_map)

        # Started now, awaited by the latch
        first_pass = asyncio.gather(*(self.compile_batch(batch) for batch in plan.batches))

        async def batched_passes() -> tuple[list[CompileResult], BuildPlan | None, dict[str, Any]]:
            results = list(await first_pass)
            dev_plan = None
            if self.needs_development(results):
                dev_plan = self.planner.plan_development(self.export_map)

            published = self.synthesizer.synthesize(self.manifest, plan, dev_plan)
            self.synthesizer.write(published, self.dist / "package.json")

            if dev_plan is not None:
                results.extend(
                    await asyncio.gather(*(self.compile_batch(batch) for batch in dev_plan.batches))
                )
            return results, dev_plan, published

        types = []
        if self.types_emitter is not None:
            types = [self.emit_types(self.types_emitter, task) for task in plan.types]

        (results, dev_plan, published), script_results, _, copied = await asyncio.gather(
            batched_passes(),
            asyncio.gather(*(self.compile_script(job) for job in plan.per_entry)),
            asyncio.gather(*types),
            asyncio.to_thread(copy_package_files, self.root, self.dist, self.manifest.get("files")),
        )

        facades = DedupFacadeGenerator(self.dist).run(plan, dev_plan)

        return BuildReport(
            plan=plan,
            manifest=published,
            dev_plan=dev_plan,
            results=[*results, *script_results],
            facades=facades,
            copied=copied,
        )

    def needs_development(self, results: list[CompileResult]) -> bool:
        """The development latch, decided once from the first pass."""
        match self.config.dev_mode:
            case DevMode.ALWAYS:
                return True
            case DevMode.NEVER:
                return False
            case DevMode.AUTO:
                return any(result.uses_env_module for result in results)

    # =========================================================================
    # Tasks
    # =========================================================================

    async def compile_batch(self, batch: BatchJob) -> CompileResult:
        """Compile every entry of one target kind together."""
        job = CompileJob.from_batch(batch, self.external, self.config.env_module)
        started = time.perf_counter()
        result = await self.compiler.compile(job)
        self._log_bundled(job, result, time.perf_counter() - started)
        self.check_imports(result)

        if batch.target.kind == TargetKind.NODE:
            for task in batch.tasks:
                meta = result.output(task.output_path)
                write_node_wrapper(
                    self.dist / task.output_path,
                    self.dist / node_wrapper_path(task),
                    reported_exports=meta.exports if meta else None,
                )
        return result

    async def compile_script(self, job: PerEntryJob) -> CompileResult:
        """Compile one self-contained global bundle."""
        compile_job = CompileJob.from_entry(job, self.script_external, self.config.env_module)
        started = time.perf_counter()
        result = await self.compiler.compile(compile_job)
        self._log_bundled(compile_job, result, time.perf_counter() - started)
        self.check_imports(result)
        return result

    async def emit_types(self, emitter: TypesEmitter, task: TypesTask) -> Path:
        started = time.perf_counter()
        output = await emitter.emit(task, self.dist)
        logger.info(f"Bundled {task.source} -> {task.output_path} in {time.perf_counter() - started:.2f}s")
        return output

    def check_imports(self, result: CompileResult) -> None:
        """Warn about external imports; fail global scripts importing platform modules.

        Raises:
            UnresolvedImportError: If a script output imports a platform module
        """
        for meta in result.outputs:
            external = [record.path for record in meta.imports if record.external]
            if result.target == TargetKind.SCRIPT:
                platform = [specifier for specifier in external if is_platform_specifier(specifier)]
                if platform:
                    raise UnresolvedImportError(meta.path, platform)

            for specifier in external:
                if package_name(specifier) in self.external:
                    continue
                if result.target == TargetKind.NODE and is_platform_specifier(specifier):
                    continue
                logger.warning(f"{meta.path}: unresolved import {specifier!r} left external")

        for warning in result.warnings:
            logger.warning(warning)

    @staticmethod
    def _log_bundled(job: CompileJob, result: CompileResult, seconds: float) -> None:
        target = job.target
        details = f"{target.module_format.value} - {target.language_level}"
        if job.mode == BuildMode.DEVELOPMENT:
            details += ", development"
        for output_path, source in job.inputs.items():
            logger.info(f"Bundled {source} -> {output_path} ({details}) in {seconds:.2f}s")
        chunks = result.chunks()
        if chunks:
            logger.debug(f"{target.kind.value}: {len(chunks)} shared chunks")

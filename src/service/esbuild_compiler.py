"""
esbuild compiler backend.

Runs the esbuild binary once per compile job and reads back its metafile.
"""

import asyncio
import json
import logging
import tempfile
from pathlib import Path

from src.errors import CompileError
from src.models.compile_result import CompileResult
from src.models.plan import BuildMode, ModuleFormat, Platform
from src.service.compiler import CompileJob
from src.service.metafile import parse_metafile

logger = logging.getLogger(__name__)

RESOLVE_EXTENSIONS = ".tsx,.ts,.jsx,.mjs,.js,.cjs,.css,.json"

# Gives CommonJS output a working import.meta.url
NODE_CJS_SHIM = """\
import { pathToFileURL } from 'url'
import { createRequire } from 'module'

export const shim_import_meta_url = /*#__PURE__*/ pathToFileURL(__filename)
export const shim_import_meta_resolve = async (specifier, parent) => {
  const { resolve } = parent ? createRequire(parent) : require
  return resolve(specifier)
}
"""


def render_env_module(mode: BuildMode) -> str:
    """Build-mode module with the constants of ``mode`` inlined."""
    return "".join(
        f"export const {name} = {json.dumps(value)};\n" for name, value in mode.env_values().items()
    )


def entry_argument(output_path: str, source: str) -> str:
    """``./web.esnext.js`` + ``./src/web.ts`` -> ``web.esnext=./src/web.ts``"""
    name = output_path.removeprefix("./")
    stem, _, _ = name.rpartition(".")
    return f"{stem}={source}"


class EsbuildCompiler:
    """Compiler backed by the esbuild command line."""

    def __init__(
        self,
        root: Path,
        dist: Path,
        esbuild_bin: str = "esbuild",
        tsconfig: Path | None = None,
    ):
        """Initialize esbuild backend.

        Args:
            root: Package root, esbuild runs from here
            dist: Output directory
            esbuild_bin: esbuild executable
            tsconfig: tsconfig.json passed to esbuild
        """
        self.root = root
        self.dist = dist
        self.esbuild_bin = esbuild_bin
        self.tsconfig = tsconfig

    def command(self, job: CompileJob, workdir: Path) -> list[str]:
        """esbuild arguments for ``job``; support files live in ``workdir``."""
        target = job.target
        extension = ".cjs" if target.module_format == ModuleFormat.CJS else ".js"

        cmd = [self.esbuild_bin]
        cmd.extend(entry_argument(path, source) for path, source in job.inputs.items())
        cmd.extend(
            [
                "--bundle",
                f"--outdir={self.dist}",
                f"--out-extension:.js={extension}",
                f"--format={target.module_format.value}",
                f"--platform={target.platform.value}",
                f"--target={target.language_level}",
                f"--conditions={job.mode.value}",
                f"--resolve-extensions={RESOLVE_EXTENSIONS}",
                "--sourcemap",
                "--charset=utf8",
                "--log-level=warning",
                f"--metafile={workdir / 'meta.json'}",
                f"--alias:{job.env_module}={workdir / 'env.js'}",
            ]
        )

        if target.platform == Platform.NEUTRAL:
            cmd.append("--main-fields=esnext,module,main")
        if target.platform != Platform.NODE:
            # Leave platform modules for the runtime; script builds reject them later
            cmd.append("--external:node:*")

        if job.chunk_dir and target.module_format == ModuleFormat.ESM:
            chunk_dir = job.chunk_dir.removeprefix("./")
            cmd.extend(["--splitting", f"--chunk-names={chunk_dir}/[name]-[hash]"])

        if target.module_format == ModuleFormat.CJS:
            cmd.extend(
                [
                    f"--inject:{workdir / 'shim-node-cjs.js'}",
                    "--define:import.meta.url=shim_import_meta_url",
                    "--define:import.meta.resolve=shim_import_meta_resolve",
                ]
            )

        if target.module_format == ModuleFormat.IIFE:
            cmd.extend(
                [
                    f"--global-name={job.global_name}",
                    '--define:process.env.NODE_ENV="production"',
                    "--define:process.browser=true",
                ]
            )
        elif target.platform == Platform.NODE:
            cmd.append("--define:process.browser=false")

        if target.minify:
            cmd.append("--minify")
        if self.tsconfig:
            cmd.append(f"--tsconfig={self.tsconfig}")

        cmd.extend(f"--external:{specifier}" for specifier in job.external)
        return cmd

    async def compile(self, job: CompileJob) -> CompileResult:
        """Run esbuild for ``job``.

        Raises:
            CompileError: If esbuild exits non-zero or is not installed
        """
        with tempfile.TemporaryDirectory(prefix="pkgforge-") as tmp:
            workdir = Path(tmp)
            (workdir / "env.js").write_text(render_env_module(job.mode))
            (workdir / "shim-node-cjs.js").write_text(NODE_CJS_SHIM)

            cmd = self.command(job, workdir)
            logger.debug(f"Command: {' '.join(cmd)}")

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    cwd=self.root,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise CompileError(f"esbuild not available: {e}") from e

            stdout, stderr = await process.communicate()
            if process.returncode != 0:
                logger.error(f"esbuild failed with exit code {process.returncode}")
                raise CompileError(
                    f"esbuild failed for {job.target.kind.value} ({job.mode.value})",
                    stderr=stderr.decode(errors="replace"),
                )

            metafile = json.loads((workdir / "meta.json").read_text())
            result = parse_metafile(metafile, job, self.root, self.dist, env_file=workdir / "env.js")

        if stderr:
            result.warnings.extend(line for line in stderr.decode(errors="replace").splitlines() if line)
        return result

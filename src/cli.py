"""
CLI for building a package into its dist directory.

Usage:
    pkgforge build [--cwd DIR] [--dist DIR] [--dev-mode auto|always|never]
    pkgforge plan  [--cwd DIR] [--development]
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

from src.config import BuildConfig, DevMode
from src.errors import CompileError, PkgforgeError
from src.planner.build_planner import BuildPlanner
from src.planner.export_map import declared_export_map
from src.planner.manifest import ManifestSynthesizer
from src.planner.targets import TargetMatrix
from src.service.build_service import BuildService
from src.service.compiler import Compiler
from src.service.esbuild_compiler import EsbuildCompiler
from src.service.http_compiler import HttpCompiler
from src.service.types_emitter import TypesEmitter
from src.service.workspace import PackagePaths, find_paths, load_manifest

logger = logging.getLogger(__name__)


def _load(args) -> tuple[PackagePaths, dict, BuildConfig]:
    config_overrides = {
        "dist_dir": getattr(args, "dist", None),
        "dev_mode": getattr(args, "dev_mode", None),
        "compiler": getattr(args, "compiler", None),
    }
    paths = find_paths(Path(args.cwd))
    manifest = load_manifest(paths)
    config = BuildConfig.load(manifest, paths.root, config_overrides)
    if config.dist_dir != paths.dist.name:
        paths.dist = paths.root / config.dist_dir
    return paths, manifest, config


def create_compiler(paths: PackagePaths, config: BuildConfig) -> Compiler:
    match config.compiler:
        case "http":
            return HttpCompiler(paths.root, paths.dist, url=config.compiler_url)
        case _:
            return EsbuildCompiler(paths.root, paths.dist, config.esbuild_bin, paths.tsconfig)


def cmd_build(args) -> int:
    """Build every target of the package."""
    paths, manifest, config = _load(args)

    types_emitter = None
    if paths.tsconfig and not args.no_types:
        types_emitter = TypesEmitter(paths.root, config.dts_command, paths.tsconfig)

    service = BuildService(
        paths.root,
        manifest,
        config,
        compiler=create_compiler(paths, config),
        types_emitter=types_emitter,
    )

    started = time.perf_counter()
    report = asyncio.run(service.build())

    print(f"✅ Built {manifest['name']} into {paths.dist} in {time.perf_counter() - started:.2f}s")
    print(f"   Entry points: {len(report.plan.entries)}")
    print(f"   Development build: {'yes' if report.needs_development else 'no'}")
    if report.facades:
        print(f"   Facades: {len(report.facades)}")
    return 0


def cmd_plan(args) -> int:
    """Print the planned artifacts and exports without compiling."""
    paths, manifest, config = _load(args)
    planner = BuildPlanner(
        manifest["name"],
        matrix=TargetMatrix(config.targets),
        read_source=lambda source: (paths.root / source).read_text(encoding="utf-8"),
    )
    export_map = declared_export_map(manifest)

    plan = planner.plan(export_map)
    dev_plan = planner.plan_development(export_map) if args.development else None

    for p in (plan, dev_plan):
        if p is None:
            continue
        print(f"\n{'Output':<32} {'Kind':<8} {'Source':<32} {'Mode':<12}")
        print("-" * 86)
        for task in p.tasks():
            print(
                f"{task.output_path:<32} "
                f"{task.target.kind.value:<8} "
                f"{task.source:<32} "
                f"{task.mode.value:<12}"
            )

    exports = ManifestSynthesizer(config.default_precedence).exports_block(plan, dev_plan)
    print("\nexports:")
    print(json.dumps(exports, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Build multi-target packages from an export map")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser("build", help="Build the package")
    build_parser.add_argument("--cwd", default=".", help="Directory inside the package")
    build_parser.add_argument("--dist", help="Output directory (default: dist)")
    build_parser.add_argument(
        "--dev-mode",
        choices=[mode.value for mode in DevMode],
        help="When to build development variants",
    )
    build_parser.add_argument("--compiler", choices=["esbuild", "http"], help="Compiler backend")
    build_parser.add_argument("--no-types", action="store_true", help="Skip declaration bundling")

    # Plan command
    plan_parser = subparsers.add_parser("plan", help="Show the build plan")
    plan_parser.add_argument("--cwd", default=".", help="Directory inside the package")
    plan_parser.add_argument(
        "--development", action="store_true", help="Include the development pass"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "build": cmd_build,
        "plan": cmd_plan,
    }

    try:
        return commands[args.command](args)
    except CompileError as e:
        logger.error(f"❌ {e}")
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        return 1
    except PkgforgeError as e:
        logger.error(f"❌ {e}")
        return 1
    except (OSError, KeyError, ValueError) as e:
        logger.error(f"❌ Failed to build: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

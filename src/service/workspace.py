"""Package and workspace discovery.

Finds the package being built, the monorepo root above it, merges their
manifests and copies the files that ship next to the artifacts.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

WORKSPACE_ROOT_FILES = (
    ".git",
    "lerna.json",
    "pnpm-workspace.yaml",
    "rush.json",
    "workspace.json",
    "nx.json",
)

# readme, license, changelog... copied alongside the artifacts
PACKAGE_FILE_STEMS = ("changes", "changelog", "history", "license", "licence", "notice", "readme")
PACKAGE_FILE_SUFFIXES = ("", ".md", ".txt")


@dataclass
class PackagePaths:
    """Directories involved in one build."""

    current: Path
    root: Path
    workspace: Path
    dist: Path
    tsconfig: Path | None


def _has_manifest(directory: Path) -> bool:
    return (directory / "package.json").is_file()


def _has_workspace_manifest(directory: Path) -> bool:
    file = directory / "package.json"
    if not os.access(file, os.R_OK):
        return False
    return bool(json.loads(file.read_text(encoding="utf-8")).get("workspaces"))


def find_package_root(current: Path) -> Path:
    """Nearest directory containing a package.json, ``current`` if none."""
    for directory in (current, *current.parents):
        if _has_manifest(directory):
            return directory
    return current


def find_workspace_root(current: Path, root: Path | None = None) -> Path:
    """Nearest monorepo root above ``current``, ``root`` if none."""
    root = root or find_package_root(current)
    for directory in (current, *current.parents):
        if any((directory / name).exists() for name in WORKSPACE_ROOT_FILES):
            return directory
        if _has_workspace_manifest(directory):
            return directory
    return root


def find_up(name: str, start: Path) -> Path | None:
    for directory in (start, *start.parents):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_paths(current: Path, dist_dir: str = "dist") -> PackagePaths:
    current = current.resolve()
    root = find_package_root(current)
    return PackagePaths(
        current=current,
        root=root,
        workspace=find_workspace_root(current, root),
        dist=root / dist_dir,
        tsconfig=find_up("tsconfig.json", root),
    )


def read_manifest(directory: Path) -> dict[str, Any]:
    with open(directory / "package.json", encoding="utf-8") as f:
        return json.load(f)


def load_manifest(paths: PackagePaths) -> dict[str, Any]:
    """Package manifest with workspace defaults merged underneath.

    Keywords are unioned; a package without its own ``repository`` inherits
    the workspace's, pointing at the package directory.
    """
    package = read_manifest(paths.root)
    if paths.workspace == paths.root or not _has_manifest(paths.workspace):
        return package

    workspace = read_manifest(paths.workspace)
    manifest = {**workspace, **package}
    manifest["keywords"] = list(dict.fromkeys([*workspace.get("keywords", []), *package.get("keywords", [])]))

    repository = workspace.get("repository")
    if repository and not package.get("repository"):
        if isinstance(repository, str):
            repository = {"type": "git", "url": repository}
        manifest["repository"] = {
            **repository,
            "directory": os.path.relpath(paths.root, paths.workspace).replace(os.sep, "/"),
        }

    # Workspace-only fields
    manifest.pop("workspaces", None)
    if "private" not in package:
        manifest.pop("private", None)
    return manifest


def prepare_dist(dist: Path) -> None:
    """Remove the previous build and recreate the directory."""
    shutil.rmtree(dist, ignore_errors=True)
    dist.mkdir(parents=True, exist_ok=True)


def package_files(root: Path, patterns: list[str] | None = None) -> list[Path]:
    """Files to ship: readme/license/changelog plus the manifest ``files`` globs."""
    found: dict[Path, None] = {}
    for path in sorted(root.iterdir()):
        stem, suffix = os.path.splitext(path.name.lower())
        if path.is_file() and stem in PACKAGE_FILE_STEMS and suffix in PACKAGE_FILE_SUFFIXES:
            found.setdefault(path.relative_to(root), None)

    for pattern in patterns or []:
        for path in sorted(root.glob(pattern.removeprefix("./"))):
            if path.is_file():
                found.setdefault(path.relative_to(root), None)
            elif path.is_dir():
                for nested in sorted(path.rglob("*")):
                    if nested.is_file():
                        found.setdefault(nested.relative_to(root), None)
    return list(found)


def copy_package_files(root: Path, dist: Path, patterns: list[str] | None = None) -> list[Path]:
    """Copy package files into ``dist`` keeping their relative paths."""
    copied = []
    for relative in package_files(root, patterns):
        if dist in (root / relative).parents:
            continue
        target = dist / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(root / relative, target)
        copied.append(target)
    logger.info(f"Copied {len(copied)} files to {dist}")
    return copied

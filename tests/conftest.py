"""Shared test fixtures and helpers."""

import json
from pathlib import Path

import pytest

from src.planner.build_planner import BuildPlanner
from src.planner.export_map import declared_export_map

# Root entry with a node-specific source, browser-only subpath without a global bundle
EXAMPLE_EXPORTS = {
    ".": {"node": "./src/node.ts", "default": "./src/index.ts"},
    "./web": {"browser": "./src/web.ts", "script": None},
}

EXAMPLE_SOURCES = {
    "src/index.ts": "export const value = 'index'\n",
    "src/node.ts": "export const value = 'node'\n",
    "src/web.ts": "export const value = 'web'\n",
}


@pytest.fixture
def example_manifest() -> dict:
    return {
        "name": "@twind/core",
        "version": "1.0.0",
        "exports": json.loads(json.dumps(EXAMPLE_EXPORTS)),
    }


@pytest.fixture
def example_export_map(example_manifest) -> dict:
    return declared_export_map(example_manifest)


@pytest.fixture
def planner() -> BuildPlanner:
    return BuildPlanner("@twind/core")


@pytest.fixture
def package_dir(tmp_path: Path, example_manifest: dict) -> Path:
    """A package on disk with the example manifest and sources."""
    root = tmp_path / "core"
    root.mkdir()
    (root / "package.json").write_text(json.dumps(example_manifest, indent=2))
    for relative, content in EXAMPLE_SOURCES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root

"""Tests for declaration bundling."""

import asyncio
import sys
from pathlib import Path

import pytest

from src.errors import CompileError
from src.models.exports import ConditionSet, EntryPlan
from src.models.plan import TypesTask
from src.service.types_emitter import TypesEmitter


@pytest.fixture
def task() -> TypesTask:
    entry = EntryPlan(subpath=".", conditions=ConditionSet(default="./src/index.ts"), stem="./core", is_main=True)
    return TypesTask(entry=entry, source="./src/index.ts", output_path="./core.d.ts")


def test_arguments(task):
    emitter = TypesEmitter(Path("/work/core"), tsconfig=Path("/work/tsconfig.json"))

    assert emitter.arguments(task, Path("/work/core/dist")) == [
        "dts-bundle-generator",
        "--out-file",
        str(Path("/work/core/dist") / "./core.d.ts"),
        "--project",
        str(Path("/work/tsconfig.json")),
        "./src/index.ts",
    ]


def test_failing_command_is_a_compile_error(tmp_path, task):
    emitter = TypesEmitter(tmp_path, command=[sys.executable, "-c", "import sys; sys.exit(2)"])

    with pytest.raises(CompileError, match="Declaration bundling failed for ./src/index.ts"):
        asyncio.run(emitter.emit(task, tmp_path / "dist"))


def test_missing_command_is_a_compile_error(tmp_path, task):
    emitter = TypesEmitter(tmp_path, command=[str(tmp_path / "no-dts")])

    with pytest.raises(CompileError, match="not available"):
        asyncio.run(emitter.emit(task, tmp_path / "dist"))

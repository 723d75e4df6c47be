"""Tests for the pkgforge CLI."""

import argparse
import json

import pytest

from src import cli
from src.service.compiler import MockCompiler
from src.service.http_compiler import HttpCompiler


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PKGFORGE_DIST_DIR", "PKGFORGE_DEV_MODE", "PKGFORGE_COMPILER", "PKGFORGE_COMPILER_URL"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert "usage:" in capsys.readouterr().out


def test_plan_command(package_dir, capsys):
    assert cli.main(["plan", "--cwd", str(package_dir)]) == 0

    out = capsys.readouterr().out
    assert "./core.global.js" in out
    assert "./web.global.js" not in out
    exports = json.loads(out.split("exports:\n", 1)[1])
    assert exports["./web"]["default"] == "./web.js"


def test_plan_command_with_development(package_dir, capsys):
    assert cli.main(["plan", "--cwd", str(package_dir), "--development"]) == 0

    assert "./core.dev.js" in capsys.readouterr().out


def test_build_command(package_dir, monkeypatch, capsys):
    monkeypatch.setattr(cli, "create_compiler", lambda paths, config: MockCompiler(paths.dist))

    assert cli.main(["build", "--cwd", str(package_dir / "src"), "--dist", "out", "--no-types"]) == 0

    assert (package_dir / "out" / "package.json").is_file()
    assert (package_dir / "out" / "core.mjs").is_file()
    assert "Built @twind/core" in capsys.readouterr().out


def test_build_failure_exits_non_zero(package_dir, monkeypatch):
    def failing(paths, config):
        compiler = MockCompiler(paths.dist)
        compiler.fail("./web.js", "Could not resolve")
        return compiler

    monkeypatch.setattr(cli, "create_compiler", failing)

    assert cli.main(["build", "--cwd", str(package_dir), "--no-types"]) == 1


def test_missing_manifest_exits_non_zero(tmp_path):
    assert cli.main(["plan", "--cwd", str(tmp_path)]) == 1


def test_http_compiler_uses_configured_url(package_dir, monkeypatch):
    monkeypatch.setenv("PKGFORGE_COMPILER_URL", "http://builder:9000/compile")
    paths, _, config = cli._load(argparse.Namespace(cwd=str(package_dir), dist=None, dev_mode=None, compiler="http"))

    compiler = cli.create_compiler(paths, config)

    assert isinstance(compiler, HttpCompiler)
    assert compiler.url == "http://builder:9000/compile"

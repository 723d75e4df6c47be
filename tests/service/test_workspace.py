"""Tests for package and workspace discovery."""

import json
from pathlib import Path

from src.service.workspace import (
    copy_package_files,
    find_package_root,
    find_paths,
    find_workspace_root,
    load_manifest,
    package_files,
    prepare_dist,
)


def write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def make_workspace(tmp_path: Path) -> Path:
    """Monorepo with packages/core below a workspace root."""
    write_json(
        tmp_path / "package.json",
        {
            "name": "twind-monorepo",
            "private": True,
            "workspaces": ["packages/*"],
            "keywords": ["css", "tailwind"],
            "license": "MIT",
            "repository": "https://github.com/tw-in-js/twind.git",
        },
    )
    package = tmp_path / "packages" / "core"
    write_json(package / "package.json", {"name": "@twind/core", "keywords": ["tailwind", "core"]})
    (package / "src").mkdir()
    return package


def test_find_package_root_from_nested_directory(tmp_path):
    package = make_workspace(tmp_path)

    assert find_package_root(package / "src") == package


def test_find_workspace_root_by_workspaces_field(tmp_path):
    package = make_workspace(tmp_path)

    assert find_workspace_root(package / "src") == tmp_path


def test_find_workspace_root_by_marker_file(tmp_path):
    package = tmp_path / "libs" / "core"
    write_json(package / "package.json", {"name": "core"})
    (tmp_path / "pnpm-workspace.yaml").write_text("packages: ['libs/*']\n")

    assert find_workspace_root(package) == tmp_path


def test_find_paths(tmp_path):
    package = make_workspace(tmp_path)
    (package / "tsconfig.json").write_text("{}")

    paths = find_paths(package / "src", dist_dir="build")

    assert paths.root == package.resolve()
    assert paths.dist == package.resolve() / "build"
    assert paths.tsconfig == package.resolve() / "tsconfig.json"


class TestLoadManifest:
    """Workspace defaults merged under the package manifest."""

    def test_merges_workspace_fields(self, tmp_path):
        package = make_workspace(tmp_path)

        manifest = load_manifest(find_paths(package))

        assert manifest["name"] == "@twind/core"
        assert manifest["license"] == "MIT"
        assert manifest["keywords"] == ["css", "tailwind", "core"]
        assert "workspaces" not in manifest
        assert "private" not in manifest

    def test_repository_points_at_package_directory(self, tmp_path):
        package = make_workspace(tmp_path)

        manifest = load_manifest(find_paths(package))

        assert manifest["repository"] == {
            "type": "git",
            "url": "https://github.com/tw-in-js/twind.git",
            "directory": "packages/core",
        }

    def test_package_repository_wins(self, tmp_path):
        package = make_workspace(tmp_path)
        write_json(
            package / "package.json",
            {"name": "@twind/core", "repository": "https://example.com/core.git"},
        )

        manifest = load_manifest(find_paths(package))

        assert manifest["repository"] == "https://example.com/core.git"

    def test_package_private_is_kept(self, tmp_path):
        package = make_workspace(tmp_path)
        write_json(package / "package.json", {"name": "@twind/core", "private": True})

        assert load_manifest(find_paths(package))["private"] is True


class TestPackageFiles:
    """Files shipped next to the artifacts."""

    def test_readme_license_changelog(self, tmp_path):
        for name in ("README.md", "LICENSE", "CHANGELOG.md", "notes.md", "index.ts"):
            (tmp_path / name).write_text(name)

        files = package_files(tmp_path)

        assert sorted(str(path) for path in files) == ["CHANGELOG.md", "LICENSE", "README.md"]

    def test_manifest_files_globs(self, tmp_path):
        (tmp_path / "assets").mkdir()
        (tmp_path / "assets" / "logo.svg").write_text("<svg/>")
        (tmp_path / "types.d.ts").write_text("")

        files = package_files(tmp_path, ["./assets", "*.d.ts"])

        assert [str(path) for path in files] == [str(Path("assets") / "logo.svg"), "types.d.ts"]

    def test_copy_skips_dist(self, tmp_path):
        (tmp_path / "README.md").write_text("# core")
        dist = tmp_path / "dist"
        prepare_dist(dist)
        (dist / "core.js").write_text("")

        copied = copy_package_files(tmp_path, dist, ["dist"])

        assert copied == [dist / "README.md"]


def test_prepare_dist_recreates_directory(tmp_path):
    dist = tmp_path / "dist"
    (dist / "nested").mkdir(parents=True)
    (dist / "nested" / "old.js").write_text("")

    prepare_dist(dist)

    assert dist.is_dir()
    assert list(dist.iterdir()) == []

"""Tests for DedupFacadeGenerator."""

from pathlib import Path

import pytest

from src.dedup.exports import ModuleExports, scan_esm_exports
from src.dedup.facade import (
    DedupFacadeGenerator,
    FacadeCandidate,
    relative_specifier,
    render_cjs_facade,
    render_esm_facade,
    strip_source_map_reference,
)
from src.models.plan import ModuleFormat

MODULE = 'const value = 1;\nexport { value as default, value };\n'


def artifact(path: Path, body: str) -> Path:
    """Write ``body`` with a source map reference and its map."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body + f"//# sourceMappingURL={path.name}.map\n")
    path.with_name(path.name + ".map").write_text("{}")
    return path


class TestStripSourceMapReference:
    """Only the trailing reference line is ignored."""

    def test_trailing_reference_removed(self):
        assert strip_source_map_reference(b"a;\n//# sourceMappingURL=a.js.map\n") == b"a;\n"

    def test_block_comment_reference_removed(self):
        assert strip_source_map_reference(b"a;\n/*# sourceMappingURL=a.js.map */\n") == b"a;\n"

    def test_content_without_reference_unchanged(self):
        assert strip_source_map_reference(b"a;\nb;\n") == b"a;\nb;\n"

    def test_reference_elsewhere_is_content(self):
        content = b"//# sourceMappingURL=a.js.map\nb;\n"

        assert strip_source_map_reference(content) == content


class TestRender:
    """Facade sources."""

    def test_named_and_default(self):
        facade = render_esm_facade("./core.js", ModuleExports(names=["a"], has_default=True))

        assert facade == 'export * from "./core.js";\nexport { default } from "./core.js";\n'

    def test_star_reexports_first(self):
        facade = render_esm_facade("./core.js", ModuleExports(names=["a"], star_reexports=["dep"]))

        assert facade == 'export * from "dep";\nexport * from "./core.js";\n'

    def test_default_only(self):
        facade = render_esm_facade("./core.js", ModuleExports(has_default=True))

        assert facade == 'export { default } from "./core.js";\n'

    def test_star_reexports_only_still_imports_module(self):
        facade = render_esm_facade("./core.js", ModuleExports(star_reexports=["lodash"]))

        assert facade == 'import "./core.js";\nexport * from "lodash";\n'

    def test_empty_module_is_side_effect_import(self):
        assert render_esm_facade("./core.js", ModuleExports()) == 'import "./core.js";\n'

    def test_cjs(self):
        assert render_cjs_facade("./core.cjs") == 'module.exports = require("./core.cjs");\n'


def test_relative_specifier(tmp_path):
    assert relative_specifier(tmp_path / "core.esnext.js", tmp_path / "core.js") == "./core.js"
    assert relative_specifier(tmp_path / "utils" / "dom.esnext.js", tmp_path / "core.js") == "../core.js"


class TestApply:
    """Rewriting one candidate."""

    def test_equivalent_duplicate_becomes_facade(self, tmp_path):
        canonical = artifact(tmp_path / "core.js", MODULE)
        duplicate = artifact(tmp_path / "core.esnext.js", MODULE)

        rewritten = DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(canonical=canonical, duplicate=duplicate, module_format=ModuleFormat.ESM)
        )

        assert rewritten
        assert duplicate.read_text() == 'export * from "./core.js";\nexport { default } from "./core.js";\n'
        assert not (tmp_path / "core.esnext.js.map").exists()
        assert (tmp_path / "core.js.map").exists()

    def test_facade_keeps_export_surface(self, tmp_path):
        canonical = artifact(tmp_path / "core.js", MODULE)
        duplicate = artifact(tmp_path / "core.esnext.js", MODULE)

        DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(canonical=canonical, duplicate=duplicate, module_format=ModuleFormat.ESM)
        )
        facade = scan_esm_exports(duplicate.read_text())

        assert facade.star_reexports == ["./core.js"]
        assert facade.has_default == scan_esm_exports(canonical.read_text()).has_default

    def test_facade_keeps_side_effects_of_reexport_only_module(self, tmp_path):
        body = 'console.log("init");\nexport * from "lodash";\n'
        canonical = artifact(tmp_path / "core.js", body)
        duplicate = artifact(tmp_path / "core.esnext.js", body)

        DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(canonical=canonical, duplicate=duplicate, module_format=ModuleFormat.ESM)
        )

        assert duplicate.read_text() == 'import "./core.js";\nexport * from "lodash";\n'

    def test_different_content_untouched(self, tmp_path):
        canonical = artifact(tmp_path / "core.js", MODULE)
        duplicate = artifact(tmp_path / "core.esnext.js", MODULE.replace("1", "2"))
        before = duplicate.read_text()

        rewritten = DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(canonical=canonical, duplicate=duplicate, module_format=ModuleFormat.ESM)
        )

        assert not rewritten
        assert duplicate.read_text() == before
        assert (tmp_path / "core.esnext.js.map").exists()

    def test_missing_artifact_skipped(self, tmp_path):
        canonical = artifact(tmp_path / "core.js", MODULE)

        assert not DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(
                canonical=canonical,
                duplicate=tmp_path / "core.esnext.js",
                module_format=ModuleFormat.ESM,
            )
        )

    def test_cjs_duplicate(self, tmp_path):
        canonical = artifact(tmp_path / "core.cjs", 'exports.value = 1;\n')
        duplicate = artifact(tmp_path / "core.dev.cjs", 'exports.value = 1;\n')

        DedupFacadeGenerator(tmp_path).apply(
            FacadeCandidate(canonical=canonical, duplicate=duplicate, module_format=ModuleFormat.CJS)
        )

        assert duplicate.read_text() == 'module.exports = require("./core.cjs");\n'


class TestCandidates:
    """Which pairs are compared, in order."""

    @pytest.fixture
    def generator(self, tmp_path):
        return DedupFacadeGenerator(tmp_path)

    def names(self, candidates):
        return [(c.canonical.name, c.duplicate.name) for c in candidates]

    def test_production_only(self, generator, planner):
        plan = planner.plan({".": "./src/index.ts"})

        assert self.names(generator.candidates(plan)) == [("core.js", "core.esnext.js")]

    def test_with_development(self, generator, planner):
        export_map = {".": "./src/index.ts"}
        plan = planner.plan(export_map)
        dev_plan = planner.plan_development(export_map)

        assert self.names(generator.candidates(plan, dev_plan)) == [
            ("core.esnext.js", "core.esnext.dev.js"),
            ("core.js", "core.dev.js"),
            ("core.cjs", "core.dev.cjs"),
            ("core.browser.js", "core.browser.dev.js"),
            ("core.js", "core.esnext.js"),
            ("core.dev.js", "core.esnext.dev.js"),
        ]

    def test_run_rewrites_in_order(self, tmp_path, planner):
        export_map = {".": "./src/index.ts"}
        plan = planner.plan(export_map)
        dev_plan = planner.plan_development(export_map)
        for name in ("core.js", "core.esnext.js", "core.dev.js", "core.esnext.dev.js"):
            artifact(tmp_path / name, MODULE)

        rewritten = DedupFacadeGenerator(tmp_path).run(plan, dev_plan)

        assert self.names(rewritten) == [
            ("core.esnext.js", "core.esnext.dev.js"),
            ("core.js", "core.dev.js"),
            ("core.js", "core.esnext.js"),
        ]
        # core.esnext.dev.js already points at core.esnext.js, so it no longer matches core.dev.js
        assert (tmp_path / "core.esnext.dev.js").read_text().startswith('export * from "./core.esnext.js"')

"""Tests for the ESM wrapper of node builds."""

from src.dedup.exports import ModuleExports
from src.dedup.node_wrapper import render_node_wrapper, write_node_wrapper


def test_named_and_default_exports():
    wrapper = render_node_wrapper("core.cjs", ModuleExports(names=["a", "b"], has_default=True))

    assert wrapper == (
        'import __$$ from "./core.cjs";\n'
        "export const { a, b } = __$$;\n"
        "export default __$$.default;\n"
    )


def test_module_object_is_default_without_default_export():
    wrapper = render_node_wrapper("core.cjs", ModuleExports(names=["a"]))

    assert wrapper.endswith("export default __$$;\n")


def test_star_reexports_come_first():
    wrapper = render_node_wrapper("core.cjs", ModuleExports(star_reexports=["dep"]))

    assert wrapper == (
        'export * from "dep";\n'
        'import __$$ from "./core.cjs";\n'
        "export default __$$;\n"
    )


def test_non_identifier_names_are_skipped():
    wrapper = render_node_wrapper("core.cjs", ModuleExports(names=["a", "not-valid"]))

    assert "export const { a } = __$$;" in wrapper


def test_write_scans_compiled_file(tmp_path):
    cjs = tmp_path / "core.cjs"
    cjs.write_text('exports.value = "production";\n//# sourceMappingURL=core.cjs.map\n')

    write_node_wrapper(cjs, tmp_path / "core.mjs")

    assert (tmp_path / "core.mjs").read_text() == (
        'import __$$ from "./core.cjs";\n'
        "export const { value } = __$$;\n"
        "export default __$$;\n"
    )


def test_write_prefers_reported_names_but_keeps_scanned_stars(tmp_path):
    cjs = tmp_path / "core.cjs"
    cjs.write_text('exports.scanned = 1;\n__reExport(src_exports, require("dep"), module.exports);\n')

    write_node_wrapper(cjs, tmp_path / "core.mjs", reported_exports=["reported", "default"])

    assert (tmp_path / "core.mjs").read_text() == (
        'export * from "dep";\n'
        'import __$$ from "./core.cjs";\n'
        "export const { reported } = __$$;\n"
        "export default __$$.default;\n"
    )

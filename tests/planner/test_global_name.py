"""Tests for script bundle global names."""

from src.planner.global_name import (
    camelize,
    entry_global_name,
    legalize,
    package_global_name,
    read_global_name_marker,
)


def test_camelize():
    assert camelize("preset-tailwind") == "presetTailwind"
    assert camelize("core") == "core"


def test_legalize_replaces_non_identifier_characters():
    assert legalize("utils/dom") == "utils_dom"
    assert legalize("1x") == "_1x"


def test_package_global_name():
    assert package_global_name("@twind/preset-tailwind") == "twind.presetTailwind"
    assert package_global_name("@twind/core") == "twind.core"
    assert package_global_name("my-lib") == "myLib"


def test_main_entry_uses_package_global():
    assert entry_global_name("twind.core", ".", is_main=True) == "twind.core"


def test_subpath_entry_is_suffixed():
    assert entry_global_name("twind.core", "./web", is_main=False) == "twind.core_web"
    assert entry_global_name("twind.core", "./utils/dom", is_main=False) == "twind.core_utils_dom"


def test_read_global_name_marker():
    source = "// @global-name twind\nexport const a = 1\n"

    assert read_global_name_marker(source) == "twind"


def test_marker_accepts_dotted_names():
    assert read_global_name_marker("  // @global-name twind.web\n") == "twind.web"


def test_no_marker():
    assert read_global_name_marker("export const a = 1\n") is None
    assert read_global_name_marker("// @global-name not-valid\n") is None

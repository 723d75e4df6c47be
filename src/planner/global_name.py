"""Global identifiers for script (IIFE) bundles."""

from __future__ import annotations

import re

# // @global-name twind.preset
GLOBAL_NAME_MARKER = re.compile(
    r"^[ \t]*//[ \t]*@global-name[ \t]+([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)[ \t]*$",
    re.MULTILINE,
)

_CAMELIZE = re.compile(r"[^a-z\d]+([a-z\d])", re.IGNORECASE)
_NON_IDENTIFIER = re.compile(r"[^\w$]+")


def camelize(value: str) -> str:
    """``preset-tailwind`` -> ``presetTailwind``"""
    return _CAMELIZE.sub(lambda match: match.group(1).upper(), value)


def legalize(value: str) -> str:
    """Replace characters that cannot appear in an identifier."""
    identifier = _NON_IDENTIFIER.sub("_", value).strip("_") or "_"
    if identifier[0].isdigit():
        identifier = "_" + identifier
    return identifier


def package_global_name(package_name: str) -> str:
    """Derive the global for a package.

    ``@twind/preset-tailwind`` -> ``twind.presetTailwind``
    """
    segments = package_name.lstrip("@").split("/")
    return ".".join(legalize(camelize(segment)) for segment in segments if segment)


def entry_global_name(package_global: str, subpath: str, is_main: bool) -> str:
    """Global for one entry point: the package global, suffixed for subpaths."""
    if is_main:
        return package_global
    return f"{package_global}_{legalize(subpath.removeprefix('./'))}"


def read_global_name_marker(source: str) -> str | None:
    """Global name override declared in the entry source, if any."""
    match = GLOBAL_NAME_MARKER.search(source)
    return match.group(1) if match else None

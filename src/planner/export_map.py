"""Export map resolution.

Normalizes a declared ``exports`` map into EntryPlans. Subpaths that do not
describe buildable code (``./package.json``, assets, nested condition
objects) are not errors: they are kept in the declared map and copied into
the published manifest unchanged.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.models.exports import EntryPlan, parse_declared_export

logger = logging.getLogger(__name__)

SOURCE_FILE_PATTERN = re.compile(r"\.([mc]js|[jt]sx?)$")


def short_name(package_name: str) -> str:
    """``@twind/core`` -> ``core``"""
    return package_name.split("/")[-1]


def declared_export_map(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Build the export map to plan from a package manifest.

    The package root defaults to ``source`` or ``main`` and ``package.json``
    is always reachable. Declared ``exports`` override both but keep their
    position.
    """
    exports = manifest.get("exports")
    if isinstance(exports, str):
        exports = {".": exports}

    exports = exports or {}
    declared: dict[str, Any] = {
        ".": manifest.get("source") or manifest.get("main"),
        "./package.json": "./package.json",
        **exports,
    }
    # A declared null blocks the subpath and is published as written
    return {
        subpath: value
        for subpath, value in declared.items()
        if value is not None or subpath in exports
    }


@dataclass
class ResolvedExportMap:
    """Output of ExportMapResolver.resolve."""

    entries: list[EntryPlan] = field(default_factory=list)
    declared: dict[str, Any] = field(default_factory=dict)

    @property
    def passthrough(self) -> dict[str, Any]:
        """Declared subpaths that are published as written."""
        planned = {entry.subpath for entry in self.entries}
        return {k: v for k, v in self.declared.items() if k not in planned}


class ExportMapResolver:
    """Turns a declared export map into ordered EntryPlans."""

    def __init__(self, package_name: str):
        self.package_name = package_name

    def resolve(self, export_map: Mapping[str, Any]) -> ResolvedExportMap:
        """Resolve every subpath in declaration order.

        Args:
            export_map: subpath -> string | condition object | None

        Returns:
            ResolvedExportMap with buildable entries and the full declared map
        """
        result = ResolvedExportMap()
        for subpath, value in export_map.items():
            result.declared[subpath] = value
            entry = self.resolve_entry(subpath, value)
            if entry is not None:
                result.entries.append(entry)
        return result

    def resolve_entry(self, subpath: str, value: Any) -> EntryPlan | None:
        """Resolve one subpath, None when it is not buildable."""
        if "*" in subpath:
            logger.debug(f"Passing through {subpath}: subpath pattern")
            return None

        declared = parse_declared_export(value)
        if declared is None:
            logger.debug(f"Passing through {subpath}: not a condition map")
            return None

        for path in declared.paths():
            if path is not None and not SOURCE_FILE_PATTERN.search(path):
                logger.debug(f"Passing through {subpath}: {path} is not a source file")
                return None
            if path is not None and "*" in path:
                logger.debug(f"Passing through {subpath}: {path} is a pattern")
                return None

        conditions = declared.to_condition_set()
        if not conditions.is_usable():
            logger.debug(f"Passing through {subpath}: no default, browser or node condition")
            return None

        is_main = subpath == "."
        return EntryPlan(
            subpath=subpath,
            conditions=conditions,
            stem="./" + short_name(self.package_name) if is_main else subpath,
            is_main=is_main,
        )

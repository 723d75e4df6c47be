"""Duplicate artifact collapsing.

After compilation, artifacts that only differ in their source map
reference are rewritten into facades that re-export the canonical file.
Consumers observe the same bindings; only the indirection changes.

Pairs compared per entry point:
- production vs development variant of every batched target
- module vs esnext (in both modes)

The development / esnext side is always the one rewritten.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from src.dedup.exports import ModuleExports, scan_esm_exports
from src.models.plan import BuildPlan, ModuleFormat, TargetKind
from src.planner.targets import BATCHED_KINDS

logger = logging.getLogger(__name__)

SOURCE_MAP_REFERENCE = re.compile(rb"^\s*(?://[#@]\s*sourceMappingURL=\S*|/\*[#@]\s*sourceMappingURL=.*\*/)\s*$")


@dataclass(frozen=True)
class FacadeCandidate:
    """A pair of artifacts that may be content-equivalent."""

    canonical: Path
    duplicate: Path
    module_format: ModuleFormat


def strip_source_map_reference(content: bytes) -> bytes:
    """Remove the trailing source map reference line, nothing else."""
    body = content.rstrip(b"\r\n")
    head, newline, last = body.rpartition(b"\n")
    if SOURCE_MAP_REFERENCE.match(last):
        return head + newline if newline else b""
    return content


def is_equivalent(canonical: Path, duplicate: Path) -> bool:
    return strip_source_map_reference(canonical.read_bytes()) == strip_source_map_reference(
        duplicate.read_bytes()
    )


def relative_specifier(from_file: Path, to_file: Path) -> str:
    """Import specifier for ``to_file`` as seen from ``from_file``."""
    relative = os.path.relpath(to_file, from_file.parent).replace(os.sep, "/")
    return relative if relative.startswith(".") else "./" + relative


def render_esm_facade(specifier: str, exports: ModuleExports) -> str:
    """ECMAScript facade re-exporting everything ``specifier`` exports."""
    if exports.is_empty:
        return f"import {json.dumps(specifier)};\n"

    lines = [f"export * from {json.dumps(reexport)};" for reexport in exports.star_reexports]
    if not exports.names and not exports.has_default:
        # Wildcard re-exports alone never load the canonical module
        lines.insert(0, f"import {json.dumps(specifier)};")
    if exports.names:
        lines.append(f"export * from {json.dumps(specifier)};")
    if exports.has_default:
        lines.append(f"export {{ default }} from {json.dumps(specifier)};")
    return "\n".join(lines) + "\n"


def render_cjs_facade(specifier: str) -> str:
    return f"module.exports = require({json.dumps(specifier)});\n"


class DedupFacadeGenerator:
    """Rewrites duplicate artifacts in ``dist`` into facades."""

    def __init__(self, dist: Path):
        self.dist = dist

    def candidates(self, plan: BuildPlan, dev_plan: BuildPlan | None = None) -> list[FacadeCandidate]:
        """Pairs to compare, in the order they are applied."""
        candidates: list[FacadeCandidate] = []
        for entry in plan.entries:
            production = plan.tasks_for(entry.subpath)
            development = dev_plan.tasks_for(entry.subpath) if dev_plan else {}

            for kind in BATCHED_KINDS:
                if kind in production and kind in development:
                    candidates.append(
                        FacadeCandidate(
                            canonical=self.dist / production[kind].output_path,
                            duplicate=self.dist / development[kind].output_path,
                            module_format=production[kind].target.module_format,
                        )
                    )

            for tasks in (production, development):
                if TargetKind.MODULE in tasks and TargetKind.ESNEXT in tasks:
                    candidates.append(
                        FacadeCandidate(
                            canonical=self.dist / tasks[TargetKind.MODULE].output_path,
                            duplicate=self.dist / tasks[TargetKind.ESNEXT].output_path,
                            module_format=ModuleFormat.ESM,
                        )
                    )
        return candidates

    def apply(self, candidate: FacadeCandidate) -> bool:
        """Rewrite the duplicate into a facade if both files are equivalent.

        Returns:
            True if the duplicate was rewritten
        """
        canonical, duplicate = candidate.canonical, candidate.duplicate
        if not (canonical.is_file() and duplicate.is_file()):
            logger.debug(f"Skipping facade for {duplicate.name}: artifact missing")
            return False
        if not is_equivalent(canonical, duplicate):
            return False

        specifier = relative_specifier(duplicate, canonical)
        if candidate.module_format == ModuleFormat.CJS:
            facade = render_cjs_facade(specifier)
        else:
            facade = render_esm_facade(specifier, scan_esm_exports(canonical.read_text(encoding="utf-8")))

        duplicate.write_text(facade, encoding="utf-8")
        # The facade has no mapping of its own
        duplicate.with_name(duplicate.name + ".map").unlink(missing_ok=True)

        logger.info(f"Replaced {duplicate.name} with a facade of {canonical.name}")
        return True

    def run(self, plan: BuildPlan, dev_plan: BuildPlan | None = None) -> list[FacadeCandidate]:
        """Apply every candidate once. Returns the rewritten ones."""
        return [candidate for candidate in self.candidates(plan, dev_plan) if self.apply(candidate)]

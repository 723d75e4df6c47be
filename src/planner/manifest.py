"""Published manifest synthesis.

Projects a BuildPlan into the ``exports`` block and legacy top-level fields
of the package.json written next to the artifacts. Field order is fixed so
repeated builds produce reviewable diffs.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from src.models.plan import BuildPlan, BuildTask, TargetKind
from src.planner.targets import node_wrapper_path

logger = logging.getLogger(__name__)

# Sources for "default", first non-empty wins. "node" means node.import.
DEFAULT_PRECEDENCE: tuple[str, ...] = ("module", "node", "esnext", "script")

# "development" must precede the production keys: conditions match in order
EXPORT_FIELD_ORDER = (
    "types",
    "development",
    "esnext",
    "module",
    "browser",
    "script",
    "node",
    "default",
)

DEVELOPMENT_FIELDS = ("esnext", "module", "browser", "node")

# Only meaningful in the source repository
STRIPPED_FIELDS = (
    "private",
    "files",
    "source",
    "scripts",
    "packageManager",
    "devDependencies",
    "optionalDependencies",
    "workspaces",
    "bundledDependencies",
    "bundleDependencies",
    "eslintConfig",
    "prettier",
    "np",
    "size-limit",
    "lint-staged",
    "husky",
    "readme",
    "_id",
    "pkgforge",
)

STRIPPED_ENGINES = ("npm", "yarn", "pnpm")


def omit_comments(value: Any) -> Any:
    """Drop ``//`` comment keys at any depth."""
    if isinstance(value, dict):
        return {key: omit_comments(item) for key, item in value.items() if not key.startswith("//")}
    if isinstance(value, list):
        return [omit_comments(item) for item in value]
    return value


class ManifestSynthesizer:
    """Builds the published package manifest from a plan."""

    def __init__(self, default_precedence: Sequence[str] = DEFAULT_PRECEDENCE):
        unknown = set(default_precedence) - {"module", "node", "esnext", "script", "browser"}
        if unknown:
            raise ValueError(f"Unknown default precedence fields: {sorted(unknown)}")
        self.default_precedence = tuple(default_precedence)

    # =========================================================================
    # Export entries
    # =========================================================================

    def conditions_for(self, tasks: Mapping[TargetKind, BuildTask]) -> dict[str, Any]:
        """Artifact fields for one entry, without ``default``."""
        fields: dict[str, Any] = {}
        for kind in (TargetKind.ESNEXT, TargetKind.MODULE, TargetKind.BROWSER, TargetKind.SCRIPT):
            if kind in tasks:
                fields[kind.value] = tasks[kind].output_path
        if TargetKind.NODE in tasks:
            node_task = tasks[TargetKind.NODE]
            fields["node"] = {
                "import": node_wrapper_path(node_task),
                "require": node_task.output_path,
            }
        return fields

    def resolve_default(self, fields: Mapping[str, Any]) -> str | None:
        """First non-empty field in the configured precedence.

        Falls back to any other artifact so a consumer that matches no
        condition still resolves.
        """
        for name in (*self.default_precedence, "module", "node", "esnext", "browser", "script"):
            value = fields.get(name)
            if isinstance(value, dict):
                value = value.get("import") or value.get("require")
            if value:
                return value
        return None

    def export_entry(
        self,
        tasks: Mapping[TargetKind, BuildTask],
        types_path: str | None = None,
        dev_tasks: Mapping[TargetKind, BuildTask] | None = None,
    ) -> dict[str, Any] | None:
        """PublishExportEntry for one subpath, None when nothing was built."""
        fields = self.conditions_for(tasks)
        default = self.resolve_default(fields)
        if default is None:
            return None

        fields["default"] = default
        if types_path:
            fields["types"] = types_path

        if dev_tasks:
            development = {
                name: value
                for name, value in self.conditions_for(dev_tasks).items()
                if name in DEVELOPMENT_FIELDS
            }
            dev_default = self.resolve_default(development)
            if dev_default:
                development["default"] = dev_default
                fields["development"] = development

        return {name: fields[name] for name in EXPORT_FIELD_ORDER if name in fields}

    def exports_block(self, plan: BuildPlan, dev_plan: BuildPlan | None = None) -> dict[str, Any]:
        """The ``exports`` field in declaration order; passthrough values as declared."""
        exports: dict[str, Any] = {}
        for subpath, value in plan.declared.items():
            if plan.entry(subpath) is None:
                exports[subpath] = value
                continue

            types_task = plan.types_for(subpath)
            entry = self.export_entry(
                plan.tasks_for(subpath),
                types_path=types_task.output_path if types_task else None,
                dev_tasks=dev_plan.tasks_for(subpath) if dev_plan else None,
            )
            if entry is None:
                logger.warning(f"No artifacts planned for {subpath}, leaving it out of exports")
                continue
            exports[subpath] = entry
        return exports

    # =========================================================================
    # Manifest
    # =========================================================================

    @staticmethod
    def legacy_fields(main: Mapping[str, Any]) -> dict[str, Any]:
        """Top-level fields for tools that predate ``exports``."""
        node = main.get("node") or {}
        return {
            # Used by node
            "main": node.get("require") or main.get("module"),
            # Used by bundlers
            "module": main.get("module"),
            "esnext": main.get("esnext"),
            "browser": main.get("browser"),
            # Typescript
            "types": main.get("types"),
            # Common CDNs
            "unpkg": main.get("script"),
            "jsdelivr": main.get("script"),
        }

    def synthesize(
        self,
        manifest: Mapping[str, Any],
        plan: BuildPlan,
        dev_plan: BuildPlan | None = None,
    ) -> dict[str, Any]:
        """Published manifest for ``plan``."""
        published: dict[str, Any] = dict(manifest)
        published["type"] = "module"
        published["exports"] = self.exports_block(plan, dev_plan)

        for name in STRIPPED_FIELDS:
            published.pop(name, None)

        if isinstance(published.get("engines"), dict):
            published["engines"] = {
                engine: version
                for engine, version in published["engines"].items()
                if engine not in STRIPPED_ENGINES
            }

        main_entry = plan.entry(".")
        if main_entry is not None and isinstance(published["exports"].get("."), dict):
            for name, value in self.legacy_fields(published["exports"]["."]).items():
                if value is None:
                    published.pop(name, None)
                else:
                    published[name] = value

        return omit_comments(published)

    @staticmethod
    def write(published: Mapping[str, Any], path: Path) -> Path:
        """Write the manifest once as indented JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(published, indent=2) + "\n", encoding="utf-8")
        logger.info(f"Wrote {path}")
        return path

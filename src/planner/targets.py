"""Target matrix registry.

Maps each target kind to its fixed platform, module format, output suffix
and the order in which conditions are consulted to find its source file.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from src.models.exports import EntryPlan
from src.models.plan import (
    BuildMode,
    BuildTask,
    ModuleFormat,
    Platform,
    TargetDescriptor,
    TargetKind,
)

DEFAULT_LANGUAGE_LEVELS: dict[TargetKind, str | None] = {
    TargetKind.ESNEXT: "esnext",
    TargetKind.MODULE: "es2021",
    TargetKind.NODE: "node14",
    TargetKind.SCRIPT: "es2017",
    TargetKind.BROWSER: "es2021",
}

# Compiled together across all entry points; script is always per entry
BATCHED_KINDS = (TargetKind.ESNEXT, TargetKind.MODULE, TargetKind.NODE, TargetKind.BROWSER)

NODE_WRAPPER_SUFFIX = ".mjs"
TYPES_SUFFIX = ".d.ts"
DEV_INFIX = ".dev"


@dataclass(frozen=True)
class TargetRule:
    """Fixed properties of one target kind."""

    kind: TargetKind
    platform: Platform
    module_format: ModuleFormat
    suffix: str
    # Condition names tried in order; "default" is swapped for "development"
    # in the development pass when declared
    fallbacks: tuple[str, ...]
    platform_condition: str | None = None
    minify: bool = False


TARGET_MATRIX: dict[TargetKind, TargetRule] = {
    TargetKind.ESNEXT: TargetRule(
        kind=TargetKind.ESNEXT,
        platform=Platform.NEUTRAL,
        module_format=ModuleFormat.ESM,
        suffix=".esnext.js",
        fallbacks=("esnext", "default", "browser", "node"),
    ),
    TargetKind.MODULE: TargetRule(
        kind=TargetKind.MODULE,
        platform=Platform.NEUTRAL,
        module_format=ModuleFormat.ESM,
        suffix=".js",
        fallbacks=("module", "default", "browser", "node"),
    ),
    TargetKind.NODE: TargetRule(
        kind=TargetKind.NODE,
        platform=Platform.NODE,
        module_format=ModuleFormat.CJS,
        suffix=".cjs",
        fallbacks=("node", "default"),
        platform_condition="node",
    ),
    TargetKind.SCRIPT: TargetRule(
        kind=TargetKind.SCRIPT,
        platform=Platform.BROWSER,
        module_format=ModuleFormat.IIFE,
        suffix=".global.js",
        fallbacks=("script", "browser", "default"),
        platform_condition="browser",
        minify=True,
    ),
    TargetKind.BROWSER: TargetRule(
        kind=TargetKind.BROWSER,
        platform=Platform.BROWSER,
        module_format=ModuleFormat.ESM,
        suffix=".browser.js",
        fallbacks=("browser", "default"),
        platform_condition="browser",
    ),
}


def with_mode(path: str, mode: BuildMode) -> str:
    """Insert ``.dev`` before the final extension for development outputs.

    ``./twind.esnext.js`` -> ``./twind.esnext.dev.js``
    """
    if mode is BuildMode.PRODUCTION:
        return path
    head, dot, ext = path.rpartition(".")
    if not dot or "/" in ext:
        return path + DEV_INFIX
    return f"{head}{DEV_INFIX}.{ext}"


def node_wrapper_path(task: BuildTask) -> str:
    """Path of the ESM wrapper generated next to a node (CommonJS) artifact."""
    return with_mode(task.entry.stem + NODE_WRAPPER_SUFFIX, task.mode)


class TargetMatrix:
    """The enabled targets of one run and the per-entry rules to apply them."""

    def __init__(self, language_levels: Mapping[TargetKind | str, str | None] | None = None):
        levels = dict(DEFAULT_LANGUAGE_LEVELS)
        for kind, level in (language_levels or {}).items():
            levels[TargetKind(kind)] = level

        # A target configured as None is disabled for every entry point
        self.descriptors: dict[TargetKind, TargetDescriptor] = {
            kind: TargetDescriptor(
                kind=kind,
                platform=rule.platform,
                language_level=levels[kind],
                module_format=rule.module_format,
                minify=rule.minify,
                suffix=rule.suffix,
            )
            for kind, rule in TARGET_MATRIX.items()
            if levels.get(kind) is not None
        }

    def is_enabled(self, kind: TargetKind) -> bool:
        return kind in self.descriptors

    def descriptor(self, kind: TargetKind) -> TargetDescriptor:
        return self.descriptors[kind]

    def resolve_source(
        self,
        entry: EntryPlan,
        kind: TargetKind,
        mode: BuildMode = BuildMode.PRODUCTION,
    ) -> str | None:
        """Source file feeding ``kind`` for ``entry``, None when there is none.

        An explicit null for the kind's own condition or its platform
        condition suppresses the target for this entry only.
        """
        rule = TARGET_MATRIX[kind]
        conditions = entry.conditions

        if conditions.is_suppressed(kind.value):
            return None
        if rule.platform_condition and conditions.is_suppressed(rule.platform_condition):
            return None

        for name in rule.fallbacks:
            if name == "default" and mode is BuildMode.DEVELOPMENT:
                source = conditions.get("development") or conditions.get("default")
            else:
                source = conditions.get(name)
            if source:
                return source
        return None

    def output_path(self, entry: EntryPlan, kind: TargetKind, mode: BuildMode) -> str:
        return with_mode(entry.stem + TARGET_MATRIX[kind].suffix, mode)

    def task_for(
        self,
        entry: EntryPlan,
        kind: TargetKind,
        mode: BuildMode = BuildMode.PRODUCTION,
    ) -> BuildTask | None:
        """BuildTask for one entry and target kind, None if disabled or unresolved."""
        if not self.is_enabled(kind):
            return None
        source = self.resolve_source(entry, kind, mode)
        if source is None:
            return None
        return BuildTask(
            entry=entry,
            target=self.descriptor(kind),
            source=source,
            output_path=self.output_path(entry, kind, mode),
            mode=mode,
        )

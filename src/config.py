"""Build configuration.

Settings are read, lowest priority first, from defaults, the ``pkgforge``
block of package.json, ``PKGFORGE_*`` environment variables (a ``.env``
file in the package root is loaded first) and explicit overrides such as
CLI flags.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.models.plan import TargetKind
from src.planner.manifest import DEFAULT_PRECEDENCE
from src.planner.targets import DEFAULT_LANGUAGE_LEVELS

logger = logging.getLogger(__name__)

MANIFEST_CONFIG_KEY = "pkgforge"

DEFAULT_COMPILER_URL = "http://localhost:8090/compile"

# Environment variable -> config field
ENV_FIELDS = {
    "PKGFORGE_DIST_DIR": "dist_dir",
    "PKGFORGE_DEV_MODE": "dev_mode",
    "PKGFORGE_COMPILER": "compiler",
    "PKGFORGE_COMPILER_URL": "compiler_url",
    "PKGFORGE_ESBUILD": "esbuild_bin",
    "PKGFORGE_ENV_MODULE": "env_module",
}


class DevMode(str, Enum):
    """When to run the development pass."""

    AUTO = "auto"  # only if the build-mode module is referenced
    ALWAYS = "always"
    NEVER = "never"


class BuildConfig(BaseModel):
    """Configuration for one build run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    targets: dict[TargetKind, str | None] = Field(
        default_factory=lambda: dict(DEFAULT_LANGUAGE_LEVELS),
        description="Language level per target kind, null disables the target",
    )
    dev_mode: DevMode = DevMode.AUTO
    default_precedence: list[str] = Field(default_factory=lambda: list(DEFAULT_PRECEDENCE))
    env_module: str = Field(default="pkgforge/env", description="Specifier of the build-mode module")
    dist_dir: str = "dist"
    compiler: Literal["esbuild", "http"] = "esbuild"
    compiler_url: str = DEFAULT_COMPILER_URL
    esbuild_bin: str = "esbuild"
    dts_command: list[str] = Field(default_factory=lambda: ["dts-bundle-generator"])

    @field_validator("targets", mode="before")
    @classmethod
    def merge_default_targets(cls, value: Any) -> Any:
        """Partial target maps only override the kinds they name."""
        if not isinstance(value, Mapping):
            return value
        merged: dict[Any, Any] = {kind.value: level for kind, level in DEFAULT_LANGUAGE_LEVELS.items()}
        merged.update(value)
        return merged

    @classmethod
    def load(
        cls,
        manifest: Mapping[str, Any],
        root: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> BuildConfig:
        """Resolve configuration for the package at ``root``."""
        if root is not None:
            env_path = root / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        # package.json uses camelCase keys; normalize so later sources override them
        aliases = {info.alias: name for name, info in cls.model_fields.items() if info.alias}
        block = manifest.get(MANIFEST_CONFIG_KEY) or {}
        data: dict[str, Any] = {aliases.get(key, key): value for key, value in block.items()}
        for env_name, field_name in ENV_FIELDS.items():
            if value := os.getenv(env_name):
                data[field_name] = value
        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value

        config = cls.model_validate(data)
        logger.debug(f"Build config: {config.model_dump(mode='json')}")
        return config

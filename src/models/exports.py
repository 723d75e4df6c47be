"""Declared export map models.

A package.json ``exports`` value is either a bare path (shorthand) or an
object of conditions. Both are normalized at the boundary into a
ConditionSet so the rest of the planner never looks at raw JSON.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Conditions
# =============================================================================

CONDITION_NAMES = ("default", "browser", "node", "script", "esnext", "module", "development")

# At least one of these must point at a source file for an entry to be buildable
USABLE_CONDITIONS = ("default", "browser", "node")


class ConditionSet(BaseModel):
    """Condition name -> source path, or None for an explicit suppression.

    A key that was never declared and a key declared as ``null`` are both
    None on the model; ``model_fields_set`` tells them apart.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    default: str | None = None
    browser: str | None = None
    node: str | None = None
    script: str | None = None
    esnext: str | None = None
    module: str | None = None
    development: str | None = None

    def get(self, name: str) -> str | None:
        """Source path declared for a condition, None if missing or suppressed."""
        if name not in CONDITION_NAMES:
            return None
        return getattr(self, name)

    def is_declared(self, name: str) -> bool:
        return name in self.model_fields_set

    def is_suppressed(self, name: str) -> bool:
        """True only for an explicit ``null``, never for a missing key."""
        return self.is_declared(name) and self.get(name) is None

    def is_usable(self) -> bool:
        return any(self.get(name) for name in USABLE_CONDITIONS)

    def declared(self) -> dict[str, str | None]:
        """Declared conditions in canonical order, suppressions included."""
        return {name: self.get(name) for name in CONDITION_NAMES if self.is_declared(name)}


# =============================================================================
# Declared exports (tagged variant)
# =============================================================================


class ShorthandExport(BaseModel):
    """``"./sub": "./src/sub.ts"``"""

    kind: Literal["shorthand"] = "shorthand"
    path: str

    def paths(self) -> list[str | None]:
        return [self.path]

    def to_condition_set(self) -> ConditionSet:
        return ConditionSet(default=self.path)


class ConditionalExport(BaseModel):
    """``"./sub": {"browser": "./src/web.ts", "script": null}``"""

    kind: Literal["conditional"] = "conditional"
    conditions: dict[str, str | None]

    def paths(self) -> list[str | None]:
        return list(self.conditions.values())

    def to_condition_set(self) -> ConditionSet:
        return ConditionSet.model_validate(self.conditions)


DeclaredExport = Annotated[
    ShorthandExport | ConditionalExport,
    Field(discriminator="kind"),
]


def parse_declared_export(value: Any) -> ShorthandExport | ConditionalExport | None:
    """Tag a raw export map value. Returns None for shapes that cannot be built.

    Nested condition objects (``{"production": {...}}``) and non-string
    values are not buildable and are left for passthrough.
    """
    if isinstance(value, str):
        return ShorthandExport(path=value)
    if isinstance(value, dict) and all(v is None or isinstance(v, str) for v in value.values()):
        return ConditionalExport(conditions=value)
    return None


# =============================================================================
# Entry plans
# =============================================================================


class EntryPlan(BaseModel):
    """One publishable subpath of the package with its conditions."""

    model_config = ConfigDict(frozen=True)

    subpath: str
    conditions: ConditionSet
    stem: str = Field(..., description="Output path without suffix, e.g. './twind' or './web'")
    is_main: bool = False

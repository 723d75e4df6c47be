"""Compile result models.

These models define the interface between the build orchestration and a
compiler backend. The backend writes artifacts into the dist directory and
returns a CompileResult describing what it wrote.
"""

from pydantic import BaseModel, Field

from src.models.plan import BuildMode, TargetKind


class ImportRecord(BaseModel):
    """An import left in a compiled output."""

    path: str = Field(..., description="Import specifier as written in the output")
    kind: str = "import-statement"
    external: bool = Field(default=False, description="Not bundled, resolved at runtime")


class OutputMeta(BaseModel):
    """Metadata for one emitted file."""

    path: str = Field(..., description="Output path relative to dist, e.g. './twind.js'")
    entry_point: str | None = Field(
        default=None, description="Source file when this output is an entry, None for chunks"
    )
    exports: list[str] | None = Field(
        default=None, description="Static export names, None when the compiler does not report them"
    )
    imports: list[ImportRecord] = Field(default_factory=list)

    @property
    def is_chunk(self) -> bool:
        return self.entry_point is None


class CompileResult(BaseModel):
    """Outcome of one compile job."""

    target: TargetKind
    mode: BuildMode = BuildMode.PRODUCTION
    outputs: list[OutputMeta] = Field(default_factory=list)
    uses_env_module: bool = Field(
        default=False, description="Any compiled file referenced the build-mode module"
    )
    warnings: list[str] = Field(default_factory=list)

    def output(self, path: str) -> OutputMeta | None:
        for meta in self.outputs:
            if meta.path == path:
                return meta
        return None

    def chunks(self) -> list[OutputMeta]:
        return [meta for meta in self.outputs if meta.is_chunk]

    def external_imports(self) -> list[str]:
        """Distinct external specifiers in first-seen order."""
        seen: dict[str, None] = {}
        for meta in self.outputs:
            for record in meta.imports:
                if record.external:
                    seen.setdefault(record.path, None)
        return list(seen)

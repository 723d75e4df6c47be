"""Exception hierarchy for pkgforge.

Planning problems that only reduce the build plan are never raised; they are
logged and the entry point is dropped. Everything here aborts a run.
"""


class PkgforgeError(Exception):
    """Base class for all pkgforge failures."""

    pass


class PlanningError(PkgforgeError):
    """Raised when the configuration or build plan is unusable.

    Unbuildable subpaths are never planning errors: they pass through to the
    published manifest. This is raised only for plans whose artifacts would
    overwrite each other (two tasks writing one output path) or whose global
    scripts would share a global name, both detected before any compilation.
    """

    pass


class BuildError(PkgforgeError):
    """Raised when a compilation task fails."""

    pass


class CompileError(BuildError):
    """Raised when the compiler process or remote compile service fails."""

    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr


class UnresolvedImportError(BuildError):
    """Raised when a global (script) bundle imports a platform module."""

    def __init__(self, output_path: str, specifiers: list[str]):
        self.output_path = output_path
        self.specifiers = specifiers
        super().__init__(
            f"{output_path}: cannot bundle platform imports into a global script: "
            + ", ".join(specifiers)
        )

"""Static export scanning for compiled JavaScript.

Compiled output is regular enough (esbuild emits a single trailing
``export { ... }`` clause for ESM and ``__export(...)`` for CommonJS) that
pattern matching over comment-stripped text recovers the export list
without a JavaScript parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

_COMMENTS = re.compile(
    r"""
    (?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)
    | /\*.*?\*/
    | (?<![:\w])//[^\n]*
    """,
    re.DOTALL | re.VERBOSE,
)

# ESM
_ESM_STAR = re.compile(r"\bexport\s*\*\s*from\s*(['\"])(?P<spec>[^'\"]+)\1")
_ESM_STAR_AS = re.compile(r"\bexport\s*\*\s*as\s+(?P<name>[\w$]+)\s*from\b")
_ESM_DEFAULT = re.compile(r"\bexport\s+default\b")
_ESM_DECLARATION = re.compile(
    r"\bexport\s+(?:async\s+)?(?:function\s*\*?|class|const|let|var)\s*(?P<name>[\w$]+)"
)
_ESM_DESTRUCTURE = re.compile(r"\bexport\s+(?:const|let|var)\s*[{\[](?P<body>[^}\]]*)[}\]]")
_ESM_CLAUSE = re.compile(r"\bexport\s*\{(?P<body>[^}]*)\}")

# CommonJS
_CJS_ASSIGN = re.compile(r"\b(?:module\.)?exports\.(?P<name>[\w$]+)\s*=[^=]")
_CJS_DEFINE = re.compile(r"Object\.defineProperty\(\s*(?:module\.)?exports\s*,\s*(['\"])(?P<name>[\w$]+)\1")
_CJS_ESBUILD_EXPORT = re.compile(r"\b__export\(\s*[\w$]+\s*,\s*\{(?P<body>[^}]*)\}")
_CJS_ESBUILD_KEY = re.compile(r"(?:^|,)\s*(?P<name>[\w$]+|\"[^\"]+\")\s*:")
_CJS_REEXPORT = re.compile(r"\b__reExport\(\s*[\w$]+\s*,\s*require\(\s*(['\"])(?P<spec>[^'\"]+)\1")
_CJS_MODULE_REQUIRE = re.compile(r"\bmodule\.exports\s*=\s*require\(\s*(['\"])(?P<spec>[^'\"]+)\1")
# 0 && (module.exports = { a, b, ...require("c") });
_CJS_ANNOTATION = re.compile(r"\b0\s*&&\s*\(\s*module\.exports\s*=\s*\{(?P<body>[^}]*)\}")
_CJS_SPREAD_REQUIRE = re.compile(r"^\.\.\.\s*require\(\s*(['\"])(?P<spec>[^'\"]+)\1\s*\)$")


@dataclass
class ModuleExports:
    """Static export surface of one module."""

    names: list[str] = field(default_factory=list)
    has_default: bool = False
    star_reexports: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.names or self.has_default or self.star_reexports)

    def add_name(self, name: str) -> None:
        if name == "default":
            self.has_default = True
        elif name != "__esModule" and name not in self.names:
            self.names.append(name)

    def add_star(self, specifier: str) -> None:
        if specifier not in self.star_reexports:
            self.star_reexports.append(specifier)

    def all_names(self) -> list[str]:
        """Named exports plus ``default``, as compile metadata reports them."""
        return [*self.names, "default"] if self.has_default else list(self.names)


def strip_comments(source: str) -> str:
    """Remove comments, keeping string literals intact."""
    return _COMMENTS.sub(lambda m: m.group("string") or " ", source)


def _clause_names(body: str) -> list[str]:
    """Exported names of ``a, b as c, d as default``."""
    names = []
    for part in body.split(","):
        part = part.strip()
        if not part:
            continue
        alias = re.split(r"\s+as\s+", part)[-1].strip().strip("'\"")
        names.append(alias)
    return names


def scan_esm_exports(source: str) -> ModuleExports:
    """Export names of an ECMAScript module."""
    code = strip_comments(source)
    result = ModuleExports()

    for match in _ESM_STAR.finditer(code):
        result.add_star(match.group("spec"))
    for match in _ESM_STAR_AS.finditer(code):
        result.add_name(match.group("name"))
    if _ESM_DEFAULT.search(code):
        result.has_default = True
    for match in _ESM_DESTRUCTURE.finditer(code):
        for name in _clause_names(match.group("body")):
            name = name.split("=")[0].split(":")[-1].strip()
            if IDENTIFIER.match(name):
                result.add_name(name)
    for match in _ESM_DECLARATION.finditer(code):
        result.add_name(match.group("name"))
    for match in _ESM_CLAUSE.finditer(code):
        for name in _clause_names(match.group("body")):
            result.add_name(name)

    return result


def scan_cjs_exports(source: str) -> ModuleExports:
    """Export names of a CommonJS module, as Node's static analysis sees them."""
    code = strip_comments(source)
    result = ModuleExports()

    for match in _CJS_ESBUILD_EXPORT.finditer(code):
        for key in _CJS_ESBUILD_KEY.finditer(match.group("body")):
            result.add_name(key.group("name").strip('"'))
    for match in _CJS_ASSIGN.finditer(code):
        result.add_name(match.group("name"))
    for match in _CJS_DEFINE.finditer(code):
        result.add_name(match.group("name"))
    for match in _CJS_REEXPORT.finditer(code):
        result.add_star(match.group("spec"))
    for match in _CJS_MODULE_REQUIRE.finditer(code):
        result.add_star(match.group("spec"))
    for match in _CJS_ANNOTATION.finditer(code):
        for part in match.group("body").split(","):
            part = part.strip()
            spread = _CJS_SPREAD_REQUIRE.match(part)
            if spread:
                result.add_star(spread.group("spec"))
                continue
            name = part.split(":")[0].strip().strip("'\"")
            if IDENTIFIER.match(name):
                result.add_name(name)

    return result


def exports_from_names(names: list[str]) -> ModuleExports:
    """ModuleExports from a compiler-reported export list."""
    result = ModuleExports()
    for name in names:
        result.add_name(name)
    return result

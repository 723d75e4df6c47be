"""ECMAScript module wrapper for CommonJS node artifacts.

Node can import a CommonJS file, but only exposes the bindings its static
analysis finds. The wrapper re-exports those bindings explicitly so
``import { x } from "pkg"`` and ``require("pkg").x`` see the same module
instance.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from src.dedup.exports import IDENTIFIER, ModuleExports, exports_from_names, scan_cjs_exports

logger = logging.getLogger(__name__)


def render_node_wrapper(cjs_filename: str, exports: ModuleExports) -> str:
    """Wrapper source importing ``./<cjs_filename>`` (a sibling file)."""
    wrapper = ""
    for specifier in exports.star_reexports:
        wrapper += f"export * from {json.dumps(specifier)};\n"

    wrapper += f"import __$$ from {json.dumps('./' + cjs_filename)};\n"

    named = [name for name in exports.names if IDENTIFIER.match(name)]
    if named:
        wrapper += f"export const {{ {', '.join(named)} }} = __$$;\n"

    if exports.has_default:
        wrapper += "export default __$$.default;\n"
    else:
        wrapper += "export default __$$;\n"
    return wrapper


def write_node_wrapper(
    cjs_path: Path,
    wrapper_path: Path,
    reported_exports: list[str] | None = None,
) -> Path:
    """Write the wrapper for a compiled CommonJS file.

    Export names come from the compiler when it reports them; wildcard
    re-exports are always read from the compiled file.
    """
    source = cjs_path.read_text(encoding="utf-8")
    scanned = scan_cjs_exports(source)
    if reported_exports is not None:
        exports = exports_from_names(reported_exports)
        exports.star_reexports = scanned.star_reexports
    else:
        exports = scanned

    wrapper_path.parent.mkdir(parents=True, exist_ok=True)
    wrapper_path.write_text(render_node_wrapper(cjs_path.name, exports), encoding="utf-8")
    logger.debug(f"Wrote node wrapper {wrapper_path.name} ({len(exports.names)} named exports)")
    return wrapper_path

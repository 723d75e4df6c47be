"""Post-build rewriting of compiled artifacts."""

from .facade import DedupFacadeGenerator, FacadeCandidate
from .node_wrapper import write_node_wrapper

__all__ = ["DedupFacadeGenerator", "FacadeCandidate", "write_node_wrapper"]

"""Build service API."""

from src.service.build_service import BuildReport, BuildService
from src.service.compiler import CompileJob, Compiler, MockCompiler

__all__ = ["BuildService", "BuildReport", "CompileJob", "Compiler", "MockCompiler"]

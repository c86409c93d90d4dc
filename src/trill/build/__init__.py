"""Entry generation, compilation, and build generations."""

from trill.build.compiler import (
    BuildArtifact,
    CompileOptions,
    Compiler,
    EsbuildCompiler,
    ModuleCompiler,
)
from trill.build.external import get_external_deps
from trill.build.generation import BuildIdentifier, Generation
from trill.build.orchestrator import Orchestrator
from trill.build.templates import EntrySources, emit, write_entries

__all__ = [
    "BuildArtifact",
    "BuildIdentifier",
    "CompileOptions",
    "Compiler",
    "EntrySources",
    "EsbuildCompiler",
    "Generation",
    "ModuleCompiler",
    "Orchestrator",
    "emit",
    "get_external_deps",
    "write_entries",
]

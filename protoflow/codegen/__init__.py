"""protoc orchestration stages."""

from .artifact_extractor import ArtifactExtractor, ExtractionReport
from .artifact_repository import ArtifactRepository
from .binary_resolver import (
    ArtifactDownloadStrategy,
    BinaryResolver,
    EmbeddedBinaryStrategy,
    ExplicitCommandStrategy,
    ResolutionOutcome,
    ResolutionRequest,
)
from .command_builder import CommandBuilder
from .diagnostics import DiagnosticParser
from .filesystem import FileSystem, LocalFileSystem, MemoryFileSystem
from .freshness import MARKER_FILENAME, FreshnessOracle
from .host import BuildHost, LocalBuildHost
from .models import (
    CompilerBinary,
    Diagnostic,
    ExtractionRequest,
    InvocationResult,
    OutputTarget,
    ProtoFile,
    Severity,
    normalize_type,
)
from .pipeline import TargetPipeline
from .process_invoker import ProcessInvoker
from .runner import CodegenRunner, RunReport
from .session import CleanupRegistry, CodegenSession
from .shading import JavaPackageShader

__all__ = [
    "ArtifactDownloadStrategy",
    "ArtifactExtractor",
    "ArtifactRepository",
    "BinaryResolver",
    "BuildHost",
    "CleanupRegistry",
    "CodegenRunner",
    "CodegenSession",
    "CommandBuilder",
    "CompilerBinary",
    "Diagnostic",
    "DiagnosticParser",
    "EmbeddedBinaryStrategy",
    "ExplicitCommandStrategy",
    "ExtractionReport",
    "ExtractionRequest",
    "FileSystem",
    "FreshnessOracle",
    "InvocationResult",
    "JavaPackageShader",
    "LocalBuildHost",
    "LocalFileSystem",
    "MARKER_FILENAME",
    "MemoryFileSystem",
    "OutputTarget",
    "ProcessInvoker",
    "ProtoFile",
    "ResolutionOutcome",
    "ResolutionRequest",
    "RunReport",
    "Severity",
    "TargetPipeline",
    "normalize_type",
]

"""Build-time protoc orchestration: resolve the compiler, generate, register sources."""

from .errors import (
    CompilationError,
    ConfigurationError,
    DiagnosticParseWarning,
    ExtractionError,
    FileOperationError,
    ProtoflowError,
    ResolutionError,
)

__version__ = "0.4.0"

__all__ = [
    "CompilationError",
    "ConfigurationError",
    "DiagnosticParseWarning",
    "ExtractionError",
    "FileOperationError",
    "ProtoflowError",
    "ResolutionError",
    "__version__",
]

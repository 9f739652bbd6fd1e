"""Exception hierarchy shared by every codegen stage."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ProtoflowError(RuntimeError):
    """Base class for errors that stop a codegen run."""


class ConfigurationError(ProtoflowError):
    """Raised for invalid settings, coordinates, or include paths."""


class ResolutionError(ProtoflowError):
    """Raised when no strategy could produce a runnable compiler or plugin."""

    def __init__(self, message: str, reasons: Optional[Sequence[str]] = None) -> None:
        self.reasons = list(reasons or [])
        if self.reasons:
            message = message + "\n" + "\n".join(f"  - {reason}" for reason in self.reasons)
        super().__init__(message)


class ExtractionError(ProtoflowError):
    """A single dependency artifact could not be scanned."""

    def __init__(self, artifact: Path, cause: BaseException) -> None:
        self.artifact = Path(artifact)
        self.cause = cause
        super().__init__(f"Error scanning artifact: {artifact}: {cause}")


class CompilationError(ProtoflowError):
    """protoc returned a non-zero exit code or could not be launched."""

    def __init__(self, file: Path, exit_code: Optional[int], message: Optional[str] = None) -> None:
        self.file = Path(file)
        self.exit_code = exit_code
        if message is None:
            message = f"protoc failed for {file}. Exit code {exit_code}"
        super().__init__(message)


class FileOperationError(ProtoflowError):
    """The freshness marker could not be removed or recreated."""


class DiagnosticParseWarning(UserWarning):
    """A compiler diagnostic line mentioned the file but had no parsable position."""


__all__ = [
    "CompilationError",
    "ConfigurationError",
    "DiagnosticParseWarning",
    "ExtractionError",
    "FileOperationError",
    "ProtoflowError",
    "ResolutionError",
]

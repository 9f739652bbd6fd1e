"""Plain records passed between the codegen stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

SHADED_TYPES = frozenset({"java-shaded", "java_shaded"})
DESCRIPTOR_TYPE = "descriptor"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass
class OutputTarget:
    """One protoc output configuration.

    ``output_directory`` is ``None`` until :meth:`normalize` runs; after that it
    is never reassigned. ``plugin_path`` may be filled in later from
    ``plugin_artifact`` during preprocessing.
    """

    type: str = "java"
    add_sources: str = "main"
    output_directory: Optional[Path] = None
    output_directory_suffix: Optional[str] = None
    output_options: Optional[str] = None
    plugin_path: Optional[str] = None
    plugin_artifact: Optional[str] = None
    clean_output_folder: bool = False
    _normalized: bool = field(default=False, repr=False, compare=False)

    def normalize(self, build_directory: Path) -> "OutputTarget":
        if self._normalized:
            return self
        scope = (self.add_sources or "").lower().strip()
        if scope == "true":
            scope = "main"
        self.add_sources = scope
        if self.output_directory is None:
            subdir = "generated-" + ("test-" if scope == "test" else "") + "sources"
            self.output_directory = Path(build_directory) / subdir
        else:
            self.output_directory = Path(self.output_directory)
        if self.output_directory_suffix:
            self.output_directory = self.output_directory / self.output_directory_suffix
        self._normalized = True
        return self

    @property
    def is_normalized(self) -> bool:
        return self._normalized

    @property
    def shaded(self) -> bool:
        return self.type in SHADED_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "add_sources": self.add_sources,
            "output_directory": str(self.output_directory) if self.output_directory else None,
            "output_options": self.output_options,
            "plugin_path": self.plugin_path,
            "plugin_artifact": self.plugin_artifact,
            "clean_output_folder": self.clean_output_folder,
        }


@dataclass(frozen=True)
class CompilerBinary:
    path: Path
    version: Optional[str]
    platform_classifier: Optional[str]
    temporary: bool = False


@dataclass(frozen=True)
class ProtoFile:
    absolute_path: Path
    relative_name: str


@dataclass(frozen=True)
class Diagnostic:
    file: Path
    line: int
    column: int
    severity: Severity
    message: str


@dataclass(frozen=True)
class ExtractionRequest:
    artifacts: Tuple[Path, ...]
    target_directory: Path
    transitive: bool = False

    @classmethod
    def of(cls, artifacts: Sequence[Path], target_directory: Path, transitive: bool = False) -> "ExtractionRequest":
        return cls(tuple(Path(a) for a in artifacts), Path(target_directory), transitive)


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of a single blocking protoc (or plugin) run."""

    command: Tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def normalize_type(target_type: str) -> Tuple[str, bool]:
    """Map a shaded type to its base type; the flag says whether to shade."""

    if target_type in SHADED_TYPES:
        return "java", True
    return target_type, False


__all__ = [
    "CompilerBinary",
    "DESCRIPTOR_TYPE",
    "Diagnostic",
    "ExtractionRequest",
    "InvocationResult",
    "OutputTarget",
    "ProtoFile",
    "SHADED_TYPES",
    "Severity",
    "normalize_type",
]

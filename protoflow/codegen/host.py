"""Seam to the build system that owns source roots, deltas and messages."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from .models import Diagnostic

logger = logging.getLogger(__name__)


class BuildHost(Protocol):
    def has_delta(self, path: Path) -> bool: ...

    def add_compile_source_root(self, path: Path) -> None: ...

    def add_test_source_root(self, path: Path) -> None: ...

    def refresh(self, path: Path) -> None: ...

    def remove_messages(self, path: Path) -> None: ...

    def add_message(self, diagnostic: Diagnostic) -> None: ...

    def add_resource(self, directory: Path, includes: Sequence[str]) -> None: ...

    def dependency_artifacts(self, transitive: bool) -> List[Path]: ...


@dataclass
class ResourceRoot:
    directory: Path
    includes: List[str]


@dataclass
class LocalBuildHost:
    """Standalone host used when no IDE or build tool is driving the run.

    Every file counts as changed, registrations are recorded in memory and
    diagnostics are mirrored to the log.
    """

    direct_dependencies: List[Path] = field(default_factory=list)
    transitive_dependencies: List[Path] = field(default_factory=list)
    changed_files: Optional[List[Path]] = None
    compile_source_roots: List[Path] = field(default_factory=list)
    test_source_roots: List[Path] = field(default_factory=list)
    refreshed: List[Path] = field(default_factory=list)
    resources: List[ResourceRoot] = field(default_factory=list)
    messages: Dict[Path, List[Diagnostic]] = field(default_factory=dict)

    def has_delta(self, path: Path) -> bool:
        if self.changed_files is None:
            return True
        return Path(path) in {Path(p) for p in self.changed_files}

    def add_compile_source_root(self, path: Path) -> None:
        path = Path(path).absolute()
        if path not in self.compile_source_roots:
            self.compile_source_roots.append(path)

    def add_test_source_root(self, path: Path) -> None:
        path = Path(path).absolute()
        if path not in self.test_source_roots:
            self.test_source_roots.append(path)

    def refresh(self, path: Path) -> None:
        self.refreshed.append(Path(path))

    def remove_messages(self, path: Path) -> None:
        self.messages.pop(Path(path), None)

    def add_message(self, diagnostic: Diagnostic) -> None:
        self.messages.setdefault(diagnostic.file, []).append(diagnostic)
        logger.log(
            logging.ERROR if diagnostic.severity.value == "error" else logging.WARNING,
            "%s:%s:%s: %s",
            diagnostic.file,
            diagnostic.line,
            diagnostic.column,
            diagnostic.message,
        )

    def add_resource(self, directory: Path, includes: Sequence[str]) -> None:
        self.resources.append(ResourceRoot(Path(directory).absolute(), list(includes)))

    def dependency_artifacts(self, transitive: bool) -> List[Path]:
        if transitive:
            return list(self.direct_dependencies) + [
                p for p in self.transitive_dependencies if p not in self.direct_dependencies
            ]
        return list(self.direct_dependencies)


__all__ = ["BuildHost", "LocalBuildHost", "ResourceRoot"]

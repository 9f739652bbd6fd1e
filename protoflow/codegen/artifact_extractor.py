"""Copy schema files out of dependency artifacts into a scratch directory."""
from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional

from protoflow.errors import ExtractionError

from .filesystem import FileSystem, LocalFileSystem, walk_files
from .models import ExtractionRequest
from .session import CleanupRegistry

logger = logging.getLogger(__name__)


@dataclass
class ExtractionReport:
    files: List[Path] = field(default_factory=list)
    errors: List[ExtractionError] = field(default_factory=list)


class ArtifactExtractor:
    """Pull ``*<extension>`` files from expanded directories or zip archives.

    A failure while scanning one artifact is logged and that artifact is
    skipped; the remaining artifacts are still extracted.
    """

    def __init__(
        self,
        extension: str = ".proto",
        fs: Optional[FileSystem] = None,
        cleanup: Optional[CleanupRegistry] = None,
    ) -> None:
        self._extension = extension.lower()
        self._fs = fs or LocalFileSystem()
        self._cleanup = cleanup

    def extract(self, request: ExtractionRequest) -> ExtractionReport:
        report = ExtractionReport()
        target = request.target_directory
        self._fs.make_dirs(target)
        for artifact in request.artifacts:
            if artifact is None or not self._fs.exists(artifact):
                logger.debug("  Skipping missing artifact: %s", artifact)
                continue
            logger.debug("  Scanning artifact: %s", artifact)
            written: List[Path] = []
            try:
                if self._fs.is_dir(artifact):
                    self._extract_directory(artifact, target, written)
                else:
                    self._extract_archive(artifact, target, written)
            except (OSError, zipfile.BadZipFile, ValueError) as exc:
                error = ExtractionError(artifact, exc)
                logger.warning("  %s", error)
                report.errors.append(error)
            report.files.extend(written)
        if self._cleanup is not None:
            self._cleanup.register_tree(target)
        return report

    def _matches(self, name: str) -> bool:
        return name.lower().endswith(self._extension)

    def _extract_directory(self, root: Path, target: Path, written: List[Path]) -> None:
        for path in walk_files(self._fs, root, skip_unreadable=True):
            if not self._matches(path.name):
                continue
            relative = path.relative_to(root)
            destination = target / relative
            with self._fs.open_read(path) as stream:
                self._fs.write_stream(destination, stream)
            logger.info("    %s", relative.as_posix())
            written.append(destination)

    def _extract_archive(self, archive: Path, target: Path, written: List[Path]) -> None:
        with self._fs.open_read(archive) as raw, zipfile.ZipFile(raw) as bundle:
            for entry in bundle.infolist():
                if entry.is_dir() or not self._matches(entry.filename):
                    continue
                destination = target / _safe_relative(entry.filename)
                with bundle.open(entry) as stream:
                    self._fs.write_stream(destination, stream)
                logger.info("    %s", entry.filename)
                written.append(destination)


def _safe_relative(name: str) -> Path:
    relative = PurePosixPath(name.lstrip("/"))
    if ".." in relative.parts:
        raise ValueError(f"Archive entry escapes the target directory: {name}")
    return Path(*relative.parts)


__all__ = ["ArtifactExtractor", "ExtractionReport"]

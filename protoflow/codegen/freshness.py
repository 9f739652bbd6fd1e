"""Decide whether protoc needs to run, and keep the success marker honest."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

from protoflow.errors import FileOperationError

from .filesystem import FileSystem, LocalFileSystem, is_missing_or_empty, max_mtime, min_mtime

logger = logging.getLogger(__name__)

MARKER_FILENAME = "protoflow-success.txt"

T = TypeVar("T")


class FreshnessOracle:
    """Compare input/output timestamps plus a persisted marker."""

    def __init__(self, fs: Optional[FileSystem] = None) -> None:
        self._fs = fs or LocalFileSystem()

    def oldest_output(self, output_dirs: Iterable[Path]) -> Optional[float]:
        times = [t for t in (min_mtime(self._fs, d) for d in output_dirs) if t is not None]
        return min(times) if times else None

    def newest_input(self, input_dirs: Iterable[Path]) -> Optional[float]:
        times = [t for t in (max_mtime(self._fs, d) for d in input_dirs) if t is not None]
        return max(times) if times else None

    def should_skip_generation(
        self,
        input_dirs: Iterable[Path],
        output_dirs: Iterable[Path],
        marker: Path,
    ) -> bool:
        output_dirs = list(output_dirs)
        if not self._fs.is_file(marker):
            return False
        if any(is_missing_or_empty(self._fs, d) for d in output_dirs):
            return False
        oldest = self.oldest_output(output_dirs)
        newest = self.newest_input(input_dirs)
        if oldest is None:
            return False
        if newest is None:
            return True
        return newest < oldest

    def guarded_generation(self, marker: Path, generate: Callable[[], T]) -> T:
        """Delete the marker, run ``generate``, then recreate it on success.

        An exception from ``generate`` propagates and leaves the marker absent,
        so the next run cannot skip.
        """

        try:
            if self._fs.exists(marker):
                self._fs.remove_file(marker)
        except OSError as exc:
            raise FileOperationError(f"File operation failed: {marker}") from exc
        result = generate()
        try:
            self._fs.write_bytes(marker, b"")
        except OSError as exc:
            raise FileOperationError(f"File operation failed: {marker}") from exc
        return result


__all__ = ["FreshnessOracle", "MARKER_FILENAME"]

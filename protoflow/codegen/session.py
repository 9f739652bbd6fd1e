"""Per-run context threaded through every codegen stage."""
from __future__ import annotations

import atexit
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .filesystem import FileSystem, LocalFileSystem
from .models import CompilerBinary

logger = logging.getLogger(__name__)


class CleanupRegistry:
    """Best-effort deletion of temporary binaries and scratch trees at exit."""

    def __init__(self, register_atexit: bool = True) -> None:
        self._files: List[Path] = []
        self._trees: List[Path] = []
        self._done = False
        if register_atexit:
            atexit.register(self.run)

    @property
    def files(self) -> List[Path]:
        return list(self._files)

    @property
    def trees(self) -> List[Path]:
        return list(self._trees)

    def register_file(self, path: Path) -> None:
        self._files.append(Path(path))

    def register_tree(self, path: Path) -> None:
        self._trees.append(Path(path))

    def run(self) -> None:
        if self._done:
            return
        self._done = True
        for path in self._files:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.debug("Could not delete %s: %s", path, exc)
        for path in reversed(self._trees):
            shutil.rmtree(path, ignore_errors=True)


@dataclass
class CodegenSession:
    """Shared state for one run.

    The resolved compiler is stored once and read by every target; include
    and input directory lists grow while dependency sources are extracted.
    """

    fs: FileSystem = field(default_factory=LocalFileSystem)
    cleanup: CleanupRegistry = field(default_factory=CleanupRegistry)
    extension: str = ".proto"
    include_imports: bool = True
    include_directories: List[Path] = field(default_factory=list)
    input_directories: List[Path] = field(default_factory=list)
    scratch_root: Optional[Path] = None
    _binary: Optional[CompilerBinary] = field(default=None, repr=False)

    @property
    def binary(self) -> Optional[CompilerBinary]:
        return self._binary

    def bind_binary(self, binary: CompilerBinary) -> None:
        if self._binary is not None:
            raise RuntimeError(f"Compiler already resolved for this run: {self._binary.path}")
        self._binary = binary

    def require_binary(self) -> CompilerBinary:
        if self._binary is None:
            raise RuntimeError("No compiler has been resolved for this run.")
        return self._binary

    def add_include_dir(self, path: Path) -> None:
        self.include_directories.append(Path(path))

    def add_input_dir(self, path: Path) -> None:
        self.input_directories.append(Path(path))

    def use_home_scratch(self) -> Path:
        """Switch scratch files to the user's home (for noexec temp mounts)."""

        self.scratch_root = Path.home()
        return self.scratch_root

    def create_temp_dir(self, prefix: str) -> Path:
        path = Path(tempfile.mkdtemp(prefix=prefix))
        self.cleanup.register_tree(path)
        return path

    def create_temp_file(self, prefix: str, suffix: str, directory: Optional[Path] = None) -> Path:
        target_dir = directory or self.scratch_root
        handle, name = tempfile.mkstemp(
            prefix=prefix,
            suffix=suffix,
            dir=str(target_dir) if target_dir else None,
        )
        os.close(handle)
        path = Path(name)
        self.cleanup.register_file(path)
        return path


__all__ = ["CleanupRegistry", "CodegenSession"]

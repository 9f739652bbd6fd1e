"""Filesystem seam for every recursive walk the codegen stages perform.

The walks (timestamp min/max, recursive cleaning, extraction of expanded
dependency directories, proto discovery) use an explicit stack so a deep tree
never hits the interpreter's recursion limit. They only talk to a
:class:`FileSystem`, so tests can swap in :class:`MemoryFileSystem`.
"""
from __future__ import annotations

import io
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Set, Tuple


class FileSystem(ABC):
    """Minimal set of operations the walkers need."""

    @abstractmethod
    def exists(self, path: Path) -> bool: ...

    @abstractmethod
    def is_dir(self, path: Path) -> bool: ...

    @abstractmethod
    def is_file(self, path: Path) -> bool: ...

    @abstractmethod
    def list_dir(self, path: Path) -> List[Path]: ...

    @abstractmethod
    def mtime(self, path: Path) -> float: ...

    @abstractmethod
    def can_read(self, path: Path) -> bool: ...

    @abstractmethod
    def can_traverse(self, path: Path) -> bool: ...

    @abstractmethod
    def open_read(self, path: Path) -> BinaryIO: ...

    @abstractmethod
    def write_stream(self, path: Path, stream: BinaryIO) -> None: ...

    @abstractmethod
    def make_dirs(self, path: Path) -> None: ...

    @abstractmethod
    def remove_file(self, path: Path) -> None: ...

    @abstractmethod
    def remove_dir(self, path: Path) -> None: ...

    def write_bytes(self, path: Path, data: bytes) -> None:
        self.write_stream(path, io.BytesIO(data))

    def read_bytes(self, path: Path) -> bytes:
        with self.open_read(path) as handle:
            return handle.read()


class LocalFileSystem(FileSystem):
    """The real disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def list_dir(self, path: Path) -> List[Path]:
        return sorted(Path(path).iterdir())

    def mtime(self, path: Path) -> float:
        return Path(path).stat().st_mtime

    def can_read(self, path: Path) -> bool:
        return os.access(path, os.R_OK)

    def can_traverse(self, path: Path) -> bool:
        return os.access(path, os.R_OK | os.X_OK)

    def open_read(self, path: Path) -> BinaryIO:
        return open(path, "rb")

    def write_stream(self, path: Path, stream: BinaryIO) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as handle:
            shutil.copyfileobj(stream, handle)

    def make_dirs(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def remove_file(self, path: Path) -> None:
        Path(path).unlink()

    def remove_dir(self, path: Path) -> None:
        Path(path).rmdir()


class MemoryFileSystem(FileSystem):
    """In-memory tree used by unit tests.

    Every write advances a logical clock, so later writes are strictly newer
    unless a test pins a timestamp with :meth:`set_mtime`.
    """

    def __init__(self) -> None:
        self._files: Dict[Path, Tuple[bytes, float]] = {}
        self._dirs: Set[Path] = {Path("/")}
        self._denied: Set[Path] = set()
        self._clock = 1000.0

    def _tick(self) -> float:
        self._clock += 1.0
        return self._clock

    def deny(self, path: Path) -> None:
        """Make ``path`` unreadable (and untraversable for directories)."""

        self._denied.add(Path(path))

    def set_mtime(self, path: Path, value: float) -> None:
        path = Path(path)
        data, _ = self._files[path]
        self._files[path] = (data, value)

    def exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self._files or path in self._dirs

    def is_dir(self, path: Path) -> bool:
        return Path(path) in self._dirs

    def is_file(self, path: Path) -> bool:
        return Path(path) in self._files

    def list_dir(self, path: Path) -> List[Path]:
        path = Path(path)
        if path not in self._dirs:
            raise NotADirectoryError(str(path))
        if path in self._denied:
            raise PermissionError(str(path))
        children = {p for p in self._files if p.parent == path}
        children.update(d for d in self._dirs if d.parent == path and d != path)
        return sorted(children)

    def mtime(self, path: Path) -> float:
        path = Path(path)
        if path in self._files:
            return self._files[path][1]
        if path in self._dirs:
            return 0.0
        raise FileNotFoundError(str(path))

    def can_read(self, path: Path) -> bool:
        return Path(path) not in self._denied

    def can_traverse(self, path: Path) -> bool:
        return Path(path) not in self._denied

    def open_read(self, path: Path) -> BinaryIO:
        path = Path(path)
        if path in self._denied:
            raise PermissionError(str(path))
        if path not in self._files:
            raise FileNotFoundError(str(path))
        return io.BytesIO(self._files[path][0])

    def write_stream(self, path: Path, stream: BinaryIO) -> None:
        path = Path(path)
        self.make_dirs(path.parent)
        self._files[path] = (stream.read(), self._tick())

    def make_dirs(self, path: Path) -> None:
        path = Path(path)
        while path not in self._dirs:
            if path in self._files:
                raise FileExistsError(str(path))
            self._dirs.add(path)
            path = path.parent

    def remove_file(self, path: Path) -> None:
        path = Path(path)
        if path not in self._files:
            raise FileNotFoundError(str(path))
        del self._files[path]

    def remove_dir(self, path: Path) -> None:
        path = Path(path)
        if self.list_dir(path):
            raise OSError(f"Directory not empty: {path}")
        self._dirs.discard(path)


def walk_files(fs: FileSystem, root: Path, *, skip_unreadable: bool = False) -> Iterator[Path]:
    """Yield every file under ``root`` in sorted, depth-first order.

    With ``skip_unreadable`` set, unreadable files and directories that cannot
    be traversed are passed over instead of raising.
    """

    root = Path(root)
    if fs.is_file(root):
        yield root
        return
    if not fs.is_dir(root):
        return
    stack: List[Path] = [root]
    while stack:
        current = stack.pop()
        if skip_unreadable and not fs.can_traverse(current):
            continue
        entries = fs.list_dir(current)
        subdirs: List[Path] = []
        for entry in entries:
            if fs.is_dir(entry):
                subdirs.append(entry)
            elif fs.is_file(entry):
                if skip_unreadable and not fs.can_read(entry):
                    continue
                yield entry
        stack.extend(reversed(subdirs))


def min_mtime(fs: FileSystem, root: Path) -> Optional[float]:
    """Oldest file modification time under ``root``; ``None`` when no files."""

    times = [fs.mtime(path) for path in walk_files(fs, root)]
    return min(times) if times else None


def max_mtime(fs: FileSystem, root: Path) -> Optional[float]:
    """Newest file modification time under ``root``; ``None`` when no files."""

    times = [fs.mtime(path) for path in walk_files(fs, root)]
    return max(times) if times else None


def is_missing_or_empty(fs: FileSystem, path: Path) -> bool:
    if not fs.is_dir(path):
        return True
    return not fs.list_dir(path)


def clear_directory(fs: FileSystem, root: Path) -> None:
    """Delete everything below ``root`` and keep ``root`` itself."""

    root = Path(root)
    directories: List[Path] = []
    stack: List[Path] = [root]
    while stack:
        current = stack.pop()
        for entry in fs.list_dir(current):
            if fs.is_dir(entry):
                directories.append(entry)
                stack.append(entry)
            else:
                fs.remove_file(entry)
    for directory in sorted(directories, key=lambda p: len(p.parts), reverse=True):
        fs.remove_dir(directory)


__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "clear_directory",
    "is_missing_or_empty",
    "max_mtime",
    "min_mtime",
    "walk_files",
]

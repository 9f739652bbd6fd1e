"""Post-generation namespace rewrite for shaded Java output."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from .filesystem import FileSystem, LocalFileSystem, walk_files

logger = logging.getLogger(__name__)

PROTOBUF_PACKAGE = "com.google.protobuf"
SHADED_PACKAGE_PREFIX = "com.github.os72.protobuf"


class ShadingTransform(Protocol):
    def shade(self, output_dir: Path, version: Optional[str]) -> int: ...


def shaded_package(version: Optional[str]) -> str:
    digits = "".join(ch for ch in (version or "") if ch.isdigit())
    return SHADED_PACKAGE_PREFIX + digits


class JavaPackageShader:
    """Rewrite ``com.google.protobuf`` references in generated ``.java`` files.

    Generated code then links against a relocated runtime and cannot collide
    with an unshaded protobuf library on the same classpath.
    """

    def __init__(self, fs: Optional[FileSystem] = None) -> None:
        self._fs = fs or LocalFileSystem()

    def shade(self, output_dir: Path, version: Optional[str]) -> int:
        replacement = shaded_package(version)
        rewritten = 0
        for path in walk_files(self._fs, output_dir):
            if path.suffix != ".java":
                continue
            source = self._fs.read_bytes(path).decode("utf-8")
            if PROTOBUF_PACKAGE not in source:
                continue
            self._fs.write_bytes(path, source.replace(PROTOBUF_PACKAGE, replacement).encode("utf-8"))
            rewritten += 1
        logger.debug("Shaded %s file(s) under %s to %s", rewritten, output_dir, replacement)
        return rewritten


__all__ = ["JavaPackageShader", "ShadingTransform", "shaded_package"]

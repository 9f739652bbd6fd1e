"""Assemble the protoc argument list for one (target, file) pair."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

from protoflow.errors import ConfigurationError

from .filesystem import FileSystem, LocalFileSystem
from .models import DESCRIPTOR_TYPE, normalize_type

logger = logging.getLogger(__name__)

VERSION_SELECTOR_PREFIX = "-v"
_VERSION_SELECTOR = re.compile(r"^-v:?\d+(?:\.\d+)*$")


def is_version_selector(token: str) -> bool:
    return bool(_VERSION_SELECTOR.match(token))


class CommandBuilder:
    """Builds arguments only; the protoc path itself is prepended by the invoker."""

    def __init__(
        self,
        include_directories: Sequence[Path],
        *,
        include_imports: bool = True,
        fs: Optional[FileSystem] = None,
    ) -> None:
        self._include_directories = list(include_directories)
        self._include_imports = include_imports
        self._fs = fs or LocalFileSystem()

    def include_arguments(self) -> List[str]:
        args: List[str] = []
        for include in self._include_directories:
            if not self._fs.exists(include):
                raise ConfigurationError(f"Include path '{include}' does not exist")
            if not self._fs.is_dir(include):
                raise ConfigurationError(f"Include path '{include}' is not a directory")
            args.append(f"-I{include}")
        return args

    def build(
        self,
        target_type: str,
        proto_file: Path,
        output_dir: Path,
        *,
        output_options: Optional[str] = None,
        plugin_path: Optional[str] = None,
        version: Optional[str] = None,
    ) -> List[str]:
        base_type, _ = normalize_type(target_type)
        proto_file = Path(proto_file)
        args = self.include_arguments()
        args.append(f"-I{proto_file.parent.absolute()}")
        if base_type == DESCRIPTOR_TYPE:
            args.append(f"--descriptor_set_out={Path(output_dir) / proto_file.stem}.desc")
            if self._include_imports:
                args.append("--include_imports")
            if output_options:
                args.extend(output_options.split())
        else:
            if output_options:
                args.append(f"--{base_type}_out={output_options}:{output_dir}")
            else:
                args.append(f"--{base_type}_out={output_dir}")
            if plugin_path:
                logger.info("    Plugin path: %s", plugin_path)
                args.append(f"--plugin=protoc-gen-{base_type}={plugin_path}")
        args.append(str(proto_file))
        if version:
            args.append(f"{VERSION_SELECTOR_PREFIX}{version}")
        return args


__all__ = ["CommandBuilder", "VERSION_SELECTOR_PREFIX", "is_version_selector"]

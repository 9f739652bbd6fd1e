"""Host platform classifier detection and artifact coordinate parsing."""
from __future__ import annotations

import platform
import re
from dataclasses import dataclass
from typing import Optional

from protoflow.errors import ConfigurationError

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "osx",
    "macos": "osx",
    "windows": "windows",
    "freebsd": "freebsd",
    "sunos": "sunos",
    "aix": "aix",
}
_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86_32",
    "i486": "x86_32",
    "i586": "x86_32",
    "i686": "x86_32",
    "x86": "x86_32",
    "aarch64": "aarch_64",
    "arm64": "aarch_64",
    "ppc64le": "ppcle_64",
    "ppc64": "ppc_64",
    "s390x": "s390_64",
}
_CLEAN = re.compile(r"[^a-z0-9_]+")


def _normalize(value: str) -> str:
    return _CLEAN.sub("", value.lower())


def detect_classifier(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Return ``<os>-<arch>`` in the naming used by published protoc binaries."""

    raw_os = _normalize(system if system is not None else platform.system())
    raw_arch = _normalize(machine if machine is not None else platform.machine())
    os_name = _OS_ALIASES.get(raw_os, "unknown")
    if raw_os.startswith("win"):
        os_name = "windows"
    arch = _ARCH_ALIASES.get(raw_arch, raw_arch or "unknown")
    return f"{os_name}-{arch}"


@dataclass(frozen=True)
class ArtifactCoordinate:
    """``group:artifact:version[:extension[:classifier]]``."""

    group_id: str
    artifact_id: str
    version: str
    extension: str = "exe"
    classifier: Optional[str] = None

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{self.extension}"

    @property
    def repository_path(self) -> str:
        group_path = self.group_id.replace(".", "/")
        return f"{group_path}/{self.artifact_id}/{self.version}/{self.file_name}"

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.version, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


def parse_coordinate(spec: str, platform_classifier: Optional[str] = None) -> ArtifactCoordinate:
    """Parse a coordinate, defaulting extension to ``exe`` and classifier to the platform."""

    parts = [part.strip() for part in (spec or "").split(":")]
    if len(parts) < 3 or len(parts) > 5 or not all(parts):
        raise ConfigurationError(
            f"Invalid artifact coordinate '{spec}'; expected groupId:artifactId:version[:extension[:classifier]]"
        )
    extension = parts[3] if len(parts) > 3 else "exe"
    classifier = parts[4] if len(parts) > 4 else platform_classifier
    return ArtifactCoordinate(parts[0], parts[1], parts[2], extension, classifier)


__all__ = ["ArtifactCoordinate", "detect_classifier", "parse_coordinate"]

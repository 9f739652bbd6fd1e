"""Locate a runnable protoc through an ordered list of resolution strategies.

Strategies are tried in order and each reports a tagged outcome; the first
success wins:

1. an explicit command, accepted only if ``--version`` runs;
2. a downloaded artifact (when a coordinate is configured);
3. the bundled binary for the requested version (when no coordinate is),
   or the published protoc artifact for that version when nothing is bundled.

Downloaded and bundled binaries are copied to a scratch file, made executable
and trial-run. Some hosts mount the temp directory ``noexec``; when the trial
fails the copy is repeated into the user's home directory and the session
keeps using home for later scratch files.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from protoflow.errors import ConfigurationError, ResolutionError
from protoflow.logging_utils import RESOLVER_LOGGER_NAME

from .artifact_repository import ArtifactRepository
from .models import CompilerBinary
from .platform_detector import ArtifactCoordinate, detect_classifier, parse_coordinate
from .session import CodegenSession

logger = logging.getLogger(RESOLVER_LOGGER_NAME)

DEFAULT_PROTOC_VERSION = "3.11.4"
PROTOBUF_GROUP_ID = "com.google.protobuf"
_VERSION_PATTERN = re.compile(r"(\d+(?:\.\d+)+)")
_BUNDLE_DIR = Path(__file__).resolve().parents[1] / "bundled"


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    output: str = ""
    error: Optional[str] = None


def probe_binary(path: Path) -> ProbeResult:
    """Run ``<path> --version``; launch failures and non-zero exits count as failure."""

    try:
        process = subprocess.run(
            [str(path), "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        return ProbeResult(ok=False, error=str(exc))
    output = (process.stdout or process.stderr or "").strip()
    if process.returncode != 0:
        return ProbeResult(ok=False, output=output, error=f"exit code {process.returncode}")
    return ProbeResult(ok=True, output=output)


def detect_version(probe_output: str) -> Optional[str]:
    match = _VERSION_PATTERN.search(probe_output or "")
    return match.group(1) if match else None


Probe = Callable[[Path], ProbeResult]


@dataclass(frozen=True)
class ResolutionRequest:
    explicit_command: Optional[str] = None
    artifact_coordinate: Optional[str] = None
    requested_version: Optional[str] = None


@dataclass(frozen=True)
class ResolutionOutcome:
    strategy: str
    binary: Optional[CompilerBinary] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.binary is not None

    @classmethod
    def success(cls, strategy: str, binary: CompilerBinary) -> "ResolutionOutcome":
        return cls(strategy=strategy, binary=binary)

    @classmethod
    def failure(cls, strategy: str, reason: str) -> "ResolutionOutcome":
        return cls(strategy=strategy, reason=reason)


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def materialize(source: Path, session: CodegenSession, prefix: str, suffix: str) -> Path:
    """Copy ``source`` to a fresh executable scratch file registered for cleanup."""

    target = session.create_temp_file(prefix, suffix)
    shutil.copyfile(source, target)
    make_executable(target)
    return target


class ResolutionStrategy(ABC):
    name = "strategy"

    @abstractmethod
    def applies(self, request: ResolutionRequest) -> bool: ...

    @abstractmethod
    def attempt(self, request: ResolutionRequest, session: CodegenSession) -> ResolutionOutcome: ...


class _ScratchInstallMixin:
    """Copy-then-probe with a single retry in the home directory."""

    _probe: Probe

    def _install(
        self,
        source: Callable[[], Path],
        session: CodegenSession,
        prefix: str,
        suffix: str,
    ) -> tuple[Optional[Path], str]:
        path = materialize(source(), session, prefix, suffix)
        result = self._probe(path)
        if result.ok:
            return path, result.output
        logger.info("Trial run of %s failed (%s); retrying from the home directory", path, result.error)
        session.use_home_scratch()
        path = materialize(source(), session, prefix, suffix)
        result = self._probe(path)
        if result.ok:
            return path, result.output
        return None, f"{path} is not executable: {result.error}"


class ExplicitCommandStrategy(ResolutionStrategy):
    name = "explicit-command"

    def __init__(self, probe: Probe = probe_binary) -> None:
        self._probe = probe

    def applies(self, request: ResolutionRequest) -> bool:
        return bool(request.explicit_command)

    def attempt(self, request: ResolutionRequest, session: CodegenSession) -> ResolutionOutcome:
        command = request.explicit_command or ""
        path = Path(shutil.which(command) or command)
        result = self._probe(path)
        if not result.ok:
            logger.warning("Ignoring protoc command %s: %s", command, result.error)
            return ResolutionOutcome.failure(self.name, f"{command}: {result.error}")
        logger.debug("protoc command %s reports version %s", path, detect_version(result.output))
        binary = CompilerBinary(
            path=path,
            version=request.requested_version,
            platform_classifier=None,
        )
        return ResolutionOutcome.success(self.name, binary)


class ArtifactDownloadStrategy(_ScratchInstallMixin, ResolutionStrategy):
    name = "artifact-download"

    def __init__(
        self,
        repository: ArtifactRepository,
        probe: Probe = probe_binary,
        classifier: Optional[str] = None,
    ) -> None:
        self._repository = repository
        self._probe = probe
        self._classifier = classifier

    def applies(self, request: ResolutionRequest) -> bool:
        return bool(request.artifact_coordinate)

    def attempt(self, request: ResolutionRequest, session: CodegenSession) -> ResolutionOutcome:
        classifier = self._classifier or detect_classifier()
        coordinate = parse_coordinate(request.artifact_coordinate or "", classifier)
        logger.info("Resolving artifact: %s, platform: %s", request.artifact_coordinate, classifier)
        try:
            path, _ = self._install(
                lambda: self._repository.resolve(coordinate),
                session,
                coordinate.artifact_id,
                "." + coordinate.extension,
            )
        except ResolutionError as exc:
            return ResolutionOutcome.failure(self.name, str(exc))
        except OSError as exc:
            return ResolutionOutcome.failure(self.name, f"{coordinate}: {exc}")
        if path is None:
            return ResolutionOutcome.failure(self.name, f"{coordinate} could not be executed")
        binary = CompilerBinary(
            path=path,
            version=coordinate.version,
            platform_classifier=coordinate.classifier,
            temporary=True,
        )
        return ResolutionOutcome.success(self.name, binary)


class EmbeddedBinaryStrategy(_ScratchInstallMixin, ResolutionStrategy):
    """Bundled binaries live under ``<bundle>/<version>/protoc-<version>-<classifier>.exe``.

    Versions without a bundled binary are fetched as
    ``com.google.protobuf:protoc:<version>:exe:<classifier>`` when a repository
    is available.
    """

    name = "embedded"

    def __init__(
        self,
        bundle_dir: Optional[Path] = None,
        probe: Probe = probe_binary,
        classifier: Optional[str] = None,
        repository: Optional[ArtifactRepository] = None,
    ) -> None:
        self._bundle_dir = Path(bundle_dir) if bundle_dir else bundle_directory()
        self._probe = probe
        self._classifier = classifier
        self._repository = repository

    def applies(self, request: ResolutionRequest) -> bool:
        return not request.artifact_coordinate

    def bundled_binary(self, version: str, classifier: str) -> Path:
        return self._bundle_dir / version / f"protoc-{version}-{classifier}.exe"

    def attempt(self, request: ResolutionRequest, session: CodegenSession) -> ResolutionOutcome:
        version = request.requested_version or DEFAULT_PROTOC_VERSION
        classifier = self._classifier or detect_classifier()
        logger.info("Protoc version: %s", version)
        bundled = self.bundled_binary(version, classifier)
        if bundled.is_file():
            source: Callable[[], Path] = lambda: bundled
        elif self._repository is not None:
            coordinate = ArtifactCoordinate(PROTOBUF_GROUP_ID, "protoc", version, "exe", classifier)
            logger.info("No bundled protoc %s for %s, resolving %s", version, classifier, coordinate)
            repository = self._repository
            source = lambda: repository.resolve(coordinate)
        else:
            return ResolutionOutcome.failure(self.name, f"no bundled protoc {version} for {classifier} at {bundled}")
        try:
            path, _ = self._install(source, session, "protoc", ".exe")
        except ResolutionError as exc:
            return ResolutionOutcome.failure(self.name, str(exc))
        except OSError as exc:
            return ResolutionOutcome.failure(self.name, f"Error extracting protoc for version {version}: {exc}")
        if path is None:
            return ResolutionOutcome.failure(self.name, f"protoc {version} could not be executed")
        binary = CompilerBinary(path=path, version=version, platform_classifier=classifier, temporary=True)
        return ResolutionOutcome.success(self.name, binary)


def bundle_directory() -> Path:
    return Path(os.getenv("PROTOFLOW_BUNDLE_DIR") or _BUNDLE_DIR)


def bundled_include_dir(version: Optional[str], bundle_dir: Optional[Path] = None) -> Path:
    """Directory holding the well-known ``google/protobuf`` types for ``version``."""

    root = Path(bundle_dir) if bundle_dir else bundle_directory()
    return root / (version or DEFAULT_PROTOC_VERSION) / "include"


def std_types_coordinate(version: Optional[str]) -> ArtifactCoordinate:
    """The protobuf-java jar, which carries the well-known ``google/protobuf`` schemas."""

    return ArtifactCoordinate(PROTOBUF_GROUP_ID, "protobuf-java", version or DEFAULT_PROTOC_VERSION, "jar")


class BinaryResolver:
    """Run the strategies in order and hand back the first binary found."""

    def __init__(
        self,
        strategies: Sequence[ResolutionStrategy],
        repository: Optional[ArtifactRepository] = None,
        classifier: Optional[str] = None,
    ) -> None:
        self._strategies = list(strategies)
        self._repository = repository
        self._classifier = classifier

    @classmethod
    def default(
        cls,
        repository: Optional[ArtifactRepository] = None,
        bundle_dir: Optional[Path] = None,
        probe: Probe = probe_binary,
        classifier: Optional[str] = None,
    ) -> "BinaryResolver":
        repository = repository or ArtifactRepository()
        strategies: List[ResolutionStrategy] = [
            ExplicitCommandStrategy(probe),
            ArtifactDownloadStrategy(repository, probe, classifier),
            EmbeddedBinaryStrategy(bundle_dir, probe, classifier, repository),
        ]
        return cls(strategies, repository=repository, classifier=classifier)

    def resolve(
        self,
        session: CodegenSession,
        explicit_command: Optional[str] = None,
        artifact_coordinate: Optional[str] = None,
        requested_version: Optional[str] = None,
    ) -> CompilerBinary:
        request = ResolutionRequest(explicit_command, artifact_coordinate, requested_version)
        outcomes: List[ResolutionOutcome] = []
        for strategy in self._strategies:
            if not strategy.applies(request):
                continue
            outcome = strategy.attempt(request, session)
            outcomes.append(outcome)
            if outcome.ok and outcome.binary is not None:
                logger.info("Protoc command: %s (%s)", outcome.binary.path, strategy.name)
                return outcome.binary
        raise ResolutionError(
            "Unable to resolve a protoc binary",
            [f"{outcome.strategy}: {outcome.reason}" for outcome in outcomes],
        )

    def resolve_plugin(self, session: CodegenSession, artifact_spec: str) -> Path:
        """Download a generator plugin into the session's scratch location."""

        if self._repository is None:
            raise ConfigurationError(f"No artifact repository configured for plugin {artifact_spec}")
        classifier = self._classifier or detect_classifier()
        coordinate: ArtifactCoordinate = parse_coordinate(artifact_spec, classifier)
        logger.info("Resolving artifact: %s, platform: %s", artifact_spec, classifier)
        source = self._repository.resolve(coordinate)
        try:
            return materialize(source, session, coordinate.artifact_id, "." + coordinate.extension)
        except OSError as exc:
            raise ResolutionError(f"Error resolving artifact: {artifact_spec}", [str(exc)]) from exc


__all__ = [
    "ArtifactDownloadStrategy",
    "BinaryResolver",
    "DEFAULT_PROTOC_VERSION",
    "PROTOBUF_GROUP_ID",
    "EmbeddedBinaryStrategy",
    "ExplicitCommandStrategy",
    "ProbeResult",
    "ResolutionOutcome",
    "ResolutionRequest",
    "ResolutionStrategy",
    "bundle_directory",
    "bundled_include_dir",
    "detect_version",
    "materialize",
    "probe_binary",
    "std_types_coordinate",
]

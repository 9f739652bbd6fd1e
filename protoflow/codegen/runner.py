"""End-to-end run: freshness gate, compiler resolution, extraction, targets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .artifact_extractor import ArtifactExtractor
from .artifact_repository import ArtifactRepository
from .binary_resolver import BinaryResolver, bundled_include_dir, std_types_coordinate
from .diagnostics import DiagnosticParser
from .freshness import MARKER_FILENAME, FreshnessOracle
from .host import BuildHost, LocalBuildHost
from .models import ExtractionRequest, OutputTarget
from .pipeline import TargetPipeline
from .process_invoker import ProcessInvoker
from .session import CodegenSession
from .shading import ShadingTransform

if TYPE_CHECKING:
    from protoflow.config import CodegenSettings

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    skipped: bool = False
    codegen_skipped: bool = False
    compiled_files: int = 0
    targets: List[OutputTarget] = field(default_factory=list)
    marker: Optional[Path] = None


class CodegenRunner:
    """Coordinates one run over every configured output target."""

    def __init__(
        self,
        settings: CodegenSettings,
        host: Optional[BuildHost] = None,
        *,
        session: Optional[CodegenSession] = None,
        resolver: Optional[BinaryResolver] = None,
        invoker: Optional[ProcessInvoker] = None,
        parser: Optional[DiagnosticParser] = None,
        shader: Optional[ShadingTransform] = None,
        repository: Optional[ArtifactRepository] = None,
    ) -> None:
        self._settings = settings
        self._host = host or LocalBuildHost(
            direct_dependencies=[settings.resolve_path(p) for p in settings.dependencies.direct],
            transitive_dependencies=[settings.resolve_path(p) for p in settings.dependencies.transitive],
        )
        self._session = session or CodegenSession(
            extension=settings.extension,
            include_imports=settings.include_imports,
        )
        self._owns_repository = repository is None
        self._repository = repository or ArtifactRepository(
            settings.resolve_path(settings.local_repository) if settings.local_repository else None,
            settings.remote_repositories,
        )
        self._resolver = resolver or BinaryResolver.default(
            repository=self._repository,
            bundle_dir=settings.resolve_path(settings.bundle_dir) if settings.bundle_dir else None,
        )
        self._pipeline = TargetPipeline(
            self._session,
            self._host,
            resolver=self._resolver,
            invoker=invoker,
            parser=parser,
            shader=shader,
        )
        self._oracle = FreshnessOracle(self._session.fs)

    @property
    def session(self) -> CodegenSession:
        return self._session

    @property
    def host(self) -> BuildHost:
        return self._host

    def marker_path(self) -> Path:
        return self._settings.resolved_build_directory() / MARKER_FILENAME

    def run(self) -> RunReport:
        try:
            return self._run()
        finally:
            if self._owns_repository:
                self._repository.close()

    def _run(self) -> RunReport:
        settings = self._settings
        if settings.packaging and settings.packaging.lower() == "pom":
            logger.info("Skipping 'pom' packaged project")
            return RunReport(skipped=True)
        if settings.skip:
            logger.info("Skipping because of skip=true")
            return RunReport(skipped=True)

        targets = settings.output_target_list()
        report = RunReport(targets=targets)
        if not settings.optimize_codegen:
            report.compiled_files = self._perform(targets, do_codegen=True)
            return report

        marker = self.marker_path()
        report.marker = marker
        output_dirs = [t.output_directory for t in targets if t.output_directory is not None]
        if self._oracle.should_skip_generation(settings.resolved_input_directories(), output_dirs, marker):
            logger.info("Skipping code generation, proto files appear unchanged since last compilation")
            report.codegen_skipped = True
            self._perform(targets, do_codegen=False)
            return report
        report.compiled_files = self._oracle.guarded_generation(
            marker,
            lambda: self._perform(targets, do_codegen=True),
        )
        return report

    # ------------------------------------------------------------------

    def _perform(self, targets: List[OutputTarget], *, do_codegen: bool) -> int:
        settings = self._settings
        session = self._session
        if do_codegen:
            self._prepare_compiler()
        session.include_directories = settings.resolved_include_directories()
        session.input_directories = settings.resolved_input_directories()

        # Extraction runs even when codegen is skipped: source registration
        # may still need the extracted directories.
        scratch = session.create_temp_dir("protoflow")
        if settings.include_std_types or settings.include_maven_types != "none":
            extra_dir = scratch / "include"
            session.fs.make_dirs(extra_dir)
            logger.info("Additional include types: %s", extra_dir)
            session.add_include_dir(extra_dir)
            if settings.include_std_types:
                self._extract_std_types(extra_dir)
            if settings.include_maven_types != "none":
                self._extract_dependencies(extra_dir, settings.include_maven_types == "transitive")
        if settings.compile_maven_types != "none":
            compile_dir = scratch / "mvncompile"
            session.fs.make_dirs(compile_dir)
            logger.info(
                "Files to compile from dependencies (%s): %s",
                settings.compile_maven_types,
                compile_dir,
            )
            session.add_input_dir(compile_dir)
            self._extract_dependencies(compile_dir, settings.compile_maven_types == "transitive")

        self._register_proto_sources()

        compiled = 0
        if do_codegen:
            logger.info("Output targets:")
            for target in targets:
                logger.info("    %s", target.to_dict())
            for target in targets:
                self._pipeline.preprocess(target)
            for target in targets:
                compiled += self._pipeline.process(target)
        for target in targets:
            self._pipeline.register(target)
        return compiled

    def _prepare_compiler(self) -> None:
        if self._session.binary is not None:
            return
        settings = self._settings
        binary = self._resolver.resolve(
            self._session,
            explicit_command=settings.protoc_command,
            artifact_coordinate=settings.protoc_artifact,
            requested_version=settings.protoc_version,
        )
        self._session.bind_binary(binary)

    def _extractor(self) -> ArtifactExtractor:
        return ArtifactExtractor(
            self._settings.extension,
            fs=self._session.fs,
            cleanup=self._session.cleanup,
        )

    def _extract_std_types(self, target_dir: Path) -> None:
        binary = self._session.binary
        version = self._settings.protoc_version or (binary.version if binary else None)
        bundle = self._settings.resolve_path(self._settings.bundle_dir) if self._settings.bundle_dir else None
        source = bundled_include_dir(version, bundle)
        if not self._session.fs.is_dir(source):
            coordinate = std_types_coordinate(version)
            logger.info("No bundled standard types for protoc %s, resolving %s", version, coordinate)
            source = self._repository.resolve(coordinate)
        self._extractor().extract(ExtractionRequest.of([source], target_dir))

    def _extract_dependencies(self, target_dir: Path, transitive: bool) -> None:
        artifacts = self._host.dependency_artifacts(transitive)
        self._extractor().extract(ExtractionRequest.of(artifacts, target_dir, transitive))

    def _register_proto_sources(self) -> None:
        mode = self._settings.add_proto_sources
        includes = [f"**/*{self._settings.extension}"]
        logger.info("Input directories:")
        for input_dir in self._session.input_directories:
            logger.info("    %s", input_dir)
            if mode in ("all", "inputs"):
                self._host.add_resource(input_dir, includes)
        if self._session.include_directories:
            logger.info("Include directories:")
            for include_dir in self._session.include_directories:
                logger.info("    %s", include_dir)
                if mode == "all":
                    self._host.add_resource(include_dir, includes)


__all__ = ["CodegenRunner", "RunReport"]

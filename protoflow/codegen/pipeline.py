"""Per-target preprocess / process / register phases."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from protoflow.errors import CompilationError, ProtoflowError

from .binary_resolver import BinaryResolver
from .command_builder import CommandBuilder
from .diagnostics import DiagnosticParser
from .filesystem import clear_directory, walk_files
from .host import BuildHost
from .models import InvocationResult, OutputTarget, ProtoFile, normalize_type
from .process_invoker import ProcessInvoker
from .session import CodegenSession
from .shading import JavaPackageShader, ShadingTransform

logger = logging.getLogger(__name__)


class TargetPipeline:
    """Drive one output target at a time against the session's compiler."""

    def __init__(
        self,
        session: CodegenSession,
        host: BuildHost,
        resolver: Optional[BinaryResolver] = None,
        invoker: Optional[ProcessInvoker] = None,
        parser: Optional[DiagnosticParser] = None,
        shader: Optional[ShadingTransform] = None,
    ) -> None:
        self._session = session
        self._host = host
        self._resolver = resolver
        self._invoker = invoker or ProcessInvoker()
        self._parser = parser or DiagnosticParser()
        self._shader = shader or JavaPackageShader(session.fs)

    @property
    def fs(self):
        return self._session.fs

    # ------------------------------------------------------------------
    # Phases

    def preprocess(self, target: OutputTarget) -> None:
        if not target.is_normalized or target.output_directory is None:
            raise ProtoflowError(f"Output target was not normalized: {target}")
        if target.plugin_artifact:
            if self._resolver is None:
                raise ProtoflowError(f"No resolver available for plugin {target.plugin_artifact}")
            target.plugin_path = str(self._resolver.resolve_plugin(self._session, target.plugin_artifact))
        output_dir = target.output_directory
        if not self.fs.exists(output_dir):
            logger.info("%s does not exist. Creating...", output_dir)
            self.fs.make_dirs(output_dir)
        if target.clean_output_folder:
            logger.info("Cleaning %s", output_dir)
            try:
                clear_directory(self.fs, output_dir)
            except OSError as exc:
                logger.error("Failed to clean %s: %s", output_dir, exc)

    def process(self, target: OutputTarget) -> int:
        """Generate code for changed files; returns how many files were compiled."""

        base_type, shaded = normalize_type(target.type)
        builder = CommandBuilder(
            self._session.include_directories,
            include_imports=self._session.include_imports,
            fs=self.fs,
        )
        compiled = 0
        for input_dir in self._session.input_directories:
            for proto in self.discover(input_dir):
                if target.clean_output_folder or self._host.has_delta(proto.absolute_path):
                    self.generate(target, base_type, proto, builder)
                    compiled += 1
                else:
                    logger.info("Not changed %s", proto.absolute_path)
        if shaded:
            self._shade(target)
        return compiled

    def register(self, target: OutputTarget) -> None:
        output_dir = target.output_directory
        scope = target.add_sources or ""
        add_main = scope.endswith("main")
        add_test = scope.endswith("test")
        if add_main:
            logger.info("Adding generated sources (%s): %s", target.type, output_dir)
            self._host.add_compile_source_root(output_dir)
        if add_test:
            logger.info("Adding generated test sources (%s): %s", target.type, output_dir)
            self._host.add_test_source_root(output_dir)
        if add_main or add_test:
            self._host.refresh(output_dir)

    # ------------------------------------------------------------------

    def discover(self, input_dir: Path) -> List[ProtoFile]:
        if not self.fs.exists(input_dir):
            logger.warning("%s does not exist", input_dir)
            return []
        if not self.fs.is_dir(input_dir):
            logger.warning("%s is not a directory", input_dir)
            return []
        extension = self._session.extension
        return [
            ProtoFile(path, path.relative_to(input_dir).as_posix())
            for path in walk_files(self.fs, input_dir)
            if path.name.endswith(extension)
        ]

    def generate(
        self,
        target: OutputTarget,
        base_type: str,
        proto: ProtoFile,
        builder: CommandBuilder,
    ) -> InvocationResult:
        binary = self._session.require_binary()
        logger.info("    Processing (%s): %s", base_type, proto.relative_name)
        self._host.remove_messages(proto.absolute_path)
        args = builder.build(
            base_type,
            proto.absolute_path,
            target.output_directory,
            output_options=target.output_options,
            plugin_path=target.plugin_path,
            version=binary.version,
        )
        try:
            result = self._invoker.run(binary.path, args)
        except OSError as exc:
            raise CompilationError(
                proto.absolute_path,
                None,
                f"Unable to execute protoc for {proto.absolute_path}: {exc}",
            ) from exc
        diagnostics = self._parser.parse(result.stderr, proto.absolute_path, result.exit_code)
        self._parser.publish(self._host, proto.absolute_path, diagnostics)
        if not result.success:
            raise CompilationError(proto.absolute_path, result.exit_code)
        return result

    def _shade(self, target: OutputTarget) -> None:
        version = self._session.binary.version if self._session.binary else None
        logger.info("    Shading (version %s): %s", version, target.output_directory)
        try:
            self._shader.shade(target.output_directory, version)
        except OSError as exc:
            raise ProtoflowError(f"Error occurred during shading of {target.output_directory}") from exc


__all__ = ["TargetPipeline"]

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from protoflow.codegen.filesystem import FileSystem, MemoryFileSystem
from protoflow.codegen.host import LocalBuildHost
from protoflow.codegen.models import CompilerBinary, InvocationResult, OutputTarget, Severity
from protoflow.codegen.pipeline import TargetPipeline
from protoflow.codegen.session import CleanupRegistry, CodegenSession
from protoflow.errors import CompilationError, ProtoflowError


class DummyInvoker:
    def __init__(self, fs: FileSystem, outcomes: Optional[Dict[str, tuple]] = None) -> None:
        self.fs = fs
        self.outcomes = dict(outcomes or {})
        self.calls: List[List[str]] = []
        self.launch_error: Optional[OSError] = None

    def run(self, executable: Path, args: Sequence[str]) -> InvocationResult:
        if self.launch_error is not None:
            raise self.launch_error
        args = list(args)
        self.calls.append(args)
        proto = Path([a for a in args if not a.startswith("-")][-1])
        exit_code, stderr = self.outcomes.get(proto.name, (0, ""))
        if exit_code == 0:
            out_flag = next(a for a in args if a.startswith("--") and "_out=" in a)
            out_dir = Path(out_flag.split("=", 1)[1].rsplit(":", 1)[-1])
            self.fs.write_bytes(
                out_dir / f"{proto.stem}.java",
                b"import com.google.protobuf.Message;\n",
            )
        return InvocationResult((str(executable), *args), exit_code, "", stderr)


class DummyResolver:
    def __init__(self) -> None:
        self.plugins: List[str] = []

    def resolve_plugin(self, session: CodegenSession, artifact_spec: str) -> Path:
        self.plugins.append(artifact_spec)
        return Path("/tmp/protoc-gen-grpc.exe")


class RecordingShader:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def shade(self, output_dir: Path, version: Optional[str]) -> int:
        self.calls.append((output_dir, version))
        return 0


@pytest.fixture
def fs() -> MemoryFileSystem:
    memory = MemoryFileSystem()
    memory.write_bytes(Path("/proj/src/a.proto"), b'syntax = "proto3";')
    memory.write_bytes(Path("/proj/src/nested/b.proto"), b'syntax = "proto3";')
    memory.write_bytes(Path("/proj/src/README.md"), b"docs")
    return memory


@pytest.fixture
def session(fs: MemoryFileSystem) -> CodegenSession:
    session = CodegenSession(fs=fs, cleanup=CleanupRegistry(register_atexit=False))
    session.input_directories = [Path("/proj/src")]
    session.bind_binary(CompilerBinary(Path("/bin/protoc"), "3.11.4", "linux-x86_64"))
    return session


def _target(**kwargs) -> OutputTarget:
    return OutputTarget(**kwargs).normalize(Path("/proj/target"))


def test_process_compiles_every_proto_file(fs: MemoryFileSystem, session: CodegenSession) -> None:
    invoker = DummyInvoker(fs)
    host = LocalBuildHost()
    pipeline = TargetPipeline(session, host, invoker=invoker, shader=RecordingShader())
    target = _target()

    pipeline.preprocess(target)
    compiled = pipeline.process(target)

    assert compiled == 2
    assert [call[-1] for call in invoker.calls] == ["-v3.11.4", "-v3.11.4"]
    assert [Path(call[-2]).name for call in invoker.calls] == ["a.proto", "b.proto"]
    assert invoker.calls[0][0] == "-I/proj/src"
    assert invoker.calls[0][1] == "--java_out=/proj/target/generated-sources"
    assert fs.is_file(Path("/proj/target/generated-sources/a.java"))


def test_unchanged_files_are_skipped(fs: MemoryFileSystem, session: CodegenSession, caplog) -> None:
    invoker = DummyInvoker(fs)
    host = LocalBuildHost(changed_files=[Path("/proj/src/nested/b.proto")])
    pipeline = TargetPipeline(session, host, invoker=invoker)
    target = _target()

    with caplog.at_level(logging.INFO, logger="protoflow.codegen.pipeline"):
        pipeline.preprocess(target)
        compiled = pipeline.process(target)

    assert compiled == 1
    assert Path(invoker.calls[0][-2]).name == "b.proto"
    assert any("Not changed /proj/src/a.proto" in r.getMessage() for r in caplog.records)


def test_clean_output_folder_forces_regeneration(fs: MemoryFileSystem, session: CodegenSession) -> None:
    fs.write_bytes(Path("/proj/target/generated-sources/Stale.java"), b"stale")
    invoker = DummyInvoker(fs)
    host = LocalBuildHost(changed_files=[])
    pipeline = TargetPipeline(session, host, invoker=invoker)
    target = _target(clean_output_folder=True)

    pipeline.preprocess(target)
    assert fs.list_dir(Path("/proj/target/generated-sources")) == []

    assert pipeline.process(target) == 2


def test_failed_compilation_publishes_diagnostics_and_stops(
    fs: MemoryFileSystem, session: CodegenSession
) -> None:
    invoker = DummyInvoker(fs, {"a.proto": (1, "a.proto:3:9: Expected \";\".\n")})
    host = LocalBuildHost()
    pipeline = TargetPipeline(session, host, invoker=invoker)
    target = _target()
    pipeline.preprocess(target)

    with pytest.raises(CompilationError) as excinfo:
        pipeline.process(target)

    assert excinfo.value.exit_code == 1
    assert excinfo.value.file == Path("/proj/src/a.proto")
    assert len(invoker.calls) == 1
    [diagnostic] = host.messages[Path("/proj/src/a.proto")]
    assert (diagnostic.line, diagnostic.column) == (3, 9)
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.message == 'Expected ";".'


def test_warnings_on_success_are_published(fs: MemoryFileSystem, session: CodegenSession) -> None:
    invoker = DummyInvoker(fs, {"b.proto": (0, "b.proto:1:1: Import unused.proto is unused.\n")})
    host = LocalBuildHost()
    pipeline = TargetPipeline(session, host, invoker=invoker)
    target = _target()
    pipeline.preprocess(target)

    pipeline.process(target)

    [diagnostic] = host.messages[Path("/proj/src/nested/b.proto")]
    assert diagnostic.severity is Severity.WARNING


def test_launch_failure_is_a_compilation_error(fs: MemoryFileSystem, session: CodegenSession) -> None:
    invoker = DummyInvoker(fs)
    invoker.launch_error = PermissionError("noexec")
    pipeline = TargetPipeline(session, LocalBuildHost(), invoker=invoker)
    target = _target()
    pipeline.preprocess(target)

    with pytest.raises(CompilationError) as excinfo:
        pipeline.process(target)

    assert excinfo.value.exit_code is None
    assert isinstance(excinfo.value.__cause__, PermissionError)


def test_shaded_type_runs_shader_after_generation(fs: MemoryFileSystem, session: CodegenSession) -> None:
    invoker = DummyInvoker(fs)
    shader = RecordingShader()
    pipeline = TargetPipeline(session, LocalBuildHost(), invoker=invoker, shader=shader)
    shaded = _target(type="java-shaded")
    plain = _target(type="java", output_directory=Path("/proj/out/plain"))

    for target in (shaded, plain):
        pipeline.preprocess(target)
        pipeline.process(target)

    assert invoker.calls[0][1].startswith("--java_out=")
    assert shader.calls == [(Path("/proj/target/generated-sources"), "3.11.4")]


def test_plugin_artifact_is_resolved_during_preprocess(
    fs: MemoryFileSystem, session: CodegenSession
) -> None:
    invoker = DummyInvoker(fs)
    resolver = DummyResolver()
    pipeline = TargetPipeline(session, LocalBuildHost(), resolver=resolver, invoker=invoker)
    target = _target(type="grpc-java", plugin_artifact="io.grpc:protoc-gen-grpc-java:1.28.0")

    pipeline.preprocess(target)
    pipeline.process(target)

    assert resolver.plugins == ["io.grpc:protoc-gen-grpc-java:1.28.0"]
    assert "--plugin=protoc-gen-grpc-java=/tmp/protoc-gen-grpc.exe" in invoker.calls[0]


def test_preprocess_rejects_unnormalized_target(session: CodegenSession) -> None:
    pipeline = TargetPipeline(session, LocalBuildHost(), invoker=DummyInvoker(session.fs))

    with pytest.raises(ProtoflowError):
        pipeline.preprocess(OutputTarget())


@pytest.mark.parametrize(
    "scope, compile_roots, test_roots",
    [
        ("main", 1, 0),
        ("test", 0, 1),
        ("none", 0, 0),
        ("unittest", 0, 1),
    ],
)
def test_register_matches_scope_suffix(
    session: CodegenSession, scope: str, compile_roots: int, test_roots: int
) -> None:
    host = LocalBuildHost()
    pipeline = TargetPipeline(session, host, invoker=DummyInvoker(session.fs))
    target = _target(add_sources=scope, output_directory=Path("/proj/out"))

    pipeline.register(target)

    assert len(host.compile_source_roots) == compile_roots
    assert len(host.test_source_roots) == test_roots
    assert host.refreshed == ([Path("/proj/out")] if compile_roots or test_roots else [])


def test_missing_input_directory_is_reported(session: CodegenSession, caplog) -> None:
    pipeline = TargetPipeline(session, LocalBuildHost(), invoker=DummyInvoker(session.fs))

    with caplog.at_level(logging.WARNING, logger="protoflow.codegen.pipeline"):
        assert pipeline.discover(Path("/proj/missing")) == []

    assert "/proj/missing does not exist" in caplog.text


def test_processing_log_uses_path_relative_to_input(
    fs: MemoryFileSystem, session: CodegenSession, caplog
) -> None:
    pipeline = TargetPipeline(session, LocalBuildHost(), invoker=DummyInvoker(fs))
    target = _target()
    pipeline.preprocess(target)

    with caplog.at_level(logging.INFO, logger="protoflow.codegen.pipeline"):
        pipeline.process(target)

    assert "Processing (java): nested/b.proto" in caplog.text

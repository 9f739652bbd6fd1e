from __future__ import annotations

from pathlib import Path

import pytest

from protoflow.codegen.filesystem import MemoryFileSystem
from protoflow.codegen.freshness import FreshnessOracle
from protoflow.errors import CompilationError

INPUT = Path("/project/src/main/protobuf")
OUTPUT_A = Path("/project/target/generated-sources/a")
OUTPUT_B = Path("/project/target/generated-sources/b")
MARKER = Path("/project/target/protoflow-success.txt")


@pytest.fixture
def fs() -> MemoryFileSystem:
    fs = MemoryFileSystem()
    fs.write_bytes(INPUT / "foo.proto", b"")
    fs.write_bytes(INPUT / "nested" / "bar.proto", b"")
    fs.set_mtime(INPUT / "foo.proto", 100.0)
    fs.set_mtime(INPUT / "nested" / "bar.proto", 150.0)
    fs.write_bytes(OUTPUT_A / "Foo.java", b"")
    fs.write_bytes(OUTPUT_B / "deep" / "Bar.java", b"")
    fs.set_mtime(OUTPUT_A / "Foo.java", 200.0)
    fs.set_mtime(OUTPUT_B / "deep" / "Bar.java", 210.0)
    fs.write_bytes(MARKER, b"")
    return fs


def test_skips_when_marker_present_and_outputs_newer(fs: MemoryFileSystem) -> None:
    oracle = FreshnessOracle(fs)

    assert oracle.oldest_output([OUTPUT_A, OUTPUT_B]) == 200.0
    assert oracle.newest_input([INPUT]) == 150.0
    assert oracle.should_skip_generation([INPUT], [OUTPUT_A, OUTPUT_B], MARKER) is True


def test_newer_input_forces_generation(fs: MemoryFileSystem) -> None:
    fs.set_mtime(INPUT / "nested" / "bar.proto", 205.0)

    assert FreshnessOracle(fs).should_skip_generation([INPUT], [OUTPUT_A, OUTPUT_B], MARKER) is False


def test_equal_timestamps_do_not_skip(fs: MemoryFileSystem) -> None:
    fs.set_mtime(INPUT / "foo.proto", 200.0)

    assert FreshnessOracle(fs).should_skip_generation([INPUT], [OUTPUT_A, OUTPUT_B], MARKER) is False


def test_missing_marker_forces_generation(fs: MemoryFileSystem) -> None:
    fs.remove_file(MARKER)

    assert FreshnessOracle(fs).should_skip_generation([INPUT], [OUTPUT_A, OUTPUT_B], MARKER) is False


def test_empty_output_directory_invalidates_fresh_marker(fs: MemoryFileSystem) -> None:
    empty = Path("/project/target/generated-sources/empty")
    fs.make_dirs(empty)

    assert FreshnessOracle(fs).should_skip_generation([INPUT], [OUTPUT_A, empty], MARKER) is False


def test_missing_output_directory_invalidates_fresh_marker(fs: MemoryFileSystem) -> None:
    missing = Path("/project/target/never-created")

    assert FreshnessOracle(fs).should_skip_generation([INPUT], [OUTPUT_A, missing], MARKER) is False


def test_guarded_generation_recreates_marker_after_success(fs: MemoryFileSystem) -> None:
    seen = []

    def generate() -> int:
        seen.append(fs.exists(MARKER))
        return 3

    result = FreshnessOracle(fs).guarded_generation(MARKER, generate)

    assert result == 3
    assert seen == [False]
    assert fs.is_file(MARKER)


def test_guarded_generation_leaves_marker_absent_on_failure(fs: MemoryFileSystem) -> None:
    def generate() -> int:
        raise CompilationError(INPUT / "foo.proto", 1)

    with pytest.raises(CompilationError):
        FreshnessOracle(fs).guarded_generation(MARKER, generate)

    assert not fs.exists(MARKER)


def test_guarded_generation_creates_parent_of_marker() -> None:
    fs = MemoryFileSystem()
    marker = Path("/fresh/build/protoflow-success.txt")

    FreshnessOracle(fs).guarded_generation(marker, lambda: None)

    assert fs.is_file(marker)

from __future__ import annotations

from pathlib import Path

import pytest

from protoflow.codegen.models import CompilerBinary
from protoflow.codegen.session import CleanupRegistry, CodegenSession


def test_binary_is_bound_once() -> None:
    session = CodegenSession(cleanup=CleanupRegistry(register_atexit=False))
    with pytest.raises(RuntimeError):
        session.require_binary()

    binary = CompilerBinary(Path("/bin/protoc"), "3.11.4", "linux-x86_64")
    session.bind_binary(binary)

    assert session.require_binary() is binary
    with pytest.raises(RuntimeError):
        session.bind_binary(binary)


def test_temp_files_are_removed_by_cleanup(tmp_path: Path) -> None:
    cleanup = CleanupRegistry(register_atexit=False)
    session = CodegenSession(cleanup=cleanup, scratch_root=tmp_path)

    binary = session.create_temp_file("protoc", ".exe")
    tree = session.create_temp_dir("protoflow")
    (tree / "nested").mkdir()
    (tree / "nested" / "x.proto").write_text("", encoding="utf-8")

    assert binary.parent == tmp_path
    assert cleanup.files == [binary] and cleanup.trees == [tree]

    cleanup.run()
    cleanup.run()

    assert not binary.exists()
    assert not tree.exists()


def test_home_scratch(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    session = CodegenSession(cleanup=CleanupRegistry(register_atexit=False))

    assert session.use_home_scratch() == tmp_path
    created = session.create_temp_file("protoc", ".exe")
    assert created.parent == tmp_path
    session.cleanup.run()

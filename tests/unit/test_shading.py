from __future__ import annotations

from pathlib import Path

from protoflow.codegen.filesystem import LocalFileSystem
from protoflow.codegen.shading import JavaPackageShader, shaded_package


def test_shaded_package_uses_version_digits() -> None:
    assert shaded_package("3.11.4") == "com.github.os72.protobuf3114"
    assert shaded_package(None) == "com.github.os72.protobuf"


def test_shader_rewrites_only_java_sources(tmp_path: Path) -> None:
    out = tmp_path / "generated"
    (out / "pkg").mkdir(parents=True)
    (out / "pkg" / "Foo.java").write_text(
        "import com.google.protobuf.Message;\nclass Foo extends com.google.protobuf.GeneratedMessageV3 {}\n",
        encoding="utf-8",
    )
    (out / "Plain.java").write_text("class Plain {}\n", encoding="utf-8")
    (out / "notes.txt").write_text("com.google.protobuf", encoding="utf-8")

    rewritten = JavaPackageShader(LocalFileSystem()).shade(out, "3.11.4")

    assert rewritten == 1
    foo = (out / "pkg" / "Foo.java").read_text(encoding="utf-8")
    assert "com.google.protobuf" not in foo
    assert foo.count("com.github.os72.protobuf3114") == 2
    assert (out / "notes.txt").read_text(encoding="utf-8") == "com.google.protobuf"

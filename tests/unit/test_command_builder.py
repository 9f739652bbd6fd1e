from __future__ import annotations

from pathlib import Path

import pytest

from protoflow.codegen.command_builder import CommandBuilder, is_version_selector
from protoflow.codegen.models import normalize_type
from protoflow.errors import ConfigurationError


@pytest.fixture
def proto_file(tmp_path: Path) -> Path:
    source = tmp_path / "src" / "foo.proto"
    source.parent.mkdir(parents=True)
    source.write_text('syntax = "proto3";\n', encoding="utf-8")
    return source


def test_descriptor_target_emits_single_desc_and_include_imports(tmp_path: Path, proto_file: Path) -> None:
    out_dir = tmp_path / "out"
    builder = CommandBuilder([], include_imports=True)

    args = builder.build("descriptor", proto_file, out_dir, output_options="--retain_options  --foo")

    desc_args = [a for a in args if a.startswith("--descriptor_set_out=")]
    assert desc_args == [f"--descriptor_set_out={out_dir / 'foo'}.desc"]
    assert desc_args[0].endswith(".desc")
    assert args.count("--include_imports") == 1
    assert not any("_out=" in a and not a.startswith("--descriptor_set_out") for a in args)
    assert args[-3:] == ["--retain_options", "--foo", str(proto_file)]


def test_descriptor_target_without_include_imports(tmp_path: Path, proto_file: Path) -> None:
    builder = CommandBuilder([], include_imports=False)

    args = builder.build("descriptor", proto_file, tmp_path / "out")

    assert "--include_imports" not in args


def test_plugin_path_registers_synthetic_plugin(tmp_path: Path, proto_file: Path) -> None:
    out_dir = tmp_path / "out"
    builder = CommandBuilder([])

    args = builder.build("dart", proto_file, out_dir, plugin_path="/opt/protoc-gen-dart")

    assert f"--dart_out={out_dir}" in args
    assert "--plugin=protoc-gen-dart=/opt/protoc-gen-dart" in args


def test_output_options_prefix_output_directory(tmp_path: Path, proto_file: Path) -> None:
    out_dir = tmp_path / "out"
    args = CommandBuilder([]).build("js", proto_file, out_dir, output_options="import_style=commonjs")

    assert f"--js_out=import_style=commonjs:{out_dir}" in args


def test_include_order_then_file_parent_then_file_then_version(tmp_path: Path, proto_file: Path) -> None:
    first = tmp_path / "inc-a"
    second = tmp_path / "inc-b"
    first.mkdir()
    second.mkdir()
    builder = CommandBuilder([first, second])

    args = builder.build("java", proto_file, tmp_path / "out", version="3.11.4")

    assert args[0] == f"-I{first}"
    assert args[1] == f"-I{second}"
    assert args[2] == f"-I{proto_file.parent}"
    assert args[-2] == str(proto_file)
    assert args[-1] == "-v3.11.4"


def test_missing_include_directory_is_a_configuration_error(tmp_path: Path, proto_file: Path) -> None:
    builder = CommandBuilder([tmp_path / "missing"])

    with pytest.raises(ConfigurationError, match="does not exist"):
        builder.build("java", proto_file, tmp_path / "out")


def test_include_path_that_is_a_file_is_rejected(tmp_path: Path, proto_file: Path) -> None:
    builder = CommandBuilder([proto_file])

    with pytest.raises(ConfigurationError, match="is not a directory"):
        builder.build("java", proto_file, tmp_path / "out")


def test_shaded_java_builds_java_command(tmp_path: Path, proto_file: Path) -> None:
    out_dir = tmp_path / "out"

    args = CommandBuilder([]).build("java-shaded", proto_file, out_dir)

    assert f"--java_out={out_dir}" in args
    assert not any("java-shaded" in a or "java_shaded" in a for a in args)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("java-shaded", ("java", True)),
        ("java_shaded", ("java", True)),
        ("java", ("java", False)),
        ("python", ("python", False)),
    ],
)
def test_normalize_type(raw: str, expected) -> None:
    assert normalize_type(raw) == expected


def test_version_selector_detection() -> None:
    assert is_version_selector("-v3.11.4")
    assert is_version_selector("-v:2.4.1")
    assert not is_version_selector("--version")
    assert not is_version_selector("-I/tmp/v3")

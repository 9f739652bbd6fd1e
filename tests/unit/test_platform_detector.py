from __future__ import annotations

import pytest

from protoflow.codegen.platform_detector import detect_classifier, parse_coordinate
from protoflow.errors import ConfigurationError


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("Linux", "x86_64", "linux-x86_64"),
        ("Darwin", "arm64", "osx-aarch_64"),
        ("Windows", "AMD64", "windows-x86_64"),
        ("Linux", "aarch64", "linux-aarch_64"),
        ("Linux", "i686", "linux-x86_32"),
        ("Linux", "ppc64le", "linux-ppcle_64"),
    ],
)
def test_detect_classifier(system: str, machine: str, expected: str) -> None:
    assert detect_classifier(system, machine) == expected


def test_parse_coordinate_defaults_extension_and_classifier() -> None:
    coordinate = parse_coordinate("com.google.protobuf:protoc:3.1.0", "linux-x86_64")

    assert coordinate.extension == "exe"
    assert coordinate.classifier == "linux-x86_64"
    assert coordinate.repository_path == (
        "com/google/protobuf/protoc/3.1.0/protoc-3.1.0-linux-x86_64.exe"
    )


def test_parse_coordinate_keeps_explicit_parts() -> None:
    coordinate = parse_coordinate("io.grpc:protoc-gen-grpc-java:1.0.1:bin:osx-x86_64", "linux-x86_64")

    assert coordinate.extension == "bin"
    assert coordinate.classifier == "osx-x86_64"
    assert str(coordinate) == "io.grpc:protoc-gen-grpc-java:1.0.1:bin:osx-x86_64"


@pytest.mark.parametrize("spec", ["", "a:b", "a::1", "a:b:c:d:e:f"])
def test_parse_coordinate_rejects_bad_syntax(spec: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_coordinate(spec)

"""Settings for a codegen run, loaded from YAML with environment overrides.

The YAML file carries a ``codegen_config`` section. Targets may be given
either as the flat ``type``/``add_sources``/``output_directory``... keys or
as an ``output_targets`` list; :meth:`CodegenSettings.output_target_list`
turns both shapes into one list of normalized :class:`OutputTarget`.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from protoflow.codegen.models import OutputTarget
from protoflow.errors import ConfigurationError

DEFAULT_INPUT_DIR = Path("src") / "main" / "protobuf"
_EXTRACTION_MODES = {"none", "direct", "transitive"}
_PROTO_SOURCE_MODES = {"none", "inputs", "all"}
_ENV_OVERRIDES = {
    "PROTOFLOW_PROTOC_COMMAND": "protoc_command",
    "PROTOFLOW_PROTOC_ARTIFACT": "protoc_artifact",
    "PROTOFLOW_PROTOC_VERSION": "protoc_version",
    "PROTOFLOW_BUNDLE_DIR": "bundle_dir",
    "PROTOFLOW_LOCAL_REPOSITORY": "local_repository",
}


class TargetConfig(BaseModel):
    type: str = "java"
    add_sources: str = "main"
    output_directory: Optional[Path] = None
    output_directory_suffix: Optional[str] = None
    output_options: Optional[str] = None
    plugin_path: Optional[str] = None
    plugin_artifact: Optional[str] = None
    clean_output_folder: bool = False

    @field_validator("add_sources", mode="before")
    @classmethod
    def _coerce_add_sources(cls, value: Any) -> Any:
        # YAML turns a bare ``true`` into a bool.
        if isinstance(value, bool):
            return "main" if value else "none"
        return value


class DependencyConfig(BaseModel):
    direct: List[Path] = Field(default_factory=list)
    transitive: List[Path] = Field(default_factory=list)


class CodegenSettings(BaseModel):
    base_dir: Path = Path(".")
    build_directory: Optional[Path] = None
    packaging: Optional[str] = None
    skip: bool = False

    protoc_version: Optional[str] = None
    protoc_command: Optional[str] = None
    protoc_artifact: Optional[str] = None
    bundle_dir: Optional[Path] = None
    local_repository: Optional[Path] = None
    remote_repositories: List[str] = Field(default_factory=list)

    optimize_codegen: bool = True
    extension: str = ".proto"
    input_directories: List[Path] = Field(default_factory=list)
    include_directories: List[Path] = Field(default_factory=list)
    include_std_types: bool = False
    include_maven_types: str = "none"
    compile_maven_types: str = "none"
    add_proto_sources: str = "none"
    include_imports: bool = True
    dependencies: DependencyConfig = Field(default_factory=DependencyConfig)

    type: str = "java"
    add_sources: str = "main"
    clean_output_folder: bool = False
    plugin_path: Optional[str] = None
    plugin_artifact: Optional[str] = None
    output_directory: Optional[Path] = None
    output_directory_suffix: Optional[str] = None
    output_options: Optional[str] = None
    output_targets: List[TargetConfig] = Field(default_factory=list)

    @field_validator("include_maven_types", "compile_maven_types")
    @classmethod
    def _check_extraction_mode(cls, value: str) -> str:
        normalized = (value or "none").strip().lower()
        if normalized not in _EXTRACTION_MODES:
            raise ValueError(f"must be one of {sorted(_EXTRACTION_MODES)}, got '{value}'")
        return normalized

    @field_validator("add_proto_sources")
    @classmethod
    def _check_proto_sources(cls, value: str) -> str:
        normalized = (value or "none").strip().lower()
        if normalized not in _PROTO_SOURCE_MODES:
            raise ValueError(f"must be one of {sorted(_PROTO_SOURCE_MODES)}, got '{value}'")
        return normalized

    @field_validator("add_sources", mode="before")
    @classmethod
    def _coerce_add_sources(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "main" if value else "none"
        return value

    @field_validator("extension")
    @classmethod
    def _check_extension(cls, value: str) -> str:
        if not value:
            raise ValueError("extension must not be empty")
        return value

    # ------------------------------------------------------------------

    def resolve_path(self, path: Path) -> Path:
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return (self.base_dir / path).absolute()

    def resolved_build_directory(self) -> Path:
        if self.build_directory is not None:
            return self.resolve_path(self.build_directory)
        return self.resolve_path(Path("target"))

    def resolved_input_directories(self) -> List[Path]:
        if not self.input_directories:
            return [self.resolve_path(DEFAULT_INPUT_DIR)]
        return [self.resolve_path(path) for path in self.input_directories]

    def resolved_include_directories(self) -> List[Path]:
        return [self.resolve_path(path) for path in self.include_directories]

    def output_target_list(self) -> List[OutputTarget]:
        """Normalize the flat-or-list target configuration."""

        configs = self.output_targets or [
            TargetConfig(
                type=self.type,
                add_sources=self.add_sources,
                output_directory=self.output_directory,
                output_directory_suffix=self.output_directory_suffix,
                output_options=self.output_options,
                plugin_path=self.plugin_path,
                plugin_artifact=self.plugin_artifact,
                clean_output_folder=self.clean_output_folder,
            )
        ]
        build_dir = self.resolved_build_directory()
        targets: List[OutputTarget] = []
        for config in configs:
            target = OutputTarget(
                type=config.type,
                add_sources=config.add_sources,
                output_directory=self.resolve_path(config.output_directory) if config.output_directory else None,
                output_directory_suffix=config.output_directory_suffix,
                output_options=config.output_options,
                plugin_path=config.plugin_path,
                plugin_artifact=config.plugin_artifact,
                clean_output_folder=config.clean_output_folder,
            )
            targets.append(target.normalize(build_dir))
        return targets


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(data)
    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            merged[key] = value
    remote = os.getenv("PROTOFLOW_REMOTE_REPOSITORY")
    if remote and not merged.get("remote_repositories"):
        merged["remote_repositories"] = [remote]
    return merged


def build_settings(data: Optional[Dict[str, Any]] = None, *, use_env: bool = True) -> CodegenSettings:
    payload = dict(data or {})
    if use_env:
        payload = _apply_env_overrides(payload)
    try:
        return CodegenSettings(**payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid codegen configuration: {exc}") from exc


def load_settings(file_path: str | os.PathLike[str], *, use_env: bool = True) -> CodegenSettings:
    """Read ``codegen_config`` from a YAML file; relative paths resolve against it."""

    path = Path(file_path)
    try:
        with open(path, "r", encoding="utf-8") as config_file:
            data = yaml.safe_load(config_file) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Codegen configuration file '{path}' not found.") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{path}' must contain a mapping.")
    section = data.get("codegen_config", data)
    if not isinstance(section, dict):
        raise ConfigurationError("'codegen_config' section must be a mapping.")
    section = dict(section)
    base_dir = Path(section.get("base_dir") or ".")
    if not base_dir.is_absolute():
        base_dir = (path.parent / base_dir).absolute()
    section["base_dir"] = base_dir
    return build_settings(section, use_env=use_env)


__all__ = [
    "CodegenSettings",
    "DEFAULT_INPUT_DIR",
    "DependencyConfig",
    "TargetConfig",
    "build_settings",
    "load_settings",
]

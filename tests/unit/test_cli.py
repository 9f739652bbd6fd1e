from __future__ import annotations

from pathlib import Path

from protoflow import cli


def test_classifier_command(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "detect_classifier", lambda: "linux-aarch_64")

    assert cli.main(["classifier"]) == 0
    assert capsys.readouterr().out.strip() == "linux-aarch_64"


def test_missing_config_returns_error_code(tmp_path: Path, caplog) -> None:
    assert cli.main(["run", "--config", str(tmp_path / "absent.yaml")]) == 1
    assert "not found" in caplog.text


def test_skipped_project_exits_cleanly(tmp_path: Path) -> None:
    config = tmp_path / "protoflow.yaml"
    config.write_text("codegen_config:\n  packaging: pom\n", encoding="utf-8")

    assert cli.main(["run", "--config", str(config)]) == 0
    assert not (tmp_path / "target").exists()

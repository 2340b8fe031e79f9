"""Unit tests for settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from plan_orchestrator.orchestrator.config import BUNDLED_HANDOFF_SCHEMA, OrchestratorSettings


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in (
        "ORCHESTRATOR_ARTIFACTS_DIR",
        "ORCHESTRATOR_WORKFLOWS_DIR",
        "ORCHESTRATOR_HANDOFF_SCHEMA_PATH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = OrchestratorSettings()

    assert settings.artifacts_dir == Path("artifacts")
    assert settings.workflows_dir == Path("artifacts") / "workflows"
    assert settings.handoff_schema_path == BUNDLED_HANDOFF_SCHEMA
    assert settings.log_level == "INFO"
    assert BUNDLED_HANDOFF_SCHEMA.exists()


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ORCHESTRATOR_ARTIFACTS_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("ORCHESTRATOR_WORKFLOWS_DIR", str(tmp_path / "defs"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = OrchestratorSettings()

    assert settings.workflows_dir == tmp_path / "defs"
    assert settings.log_level == "debug"


def test_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORCHESTRATOR_ARTIFACTS_DIR", raising=False)
    env_file = tmp_path / "test.env"
    env_file.write_text("ORCHESTRATOR_ARTIFACTS_DIR=/srv/orchestrator\n", encoding="utf-8")

    settings = OrchestratorSettings(_env_file=env_file)

    assert settings.artifacts_dir == Path("/srv/orchestrator")


def test_cors_origins_are_split(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ORCHESTRATOR_CORS_ORIGINS", "https://a.example, ,https://b.example")

    assert OrchestratorSettings().parsed_cors_origins() == [
        "https://a.example",
        "https://b.example",
    ]

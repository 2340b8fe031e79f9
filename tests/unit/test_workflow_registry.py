"""Unit tests for the directory-backed workflow registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from plan_orchestrator.orchestrator.errors import InvalidDefinition, NotFound
from plan_orchestrator.orchestrator.workflow.registry import (
    WorkflowCache,
    WorkflowRegistry,
    read_workflow_file,
)


def _minimal(workflow_id: str) -> dict[str, object]:
    return {
        "id": workflow_id,
        "name": f"Workflow {workflow_id}",
        "version": "1.0.0",
        "steps": [{"key": "only", "order": 1, "exitCriteria": ["done"], "responsibleRole": "dev"}],
    }


def test_loads_yaml_definition(registry: WorkflowRegistry) -> None:
    workflow = registry.get_workflow("wf-001-plan-orchestrator")

    assert workflow.step_keys == [
        "phase-setup",
        "phase-models",
        "phase-tests",
        "phase-services",
        "phase-cli",
    ]
    assert workflow.get_step("phase-tests").supporting_tasks == ("T010", "T011")


def test_loads_json_alongside_yaml(artifacts_dir: Path, registry: WorkflowRegistry) -> None:
    (artifacts_dir / "workflows" / "other.json").write_text(
        json.dumps(_minimal("wf-json")), encoding="utf-8"
    )
    (artifacts_dir / "workflows" / "README.md").write_text("ignored", encoding="utf-8")

    assert [w.id for w in registry.list_workflows()] == ["wf-001-plan-orchestrator", "wf-json"]


def test_unknown_workflow_is_not_found(registry: WorkflowRegistry) -> None:
    with pytest.raises(NotFound, match="Workflow missing not found"):
        registry.get_workflow("missing")


def test_missing_directory_yields_no_workflows(tmp_path: Path) -> None:
    registry = WorkflowRegistry(tmp_path / "nope")

    assert registry.list_workflows() == []


def test_cache_is_kept_until_refresh(artifacts_dir: Path, registry: WorkflowRegistry) -> None:
    assert len(registry.list_workflows()) == 1

    (artifacts_dir / "workflows" / "second.yml").write_text(
        yaml.safe_dump(_minimal("wf-second")), encoding="utf-8"
    )
    assert len(registry.list_workflows()) == 1

    registry.refresh()
    assert registry.get_workflow("wf-second").step_keys == ["only"]


def test_injected_cache_is_shared(artifacts_dir: Path) -> None:
    cache = WorkflowCache()
    first = WorkflowRegistry(artifacts_dir / "workflows", cache=cache)
    first.list_workflows()

    assert cache.get() is not None
    second = WorkflowRegistry(artifacts_dir / "does-not-matter", cache=cache)
    assert second.get_workflow("wf-001-plan-orchestrator").name.startswith("Implement")


def test_duplicate_workflow_ids_are_rejected(artifacts_dir: Path, registry: WorkflowRegistry) -> None:
    (artifacts_dir / "workflows" / "copy.json").write_text(
        json.dumps(_minimal("wf-001-plan-orchestrator")), encoding="utf-8"
    )

    with pytest.raises(InvalidDefinition, match="Duplicate workflow id"):
        registry.list_workflows()


def test_invalid_definition_names_the_file(tmp_path: Path) -> None:
    bad = {**_minimal("wf-bad"), "steps": [{"key": "x", "order": 1, "responsibleRole": "dev"}]}
    (tmp_path / "bad.yaml").write_text(yaml.safe_dump(bad), encoding="utf-8")

    with pytest.raises(InvalidDefinition, match="bad.yaml"):
        WorkflowRegistry(tmp_path).list_workflows()


def test_read_workflow_file_requires_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(InvalidDefinition, match="must contain a mapping"):
        read_workflow_file(path)


def test_read_workflow_file_reports_parse_errors(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(InvalidDefinition, match="could not be parsed"):
        read_workflow_file(path)

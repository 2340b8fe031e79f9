"""Test configuration and fixtures."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
import yaml

from plan_orchestrator.orchestrator.config import BUNDLED_HANDOFF_SCHEMA, OrchestratorSettings
from plan_orchestrator.orchestrator.engine import Orchestrator
from plan_orchestrator.orchestrator.work_items.service import WorkItemService
from plan_orchestrator.orchestrator.workflow.registry import WorkflowRegistry

WORKFLOW_ID = "wf-001-plan-orchestrator"
WORK_ITEM_ID = "work-item-001"


def sample_workflow_definition() -> dict[str, object]:
    """A five-order workflow with a gate, a parallel peer and a sequential peer."""
    return {
        "id": WORKFLOW_ID,
        "name": "Implement Plan-to-Execution Orchestrator",
        "version": "1.0.0",
        "schemaVersion": "1.0",
        "steps": [
            {
                "key": "phase-setup",
                "order": 1,
                "parallelizable": False,
                "exitCriteria": ["Repository scaffolded"],
                "responsibleRole": "tech-lead",
            },
            {
                "key": "phase-tests",
                "order": 2,
                "parallelizable": False,
                "entryCriteria": ["Setup complete"],
                "exitCriteria": ["Failing tests committed"],
                "responsibleRole": "qa-engineer",
                "gateKey": "phase-tests-quality",
                "supportingTasks": ["T010", "T011"],
            },
            {
                "key": "phase-models",
                "order": 2,
                "parallelizable": True,
                "exitCriteria": ["Models implemented"],
                "responsibleRole": "backend-engineer",
            },
            {
                "key": "phase-services",
                "order": 3,
                "parallelizable": False,
                "exitCriteria": ["Services implemented"],
                "responsibleRole": "backend-engineer",
            },
            {
                "key": "phase-cli",
                "order": 5,
                "exitCriteria": ["CLI commands implemented"],
                "responsibleRole": "cli-engineer",
            },
        ],
    }


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """Provide a temporary artifacts directory with one workflow definition."""
    root = tmp_path / "artifacts"
    workflows = root / "workflows"
    workflows.mkdir(parents=True)
    (workflows / f"{WORKFLOW_ID}.yaml").write_text(
        yaml.safe_dump(sample_workflow_definition(), sort_keys=False), encoding="utf-8"
    )
    return root


@pytest.fixture
def registry(artifacts_dir: Path) -> WorkflowRegistry:
    return WorkflowRegistry(artifacts_dir / "workflows")


@pytest.fixture
def work_item_service(artifacts_dir: Path, registry: WorkflowRegistry) -> WorkItemService:
    service = WorkItemService(artifacts_dir, registry=registry)
    service.create_work_item(
        work_item_id=WORK_ITEM_ID,
        workflow_id=WORKFLOW_ID,
        owner="planner@example.com",
        created_at=datetime(2025, 9, 19, 15, 0, tzinfo=UTC),
    )
    return service


@pytest.fixture
def settings(artifacts_dir: Path) -> OrchestratorSettings:
    return OrchestratorSettings(
        artifacts_dir=artifacts_dir,
        handoff_schema_path=BUNDLED_HANDOFF_SCHEMA,
        log_level="DEBUG",
    )


@pytest.fixture
def orchestrator(settings: OrchestratorSettings) -> Orchestrator:
    return Orchestrator(settings)


@pytest.fixture
def workflow_definition() -> dict[str, object]:
    return sample_workflow_definition()

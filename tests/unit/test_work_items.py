"""Unit tests for the work item state machine and its service."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from plan_orchestrator.orchestrator.errors import (
    IllegalTransitionError,
    InvalidDefinition,
    NotFound,
    WorkItemAlreadyExists,
)
from plan_orchestrator.orchestrator.work_items.model import WorkItem, WorkItemStatus
from plan_orchestrator.orchestrator.work_items.service import WorkItemService
from plan_orchestrator.orchestrator.workflow.registry import WorkflowRegistry

T0 = datetime(2025, 9, 20, 10, 0, tzinfo=UTC)


def _item(status: WorkItemStatus = WorkItemStatus.QUEUED) -> WorkItem:
    return WorkItem(
        id="wi-1",
        workflow_id="wf",
        status=status,
        current_step_key="build",
        owner="owner@example.com",
        created_at="2025-09-19T15:00:00.000Z",
        updated_at="2025-09-19T15:00:00.000Z",
    )


def test_advance_moves_to_in_progress_and_bumps_updated_at() -> None:
    advanced = _item().advance_to_step("test", T0)

    assert advanced.status == WorkItemStatus.IN_PROGRESS
    assert advanced.current_step_key == "test"
    assert advanced.updated_at == "2025-09-20T10:00:00.000Z"
    assert advanced.created_at == "2025-09-19T15:00:00.000Z"


def test_rewind_records_reasons() -> None:
    rewound = _item(WorkItemStatus.IN_PROGRESS).rewind_to_step("build", ["flaky"], T0)

    assert rewound.status == WorkItemStatus.REWORK
    assert rewound.metadata["lastReworkReasons"] == ["flaky"]


def test_completed_is_terminal() -> None:
    done = _item(WorkItemStatus.IN_PROGRESS).with_status(WorkItemStatus.COMPLETED, T0)

    assert done.is_terminal
    with pytest.raises(IllegalTransitionError, match="completed -> in-progress"):
        done.advance_to_step("build", T0)
    with pytest.raises(IllegalTransitionError):
        done.rewind_to_step("build", ["again"], T0)


def test_queued_cannot_jump_to_completed() -> None:
    with pytest.raises(IllegalTransitionError, match="queued -> completed"):
        _item().with_status(WorkItemStatus.COMPLETED, T0)


def test_from_json_accepts_legacy_pending_status() -> None:
    item = WorkItem.from_json({**_item().to_json(), "status": "pending"})

    assert item.status == WorkItemStatus.QUEUED


def test_unknown_status_is_invalid() -> None:
    with pytest.raises(InvalidDefinition, match="status"):
        WorkItem.from_json({**_item().to_json(), "status": "paused"})


def test_create_starts_queued_at_first_step(
    work_item_service: WorkItemService, artifacts_dir: Path
) -> None:
    item = work_item_service.load_work_item("work-item-001")

    assert item.status == WorkItemStatus.QUEUED
    assert item.current_step_key == "phase-setup"
    assert item.created_at == "2025-09-19T15:00:00.000Z"
    on_disk = json.loads((artifacts_dir / "work-items" / "work-item-001.json").read_text())
    assert on_disk["workflowId"] == "wf-001-plan-orchestrator"


def test_create_twice_conflicts(work_item_service: WorkItemService) -> None:
    with pytest.raises(WorkItemAlreadyExists, match="work-item-001 already exists"):
        work_item_service.create_work_item(
            work_item_id="work-item-001",
            workflow_id="wf-001-plan-orchestrator",
            owner="someone",
        )


def test_create_with_unknown_workflow_is_not_found(work_item_service: WorkItemService) -> None:
    with pytest.raises(NotFound):
        work_item_service.create_work_item(
            work_item_id="work-item-002", workflow_id="nope", owner="someone"
        )


def test_create_without_registry_needs_a_step(artifacts_dir: Path) -> None:
    service = WorkItemService(artifacts_dir)

    with pytest.raises(InvalidDefinition, match="currentStepKey"):
        service.create_work_item(work_item_id="wi-9", workflow_id="wf", owner="someone")
    item = service.create_work_item(
        work_item_id="wi-9", workflow_id="wf", owner="someone", current_step_key="anything"
    )
    assert item.current_step_key == "anything"


def test_advance_and_rewind_persist(work_item_service: WorkItemService) -> None:
    update = work_item_service.advance_to_step("work-item-001", "phase-tests")
    assert update.to_json() == {
        "workItemId": "work-item-001",
        "currentStepKey": "phase-tests",
        "status": "in-progress",
    }

    work_item_service.rewind_to_step("work-item-001", "phase-setup", ["missing fixtures"])

    item = work_item_service.load_work_item("work-item-001")
    assert item.status == WorkItemStatus.REWORK
    assert item.current_step_key == "phase-setup"
    assert item.metadata["lastReworkReasons"] == ["missing fixtures"]


def test_transition_to_unknown_step_is_not_found(work_item_service: WorkItemService) -> None:
    with pytest.raises(NotFound, match="Unknown step key phase-deploy"):
        work_item_service.advance_to_step("work-item-001", "phase-deploy")


def test_unknown_work_item_is_not_found(artifacts_dir: Path, registry: WorkflowRegistry) -> None:
    service = WorkItemService(artifacts_dir, registry=registry)

    with pytest.raises(NotFound, match="Work item ghost not found"):
        service.load_work_item("ghost")


def test_path_unsafe_ids_are_rejected(work_item_service: WorkItemService) -> None:
    with pytest.raises(InvalidDefinition, match="workItemId"):
        work_item_service.load_work_item("../escape")

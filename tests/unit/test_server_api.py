"""REST API tests using FastAPI's TestClient."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from plan_orchestrator.orchestrator.config import OrchestratorSettings
from plan_orchestrator.server.app import create_app


@pytest.fixture
def client(settings: OrchestratorSettings) -> Iterator[TestClient]:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    with TestClient(create_app(settings)) as test_client:
        yield test_client
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def work_item(client: TestClient) -> dict[str, object]:
    resp = client.post(
        "/api/work-items",
        json={
            "work_item_id": "work-item-001",
            "workflow_id": "wf-001-plan-orchestrator",
            "owner": "planner@example.com",
        },
    )
    assert resp.status_code == 201
    return resp.json()


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_workflows_are_listed(client: TestClient) -> None:
    resp = client.get("/api/workflows")

    assert resp.status_code == 200
    assert [w["id"] for w in resp.json()] == ["wf-001-plan-orchestrator"]

    missing = client.get("/api/workflows/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "NotFound"


def test_create_work_item(client: TestClient, work_item: dict[str, object]) -> None:
    assert work_item["status"] == "queued"
    assert work_item["currentStepKey"] == "phase-setup"

    again = client.post(
        "/api/work-items",
        json={
            "work_item_id": "work-item-001",
            "workflow_id": "wf-001-plan-orchestrator",
            "owner": "planner@example.com",
        },
    )
    assert again.status_code == 409
    assert again.json()["error"] == "WorkItemAlreadyExists"


def test_schedule_and_snapshot(client: TestClient, work_item: dict[str, object]) -> None:
    resp = client.post("/api/work-items/work-item-001/schedule", json={})

    assert resp.status_code == 200
    assert [s["key"] for s in resp.json()["readySteps"]] == ["phase-setup"]

    snapshot = client.get("/api/work-items/work-item-001/schedule")
    assert snapshot.json() == resp.json()


def test_claim_conflict(client: TestClient, work_item: dict[str, object]) -> None:
    body = {
        "attempt_id": "attempt-001",
        "step_key": "phase-setup",
        "executor": {"id": "agent-alpha", "displayName": "Alpha"},
    }

    first = client.post("/api/work-items/work-item-001/claims", json=body)
    second = client.post("/api/work-items/work-item-001/claims", json=body)

    assert first.status_code == 201
    assert first.json()["status"] == "running"
    assert second.status_code == 409
    assert second.json()["detail"] == "Attempt attempt-001 already claimed"
    assert len(client.get("/api/work-items/work-item-001/claims").json()) == 1


def test_handoff_boundary_and_schema_errors(
    client: TestClient, work_item: dict[str, object]
) -> None:
    url = "/api/work-items/work-item-001/handoffs"
    base = {"step_key": "phase-setup", "attempt_id": "attempt-001", "actor": "agent-alpha"}

    integrated = client.post(
        url,
        json={
            **base,
            "event_type": "baseline-integration",
            "outcome": "merged",
            "baseline_integration": "post",
            "timestamp": "2025-09-20T10:00:00Z",
        },
    )
    assert integrated.status_code == 201

    rerun = client.post(
        url,
        json={
            **base,
            "event_type": "attempt-started",
            "outcome": "retrying",
            "timestamp": "2025-09-20T11:00:00Z",
        },
    )
    assert rerun.status_code == 409
    assert rerun.json()["error"] == "BaselineBoundaryViolation"

    bad = client.post(
        url,
        json={**base, "event_type": "attempt-paused", "outcome": "?"},
    )
    assert bad.status_code == 409
    assert bad.json()["error"] == "SchemaValidationFailed"

    assert len(client.get(url).json()) == 1


def test_gate_rejection_returns_updated_work_item(
    client: TestClient, work_item: dict[str, object]
) -> None:
    resp = client.post(
        "/api/work-items/work-item-001/gates/phase-tests-quality",
        json={"decision": "reject", "reasons": ["Coverage below threshold"], "reviewer": "qa-lead"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["decision"]["reentryStepKey"] == "phase-tests"
    assert body["workItem"]["status"] == "rework"
    assert body["workItem"]["currentStepKey"] == "phase-tests"

    no_reasons = client.post(
        "/api/work-items/work-item-001/gates/phase-tests-quality",
        json={"decision": "reject", "reasons": [], "reviewer": "qa-lead"},
    )
    assert no_reasons.status_code == 422
    assert no_reasons.json()["error"] == "InvalidDefinition"


def test_unknown_work_item(client: TestClient) -> None:
    resp = client.get("/api/work-items/ghost")

    assert resp.status_code == 404

"""Work-item focused REST API. All routes are mounted under `/api`."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from plan_orchestrator import __version__
from plan_orchestrator.orchestrator.engine import Orchestrator
from plan_orchestrator.server.models import (
    ClaimRequest,
    CreateWorkItemRequest,
    GateDecisionRequest,
    HandoffRequest,
    ScheduleRequest,
)

router = APIRouter()


def _orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if not isinstance(orchestrator, Orchestrator):
        # This should never happen for the real app, but keeps the API fail-fast.
        raise HTTPException(status_code=500, detail="Orchestrator not configured")
    return orchestrator


@router.get("/health")
def health() -> dict[str, object]:
    return {"status": "ok", "version": __version__}


@router.get("/workflows")
def list_workflows(request: Request) -> list[dict[str, object]]:
    return [w.snapshot() for w in _orchestrator(request).registry.list_workflows()]


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: str, request: Request) -> dict[str, object]:
    return _orchestrator(request).registry.get_workflow(workflow_id).snapshot()


@router.post("/workflows/refresh")
def refresh_workflows(request: Request) -> dict[str, object]:
    registry = _orchestrator(request).registry
    registry.refresh()
    return {"workflows": [w.id for w in registry.list_workflows()]}


@router.post("/work-items", status_code=201)
def create_work_item(body: CreateWorkItemRequest, request: Request) -> dict[str, object]:
    item = _orchestrator(request).work_items.create_work_item(
        work_item_id=body.work_item_id,
        workflow_id=body.workflow_id,
        owner=body.owner,
        current_step_key=body.current_step_key,
        metadata=body.metadata,
    )
    return item.to_json()


@router.get("/work-items/{work_item_id}")
def get_work_item(work_item_id: str, request: Request) -> dict[str, object]:
    return _orchestrator(request).work_items.load_work_item(work_item_id).to_json()


@router.post("/work-items/{work_item_id}/schedule")
def schedule(work_item_id: str, body: ScheduleRequest, request: Request) -> dict[str, object]:
    decision = _orchestrator(request).schedule(
        work_item_id, completed_steps=body.completed_steps
    )
    return decision.to_json()


@router.get("/work-items/{work_item_id}/schedule")
def last_schedule(work_item_id: str, request: Request) -> dict[str, object]:
    return _orchestrator(request).schedules.load(work_item_id).to_json()


@router.get("/work-items/{work_item_id}/claims")
def list_claims(work_item_id: str, request: Request) -> list[dict[str, object]]:
    return [c.to_json() for c in _orchestrator(request).assignments.list_claims(work_item_id)]


@router.post("/work-items/{work_item_id}/claims", status_code=201)
def claim(work_item_id: str, body: ClaimRequest, request: Request) -> dict[str, object]:
    record = _orchestrator(request).claim(
        attempt_id=body.attempt_id,
        work_item_id=work_item_id,
        step_key=body.step_key,
        executor=body.executor,
        claimed_at=body.claimed_at,
    )
    return record.to_json()


@router.get("/work-items/{work_item_id}/handoffs")
def list_handoffs(work_item_id: str, request: Request) -> list[dict[str, object]]:
    records = _orchestrator(request).artifacts.list_handoff_artifacts(work_item_id)
    return [r.to_json() for r in records]


@router.post("/work-items/{work_item_id}/handoffs", status_code=201)
def record_handoff(work_item_id: str, body: HandoffRequest, request: Request) -> dict[str, object]:
    record = _orchestrator(request).record_handoff(
        work_item_id=work_item_id,
        step_key=body.step_key,
        event_type=body.event_type,
        attempt_id=body.attempt_id,
        actor=body.actor,
        outcome=body.outcome,
        next_action=body.next_action,
        baseline_integration=body.baseline_integration,
        links=body.links,
        timestamp=body.timestamp,
    )
    return record.to_json()


@router.get("/work-items/{work_item_id}/gates")
def list_gate_decisions(work_item_id: str, request: Request) -> list[dict[str, object]]:
    return [d.to_json() for d in _orchestrator(request).gates.list_decisions(work_item_id)]


@router.post("/work-items/{work_item_id}/gates/{gate_key}")
def record_gate_decision(
    work_item_id: str, gate_key: str, body: GateDecisionRequest, request: Request
) -> dict[str, object]:
    orchestrator = _orchestrator(request)
    record = orchestrator.record_gate_decision(
        work_item_id=work_item_id,
        gate_key=gate_key,
        decision=body.decision,
        reasons=body.reasons,
        reviewer=body.reviewer,
        reentry_step_key=body.reentry_step_key,
        decided_at=body.decided_at,
    )
    item = orchestrator.work_items.load_work_item(work_item_id)
    return {"decision": record.to_json(), "workItem": item.to_json()}

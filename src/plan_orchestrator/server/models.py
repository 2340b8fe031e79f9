"""Pydantic request models for the REST server."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from plan_orchestrator.orchestrator.assignment.service import ClaimExecutor


class CreateWorkItemRequest(BaseModel):
    work_item_id: str
    workflow_id: str
    owner: str
    current_step_key: str | None = None
    metadata: dict[str, object] = Field(default_factory=dict)


class ScheduleRequest(BaseModel):
    completed_steps: list[str] | None = None


class ClaimRequest(BaseModel):
    attempt_id: str
    step_key: str
    executor: ClaimExecutor
    claimed_at: datetime | None = None


class HandoffRequest(BaseModel):
    step_key: str
    event_type: str
    attempt_id: str
    actor: str
    outcome: str
    next_action: str = ""
    baseline_integration: Literal["pre", "post"] = "pre"
    links: list[str] = Field(default_factory=list)
    timestamp: datetime | None = None


class GateDecisionRequest(BaseModel):
    decision: Literal["approve", "reject"]
    reasons: list[str] = Field(default_factory=list)
    reviewer: str
    reentry_step_key: str | None = None
    decided_at: datetime | None = None

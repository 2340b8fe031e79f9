"""Orchestrator facade.

Wires the file-backed services from settings so callers (the REST adapter,
scripts, CI jobs) share one artifacts layout.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from plan_orchestrator.orchestrator.artifacts.handoff import (
    HandoffArtifactInput,
    HandoffArtifactRecord,
)
from plan_orchestrator.orchestrator.artifacts.service import ArtifactService
from plan_orchestrator.orchestrator.assignment.service import (
    AssignmentService,
    ClaimExecutor,
    ClaimRecord,
)
from plan_orchestrator.orchestrator.config import OrchestratorSettings
from plan_orchestrator.orchestrator.errors import NotFound
from plan_orchestrator.orchestrator.gates.service import (
    GateDecision,
    GateDecisionRecord,
    GateService,
)
from plan_orchestrator.orchestrator.scheduling.decision import SchedulingDecision
from plan_orchestrator.orchestrator.scheduling.service import ScheduleStore, SchedulingService
from plan_orchestrator.orchestrator.timeutil import utc_now
from plan_orchestrator.orchestrator.work_items.service import WorkItemService
from plan_orchestrator.orchestrator.workflow.registry import WorkflowCache, WorkflowRegistry

logger = logging.getLogger(__name__)


class Orchestrator:
    """Entry point tying registry, scheduling, claims, handoffs and gates together."""

    def __init__(
        self,
        settings: OrchestratorSettings | None = None,
        *,
        workflow_cache: WorkflowCache | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Settings object. If None, loads from the environment.
            workflow_cache: Cache shared by registries; a fresh one when None.
        """
        self.settings = settings or OrchestratorSettings()
        artifacts_dir = self.settings.artifacts_dir

        self.registry = WorkflowRegistry(self.settings.workflows_dir, cache=workflow_cache)
        self.work_items = WorkItemService(artifacts_dir, registry=self.registry)
        self.scheduling = SchedulingService()
        self.schedules = ScheduleStore(artifacts_dir)
        self.assignments = AssignmentService(artifacts_dir)
        self.artifacts = ArtifactService(artifacts_dir, self.settings.handoff_schema_path)
        self.gates = GateService(work_item_service=self.work_items, artifacts_dir=artifacts_dir)

        logger.debug("Orchestrator initialized", extra={"artifacts_dir": str(artifacts_dir)})

    def schedule(
        self,
        work_item_id: str,
        *,
        completed_steps: Iterable[str] | None = None,
        now: datetime | None = None,
    ) -> SchedulingDecision:
        """Compute and snapshot the schedule for a work item.

        Without `completed_steps`, completion is derived from the handoff history.
        """

        item = self.work_items.load_work_item(work_item_id)
        workflow = self.registry.get_workflow(item.workflow_id)
        completed = (
            set(completed_steps)
            if completed_steps is not None
            else self.artifacts.completed_steps(work_item_id)
        )
        decision = self.scheduling.generate_schedule(workflow, item, completed, now=now)
        self.schedules.save(decision)
        return decision

    def claim(
        self,
        *,
        attempt_id: str,
        work_item_id: str,
        step_key: str,
        executor: ClaimExecutor,
        claimed_at: datetime | None = None,
    ) -> ClaimRecord:
        item = self.work_items.load_work_item(work_item_id)
        self.registry.get_workflow(item.workflow_id).get_step(step_key)
        return self.assignments.claim_attempt(
            attempt_id=attempt_id,
            work_item_id=work_item_id,
            step_key=step_key,
            executor=executor,
            claimed_at=claimed_at or utc_now(),
        )

    def record_handoff(
        self,
        *,
        work_item_id: str,
        step_key: str,
        event_type: str,
        attempt_id: str,
        actor: str,
        outcome: str,
        next_action: str,
        baseline_integration: str,
        links: list[str] | None = None,
        timestamp: datetime | None = None,
    ) -> HandoffArtifactRecord:
        """Append a handoff artifact, filling workflow and step details from the registry."""

        item = self.work_items.load_work_item(work_item_id)
        workflow = self.registry.get_workflow(item.workflow_id)
        step = workflow.get_step(step_key)
        return self.artifacts.write_handoff_artifact(
            HandoffArtifactInput(
                work_item_id=work_item_id,
                workflow_name=workflow.name,
                workflow_version=workflow.version,
                step_key=step.key,
                step_order=step.order,
                event_type=event_type,
                attempt_id=attempt_id,
                actor=actor,
                outcome=outcome,
                next_action=next_action,
                baseline_integration=baseline_integration,
                links=list(links or []),
                timestamp=timestamp,
            )
        )

    def record_gate_decision(
        self,
        *,
        work_item_id: str,
        gate_key: str,
        decision: GateDecision | str,
        reasons: list[str],
        reviewer: str,
        reentry_step_key: str | None = None,
        decided_at: datetime | None = None,
    ) -> GateDecisionRecord:
        item = self.work_items.load_work_item(work_item_id)
        workflow = self.registry.get_workflow(item.workflow_id)
        gated = next((step for step in workflow.steps if step.gate_key == gate_key), None)
        if gated is None and not workflow.has_step(gate_key):
            raise NotFound(f"Unknown gate {gate_key} in workflow {workflow.id}")
        if reentry_step_key is None and gated is not None:
            # Rework re-enters the step that owns the gate.
            reentry_step_key = gated.key
        return self.gates.record_decision(
            work_item_id=work_item_id,
            gate_key=gate_key,
            decision=decision,
            reasons=reasons,
            reviewer=reviewer,
            decided_at=decided_at or utc_now(),
            reentry_step_key=reentry_step_key,
        )

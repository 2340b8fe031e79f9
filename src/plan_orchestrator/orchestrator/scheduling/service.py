"""Turn workflow topology plus completion state into ready/blocked steps.

Rules:
- only the lowest pending order is ever ready
- peers at that order are sorted by key
- a non-parallelizable peer runs alone (the first one by key)
- otherwise every peer is ready as a parallel branch

Scheduling does no I/O. `ScheduleStore` persists snapshots separately.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from plan_orchestrator.orchestrator.errors import InvalidDefinition, NotFound
from plan_orchestrator.orchestrator.paths import safe_component
from plan_orchestrator.orchestrator.timeutil import to_iso, utc_now
from plan_orchestrator.orchestrator.workflow.definition import Workflow
from plan_orchestrator.orchestrator.workflow.step import Step

from .decision import BlockedStep, ReadyStep, SchedulingDecision

logger = logging.getLogger(__name__)

ALL_COMPLETE_RATIONALE = "All steps complete."


class SchedulingService:
    """Pure, deterministic scheduler. Safe to share between callers."""

    def generate_schedule(
        self,
        workflow: Workflow | Mapping[str, object],
        work_item: object,
        completed_steps: Iterable[str],
        *,
        now: datetime | None = None,
    ) -> SchedulingDecision:
        """Compute the schedule for `work_item`.

        Args:
            workflow: A Workflow, or a raw definition mapping.
            work_item: A WorkItem, a mapping with an `id`, or any object with an `id`.
            completed_steps: Keys of steps already completed. Unknown keys are ignored.
            now: Timestamp recorded as `generatedAt` (defaults to the current time).
        """

        wf = workflow if isinstance(workflow, Workflow) else Workflow.from_definition(workflow)
        work_item_id = _work_item_id(work_item)
        completed = set(completed_steps)
        generated_at = to_iso(now or utc_now())
        launch_order = tuple(step.key for step in wf.steps)

        pending = [step for step in wf.steps if step.key not in completed]
        if not pending:
            return SchedulingDecision(
                work_item_id=work_item_id,
                generated_at=generated_at,
                launch_order=launch_order,
                ready_steps=(),
                blocked_steps=(),
                rationale=ALL_COMPLETE_RATIONALE,
            )

        lowest_order = min(step.order for step in pending)
        candidates = sorted(
            (step for step in pending if step.order == lowest_order), key=lambda s: s.key
        )

        ready = _compute_ready_steps(candidates)
        blocked = _compute_blocked_steps(pending, candidates, ready)

        decision = SchedulingDecision(
            work_item_id=work_item_id,
            generated_at=generated_at,
            launch_order=launch_order,
            ready_steps=tuple(ready),
            blocked_steps=tuple(blocked),
            rationale=_build_rationale(ready, blocked),
        )
        logger.debug(
            "Schedule generated",
            extra={
                "work_item_id": work_item_id,
                "ready": decision.ready_keys,
                "blocked": decision.blocked_keys,
            },
        )
        return decision


def _work_item_id(work_item: object) -> str:
    if isinstance(work_item, Mapping):
        raw = work_item.get("id")
    else:
        raw = getattr(work_item, "id", None)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidDefinition("Scheduling requires a work item with a non-empty id")
    return raw


def _snapshot(step: Step, notes: str) -> ReadyStep:
    return ReadyStep(
        key=step.key,
        order=step.order,
        parallelizable=step.parallelizable,
        notes=notes,
        supporting_tasks=step.supporting_tasks,
    )


def _compute_ready_steps(candidates: list[Step]) -> list[ReadyStep]:
    if not candidates:
        return []

    sequential = next((step for step in candidates if not step.parallelizable), None)
    if sequential is not None:
        return [_snapshot(sequential, "Sequential step executes first")]

    return [
        _snapshot(step, "Parallel branch leader" if index == 0 else "Parallel branch")
        for index, step in enumerate(candidates)
    ]


def _compute_blocked_steps(
    pending: list[Step], candidates: list[Step], ready: list[ReadyStep]
) -> list[BlockedStep]:
    ready_keys = [step.key for step in ready]
    lowest_order = candidates[0].order

    blocked: list[tuple[int, BlockedStep]] = []
    for step in pending:
        if step.key in ready_keys:
            continue

        blockers = [other.key for other in pending if other.order < step.order]
        if step.order == lowest_order:
            blockers.extend(ready_keys)
        elif not blockers:
            blockers.extend(candidate.key for candidate in candidates)

        blocked.append(
            (
                step.order,
                BlockedStep(
                    key=step.key,
                    blocked_by=tuple(dict.fromkeys(blockers)),
                    supporting_tasks=step.supporting_tasks,
                ),
            )
        )

    blocked.sort(key=lambda item: (item[0], item[1].key))
    return [entry for _, entry in blocked]


def _build_rationale(ready: list[ReadyStep], blocked: list[BlockedStep]) -> str:
    ready_text = ", ".join(step.key for step in ready) or "none"
    blocked_text = ", ".join(step.key for step in blocked) or "none"
    return f"Ready: {ready_text}; Blocked: {blocked_text}"


class ScheduleStore:
    """Persist schedule snapshots as `<artifacts>/schedule/<workItemId>.json`.

    The snapshot is a cache; the workflow plus handoff history stay the source
    of truth.
    """

    def __init__(self, artifacts_dir: Path) -> None:
        self._dir = artifacts_dir / "schedule"

    def path_for(self, work_item_id: str) -> Path:
        return self._dir / f"{safe_component(work_item_id, 'workItemId')}.json"

    def save(self, decision: SchedulingDecision) -> Path:
        path = self.path_for(decision.work_item_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(decision.to_json(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        return path

    def load(self, work_item_id: str) -> SchedulingDecision:
        path = self.path_for(work_item_id)
        if not path.exists():
            raise NotFound(f"No schedule snapshot for work item {work_item_id}")
        return SchedulingDecision.from_json(json.loads(path.read_text(encoding="utf-8")))

"""Persistence and sanctioned transitions for work items.

`advance_to_step` and `rewind_to_step` are the only operations that change a
persisted work item. Callers must not build a WorkItem and write it directly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from plan_orchestrator.orchestrator.documents import write_exclusive
from plan_orchestrator.orchestrator.errors import (
    InvalidDefinition,
    NotFound,
    WorkItemAlreadyExists,
)
from plan_orchestrator.orchestrator.paths import safe_component
from plan_orchestrator.orchestrator.timeutil import to_iso, utc_now
from plan_orchestrator.orchestrator.workflow.registry import WorkflowRegistry

from .model import WorkItem, WorkItemLink, WorkItemStatus, check_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkItemStateUpdate:
    work_item_id: str
    current_step_key: str
    status: str

    def to_json(self) -> dict[str, str]:
        return {
            "workItemId": self.work_item_id,
            "currentStepKey": self.current_step_key,
            "status": self.status,
        }


class WorkItemGateway(Protocol):
    """What the gate service needs from work item persistence."""

    def load_work_item(self, work_item_id: str) -> WorkItem: ...

    def advance_to_step(self, work_item_id: str, step_key: str) -> WorkItemStateUpdate: ...

    def check_rewind(self, work_item_id: str, step_key: str) -> WorkItem: ...

    def rewind_to_step(
        self, work_item_id: str, step_key: str, reasons: list[str]
    ) -> WorkItemStateUpdate: ...


class WorkItemService:
    """JSON-file backed work item store with explicit transitions."""

    def __init__(
        self,
        artifacts_dir: Path,
        *,
        registry: WorkflowRegistry | None = None,
    ) -> None:
        self._work_items_dir = artifacts_dir / "work-items"
        self._registry = registry

    def path_for(self, work_item_id: str) -> Path:
        return self._work_items_dir / f"{safe_component(work_item_id, 'workItemId')}.json"

    def load_work_item(self, work_item_id: str) -> WorkItem:
        path = self.path_for(work_item_id)
        if not path.exists():
            raise NotFound(f"Work item {work_item_id} not found at {path}")
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidDefinition(f"Work item document is not valid JSON: {path}") from e
        return WorkItem.from_json(raw)

    def create_work_item(
        self,
        *,
        work_item_id: str,
        workflow_id: str,
        owner: str,
        current_step_key: str | None = None,
        links: list[WorkItemLink] | None = None,
        metadata: dict[str, object] | None = None,
        created_at: datetime | None = None,
    ) -> WorkItem:
        """Persist a new work item in `queued` status.

        Without an explicit step the item starts at the first step of its
        workflow, which requires a registry.
        """

        path = self.path_for(work_item_id)
        if path.exists():
            raise WorkItemAlreadyExists(work_item_id)

        step_key = current_step_key
        if self._registry is not None:
            workflow = self._registry.get_workflow(workflow_id)
            if step_key is None:
                step_key = workflow.steps[0].key
            else:
                workflow.get_step(step_key)
        if step_key is None:
            raise InvalidDefinition(
                f"WorkItem.currentStepKey is required for {work_item_id} when no registry is configured"
            )

        now = to_iso(created_at or utc_now())
        item = WorkItem(
            id=work_item_id,
            workflow_id=workflow_id,
            status=WorkItemStatus.QUEUED,
            current_step_key=step_key,
            owner=owner,
            created_at=now,
            updated_at=now,
            links=tuple(links or ()),
            metadata=dict(metadata or {}),
        )
        self._persist(item, exclusive=True)
        logger.info(
            "Work item created",
            extra={"work_item_id": item.id, "workflow_id": workflow_id, "step_key": step_key},
        )
        return item

    def advance_to_step(self, work_item_id: str, step_key: str) -> WorkItemStateUpdate:
        item = self.load_work_item(work_item_id)
        self._ensure_step(item, step_key)
        updated = item.advance_to_step(step_key, utc_now())
        self._persist(updated)
        logger.info(
            "Work item advanced",
            extra={"work_item_id": updated.id, "step_key": step_key, "status": updated.status.value},
        )
        return _state_update(updated)

    def check_rewind(self, work_item_id: str, step_key: str) -> WorkItem:
        """Raise what `rewind_to_step` would raise, without writing anything.

        Raises:
            NotFound: unknown work item, or a step not in its workflow.
            IllegalTransitionError: the work item cannot move to rework.
        """

        item = self.load_work_item(work_item_id)
        self._ensure_step(item, step_key)
        check_transition(item, WorkItemStatus.REWORK)
        return item

    def rewind_to_step(
        self, work_item_id: str, step_key: str, reasons: list[str]
    ) -> WorkItemStateUpdate:
        item = self.check_rewind(work_item_id, step_key)
        updated = item.rewind_to_step(step_key, reasons, utc_now())
        self._persist(updated)
        logger.info(
            "Work item rewound for rework",
            extra={"work_item_id": updated.id, "step_key": step_key, "reasons": list(reasons)},
        )
        return _state_update(updated)

    def _ensure_step(self, item: WorkItem, step_key: str) -> None:
        if self._registry is None:
            return
        self._registry.get_workflow(item.workflow_id).get_step(step_key)

    def _persist(self, item: WorkItem, *, exclusive: bool = False) -> None:
        path = self.path_for(item.id)
        text = json.dumps(item.to_json(), indent=2, ensure_ascii=False) + "\n"
        if exclusive:
            try:
                write_exclusive(path, text)
            except FileExistsError as e:
                raise WorkItemAlreadyExists(item.id) from e
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def _state_update(item: WorkItem) -> WorkItemStateUpdate:
    return WorkItemStateUpdate(
        work_item_id=item.id,
        current_step_key=item.current_step_key,
        status=item.status.value,
    )

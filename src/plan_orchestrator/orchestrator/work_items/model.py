from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from plan_orchestrator.orchestrator.errors import IllegalTransitionError, InvalidDefinition
from plan_orchestrator.orchestrator.timeutil import to_iso


class WorkItemStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    REWORK = "rework"
    COMPLETED = "completed"


_ACTIVE: set[WorkItemStatus] = {
    WorkItemStatus.IN_PROGRESS,
    WorkItemStatus.BLOCKED,
    WorkItemStatus.REWORK,
}

ALLOWED_TRANSITIONS: dict[WorkItemStatus, set[WorkItemStatus]] = {
    WorkItemStatus.QUEUED: _ACTIVE | {WorkItemStatus.QUEUED},
    WorkItemStatus.IN_PROGRESS: _ACTIVE | {WorkItemStatus.COMPLETED},
    WorkItemStatus.BLOCKED: _ACTIVE,
    WorkItemStatus.REWORK: _ACTIVE | {WorkItemStatus.COMPLETED},
    WorkItemStatus.COMPLETED: set(),
}


@dataclass(frozen=True, slots=True)
class WorkItemLink:
    rel: str
    href: str

    def to_json(self) -> dict[str, str]:
        return {"rel": self.rel, "href": self.href}


@dataclass(frozen=True, slots=True)
class WorkItem:
    """One instance of work travelling through a workflow.

    Every mutation returns a new value and bumps `updated_at`. `completed` is
    terminal.
    """

    id: str
    workflow_id: str
    status: WorkItemStatus
    current_step_key: str
    owner: str
    created_at: str
    updated_at: str
    links: tuple[WorkItemLink, ...] = field(default=())
    metadata: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidDefinition("WorkItem.id is required")
        if not isinstance(self.workflow_id, str) or not self.workflow_id.strip():
            raise InvalidDefinition(f"WorkItem.workflowId is required for {self.id}")
        if not isinstance(self.current_step_key, str) or not self.current_step_key.strip():
            raise InvalidDefinition(f"WorkItem.currentStepKey is required for {self.id}")
        if not isinstance(self.owner, str) or not self.owner.strip():
            raise InvalidDefinition(f"WorkItem.owner is required for {self.id}")
        try:
            status = WorkItemStatus(self.status)
        except ValueError as e:
            raise InvalidDefinition(f"WorkItem.status {self.status!r} is not valid for {self.id}") from e
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "links", tuple(self.links))
        object.__setattr__(self, "metadata", dict(self.metadata))

    @staticmethod
    def from_json(obj: Mapping[str, object]) -> WorkItem:
        if not isinstance(obj, Mapping):
            raise InvalidDefinition("WorkItem document must be a mapping")
        links_raw = obj.get("links") or []
        if not isinstance(links_raw, list):
            raise InvalidDefinition("WorkItem.links must be a list")
        links = tuple(
            WorkItemLink(rel=str(link.get("rel", "")), href=str(link.get("href", "")))
            for link in links_raw
            if isinstance(link, Mapping)
        )
        metadata_raw = obj.get("metadata")
        metadata = dict(metadata_raw) if isinstance(metadata_raw, Mapping) else {}
        status_raw = obj.get("status")
        # Older documents used "pending" for the initial status.
        if status_raw == "pending":
            status_raw = WorkItemStatus.QUEUED.value
        return WorkItem(
            id=obj.get("id"),  # type: ignore[arg-type]
            workflow_id=obj.get("workflowId"),  # type: ignore[arg-type]
            status=status_raw,  # type: ignore[arg-type]
            current_step_key=obj.get("currentStepKey"),  # type: ignore[arg-type]
            owner=obj.get("owner"),  # type: ignore[arg-type]
            created_at=str(obj.get("createdAt") or ""),
            updated_at=str(obj.get("updatedAt") or ""),
            links=links,
            metadata=metadata,
        )

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "workflowId": self.workflow_id,
            "status": self.status.value,
            "currentStepKey": self.current_step_key,
            "owner": self.owner,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "links": [link.to_json() for link in self.links],
            "metadata": dict(self.metadata),
        }

    @property
    def is_terminal(self) -> bool:
        return self.status == WorkItemStatus.COMPLETED

    def advance_to_step(self, step_key: str, updated_at: datetime) -> WorkItem:
        check_transition(self, WorkItemStatus.IN_PROGRESS)
        return replace(
            self,
            status=WorkItemStatus.IN_PROGRESS,
            current_step_key=step_key,
            updated_at=to_iso(updated_at),
        )

    def rewind_to_step(self, step_key: str, reasons: list[str], updated_at: datetime) -> WorkItem:
        check_transition(self, WorkItemStatus.REWORK)
        metadata = {**self.metadata, "lastReworkReasons": list(reasons)}
        return replace(
            self,
            status=WorkItemStatus.REWORK,
            current_step_key=step_key,
            updated_at=to_iso(updated_at),
            metadata=metadata,
        )

    def with_status(self, status: WorkItemStatus, updated_at: datetime) -> WorkItem:
        target = WorkItemStatus(status)
        check_transition(self, target)
        return replace(self, status=target, updated_at=to_iso(updated_at))


def check_transition(current: WorkItem, to: WorkItemStatus) -> None:
    allowed = ALLOWED_TRANSITIONS.get(current.status, set())
    if to not in allowed:
        raise IllegalTransitionError(
            f"Illegal transition for work item {current.id}: "
            f"{current.status.value} -> {to.value}"
        )


"""Work items: the state machine value type and its persistence service."""

from plan_orchestrator.orchestrator.work_items.model import (
    WorkItem,
    WorkItemLink,
    WorkItemStatus,
)
from plan_orchestrator.orchestrator.work_items.service import (
    WorkItemGateway,
    WorkItemService,
    WorkItemStateUpdate,
)

__all__ = [
    "WorkItem",
    "WorkItemGateway",
    "WorkItemLink",
    "WorkItemService",
    "WorkItemStateUpdate",
    "WorkItemStatus",
]

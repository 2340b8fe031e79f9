from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from plan_orchestrator.orchestrator.documents import SCHEMA_VERSION, Document
from plan_orchestrator.orchestrator.timeutil import parse_iso


class HandoffEventType(str, Enum):
    ATTEMPT_STARTED = "attempt-started"
    ATTEMPT_COMPLETED = "attempt-completed"
    ATTEMPT_FAILED = "attempt-failed"
    ATTEMPT_REJECTED = "attempt-rejected"
    GATE_APPROVED = "gate-approved"
    GATE_REJECTED = "gate-rejected"
    BASELINE_INTEGRATION = "baseline-integration"


class BaselineIntegrationFlag(str, Enum):
    PRE = "pre"
    POST = "post"


# Events that would (re-)execute a step's work.
EXECUTION_EVENTS: frozenset[str] = frozenset(
    {HandoffEventType.ATTEMPT_STARTED.value, HandoffEventType.ATTEMPT_COMPLETED.value}
)

# Events that, flagged `post`, acknowledge a rollback of integrated work.
REVERT_EVENTS: frozenset[str] = frozenset(
    {HandoffEventType.ATTEMPT_REJECTED.value, HandoffEventType.ATTEMPT_FAILED.value}
)

# Latest events that mean a step is done.
COMPLETION_EVENTS: frozenset[str] = frozenset(
    {
        HandoffEventType.ATTEMPT_COMPLETED.value,
        HandoffEventType.GATE_APPROVED.value,
        HandoffEventType.BASELINE_INTEGRATION.value,
    }
)


class WorkflowRef(BaseModel):
    name: str
    version: str


class StepRef(BaseModel):
    key: str
    order: int


class HandoffArtifact(Document):
    """A persisted handoff event. Never mutated or deleted once written."""

    work_item_id: str
    workflow: WorkflowRef
    step: StepRef
    event_type: str
    attempt_id: str
    timestamp: str
    actor: str
    outcome: str
    next_action: str
    baseline_integration: str
    links: list[str]
    schema_version: str = SCHEMA_VERSION

    @property
    def instant(self) -> datetime:
        return parse_iso(self.timestamp)

    def is_baseline_integrated(self) -> bool:
        return (
            self.event_type == HandoffEventType.BASELINE_INTEGRATION.value
            and self.baseline_integration == BaselineIntegrationFlag.POST.value
        )

    def is_revert(self) -> bool:
        return (
            self.event_type in REVERT_EVENTS
            and self.baseline_integration == BaselineIntegrationFlag.POST.value
        )


class HandoffArtifactRecord(HandoffArtifact):
    """A handoff artifact together with the file it was read from or written to."""

    path: str


@dataclass(frozen=True, slots=True)
class HandoffArtifactInput:
    """Caller-supplied fields for a new handoff artifact.

    `timestamp` defaults to the time of writing.
    """

    work_item_id: str
    workflow_name: str
    workflow_version: str
    step_key: str
    step_order: int
    event_type: HandoffEventType | str
    attempt_id: str
    actor: str
    outcome: str
    next_action: str
    baseline_integration: BaselineIntegrationFlag | str
    links: list[str] = field(default_factory=list)
    timestamp: datetime | None = None

    def document(self, *, timestamp: str) -> dict[str, object]:
        return {
            "workItemId": self.work_item_id,
            "workflow": {"name": self.workflow_name, "version": self.workflow_version},
            "step": {"key": self.step_key, "order": self.step_order},
            "eventType": _value(self.event_type),
            "attemptId": self.attempt_id,
            "timestamp": timestamp,
            "actor": self.actor,
            "outcome": self.outcome,
            "nextAction": self.next_action,
            "baselineIntegration": _value(self.baseline_integration),
            "links": list(self.links),
            "schemaVersion": SCHEMA_VERSION,
        }


def _value(value: Enum | str) -> str:
    return value.value if isinstance(value, Enum) else value


def latest_baseline(history: Iterable[HandoffArtifact]) -> HandoffArtifact | None:
    """Most recent baseline-integration event, or None."""

    latest: HandoffArtifact | None = None
    for artifact in history:
        if artifact.event_type != HandoffEventType.BASELINE_INTEGRATION.value:
            continue
        if latest is None or artifact.instant >= latest.instant:
            latest = artifact
    return latest


def has_revert_after(history: Iterable[HandoffArtifact], boundary: HandoffArtifact) -> bool:
    return any(a.is_revert() and a.instant > boundary.instant for a in history)


def completed_step_keys(history: Iterable[HandoffArtifact]) -> set[str]:
    """Steps whose latest event (by timestamp) marks them done."""

    latest: dict[str, HandoffArtifact] = {}
    for artifact in history:
        current = latest.get(artifact.step.key)
        if current is None or artifact.instant >= current.instant:
            latest[artifact.step.key] = artifact
    return {key for key, artifact in latest.items() if artifact.event_type in COMPLETION_EVENTS}

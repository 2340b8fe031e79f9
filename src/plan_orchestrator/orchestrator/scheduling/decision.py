from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from plan_orchestrator.orchestrator.errors import InvalidDefinition


@dataclass(frozen=True, slots=True)
class ReadyStep:
    key: str
    order: int
    parallelizable: bool
    notes: str | None = None
    supporting_tasks: tuple[str, ...] = field(default=())

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "key": self.key,
            "order": self.order,
            "parallelizable": self.parallelizable,
            "supportingTasks": list(self.supporting_tasks),
        }
        if self.notes is not None:
            out["notes"] = self.notes
        return out

    @staticmethod
    def from_json(obj: Mapping[str, object]) -> ReadyStep:
        notes = obj.get("notes")
        return ReadyStep(
            key=str(obj["key"]),
            order=int(obj["order"]),  # type: ignore[call-overload]
            parallelizable=bool(obj.get("parallelizable", False)),
            notes=notes if isinstance(notes, str) else None,
            supporting_tasks=tuple(obj.get("supportingTasks") or ()),  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class BlockedStep:
    key: str
    blocked_by: tuple[str, ...]
    supporting_tasks: tuple[str, ...] = field(default=())

    def to_json(self) -> dict[str, object]:
        return {
            "key": self.key,
            "blockedBy": list(self.blocked_by),
            "supportingTasks": list(self.supporting_tasks),
        }

    @staticmethod
    def from_json(obj: Mapping[str, object]) -> BlockedStep:
        return BlockedStep(
            key=str(obj["key"]),
            blocked_by=tuple(obj.get("blockedBy") or ()),  # type: ignore[arg-type]
            supporting_tasks=tuple(obj.get("supportingTasks") or ()),  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class SchedulingDecision:
    """Ready vs. blocked steps for a work item at a point in time.

    Derived from the workflow and completion state; persisted only as a cache.
    """

    work_item_id: str
    generated_at: str
    launch_order: tuple[str, ...]
    ready_steps: tuple[ReadyStep, ...]
    blocked_steps: tuple[BlockedStep, ...]
    rationale: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.work_item_id, str) or not self.work_item_id.strip():
            raise InvalidDefinition("SchedulingDecision.workItemId is required")
        if not isinstance(self.generated_at, str) or not self.generated_at.strip():
            raise InvalidDefinition("SchedulingDecision.generatedAt is required")
        object.__setattr__(self, "launch_order", tuple(self.launch_order))
        object.__setattr__(self, "ready_steps", tuple(self.ready_steps))
        object.__setattr__(self, "blocked_steps", tuple(self.blocked_steps))

    @property
    def ready_keys(self) -> list[str]:
        return [step.key for step in self.ready_steps]

    @property
    def blocked_keys(self) -> list[str]:
        return [step.key for step in self.blocked_steps]

    def blocked(self, step_key: str) -> BlockedStep | None:
        for step in self.blocked_steps:
            if step.key == step_key:
                return step
        return None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "workItemId": self.work_item_id,
            "generatedAt": self.generated_at,
            "launchOrder": list(self.launch_order),
            "readySteps": [step.to_json() for step in self.ready_steps],
            "blockedSteps": [step.to_json() for step in self.blocked_steps],
        }
        if self.rationale is not None:
            out["rationale"] = self.rationale
        return out

    @staticmethod
    def from_json(obj: Mapping[str, object]) -> SchedulingDecision:
        rationale = obj.get("rationale")
        return SchedulingDecision(
            work_item_id=obj.get("workItemId"),  # type: ignore[arg-type]
            generated_at=obj.get("generatedAt"),  # type: ignore[arg-type]
            launch_order=tuple(obj.get("launchOrder") or ()),  # type: ignore[arg-type]
            ready_steps=tuple(ReadyStep.from_json(s) for s in obj.get("readySteps") or ()),  # type: ignore[union-attr]
            blocked_steps=tuple(BlockedStep.from_json(s) for s in obj.get("blockedSteps") or ()),  # type: ignore[union-attr]
            rationale=rationale if isinstance(rationale, str) else None,
        )

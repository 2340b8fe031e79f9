from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from plan_orchestrator.orchestrator.errors import InvalidDefinition


def _str_tuple(value: object, *, field_name: str, step_key: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise InvalidDefinition(f"Step.{field_name} must be a list of strings for step {step_key}")
    items = tuple(value)
    if not all(isinstance(item, str) for item in items):
        raise InvalidDefinition(f"Step.{field_name} must be a list of strings for step {step_key}")
    return items


@dataclass(frozen=True, slots=True)
class Step:
    """A named unit of work within a workflow.

    Steps sharing an `order` are peers. Peers only run concurrently when every
    one of them is parallelizable.
    """

    key: str
    order: int
    exit_criteria: tuple[str, ...]
    responsible_role: str
    parallelizable: bool = False
    entry_criteria: tuple[str, ...] = field(default=())
    gate_key: str | None = None
    supporting_tasks: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise InvalidDefinition("Step.key must be a non-empty string")
        # bool is an int subclass; `order: true` in YAML is not an order.
        if isinstance(self.order, bool) or not isinstance(self.order, int) or self.order < 1:
            raise InvalidDefinition(f"Step.order must be a positive integer for step {self.key}")
        if not isinstance(self.parallelizable, bool):
            raise InvalidDefinition(f"Step.parallelizable must be a boolean for step {self.key}")
        if not isinstance(self.responsible_role, str) or not self.responsible_role.strip():
            raise InvalidDefinition(f"Step.responsibleRole must be defined for step {self.key}")
        if self.gate_key is not None and (
            not isinstance(self.gate_key, str) or not self.gate_key.strip()
        ):
            raise InvalidDefinition(f"Step.gateKey must be a non-empty string for step {self.key}")

        # Normalise list-like inputs so the value stays immutable.
        object.__setattr__(
            self,
            "exit_criteria",
            _str_tuple(self.exit_criteria, field_name="exitCriteria", step_key=self.key),
        )
        object.__setattr__(
            self,
            "entry_criteria",
            _str_tuple(self.entry_criteria, field_name="entryCriteria", step_key=self.key),
        )
        object.__setattr__(
            self,
            "supporting_tasks",
            _str_tuple(self.supporting_tasks, field_name="supportingTasks", step_key=self.key),
        )
        if not self.exit_criteria:
            raise InvalidDefinition(
                f"Step.exitCriteria must contain at least one item for step {self.key}"
            )

    @staticmethod
    def from_json(obj: Mapping[str, object]) -> Step:
        if not isinstance(obj, Mapping):
            raise InvalidDefinition("Step definition must be a mapping")
        parallel_raw = obj.get("parallelizable")
        return Step(
            key=obj.get("key"),  # type: ignore[arg-type]
            order=obj.get("order"),  # type: ignore[arg-type]
            parallelizable=False if parallel_raw is None else parallel_raw,  # type: ignore[arg-type]
            entry_criteria=obj.get("entryCriteria"),  # type: ignore[arg-type]
            exit_criteria=obj.get("exitCriteria"),  # type: ignore[arg-type]
            responsible_role=obj.get("responsibleRole"),  # type: ignore[arg-type]
            gate_key=obj.get("gateKey"),  # type: ignore[arg-type]
            supporting_tasks=obj.get("supportingTasks"),  # type: ignore[arg-type]
        )

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "key": self.key,
            "order": self.order,
            "parallelizable": self.parallelizable,
            "entryCriteria": list(self.entry_criteria),
            "exitCriteria": list(self.exit_criteria),
            "responsibleRole": self.responsible_role,
            "supportingTasks": list(self.supporting_tasks),
        }
        if self.gate_key is not None:
            out["gateKey"] = self.gate_key
        return out

    def is_parallelizable(self) -> bool:
        return self.parallelizable

    def pending_exit_criteria(self, completed: Iterable[str]) -> list[str]:
        """Exit criteria not yet satisfied, in definition order."""

        done = set(completed)
        return [criterion for criterion in self.exit_criteria if criterion not in done]

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime

from plan_orchestrator.orchestrator.errors import InvalidDefinition, NotFound
from plan_orchestrator.orchestrator.timeutil import parse_iso, to_iso

from .step import Step


def _required_str(obj: Mapping[str, object], key: str) -> str:
    value = obj.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # YAML reads `version: 1.0` as a float.
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidDefinition(f"Workflow.{key} must be a non-empty string")
    return value


def _optional_instant(value: object, *, key: str) -> str | None:
    if value is None:
        return None
    # YAML turns unquoted dates into date/datetime objects.
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        raise InvalidDefinition(f"Workflow.{key} must be an ISO-8601 string")
    try:
        parse_iso(value)
    except ValueError as e:
        raise InvalidDefinition(f"Workflow.{key} is not a valid ISO-8601 value: {value!r}") from e
    return value


@dataclass(frozen=True, slots=True)
class Workflow:
    """A versioned, ordered set of steps.

    Steps are sorted by (order, key) at construction. Orders never decrease
    along that sequence and keys are unique, so a workflow that constructs is
    always schedulable.
    """

    id: str
    name: str
    version: str
    steps: tuple[Step, ...]
    effective_from: str | None = None
    effective_to: str | None = None
    schema_version: str | None = None
    _index: dict[str, Step] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for attr in ("id", "name", "version"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                raise InvalidDefinition(f"Workflow.{attr} must be a non-empty string")
        if not self.steps:
            raise InvalidDefinition("Workflow.steps must contain at least one step")

        ordered = tuple(sorted(self.steps, key=lambda s: (s.order, s.key)))
        _ensure_orders_are_monotonic(ordered)
        _ensure_unique_step_keys(ordered, workflow_id=self.id)

        object.__setattr__(self, "steps", ordered)
        object.__setattr__(self, "_index", {step.key: step for step in ordered})

    @staticmethod
    def from_definition(definition: Mapping[str, object]) -> Workflow:
        if not isinstance(definition, Mapping):
            raise InvalidDefinition("Workflow definition must be a mapping")

        raw_steps = definition.get("steps")
        if not isinstance(raw_steps, Iterable) or isinstance(raw_steps, (str, Mapping)):
            raise InvalidDefinition("Workflow.steps must contain at least one step")
        steps = tuple(
            step if isinstance(step, Step) else Step.from_json(step)  # type: ignore[arg-type]
            for step in raw_steps
        )

        schema_raw = definition.get("schemaVersion")
        return Workflow(
            id=_required_str(definition, "id"),
            name=_required_str(definition, "name"),
            version=_required_str(definition, "version"),
            steps=steps,
            effective_from=_optional_instant(definition.get("effectiveFrom"), key="effectiveFrom"),
            effective_to=_optional_instant(definition.get("effectiveTo"), key="effectiveTo"),
            schema_version=None if schema_raw is None else str(schema_raw),
        )

    def snapshot(self) -> dict[str, object]:
        out: dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "steps": [step.to_json() for step in self.steps],
        }
        if self.effective_from is not None:
            out["effectiveFrom"] = self.effective_from
        if self.effective_to is not None:
            out["effectiveTo"] = self.effective_to
        if self.schema_version is not None:
            out["schemaVersion"] = self.schema_version
        return out

    def get_step(self, step_key: str) -> Step:
        step = self._index.get(step_key)
        if step is None:
            raise NotFound(f"Unknown step key {step_key} in workflow {self.id}")
        return step

    def has_step(self, step_key: str) -> bool:
        return step_key in self._index

    @property
    def step_keys(self) -> list[str]:
        return [step.key for step in self.steps]

    def list_parallelizable_steps(self) -> list[Step]:
        return [step for step in self.steps if step.is_parallelizable()]

    def is_effective(self, at: datetime) -> bool:
        """Whether `at` falls inside the optional validity window (inclusive)."""

        instant = parse_iso(to_iso(at))
        if self.effective_from is not None and instant < parse_iso(self.effective_from):
            return False
        if self.effective_to is not None and instant > parse_iso(self.effective_to):
            return False
        return True


def _ensure_orders_are_monotonic(steps: tuple[Step, ...]) -> None:
    for previous, current in zip(steps, steps[1:]):
        if current.order < previous.order:
            raise InvalidDefinition(
                "Workflow steps must be ordered ascending; "
                f"{current.key} has order {current.order} while {previous.key} "
                f"has order {previous.order}"
            )


def _ensure_unique_step_keys(steps: tuple[Step, ...], *, workflow_id: str) -> None:
    seen: set[str] = set()
    for step in steps:
        if step.key in seen:
            raise InvalidDefinition(
                f"Duplicate step key {step.key} detected in workflow {workflow_id}"
            )
        seen.add(step.key)

"""Typed errors raised by the orchestrator services.

Four families:
- validation: malformed input, rejected before anything is written
- not found: unknown workflow, step or work item
- conflict: recoverable by retrying with fresh input or accepting current state
- invariant violation: the caller must supply a corrected event sequence
"""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""


class InvalidDefinition(OrchestratorError, ValueError):
    """Raised when input fails structural validation."""


class NotFound(OrchestratorError, LookupError):
    """Raised when a referenced entity does not exist."""


class Conflict(OrchestratorError):
    """Raised when the requested change collides with persisted state."""


class AttemptAlreadyClaimed(Conflict):
    def __init__(self, attempt_id: str) -> None:
        super().__init__(f"Attempt {attempt_id} already claimed")
        self.attempt_id = attempt_id


class WorkItemAlreadyExists(Conflict):
    def __init__(self, work_item_id: str) -> None:
        super().__init__(f"Work item {work_item_id} already exists")
        self.work_item_id = work_item_id


class ArtifactAlreadyExists(Conflict):
    pass


class IllegalTransitionError(Conflict, ValueError):
    pass


class InvariantViolation(OrchestratorError):
    """Raised when a write would break a safety invariant of the audit trail."""


class BaselineBoundaryViolation(InvariantViolation):
    def __init__(self, *, step_key: str, work_item_id: str) -> None:
        super().__init__(
            f"Baseline integration boundary: step {step_key} for work item {work_item_id} "
            "requires explicit revert before re-execution"
        )
        self.step_key = step_key
        self.work_item_id = work_item_id


class SchemaValidationFailed(InvariantViolation):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("Handoff artifact invalid: " + "; ".join(errors))
        self.errors = errors

"""Exclusive attempt claims with retry lineage."""

from plan_orchestrator.orchestrator.assignment.service import (
    AssignmentService,
    ClaimExecutor,
    ClaimRecord,
)

__all__ = ["AssignmentService", "ClaimExecutor", "ClaimRecord"]

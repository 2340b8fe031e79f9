"""Reviewer gate decisions."""

from plan_orchestrator.orchestrator.gates.service import (
    GateDecision,
    GateDecisionRecord,
    GateService,
)

__all__ = ["GateDecision", "GateDecisionRecord", "GateService"]

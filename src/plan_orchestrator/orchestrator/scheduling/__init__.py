"""Deterministic ready/blocked scheduling over a workflow."""

from plan_orchestrator.orchestrator.scheduling.decision import (
    BlockedStep,
    ReadyStep,
    SchedulingDecision,
)
from plan_orchestrator.orchestrator.scheduling.service import ScheduleStore, SchedulingService

__all__ = [
    "BlockedStep",
    "ReadyStep",
    "ScheduleStore",
    "SchedulingDecision",
    "SchedulingService",
]

"""Workflow definitions: steps, versioned workflows and the registry that loads them."""

from plan_orchestrator.orchestrator.workflow.definition import Workflow
from plan_orchestrator.orchestrator.workflow.registry import WorkflowCache, WorkflowRegistry
from plan_orchestrator.orchestrator.workflow.step import Step

__all__ = ["Step", "Workflow", "WorkflowCache", "WorkflowRegistry"]

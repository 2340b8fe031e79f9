"""Append-only handoff artifacts and the baseline-integration boundary."""

from plan_orchestrator.orchestrator.artifacts.handoff import (
    BaselineIntegrationFlag,
    HandoffArtifact,
    HandoffArtifactInput,
    HandoffArtifactRecord,
    HandoffEventType,
)
from plan_orchestrator.orchestrator.artifacts.service import ArtifactService

__all__ = [
    "ArtifactService",
    "BaselineIntegrationFlag",
    "HandoffArtifact",
    "HandoffArtifactInput",
    "HandoffArtifactRecord",
    "HandoffEventType",
]

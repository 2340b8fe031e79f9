"""Plan-to-execution orchestrator.

Coordinates work items through versioned workflows:
- deterministic ready/blocked scheduling
- exclusive, file-backed attempt claims with retry lineage
- an append-only, schema-validated handoff log
- reviewer gates that can force rework
"""

__version__ = "0.1.0"

from plan_orchestrator.orchestrator.config import OrchestratorSettings

__all__ = ["__version__", "OrchestratorSettings"]

"""FastAPI server adapter for plan-orchestrator.

Design intent:
- Keep business logic in `plan_orchestrator.orchestrator.*`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from plan_orchestrator.server.app import create_app

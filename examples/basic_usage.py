#!/usr/bin/env python3
"""Programmatic scheduling example.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* create a work item for a workflow (unless it already exists)
* compute the ready/blocked schedule from the handoff history
* persist the snapshot to `<artifacts>/schedule/<workItemId>.json`

The work item and workflow are passed as arguments (not read from `.env`).
"""

from __future__ import annotations

import argparse
from typing import Sequence

from plan_orchestrator.orchestrator.config import OrchestratorSettings
from plan_orchestrator.orchestrator.engine import Orchestrator
from plan_orchestrator.orchestrator.errors import WorkItemAlreadyExists
from plan_orchestrator.orchestrator.logging import configure_logging


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Schedule a work item (programmatic example).")
    parser.add_argument("--workflow", required=True, help="Workflow id, e.g. wf-001-plan-orchestrator")
    parser.add_argument("--work-item", required=True, help="Work item id")
    parser.add_argument("--owner", default="planner@example.com", help="Work item owner")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = OrchestratorSettings()
    configure_logging(settings.log_level)

    orchestrator = Orchestrator(settings)

    try:
        orchestrator.work_items.create_work_item(
            work_item_id=args.work_item, workflow_id=args.workflow, owner=args.owner
        )
    except WorkItemAlreadyExists as exc:
        print(str(exc))

    decision = orchestrator.schedule(args.work_item)

    print(f"Ready: {', '.join(decision.ready_keys) or 'none'}")
    for blocked in decision.blocked_steps:
        print(f"Blocked: {blocked.key} (by {', '.join(blocked.blocked_by)})")
    print(f"Persisted to: {orchestrator.schedules.path_for(args.work_item)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

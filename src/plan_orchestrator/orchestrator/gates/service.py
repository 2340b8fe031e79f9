"""Record reviewer gate decisions.

A decision is stored at `<artifacts>/gates/<workItemId>/<gateKey>.json`; a new
decision for the same gate replaces the previous one. Rejecting a gate rewinds
the work item to a re-entry step (the gate key when none is given). Approval
changes nothing else: advancing past a gate is left to scheduling and claims.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import Field, ValidationError

from plan_orchestrator.orchestrator.documents import SCHEMA_VERSION, Document
from plan_orchestrator.orchestrator.errors import InvalidDefinition, NotFound
from plan_orchestrator.orchestrator.paths import safe_component
from plan_orchestrator.orchestrator.timeutil import to_iso
from plan_orchestrator.orchestrator.work_items.service import WorkItemGateway

logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class GateDecisionRecord(Document):
    schema_version: str = Field(default=SCHEMA_VERSION)
    work_item_id: str
    gate_key: str
    decision: GateDecision
    reasons: list[str]
    reviewer: str
    decided_at: str
    reentry_step_key: str | None = None
    path: str | None = Field(default=None, exclude=True)

    @property
    def requires_reentry(self) -> bool:
        return self.decision == GateDecision.REJECT


class GateService:
    def __init__(
        self,
        *,
        work_item_service: WorkItemGateway,
        artifacts_dir: Path | None = None,
    ) -> None:
        self._work_items = work_item_service
        self._artifacts_dir = artifacts_dir

    def record_decision(
        self,
        *,
        work_item_id: str,
        gate_key: str,
        decision: GateDecision | str,
        reasons: list[str],
        reviewer: str,
        decided_at: datetime,
        reentry_step_key: str | None = None,
        artifacts_dir: Path | None = None,
    ) -> GateDecisionRecord:
        """Persist a decision; on reject, rewind the work item for rework.

        Raises:
            InvalidDefinition: unknown decision, blank reviewer, or a reject without reasons.
            NotFound: rejecting a gate on an unknown work item or re-entry step.
            IllegalTransitionError: rejecting a gate on a work item that cannot be reworked.
        """

        try:
            verdict = GateDecision(decision)
        except ValueError as e:
            raise InvalidDefinition(f"Gate decision must be approve or reject, got {decision!r}") from e
        cleaned = [reason.strip() for reason in reasons if reason.strip()]
        if verdict == GateDecision.REJECT and not cleaned:
            raise InvalidDefinition("Provide at least one reason when rejecting a gate")
        if not reviewer.strip():
            raise InvalidDefinition("Gate reviewer must be a non-empty string")

        path = self._gate_path(work_item_id, gate_key, artifacts_dir)
        step_key = reentry_step_key or gate_key
        if verdict == GateDecision.REJECT:
            # Every way the rewind can fail must surface before the decision is written.
            self._work_items.check_rewind(work_item_id, step_key)

        record = GateDecisionRecord(
            work_item_id=work_item_id,
            gate_key=gate_key,
            decision=verdict,
            reasons=cleaned,
            reviewer=reviewer,
            decided_at=to_iso(decided_at),
            reentry_step_key=reentry_step_key,
            path=str(path),
        )

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(record.dumps(), encoding="utf-8")

        if record.requires_reentry:
            self._work_items.rewind_to_step(work_item_id, step_key, cleaned)

        logger.info(
            "Gate decision recorded",
            extra={
                "work_item_id": work_item_id,
                "gate_key": gate_key,
                "decision": verdict.value,
                "reviewer": reviewer,
            },
        )
        return record

    def get_decision(
        self, work_item_id: str, gate_key: str, *, artifacts_dir: Path | None = None
    ) -> GateDecisionRecord:
        path = self._gate_path(work_item_id, gate_key, artifacts_dir)
        if not path.exists():
            raise NotFound(f"No decision recorded for gate {gate_key} on work item {work_item_id}")
        return _read_decision(path)

    def list_decisions(
        self, work_item_id: str, *, artifacts_dir: Path | None = None
    ) -> list[GateDecisionRecord]:
        gate_dir = self._root(artifacts_dir) / "gates" / safe_component(work_item_id, "workItemId")
        if not gate_dir.exists():
            return []
        records: list[GateDecisionRecord] = []
        for path in sorted(gate_dir.glob("*.json")):
            try:
                records.append(_read_decision(path))
            except (json.JSONDecodeError, ValidationError):
                logger.warning(
                    "Gate decision file is not valid; skipping",
                    extra={"path": str(path)},
                )
        return records

    def _root(self, artifacts_dir: Path | None) -> Path:
        root = artifacts_dir if artifacts_dir is not None else self._artifacts_dir
        if root is None:
            raise InvalidDefinition("artifacts_dir is required to record gate decisions")
        return root

    def _gate_path(self, work_item_id: str, gate_key: str, artifacts_dir: Path | None) -> Path:
        return (
            self._root(artifacts_dir)
            / "gates"
            / safe_component(work_item_id, "workItemId")
            / f"{safe_component(gate_key, 'gateKey')}.json"
        )


def _read_decision(path: Path) -> GateDecisionRecord:
    raw = json.loads(path.read_text(encoding="utf-8"))
    return GateDecisionRecord.model_validate({**raw, "path": str(path)})

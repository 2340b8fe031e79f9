"""File-backed exclusive claims for step attempts.

Each attempt id maps to exactly one claim file,
`<artifacts>/claims/<attemptId>.json`. A claim is permanent: retries mint a
new attempt id and link back to the latest earlier claim for the same
(work item, step) through `previousAttemptId`.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator

from plan_orchestrator.orchestrator.documents import SCHEMA_VERSION, Document, write_exclusive
from plan_orchestrator.orchestrator.errors import (
    AttemptAlreadyClaimed,
    InvalidDefinition,
    NotFound,
)
from plan_orchestrator.orchestrator.paths import safe_component
from plan_orchestrator.orchestrator.timeutil import parse_iso, to_iso

logger = logging.getLogger(__name__)


class ClaimExecutor(Document):
    id: str
    display_name: str
    run_id: str | None = None

    @field_validator("id", "display_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value


class ClaimRecord(Document):
    """Persisted claim for a single attempt."""

    schema_version: str = Field(default=SCHEMA_VERSION)
    attempt_id: str
    work_item_id: str
    step_key: str
    claimed_at: str
    executor: ClaimExecutor
    status: Literal["running"] = "running"
    artifact_path: str
    previous_attempt_id: str | None = None


class AssignmentService:
    """Claim ledger for execution attempts."""

    def __init__(self, artifacts_dir: Path | None = None) -> None:
        self._artifacts_dir = artifacts_dir

    def claim_attempt(
        self,
        *,
        attempt_id: str,
        work_item_id: str,
        step_key: str,
        executor: ClaimExecutor | dict[str, object],
        claimed_at: datetime,
        artifacts_dir: Path | None = None,
    ) -> ClaimRecord:
        """Claim `attempt_id` for (work item, step).

        Raises:
            AttemptAlreadyClaimed: a claim for `attempt_id` already exists.
            InvalidDefinition: ids are empty or not file-name safe, or the executor is malformed.
        """

        claims_dir = self._claims_dir(artifacts_dir)
        safe_component(attempt_id, "attemptId")
        if not isinstance(work_item_id, str) or not work_item_id.strip():
            raise InvalidDefinition("workItemId must be a non-empty string")
        if not isinstance(step_key, str) or not step_key.strip():
            raise InvalidDefinition("stepKey must be a non-empty string")
        executor_model = _coerce_executor(executor)

        claim_path = claims_dir / f"{attempt_id}.json"
        if claim_path.exists():
            raise AttemptAlreadyClaimed(attempt_id)

        previous = self._latest_claim(claims_dir, work_item_id=work_item_id, step_key=step_key)

        record = ClaimRecord(
            attempt_id=attempt_id,
            work_item_id=work_item_id,
            step_key=step_key,
            claimed_at=to_iso(claimed_at),
            executor=executor_model,
            artifact_path=str(claim_path),
            previous_attempt_id=previous.attempt_id if previous is not None else None,
        )

        # Exclusive create closes the gap between the existence check and the write.
        try:
            write_exclusive(claim_path, record.dumps())
        except FileExistsError as e:
            raise AttemptAlreadyClaimed(attempt_id) from e

        logger.info(
            "Attempt claimed",
            extra={
                "attempt_id": attempt_id,
                "work_item_id": work_item_id,
                "step_key": step_key,
                "executor_id": executor_model.id,
                "previous_attempt_id": record.previous_attempt_id,
            },
        )
        return record

    def get_claim(self, attempt_id: str, *, artifacts_dir: Path | None = None) -> ClaimRecord:
        path = self._claims_dir(artifacts_dir) / f"{safe_component(attempt_id, 'attemptId')}.json"
        if not path.exists():
            raise NotFound(f"No claim recorded for attempt {attempt_id}")
        return ClaimRecord.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def list_claims(
        self,
        work_item_id: str,
        *,
        step_key: str | None = None,
        artifacts_dir: Path | None = None,
    ) -> list[ClaimRecord]:
        """Claims for a work item (optionally one step), oldest first."""

        claims = [
            claim
            for claim in _read_claims(self._claims_dir(artifacts_dir))
            if claim.work_item_id == work_item_id
            and (step_key is None or claim.step_key == step_key)
        ]
        return sorted(claims, key=lambda c: (parse_iso(c.claimed_at), c.attempt_id))

    def _claims_dir(self, artifacts_dir: Path | None) -> Path:
        root = artifacts_dir if artifacts_dir is not None else self._artifacts_dir
        if root is None:
            raise InvalidDefinition("artifacts_dir is required to claim attempts")
        return root / "claims"

    def _latest_claim(
        self, claims_dir: Path, *, work_item_id: str, step_key: str
    ) -> ClaimRecord | None:
        history = [
            claim
            for claim in _read_claims(claims_dir)
            if claim.work_item_id == work_item_id and claim.step_key == step_key
        ]
        if not history:
            return None
        return max(history, key=lambda c: parse_iso(c.claimed_at))


def _coerce_executor(executor: ClaimExecutor | dict[str, object]) -> ClaimExecutor:
    if isinstance(executor, ClaimExecutor):
        return executor
    try:
        return ClaimExecutor.model_validate(executor)
    except ValidationError as e:
        raise InvalidDefinition(f"Invalid executor: {e}") from e


def _read_claims(claims_dir: Path) -> list[ClaimRecord]:
    if not claims_dir.exists():
        return []

    records: list[ClaimRecord] = []
    for path in sorted(claims_dir.glob("*.json")):
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            records.append(ClaimRecord.model_validate(raw))
        except (json.JSONDecodeError, ValidationError):
            logger.warning(
                "Claim file is not a valid claim record; skipping",
                extra={"path": str(path)},
            )
    return records

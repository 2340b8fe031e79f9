"""Append-only handoff log with schema validation.

Write path for a candidate artifact:
1. stamp the timestamp and assemble the document
2. enforce the baseline-integration boundary against the step's history
3. validate against the JSON Schema
4. create a new file; existing files are never overwritten, and a second
   event for the same attempt in the same millisecond gets a suffixed name

Once a step's work has been integrated into the baseline, starting or
completing it again requires a recorded revert (`attempt-rejected` or
`attempt-failed` flagged `post`) after that integration.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from jsonschema import validators
from jsonschema.protocols import Validator
from pydantic import ValidationError

from plan_orchestrator.orchestrator.documents import write_exclusive
from plan_orchestrator.orchestrator.errors import (
    ArtifactAlreadyExists,
    BaselineBoundaryViolation,
    InvalidDefinition,
    SchemaValidationFailed,
)
from plan_orchestrator.orchestrator.paths import safe_component
from plan_orchestrator.orchestrator.timeutil import parse_iso, to_iso, utc_now

from .handoff import (
    EXECUTION_EVENTS,
    HandoffArtifact,
    HandoffArtifactInput,
    HandoffArtifactRecord,
    HandoffEventType,
    completed_step_keys,
    has_revert_after,
    latest_baseline,
)

logger = logging.getLogger(__name__)


class ArtifactService:
    """Reads and appends handoff artifacts under `<artifacts>/handoff/`."""

    def __init__(self, artifacts_dir: Path, schema_path: Path) -> None:
        self._artifacts_dir = artifacts_dir
        self._handoff_dir = artifacts_dir / "handoff"
        self._schema_path = schema_path
        self._validator: Validator | None = None

    @property
    def handoff_dir(self) -> Path:
        return self._handoff_dir

    def write_handoff_artifact(self, data: HandoffArtifactInput) -> HandoffArtifactRecord:
        validator = self._ensure_validator()

        timestamp = to_iso(data.timestamp or utc_now())
        document = data.document(timestamp=timestamp)

        self._enforce_baseline_boundary(document)
        _validate(validator, document)
        artifact = HandoffArtifact.model_validate(document)

        path = self._write_new(artifact)

        logger.info(
            "Handoff artifact recorded",
            extra={
                "work_item_id": artifact.work_item_id,
                "step_key": artifact.step.key,
                "attempt_id": artifact.attempt_id,
                "event_type": artifact.event_type,
                "path": str(path),
            },
        )
        return HandoffArtifactRecord(**artifact.model_dump(), path=str(path))

    def list_handoff_artifacts(self, work_item_id: str) -> list[HandoffArtifactRecord]:
        """All artifacts for a work item, oldest first."""

        records = [r for r in self._read_all() if r.work_item_id == work_item_id]
        return sorted(records, key=lambda r: (r.instant, Path(r.path).stem))

    def list_step_history(self, work_item_id: str, step_key: str) -> list[HandoffArtifactRecord]:
        return [r for r in self.list_handoff_artifacts(work_item_id) if r.step.key == step_key]

    def completed_steps(self, work_item_id: str) -> set[str]:
        return completed_step_keys(self.list_handoff_artifacts(work_item_id))

    def _enforce_baseline_boundary(self, document: dict[str, object]) -> None:
        event_type = document["eventType"]
        work_item_id = str(document["workItemId"])
        step_key = str(document["step"]["key"])  # type: ignore[index]

        history = self.list_step_history(work_item_id, step_key)
        baseline = latest_baseline(history)
        if baseline is None:
            return
        if event_type == HandoffEventType.BASELINE_INTEGRATION.value:
            return
        if event_type in EXECUTION_EVENTS and not has_revert_after(history, baseline):
            logger.warning(
                "Rejected handoff crossing the baseline integration boundary",
                extra={
                    "work_item_id": work_item_id,
                    "step_key": step_key,
                    "event_type": event_type,
                    "baseline_at": baseline.timestamp,
                },
            )
            raise BaselineBoundaryViolation(step_key=step_key, work_item_id=work_item_id)

    def _write_new(self, artifact: HandoffArtifact) -> Path:
        """Create the artifact file; never replaces an existing one.

        The name is `<timestamp>-<workItem>-<step>-<attempt>.json`. A second,
        different event for the same attempt in the same millisecond is stored
        as `<same stem>-<eventType>.json`, which sorts after the first.
        """

        stem = _file_stem(artifact)
        text = artifact.dumps()
        path = self._handoff_dir / f"{stem}.json"
        try:
            write_exclusive(path, text)
            return path
        except FileExistsError:
            if _stored_event_type(path) == artifact.event_type:
                raise ArtifactAlreadyExists(f"Handoff artifact already exists: {path}") from None

        path = self._handoff_dir / f"{stem}-{artifact.event_type}.json"
        try:
            write_exclusive(path, text)
        except FileExistsError as e:
            raise ArtifactAlreadyExists(f"Handoff artifact already exists: {path}") from e
        return path

    def _ensure_validator(self) -> Validator:
        if self._validator is None:
            try:
                schema = json.loads(self._schema_path.read_text(encoding="utf-8"))
            except FileNotFoundError as e:
                raise InvalidDefinition(f"Handoff schema not found: {self._schema_path}") from e
            cls = validators.validator_for(schema)
            cls.check_schema(schema)
            self._validator = cls(schema, format_checker=cls.FORMAT_CHECKER)
        return self._validator

    def _read_all(self) -> list[HandoffArtifactRecord]:
        if not self._handoff_dir.exists():
            return []

        records: list[HandoffArtifactRecord] = []
        for path in sorted(self._handoff_dir.glob("*.json")):
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                record = HandoffArtifactRecord.model_validate({**raw, "path": str(path)})
                parse_iso(record.timestamp)
            except (json.JSONDecodeError, ValidationError, ValueError, TypeError):
                logger.warning(
                    "Handoff file is not a valid artifact; skipping",
                    extra={"path": str(path)},
                )
                continue
            records.append(record)
        return records


def _validate(validator: Validator, document: dict[str, object]) -> None:
    errors = sorted(validator.iter_errors(document), key=lambda e: e.json_path)
    if errors:
        raise SchemaValidationFailed([f"{e.json_path} {e.message}" for e in errors])


def _file_stem(artifact: HandoffArtifact) -> str:
    stamp = artifact.timestamp.replace(":", "-")
    work_item = safe_component(artifact.work_item_id, "workItemId")
    step = safe_component(artifact.step.key, "step.key")
    attempt = safe_component(artifact.attempt_id, "attemptId")
    return f"{stamp}-{work_item}-{step}-{attempt}"


def _stored_event_type(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8")).get("eventType")
    except (json.JSONDecodeError, AttributeError):
        return None

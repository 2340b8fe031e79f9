"""Load workflow definitions from a directory of YAML/JSON files.

The registry scans the directory once and keeps the parsed workflows in an
injected cache. `refresh()` reloads explicitly; nothing is invalidated
implicitly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from plan_orchestrator.orchestrator.errors import InvalidDefinition, NotFound

from .definition import Workflow

logger = logging.getLogger(__name__)

WORKFLOW_FILE_SUFFIXES: frozenset[str] = frozenset({".yaml", ".yml", ".json"})


@dataclass
class WorkflowCache:
    """Holds loaded workflows keyed by id. `None` means not loaded yet."""

    workflows: dict[str, Workflow] | None = field(default=None)

    def get(self) -> dict[str, Workflow] | None:
        return self.workflows

    def put(self, workflows: dict[str, Workflow]) -> None:
        self.workflows = workflows

    def invalidate(self) -> None:
        self.workflows = None


class WorkflowRegistry:
    """Read-only lookup of workflows by id."""

    def __init__(self, workflows_dir: Path, *, cache: WorkflowCache | None = None) -> None:
        self._workflows_dir = workflows_dir
        self._cache = cache if cache is not None else WorkflowCache()

    @property
    def workflows_dir(self) -> Path:
        return self._workflows_dir

    def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = self._ensure_cache().get(workflow_id)
        if workflow is None:
            raise NotFound(f"Workflow {workflow_id} not found in {self._workflows_dir}")
        return workflow

    def list_workflows(self) -> list[Workflow]:
        return sorted(self._ensure_cache().values(), key=lambda w: w.id)

    def refresh(self) -> None:
        self._cache.invalidate()
        self._cache.put(self._load_workflows())

    def _ensure_cache(self) -> dict[str, Workflow]:
        cached = self._cache.get()
        if cached is None:
            cached = self._load_workflows()
            self._cache.put(cached)
        return cached

    def _load_workflows(self) -> dict[str, Workflow]:
        if not self._workflows_dir.exists():
            logger.info(
                "Workflow directory does not exist; no workflows loaded",
                extra={"path": str(self._workflows_dir)},
            )
            return {}

        workflows: dict[str, Workflow] = {}
        sources: dict[str, Path] = {}
        # Stable ordering: filename sort.
        for path in sorted(self._workflows_dir.iterdir(), key=lambda p: p.name):
            if not path.is_file() or path.suffix.lower() not in WORKFLOW_FILE_SUFFIXES:
                continue

            definition = read_workflow_file(path)
            try:
                workflow = Workflow.from_definition(definition)
            except InvalidDefinition as e:
                raise InvalidDefinition(f"{path}: {e}") from e

            if workflow.id in workflows:
                raise InvalidDefinition(
                    f"Duplicate workflow id {workflow.id} in {path} "
                    f"(already defined in {sources[workflow.id]})"
                )
            workflows[workflow.id] = workflow
            sources[workflow.id] = path

        logger.info(
            "Workflows loaded",
            extra={"path": str(self._workflows_dir), "count": len(workflows)},
        )
        return workflows


def read_workflow_file(path: Path) -> dict[str, object]:
    """Parse a single workflow definition file (JSON or YAML)."""

    raw = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidDefinition(f"Workflow file could not be parsed: {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidDefinition(f"Workflow file must contain a mapping: {path}")
    return data

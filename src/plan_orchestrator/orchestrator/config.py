"""Configuration for the file-backed orchestrator.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Every service persists under a single artifacts directory and owns its own
sub-directory there.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_HANDOFF_SCHEMA = Path(__file__).parent / "artifacts" / "schemas" / "handoff-artifact.schema.json"


class OrchestratorSettings(BaseSettings):
    """Settings for the orchestrator services.

    Environment variables:
    - ORCHESTRATOR_ARTIFACTS_DIR       (optional)
    - ORCHESTRATOR_WORKFLOWS_DIR       (optional)
    - ORCHESTRATOR_HANDOFF_SCHEMA_PATH (optional)
    - LOG_LEVEL                        (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `OrchestratorSettings(_env_file=path_to_env)`.
    """

    artifacts_dir: Path = Field(
        default=Path("artifacts"),
        validation_alias="ORCHESTRATOR_ARTIFACTS_DIR",
        description="Root directory for claims, handoffs, gates, schedules and work items",
    )

    workflows_override: Path | None = Field(
        default=None,
        validation_alias="ORCHESTRATOR_WORKFLOWS_DIR",
        description="Directory holding workflow definitions (defaults to <artifacts>/workflows)",
    )

    handoff_schema_path: Path = Field(
        default=BUNDLED_HANDOFF_SCHEMA,
        validation_alias="ORCHESTRATOR_HANDOFF_SCHEMA_PATH",
        description="JSON Schema used to validate handoff artifacts",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    # Dev-friendly CORS for the REST adapter. Override via ORCHESTRATOR_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="ORCHESTRATOR_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def workflows_dir(self) -> Path:
        if self.workflows_override is not None:
            return self.workflows_override
        return self.artifacts_dir / "workflows"

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

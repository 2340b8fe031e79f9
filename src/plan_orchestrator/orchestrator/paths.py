"""File-name helpers for documents keyed by caller-supplied ids."""

from __future__ import annotations

import re

from plan_orchestrator.orchestrator.errors import InvalidDefinition

_SAFE_COMPONENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def safe_component(value: str, field_name: str) -> str:
    """Return `value` if it can be used as a single path component.

    Ids become file names, so separators and leading dots are rejected.
    """

    if not isinstance(value, str) or not _SAFE_COMPONENT.match(value):
        raise InvalidDefinition(
            f"{field_name} must be a non-empty file-name safe identifier, got {value!r}"
        )
    return value

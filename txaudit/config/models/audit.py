"""Audit transaction configuration models."""

from typing import Any

from pydantic import BaseModel, Field


class AuditConfig(BaseModel):
    """How transactions are turned into audit entries."""

    default_fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Fields merged into every entry (environment, version...)",
    )
    escalate_failed_segments: bool = Field(
        default=True,
        description="Log the consolidated entry as error when any segment failed",
    )
    include_segments: bool = Field(
        default=True,
        description="Summarize segments inside the consolidated entry",
    )

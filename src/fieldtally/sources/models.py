"""Pydantic wire models for row-store payloads.

The row store speaks camelCase JSON; models expose snake_case attributes and
accept either spelling. Unknown fields are ignored so a new sheet column never
breaks a read. Numeric fields default to zero because the sheets leave cells
blank more often than not.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_WHITESPACE = re.compile(r"\s")


def slug_id(prefix: str, index: int, name: str) -> str:
    """``slug_id("c", 0, "Ana Lopez")`` → ``"c_0_Ana_Lopez"``."""
    return f"{prefix}_{index}_{_WHITESPACE.sub('_', name)}"


def split_rigs(value: Any) -> Any:
    """Rigs arrive as a list or as one comma-separated cell."""
    if value is None:
        return []
    if isinstance(value, str):
        return [rig.strip() for rig in value.split(",") if rig.strip()]
    return value


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Collector(WireModel):
    id: str
    name: str
    rigs: list[str] = Field(default_factory=list)

    @field_validator("rigs", mode="before")
    @classmethod
    def _split_rigs(cls, value: Any) -> Any:
        return split_rigs(value)


class Task(WireModel):
    id: str
    name: str
    label: str


class CollectorStats(WireModel):
    total_assigned: int = 0
    total_completed: int = 0
    total_logged_hours: float = 0.0
    weekly_completed: int = 0
    weekly_logged_hours: float = 0.0
    completion_rate: float = 0.0


class DashboardSummary(WireModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    recollect_tasks: int = 0
    recollections: int = 0
    completion_rate: float = 0.0


class TaskRequirement(WireModel):
    task_name: str = ""
    required_hours: float = 0.0
    logged_hours: float = 0.0
    remaining_hours: float = 0.0
    status: str = ""


class AdminCollectorDetail(WireModel):
    name: str
    rigs: list[str] = Field(default_factory=list)
    total_assigned: int = 0
    total_completed: int = 0
    total_logged_hours: float = 0.0
    weekly_logged_hours: float = 0.0
    completion_rate: float = 0.0

    @field_validator("rigs", mode="before")
    @classmethod
    def _split_rigs(cls, value: Any) -> Any:
        return split_rigs(value)


class SubmitPayload(WireModel):
    """One row mutation. Extra keys are forwarded untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    collector: str
    task: str
    action_type: str
    hours: float | None = None
    notes: str | None = None

    @field_validator("collector", "task", "action_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class SubmitResponse(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    success: bool = True
    message: str = "Success"


__all__ = [
    "AdminCollectorDetail",
    "Collector",
    "CollectorStats",
    "DashboardSummary",
    "SubmitPayload",
    "SubmitResponse",
    "Task",
    "TaskRequirement",
    "WireModel",
    "slug_id",
]

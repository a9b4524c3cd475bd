"""
Pydantic models for API request/response validation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any


# === Kingdoms ===

class CreateKingdomRequest(BaseModel):
    name: str | None = None
    preset: str | None = None
    config: dict[str, Any] | None = None
    now: int | None = None


class TimedRequest(BaseModel):
    """Body of any command; ``now`` defaults to the host clock."""
    now: int | None = Field(default=None, ge=0)


class BuildRequest(TimedRequest):
    building: str


class KingdomSummary(BaseModel):
    id: str
    name: str
    preset: str
    saved_at: int


class KingdomResponse(BaseModel):
    id: str
    name: str
    now: int
    resources: dict[str, int]
    plots: list[dict[str, Any]]
    next_plot_cost: int
    is_starving: bool
    active_event: dict[str, Any] | None = None
    config: dict[str, Any]


# === Commands ===

class CommandResponse(BaseModel):
    success: bool
    action: str
    plot_index: int | None = None
    reason: str | None = None
    resources: dict[str, int]
    plot: dict[str, Any] | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class AdvanceResponse(BaseModel):
    now: int
    resources: dict[str, int]
    is_starving: bool
    ready_plots: list[int]
    active_event: dict[str, Any] | None = None


class ProgressResponse(BaseModel):
    plot_index: int
    progress: float

"""Modelos de la revisión de operador (checkpoint antes de entregar al cliente)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from core.domain.models import utcnow

Severity = Literal["info", "suggestion", "issue", "critical"]
ReviewStatus = Literal["pending", "in_progress", "approved", "needs_revision"]
Recommendation = Literal[
    "needs_major_revision",
    "needs_minor_revision",
    "ready_with_suggestions",
    "ready_for_client",
]


class ChecklistItem(BaseModel):
    id: str
    label: str
    weight: int = Field(..., ge=0)
    checked: bool = False
    note: str = ""


class ChecklistCategory(BaseModel):
    title: str
    items: list[ChecklistItem] = Field(default_factory=list)


class ReviewComment(BaseModel):
    id: str
    section: str
    comment: str
    severity: Severity = "info"
    timestamp: datetime = Field(default_factory=utcnow)


class Review(BaseModel):
    id: str
    blueprint_version: str = "1.0"
    project: str = "unknown"
    operator: str = "Unknown"
    created_at: datetime = Field(default_factory=utcnow)
    status: ReviewStatus = "pending"
    checklist: dict[str, ChecklistCategory] = Field(default_factory=dict)
    comments: list[ReviewComment] = Field(default_factory=list)
    overall_score: int = Field(default=0, ge=0, le=100)
    decision: Literal["approve", "revise"] | None = None
    decision_notes: str = ""
    decided_at: datetime | None = None


class AutoReviewResult(BaseModel):
    score: float = Field(..., ge=0.0, le=100.0)
    passed: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    recommendation: Recommendation

"""Registro de uso de tokens y coste estimado de las llamadas al LLM.

Cada sesión (una ejecución de CLI/pipeline) acumula operaciones; `save()`
añade la sesión a un log JSON con todas las sesiones previas.
"""

from __future__ import annotations

import json
import logging
import math
import secrets
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from adapters.json_exporter import write_json_atomic

logger = logging.getLogger(__name__)

# USD por millón de tokens.
MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-opus-4-20250514": {"input": 15.00, "output": 75.00},
    "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
    "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
    "claude-3-opus-20240229": {"input": 15.00, "output": 75.00},
}
DEFAULT_PRICING_MODEL = "claude-sonnet-4-20250514"

_ALPHABET = string.ascii_lowercase + string.digits


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class TokenCounts(BaseModel):
    input: int = Field(..., ge=0)
    output: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class TrackedOperation(BaseModel):
    timestamp: str = Field(default_factory=_now)
    operation: str
    model: str
    tokens: TokenCounts
    cost_usd: float = Field(..., ge=0.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TokenTracker:
    def __init__(self, project: str = "default") -> None:
        self.project = project
        self.operations: list[TrackedOperation] = []
        self.reset()

    def reset(self) -> None:
        self.operations = []
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
        self.session_id = f"session-{int(time.time() * 1000)}-{suffix}"
        self.session_start = _now()

    @staticmethod
    def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
        pricing = MODEL_PRICING.get(model) or MODEL_PRICING[DEFAULT_PRICING_MODEL]
        cost = input_tokens / 1_000_000 * pricing["input"] + output_tokens / 1_000_000 * pricing["output"]
        return round(cost, 6)

    @staticmethod
    def estimate_tokens(text: str | None) -> int:
        """Aproximación de ~4 caracteres por token."""

        if not text:
            return 0
        return math.ceil(len(text) / 4)

    def track(
        self,
        operation: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        metadata: dict[str, Any] | None = None,
    ) -> TrackedOperation:
        entry = TrackedOperation(
            operation=operation,
            model=model,
            tokens=TokenCounts(input=input_tokens, output=output_tokens, total=input_tokens + output_tokens),
            cost_usd=self.calculate_cost(model, input_tokens, output_tokens),
            metadata=metadata or {},
        )
        self.operations.append(entry)
        logger.debug("Tracked %s: %d tokens ($%.6f)", operation, entry.tokens.total, entry.cost_usd)
        return entry

    def totals(self) -> dict[str, Any]:
        totals = {
            "input_tokens": sum(op.tokens.input for op in self.operations),
            "output_tokens": sum(op.tokens.output for op in self.operations),
            "total_tokens": sum(op.tokens.total for op in self.operations),
            "total_cost_usd": round(sum(op.cost_usd for op in self.operations), 6),
            "operation_count": len(self.operations),
        }
        return totals

    def breakdown_by_operation(self) -> dict[str, dict[str, Any]]:
        breakdown: dict[str, dict[str, Any]] = {}
        for op in self.operations:
            row = breakdown.setdefault(op.operation, {"count": 0, "tokens": 0, "cost_usd": 0.0})
            row["count"] += 1
            row["tokens"] += op.tokens.total
            row["cost_usd"] += op.cost_usd
        for row in breakdown.values():
            row["cost_usd"] = round(row["cost_usd"], 6)
        return breakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "session_id": self.session_id,
            "session_start": self.session_start,
            "session_end": _now(),
            "operations": [op.model_dump() for op in self.operations],
            "session_totals": self.totals(),
            "breakdown_by_operation": self.breakdown_by_operation(),
        }

    def save(self, path: Path) -> Path:
        """Añade esta sesión al log (`{"sessions": [...]}`) y lo reescribe atómicamente.

        Un log ilegible se conserva como `<nombre>.corrupt` antes de empezar uno nuevo.
        """

        path.parent.mkdir(parents=True, exist_ok=True)
        sessions: list[dict[str, Any]] = []
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                sessions = [s for s in data.get("sessions", []) if s.get("session_id") != self.session_id]
            except (json.JSONDecodeError, AttributeError) as exc:
                backup = path.with_name(path.name + ".corrupt")
                path.replace(backup)
                logger.warning("Token log %s unreadable (%s); moved to %s, starting a new one", path, exc, backup)

        sessions.append(self.to_dict())
        return write_json_atomic(path, {"sessions": sessions})

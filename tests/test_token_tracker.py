from __future__ import annotations

import json

import pytest

from adapters.token_tracker import TokenTracker


class TestCosts:
    def test_known_model(self):
        assert TokenTracker.calculate_cost("claude-3-haiku-20240307", 1_000_000, 1_000_000) == pytest.approx(1.5)

    def test_unknown_model_uses_default_pricing(self):
        assert TokenTracker.calculate_cost("mystery", 1_000_000, 0) == pytest.approx(3.0)

    def test_estimate_tokens(self):
        assert TokenTracker.estimate_tokens("") == 0
        assert TokenTracker.estimate_tokens("abcde") == 2


class TestTracking:
    def test_totals_and_breakdown(self):
        tracker = TokenTracker("acme")
        tracker.track("research_hero", "claude-sonnet-4-20250514", 1000, 500)
        tracker.track("research_hero", "claude-sonnet-4-20250514", 1000, 500)
        tracker.track("blueprint_hero", "claude-sonnet-4-20250514", 200, 100)

        totals = tracker.totals()
        assert totals["total_tokens"] == 3300
        assert totals["operation_count"] == 3
        breakdown = tracker.breakdown_by_operation()
        assert breakdown["research_hero"]["count"] == 2
        assert breakdown["research_hero"]["tokens"] == 3000

    def test_reset_starts_new_session(self):
        tracker = TokenTracker()
        first = tracker.session_id
        tracker.track("x", "claude-sonnet-4-20250514", 1, 1)
        tracker.reset()
        assert tracker.operations == []
        assert tracker.session_id != first
        assert tracker.session_id.startswith("session-")


class TestPersistence:
    def test_save_appends_sessions(self, tmp_path):
        path = tmp_path / "logs" / "tokens.json"
        first = TokenTracker("acme")
        first.track("a", "claude-sonnet-4-20250514", 10, 10)
        first.save(path)

        second = TokenTracker("acme")
        second.track("b", "claude-sonnet-4-20250514", 20, 20)
        second.save(path)
        # Guardar dos veces la misma sesión la reemplaza.
        second.save(path)

        sessions = json.loads(path.read_text(encoding="utf-8"))["sessions"]
        assert [s["session_id"] for s in sessions] == [first.session_id, second.session_id]
        assert sessions[1]["session_totals"]["total_tokens"] == 40

    def test_corrupt_log_is_kept_aside(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("{broken", encoding="utf-8")
        tracker = TokenTracker()
        tracker.save(path)
        assert len(json.loads(path.read_text(encoding="utf-8"))["sessions"]) == 1
        assert (tmp_path / "tokens.json.corrupt").read_text(encoding="utf-8") == "{broken"

    def test_unexpected_shape_is_kept_aside(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("[1, 2]", encoding="utf-8")
        TokenTracker().save(path)
        assert (tmp_path / "tokens.json.corrupt").read_text(encoding="utf-8") == "[1, 2]"

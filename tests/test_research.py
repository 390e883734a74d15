from __future__ import annotations

from datetime import timedelta

import pytest

from adapters.llm_client import Completion
from adapters.token_tracker import TokenTracker
from core.domain.models import ClientIntake, PartnerInfo, ResearchFinding, ServiceItem, utcnow
from core.errors import LLMUnavailableError
from core.services.research import (
    SECTIONS,
    TEMPLATE_MARKER,
    KnowledgeBase,
    extract_last_updated,
    research_best_practices,
    research_competitors,
    research_partners,
    research_service_image_keywords,
    run_discovery_research,
    strip_front_matter,
)


class FakeLLM:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.prompts: list[tuple[str, str]] = []
        self.tracker = TokenTracker("test")

    @property
    def enabled(self) -> bool:
        return True

    async def complete(self, prompt, *, system=None, max_tokens=4096, operation="completion"):
        self.prompts.append((operation, prompt))
        if self.fail:
            raise LLMUnavailableError("provider down")
        self.tracker.track(operation, "claude-sonnet-4-20250514", 100, 200)
        return Completion(content=f"## Findings for {operation}", model="claude-sonnet-4-20250514")

    async def complete_json(self, prompt, *, system=None, max_tokens=4096, operation="completion"):
        self.prompts.append((operation, prompt))
        if self.fail:
            raise LLMUnavailableError("provider down")
        self.tracker.track(operation, "claude-sonnet-4-20250514", 80, 60)
        return [{"service_name": "Renovations", "primary_keywords": ["office fit-out"], "secondary_keywords": ["retail interior"]}]


class TestFrontMatter:
    def test_extract_and_strip(self):
        md = "---\nsection: hero\nlast_updated: 2025-01-02T03:04:05+00:00\n---\n\n# Title\n"
        assert extract_last_updated(md).year == 2025
        assert strip_front_matter(md) == "# Title"

    def test_no_timestamp(self):
        assert extract_last_updated("# nothing") is None


class TestKnowledgeBase:
    def test_write_then_read(self, tmp_path):
        kb = KnowledgeBase(tmp_path)
        kb.write_best_practice(ResearchFinding(section="hero", industry="construction", content="Lead with outcomes"))
        path = tmp_path / "best-practices" / "sections" / "hero" / "by-industry" / "construction.md"
        assert path.is_file()
        assert "Lead with outcomes" in kb.read_best_practice("hero", "construction")

    def test_template_marker_counts_as_empty(self, tmp_path):
        kb = KnowledgeBase(tmp_path)
        path = kb.best_practice_path("hero", "construction")
        path.parent.mkdir(parents=True)
        path.write_text(f"# Hero\n\n{TEMPLATE_MARKER}\n", encoding="utf-8")
        assert kb.read_best_practice("hero", "construction") is None

    def test_expired_entry(self, tmp_path):
        kb = KnowledgeBase(tmp_path, max_age_days=30)
        old = ResearchFinding(
            section="hero", industry="construction", content="old", researched_at=utcnow() - timedelta(days=45)
        )
        kb.write_best_practice(old)
        assert kb.read_best_practice("hero", "construction") is None
        assert KnowledgeBase(tmp_path, check_expiry=False).read_best_practice("hero", "construction") is not None


class TestResearch:
    @pytest.mark.asyncio
    async def test_uses_cache(self, tmp_path):
        kb = KnowledgeBase(tmp_path)
        kb.write_best_practice(ResearchFinding(section="hero", industry="construction", content="cached", confidence=0.9))
        llm = FakeLLM()
        finding, warning = await research_best_practices("hero", "construction", llm, kb)
        assert finding.source == "cache"
        assert finding.confidence == 0.9
        assert "cached" in finding.content
        assert warning is None
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_force_refresh_calls_llm_and_writes(self, tmp_path):
        kb = KnowledgeBase(tmp_path)
        kb.write_best_practice(ResearchFinding(section="hero", industry="construction", content="cached"))
        llm = FakeLLM()
        finding, _ = await research_best_practices("hero", "construction", llm, kb, force_refresh=True)
        assert finding.source == "research"
        assert llm.prompts[0][0] == "research_hero"
        assert "Findings for research_hero" in kb.read_best_practice("hero", "construction")

    @pytest.mark.asyncio
    async def test_failure_falls_back(self, tmp_path):
        kb = KnowledgeBase(tmp_path)
        finding, warning = await research_best_practices("about-us", "construction", FakeLLM(fail=True), kb)
        assert finding.source == "fallback"
        assert finding.confidence == 0.3
        assert warning and "fell back" in warning
        assert kb.read_best_practice("about-us", "construction") is None

    @pytest.mark.asyncio
    async def test_competitors_prompt_includes_location(self, tmp_path):
        llm = FakeLLM()
        finding, _ = await research_competitors("construction", llm, KnowledgeBase(tmp_path), location="Denver")
        assert finding.section == "competitors"
        assert "in Denver" in llm.prompts[0][1]
        assert (tmp_path / "industry-research" / "construction" / "patterns.md").is_file()


class TestDiscovery:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_bundle(self, tmp_path, intake, parallel):
        llm = FakeLLM()
        bundle = await run_discovery_research(intake, llm, KnowledgeBase(tmp_path), parallel=parallel)
        assert list(bundle.best_practices) == list(SECTIONS)
        assert bundle.competitors is not None
        assert bundle.project == "summit-ridge-builders"
        assert bundle.warnings == []
        assert bundle.token_usage["operation_count"] == 7
        assert bundle.service_image_keywords == {
            "Renovations": ["office fit-out", "retail interior"],
            "Roof Repair": ["roof repair", "construction roof repair", "construction"],
        }
        assert bundle.partners == {}

    @pytest.mark.asyncio
    async def test_bundle_collects_warnings(self, tmp_path, intake):
        bundle = await run_discovery_research(intake, FakeLLM(fail=True), KnowledgeBase(tmp_path))
        assert len(bundle.warnings) == 7
        assert bundle.service_image_keywords["Renovations"] == ["renovations", "construction renovations", "construction"]
        assert all(f.source == "fallback" for f in bundle.best_practices.values())

    @pytest.mark.asyncio
    async def test_bundle_includes_partners(self, tmp_path, intake_data):
        intake_data["partners"] = [
            {"name": "Apex Property Group", "industry": "real estate", "services_provided": ["office parks"]},
            {"name": "Quiet Holdings", "can_use_as_reference": False},
        ]
        llm = FakeLLM()
        bundle = await run_discovery_research(ClientIntake.model_validate(intake_data), llm, KnowledgeBase(tmp_path))
        assert list(bundle.partners) == ["Apex Property Group"]
        assert bundle.partners["Apex Property Group"].source == "research"
        assert bundle.partners_skipped == ["Quiet Holdings"]
        partner_prompts = [p for op, p in llm.prompts if op == "research_partner"]
        assert len(partner_prompts) == 1
        assert "Services provided: office parks" in partner_prompts[0]


class TestPartnersAndKeywords:
    @pytest.mark.asyncio
    async def test_partner_failure_keeps_fallback(self):
        partners = [PartnerInfo(name="Apex Property Group", industry="real estate")]
        findings, skipped, warnings = await research_partners(partners, "construction", FakeLLM(fail=True))
        assert findings["Apex Property Group"].source == "fallback"
        assert findings["Apex Property Group"].confidence == 0.3
        assert skipped == []
        assert warnings and "Apex Property Group" in warnings[0]

    @pytest.mark.asyncio
    async def test_partners_are_capped(self):
        partners = [PartnerInfo(name=f"Partner {i}") for i in range(7)]
        llm = FakeLLM()
        findings, _, _ = await research_partners(partners, "construction", llm, max_partners=5)
        assert len(findings) == 5
        assert len(llm.prompts) == 5

    @pytest.mark.asyncio
    async def test_services_with_keywords_are_not_researched(self):
        services = [ServiceItem(name="Commercial Builds", image_keywords=["crane"])]
        llm = FakeLLM()
        keywords, warning = await research_service_image_keywords(services, "construction", llm)
        assert keywords == {}
        assert warning is None
        assert llm.prompts == []


class TestCacheWriteFailures:
    @pytest.mark.asyncio
    async def test_best_practice_write_failure_keeps_finding(self, tmp_path, monkeypatch):
        kb = KnowledgeBase(tmp_path)

        def _fail(finding):
            raise PermissionError("read-only knowledge base")

        monkeypatch.setattr(kb, "write_best_practice", _fail)
        finding, warning = await research_best_practices("hero", "construction", FakeLLM(), kb)
        assert finding.source == "research"
        assert "Findings for research_hero" in finding.content
        assert warning is None

    @pytest.mark.asyncio
    async def test_competitor_write_failure_keeps_finding(self, tmp_path, monkeypatch):
        kb = KnowledgeBase(tmp_path)

        def _fail(finding):
            raise OSError("disk full")

        monkeypatch.setattr(kb, "write_competitors", _fail)
        finding, _ = await research_competitors("construction", FakeLLM(), kb)
        assert finding.source == "research"

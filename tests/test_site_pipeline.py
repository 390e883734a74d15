from __future__ import annotations

import pytest

from adapters.token_tracker import TokenTracker
from core.domain.models import ClientIntake
from core.services.site_pipeline import PipelineHooks, SiteRequest, build_site


class OfflineLLM:
    def __init__(self) -> None:
        self.tracker = TokenTracker("test")

    @property
    def enabled(self) -> bool:
        return False

    async def complete(self, prompt, **kwargs):
        raise AssertionError("offline client must not be called")

    async def complete_json(self, prompt, **kwargs):
        raise AssertionError("offline client must not be called")


class EmptyProvider:
    name = "empty"

    async def search(self, query, *, per_page=10):
        return []


class TestBuildSite:
    @pytest.mark.asyncio
    async def test_offline_build_is_stored(self, settings, intake):
        steps: list[str] = []
        seen_warnings: list[str] = []
        hooks = PipelineHooks(step=steps.append, warning=seen_warnings.append)

        result = await build_site(settings=settings, request=SiteRequest(intake=intake), hooks=hooks, llm=OfflineLLM())

        assert result.success is True
        assert result.project_id == "summit-ridge-builders"
        assert steps == ["blueprint", "review", "assemble", "store"]
        assert "Research skipped: no LLM provider configured" in result.warnings
        assert seen_warnings == result.warnings
        assert result.research is None

        assert result.stored is not None
        assert result.stored.metadata["preset"] == "industrial-modern"
        assert result.stored.metadata["company"] == "Summit Ridge Builders"
        assert (settings.storage_base_path / "summit-ridge-builders" / "style.css").is_file()
        assert result.token_usage["operation_count"] == 0

    @pytest.mark.asyncio
    async def test_non_hex_brand_colors_do_not_abort(self, settings, intake_data):
        intake_data["brand"]["colors"] = {"primary": "#fff", "secondary": "navy"}
        request = SiteRequest(intake=ClientIntake.model_validate(intake_data), with_research=False)
        result = await build_site(settings=settings, request=request, llm=OfflineLLM())
        assert result.success is True
        assert result.stored is not None
        assert any("'navy' is not a hex value" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_without_store(self, settings, intake):
        request = SiteRequest(intake=intake, store=False, with_research=False, project_id="draft-1")
        result = await build_site(settings=settings, request=request, llm=OfflineLLM())
        assert result.project_id == "draft-1"
        assert result.stored is None
        assert "Research skipped: no LLM provider configured" not in result.warnings
        assert not settings.storage_base_path.exists()

    @pytest.mark.asyncio
    async def test_photos_fall_back_to_placeholders(self, settings, intake):
        request = SiteRequest(intake=intake, with_photos=True, store=False)
        result = await build_site(settings=settings, request=request, llm=OfflineLLM(), photo_providers=[EmptyProvider()])
        # hero, about, team, gallery, testimonials + uno por servicio
        assert "8 image(s) fell back to placeholders" in result.warnings
        assert result.success is True

    @pytest.mark.asyncio
    async def test_forced_preset(self, settings, intake):
        request = SiteRequest(intake=intake, store=False, force_preset="classic-trust")
        result = await build_site(settings=settings, request=request, llm=OfflineLLM())
        assert result.assembly.preset.id == "classic-trust"

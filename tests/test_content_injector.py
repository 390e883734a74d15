from __future__ import annotations

import pytest

from core.domain.templates import ContentSlot, PatternManifest
from core.errors import ContentSlotError
from core.resources_loader import load_pattern_manifest, resolve_pattern_path
from core.services.content_injector import (
    apply_transform,
    generate_content_summary,
    generate_placeholder_content,
    get_value_from_path,
    inject_content,
    inject_content_with_mapping,
    map_features,
    map_services,
    map_stats,
    map_testimonials,
    resolve_content_slot,
    validate_content,
)


def _manifest(section: str, pattern_id: str, catalog_root, preset: str = "industrial-modern") -> PatternManifest:
    return load_pattern_manifest(resolve_pattern_path("construction", preset, section, pattern_id, root=catalog_root))


class TestPaths:
    DOC = {
        "content_drafts": {
            "hero": {"headline": "Built to last"},
            "services": {"services": [{"name": "Roofing"}, {"name": "Framing"}]},
        }
    }

    def test_nested(self):
        assert get_value_from_path(self.DOC, "content_drafts.hero.headline") == "Built to last"

    def test_blueprint_prefix_is_ignored(self):
        assert get_value_from_path(self.DOC, "blueprint.content_drafts.hero.headline") == "Built to last"

    def test_indexed(self):
        assert get_value_from_path(self.DOC, "content_drafts.services.services[1].name") == "Framing"

    @pytest.mark.parametrize(
        "path",
        [
            "content_drafts.missing.headline",
            "content_drafts.services.services[5].name",
            "content_drafts.hero.headline.deeper",
            "",
            None,
        ],
    )
    def test_unresolvable_returns_none(self, path):
        assert get_value_from_path(self.DOC, path) is None


class TestTransforms:
    def test_case(self):
        assert apply_transform("hello World", "uppercase") == "HELLO WORLD"
        assert apply_transform("Hello World", "lowercase") == "hello world"
        assert apply_transform("hELLO", "capitalize") == "Hello"

    def test_truncate(self):
        assert apply_transform("x" * 150, "truncate") == "x" * 100 + "..."
        assert apply_transform("short", "truncate") == "short"

    def test_none_passthrough(self):
        assert apply_transform(None, "uppercase") is None
        assert apply_transform("abc", None) == "abc"


class TestSlots:
    def test_fallback_used_when_empty(self):
        slot = ContentSlot(source="content_drafts.hero.cta", fallback="Get a Quote")
        assert resolve_content_slot(slot, {"content_drafts": {"hero": {"cta": ""}}}) == "Get a Quote"

    def test_required_without_fallback_raises(self):
        slot = ContentSlot(source="content_drafts.hero.headline", required=True)
        with pytest.raises(ContentSlotError):
            resolve_content_slot(slot, {})

    def test_transform_applied(self):
        slot = ContentSlot(source="a", transform="uppercase")
        assert resolve_content_slot(slot, {"a": "tagline"}) == "TAGLINE"


class TestInjection:
    def test_hero_from_blueprint(self, catalog_root, blueprint):
        manifest = _manifest("hero", "hero-fullwidth", catalog_root)
        content = inject_content(manifest, blueprint)
        assert content["headline"] == "Denver's Trusted Construction Experts"
        assert content["tagline"] == "BUILT RIGHT THE FIRST TIME"
        assert content["cta_primary_text"] == "Get Free Quote"
        assert content["background_image"] is None

    def test_missing_required_uses_fallback_without_raising(self, catalog_root):
        manifest = _manifest("hero", "hero-fullwidth", catalog_root)
        content = inject_content(manifest, {})
        assert content["headline"] is None
        assert content["cta_primary_text"] == "Get a Quote"
        validation = validate_content(manifest, content)
        assert validation.valid is False
        assert validation.missing == ["headline"]

    def test_contact_paths(self, catalog_root, blueprint):
        manifest = _manifest("contact", "contact-simple", catalog_root)
        content = inject_content(manifest, blueprint)
        assert content["phone"] == "(555) 123-4567"
        assert content["email"] == "info@summitridge.example"
        assert content["address"] == "12 Main St, Denver"
        assert content["submit_text"] == "Send Message"

    def test_mapping_normalizes_lists(self, catalog_root, blueprint):
        manifest = _manifest("services", "services-grid", catalog_root)
        content = inject_content_with_mapping(manifest, blueprint)
        names = [s["name"] for s in content["services"]]
        assert names == ["Commercial Builds", "Renovations", "Roof Repair"]
        assert content["services"][0]["url"] == "#commercial-builds"

    def test_validation_warnings_for_empty_optional_slots(self, catalog_root, blueprint):
        manifest = _manifest("hero", "hero-fullwidth", catalog_root)
        validation = validate_content(manifest, inject_content(manifest, blueprint))
        assert validation.valid is True
        assert "background_image" in validation.warnings


class TestSummary:
    def test_completeness(self, catalog_root, blueprint):
        manifest = _manifest("hero", "hero-fullwidth", catalog_root)
        summary = generate_content_summary(manifest, inject_content(manifest, blueprint))
        # 5 of 6 slots filled (no background image)
        assert summary.completeness == 83
        assert summary.slots["background_image"].preview == "[empty]"
        assert summary.slots["headline"].filled is True

    def test_no_slots_is_complete(self):
        manifest = PatternManifest(id="x", name="X", category="cta")
        assert generate_content_summary(manifest, {}).completeness == 100


class TestMappers:
    def test_services_explicit_url_wins(self):
        out = map_services([{"name": "Roofing", "url": "/roofing", "slug": "roof"}])
        assert out[0]["url"] == "/roofing"

    def test_services_slug_anchor(self):
        assert map_services([{"title": "Roofing", "slug": "roof"}])[0]["url"] == "#roof"

    def test_services_limit_and_non_dicts(self):
        out = map_services([{"name": f"S{i}"} for i in range(20)] + ["bad"], max_items=4)
        assert len(out) == 4
        assert map_services("not a list") == []

    def test_testimonials_defaults(self):
        out = map_testimonials([{"text": "Great crew", "author": "Sam"}, {}])
        assert out[0] == {
            "quote": "Great crew",
            "text": "Great crew",
            "name": "Sam",
            "company": "",
            "position": "",
            "avatar": None,
            "rating": 5,
            "project_type": "",
            "is_generated": False,
        }
        assert out[1]["name"] == "Client"

    def test_stats_and_features(self):
        assert map_stats([{"number": "25+", "text": "Years"}]) == [
            {"value": "25+", "number": "25+", "label": "Years", "text": "Years"}
        ]
        assert map_features(["Fast"]) == [{"text": "Fast", "name": "Fast"}]
        assert map_features([{"title": "Safe"}])[0]["name"] == "Safe"


class TestPlaceholders:
    def test_placeholder_content(self, catalog_root):
        manifest = _manifest("services", "services-grid", catalog_root)
        content = generate_placeholder_content(manifest)
        assert content["headline"] == "Our Services"
        assert len(content["services"]) == 3
        assert "Lorem" not in str(content)

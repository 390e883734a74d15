from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.config import AppSettings
from core.errors import TemplateCatalogError
from core.resources_loader import (
    list_industries,
    list_patterns,
    list_template_presets,
    load_preset_patterns,
    load_template_preset,
    resolve_pattern_path,
    templates_root,
)


class TestTemplatesRoot:
    def test_settings_override(self, tmp_path):
        settings = AppSettings(_env_file=None, templates_dir=tmp_path)
        assert templates_root(settings) == tmp_path

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WPF_TEMPLATES_DIR", str(tmp_path))
        assert templates_root() == tmp_path

    def test_default_is_project_templates(self, monkeypatch, catalog_root):
        monkeypatch.delenv("WPF_TEMPLATES_DIR", raising=False)
        assert templates_root() == catalog_root


class TestCatalog:
    def test_list_industries_skips_shared_and_tokens(self, catalog_root):
        industries = list_industries(root=catalog_root)
        assert "construction" in industries
        assert "general" in industries
        assert "shared" not in industries
        assert "tokens" not in industries

    def test_list_industries_missing_root(self, tmp_path):
        assert list_industries(root=tmp_path / "nope") == []

    def test_list_presets(self, catalog_root):
        ids = [p.id for p in list_template_presets("construction", root=catalog_root)]
        assert ids == ["classic-trust", "industrial-modern"]

    def test_load_preset(self, catalog_root):
        preset = load_template_preset("construction", "industrial-modern", root=catalog_root)
        assert preset.patterns.hero == "hero-fullwidth"
        assert preset.colors.primary == "#1E293B"
        assert preset.path == catalog_root / "construction" / "industrial-modern"

    def test_missing_preset_raises(self, catalog_root):
        with pytest.raises(TemplateCatalogError):
            load_template_preset("construction", "nope", root=catalog_root)

    def test_invalid_preset_is_skipped(self, tmp_path):
        bad = tmp_path / "bakery" / "broken"
        bad.mkdir(parents=True)
        (bad / "preset.json").write_text("{not json", encoding="utf-8")
        assert list_template_presets("bakery", root=tmp_path) == []


class TestPatternResolution:
    def test_preset_pattern_first(self, catalog_root):
        path = resolve_pattern_path("construction", "industrial-modern", "hero", "hero-fullwidth", root=catalog_root)
        assert path.parent.parent.parent.name == "industrial-modern"

    def test_shared_fallback(self, catalog_root):
        path = resolve_pattern_path("construction", "industrial-modern", "services", "services-grid", root=catalog_root)
        assert "shared" in path.parts

    def test_unknown_pattern_raises(self, catalog_root):
        with pytest.raises(TemplateCatalogError):
            resolve_pattern_path("construction", "industrial-modern", "hero", "hero-missing", root=catalog_root)

    def test_list_patterns_merges_preset_and_shared(self, catalog_root):
        ids = [m.id for m in list_patterns("construction", "industrial-modern", "hero", root=catalog_root)]
        assert ids == ["hero-fullwidth", "hero-centered"]

    def test_load_preset_patterns(self, catalog_root):
        preset, patterns = load_preset_patterns("construction", "classic-trust", root=catalog_root)
        assert preset.id == "classic-trust"
        assert set(patterns) == {"hero", "services", "about", "testimonials", "contact"}
        assert patterns["hero"].manifest.id == "hero-centered"
        assert "<?php" in patterns["hero"].template

    def test_broken_pattern_is_skipped(self, tmp_path):
        preset_dir = tmp_path / "general" / "tiny"
        preset_dir.mkdir(parents=True)
        (preset_dir / "preset.json").write_text(
            json.dumps(
                {
                    "id": "tiny",
                    "name": "Tiny",
                    "industry": "general",
                    "style": "minimal",
                    "patterns": {
                        "hero": "hero-x",
                        "services": "s",
                        "about": "a",
                        "testimonials": "t",
                        "contact": "c",
                    },
                    "colors": {"primary": "#000000", "secondary": "#FFFFFF"},
                    "typography": {"headings": "A", "body": "B"},
                }
            ),
            encoding="utf-8",
        )
        hero = preset_dir / "patterns" / "hero" / "hero-x"
        hero.mkdir(parents=True)
        (hero / "manifest.json").write_text(
            json.dumps({"id": "hero-x", "name": "Hero X", "category": "hero"}), encoding="utf-8"
        )
        (hero / "template.php").write_text("<?php ?>\n<section></section>", encoding="utf-8")

        _, patterns = load_preset_patterns("general", "tiny", root=tmp_path)
        assert list(patterns) == ["hero"]


def _all_manifests(root: Path) -> list[Path]:
    return sorted(root.rglob("manifest.json"))


class TestShippedCatalog:
    def test_every_manifest_has_a_template(self, catalog_root):
        manifests = _all_manifests(catalog_root)
        assert manifests
        for manifest in manifests:
            assert (manifest.parent / "template.php").is_file(), manifest
            data = json.loads(manifest.read_text(encoding="utf-8"))
            assert data["id"] == manifest.parent.name

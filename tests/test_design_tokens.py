from __future__ import annotations

import pytest

from core.errors import DesignTokenError
from core.services.design_tokens import (
    SHADES,
    extract_tokens_from_blueprint,
    generate_all_tokens,
    generate_color_variants,
    generate_css_variables,
    generate_tailwind_config,
    generate_theme_json,
    normalize_hex,
)

TOKENS = {
    "colors": {"primary": "#1E293B", "secondary": "#F97316"},
    "typography": {"headings": "Barlow Condensed", "body": "Source Sans 3"},
}


class TestColorVariants:
    def test_scale_shape(self):
        variants = generate_color_variants("#336699")
        assert list(variants) == [str(s) for s in SHADES] + ["DEFAULT"]
        assert variants["DEFAULT"] == "#336699"

    def test_lighter_and_darker(self):
        assert generate_color_variants("#000000")["50"] == "#e6e6e6"
        assert generate_color_variants("#FFFFFF")["900"] == "#333333"
        assert generate_color_variants("#FFFFFF")["500"] == "#ffffff"

    @pytest.mark.parametrize("value", ["#12", "123456", "#GGGGGG", None])
    def test_invalid(self, value):
        with pytest.raises(DesignTokenError):
            generate_color_variants(value)


class TestThemeJson:
    def test_palette_and_fonts(self):
        theme = generate_theme_json(TOKENS)
        assert theme["version"] == 3
        palette = {c["slug"]: c["color"] for c in theme["settings"]["color"]["palette"]}
        assert palette["primary"] == "#1E293B"
        # Sin accent se reutiliza secondary.
        assert palette["accent"] == "#F97316"
        assert palette["muted"] == "#6B7280"
        families = theme["settings"]["typography"]["fontFamilies"]
        assert families[0]["fontFamily"].startswith('"Barlow Condensed"')

    def test_invalid_input(self):
        with pytest.raises(DesignTokenError):
            generate_theme_json({"colors": {"primary": "blue", "secondary": "#FFFFFF"}})


class TestTextOutputs:
    def test_tailwind_config(self):
        config = generate_tailwind_config(TOKENS)
        assert config.startswith("/** @type {import('tailwindcss').Config} */")
        assert "'DEFAULT': '#1E293B'" in config
        assert "headings: ['Barlow Condensed'" in config

    def test_css_variables(self):
        css = generate_css_variables(TOKENS)
        assert "--color-primary: #1E293B;" in css
        assert "--color-accent: #F97316;" in css
        assert "--radius: 0.5rem;" in css

    def test_all_tokens(self):
        tokens = generate_all_tokens(TOKENS)
        assert tokens.theme_json["settings"]["layout"]["contentSize"] == "1200px"
        assert "tailwindcss" in tokens.tailwind_config
        assert ":root" in tokens.css_variables


class TestExtract:
    def test_defaults_without_brand(self):
        tokens = extract_tokens_from_blueprint({})
        assert tokens.colors.primary == "#0F2942"
        assert tokens.typography.headings == "Inter"

    def test_client_colors_take_precedence(self):
        doc = {
            "client_profile": {"brand": {"colors": {"primary": "#111111", "secondary": "#222222"}}},
            "brand_profile": {
                "colors": {"primary": "#999999", "secondary": "#888888"},
                "typography": {"heading_font": "Fraunces"},
            },
        }
        tokens = extract_tokens_from_blueprint(doc)
        assert tokens.colors.primary == "#111111"
        assert tokens.colors.accent == "#222222"
        assert tokens.typography.headings == "Fraunces"

    def test_short_hex_is_expanded_and_names_are_dropped(self):
        doc = {"client_profile": {"brand": {"colors": {"primary": "#fff", "secondary": "navy"}}}}
        tokens = extract_tokens_from_blueprint(doc)
        assert tokens.colors.primary == "#FFFFFF"
        assert tokens.colors.secondary == "#4DA6FF"

    def test_invalid_client_colors_fall_back_to_brand_profile(self):
        doc = {
            "client_profile": {"brand": {"colors": {"primary": "blue"}}},
            "brand_profile": {"colors": {"primary": "#999999"}},
        }
        assert extract_tokens_from_blueprint(doc).colors.primary == "#999999"


class TestNormalizeHex:
    @pytest.mark.parametrize(
        "value, expected",
        [("#fff", "#FFFFFF"), ("abc", "#AABBCC"), ("1e293b", "#1e293b"), (" #1E293B ", "#1E293B")],
    )
    def test_accepted(self, value, expected):
        assert normalize_hex(value) == expected

    @pytest.mark.parametrize("value", ["navy", "#12", "#GGGGGG", "", None, 123])
    def test_rejected(self, value):
        assert normalize_hex(value) is None

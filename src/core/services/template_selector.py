"""Selección de preset y patterns a partir de un blueprint.

Por qué un scoring determinista:
- La recomendación debe ser reproducible (mismo blueprint -> mismo preset) y
  explicable al operador (porcentaje + razón).
- Los pesos viven aquí; el catálogo solo declara su `suitability`.

Pesos del preset (máximo 1.0):
- industria: 0.4 exacta / 0.2 parcial
- B2B/B2C: 0.15 cada uno
- premium/budget: 0.1 cada uno
- estilo: 0.1 (0.05 si no coincide)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from core.domain.models import Blueprint, as_document
from core.domain.templates import EnumOption, PatternManifest, TemplatePreset
from core.errors import TemplateCatalogError
from core.resources_loader import list_template_presets

logger = logging.getLogger(__name__)

FALLBACK_INDUSTRY = "general"

_B2B_KEYWORDS = (
    "commercial",
    "industrial",
    "business",
    "corporate",
    "enterprise",
    "b2b",
    "contractor",
    "construction",
    "builders",
    "developers",
)
_B2C_KEYWORDS = ("residential", "home", "family", "personal", "consumer", "retail", "homeowners")
_PREMIUM_KEYWORDS = ("premium", "luxury", "exclusive", "high-end", "bespoke", "elite")
_BUDGET_KEYWORDS = ("affordable", "budget", "cheap", "economical", "value")
_ESTABLISHED_KEYWORDS = ("established", "since", "years", "experience", "trusted")


class BlueprintFactors(BaseModel):
    """Entradas de scoring derivadas de un blueprint."""

    industry: str = FALLBACK_INDUSTRY
    industry_sub: str = ""

    b2b_focus: float = 0.3
    b2c_focus: float = 0.3
    is_service_business: bool = False
    service_area_business: bool = False

    has_tagline: bool = False
    has_hero_image: bool = False
    has_logo: bool = False
    has_testimonials: bool = False
    testimonials_count: int = 0
    has_team_info: bool = False
    has_stats: bool = False
    has_company_history: bool = False
    has_portfolio: bool = False

    services_count: int = 0
    services_count_3_6: bool = False
    services_count_high: bool = False
    has_service_descriptions: bool = False

    style_preference: str = "modern"
    premium_positioning: float = 0.5
    budget_positioning: float = 0.3

    has_physical_address: bool = False
    has_phone: bool = False
    has_email: bool = False
    established_business: float = 0.4

    extra: dict[str, Any] = Field(default_factory=dict, description="Factores no estándar.")

    def get(self, name: str) -> Any:
        if name in type(self).model_fields and name != "extra":
            return getattr(self, name)
        return self.extra.get(name)


@dataclass(frozen=True)
class ScoredPreset:
    preset: TemplatePreset
    score: float


@dataclass(frozen=True)
class PresetSelection:
    preset: TemplatePreset
    score: float
    factors: BlueprintFactors
    industry: str
    alternatives: list[ScoredPreset] = field(default_factory=list)
    all: list[ScoredPreset] | None = None


@dataclass(frozen=True)
class ScoredPattern:
    pattern: PatternManifest
    score: float


@dataclass(frozen=True)
class PatternSelection:
    pattern: PatternManifest
    score: float
    alternatives: list[ScoredPattern] = field(default_factory=list)


@dataclass(frozen=True)
class ComparisonOption:
    label: str
    preset: TemplatePreset
    score: float
    score_percent: int


@dataclass(frozen=True)
class TemplateComparison:
    options: list[ComparisonOption]
    recommendation_label: str
    recommendation_preset: TemplatePreset
    reason: str
    factors: BlueprintFactors


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _items(section: dict[str, Any], *keys: str) -> list[Any]:
    for key in keys:
        value = section.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(kw in text for kw in keywords)


def analyze_blueprint(blueprint: Blueprint | dict[str, Any]) -> BlueprintFactors:
    doc = as_document(blueprint)
    profile = _dict(doc.get("client_profile"))
    company = _dict(profile.get("company"))
    industry = _dict(profile.get("industry"))
    contact = _dict(profile.get("contact"))
    brand = _dict(profile.get("brand"))
    drafts = _dict(doc.get("content_drafts"))
    brand_profile = _dict(doc.get("brand_profile")) or brand
    assets = _dict(doc.get("assets"))

    services = _items(_dict(drafts.get("services")), "services") or [
        s for s in (profile.get("services") or []) if isinstance(s, dict)
    ]
    services = [s for s in services if isinstance(s, dict)]

    testimonials = _items(_dict(drafts.get("testimonials")), "testimonials", "items")
    about_us = _dict(drafts.get("about_us"))
    about = _dict(drafts.get("about"))

    description = str(company.get("description") or "").lower()
    service_names = " ".join(str(s.get("name") or "").lower() for s in services)
    audience = str(industry.get("target_audience") or "").lower()
    combined = f"{description} {service_names} {audience}"
    style = str(brand_profile.get("style") or "").lower()

    count = len(services)
    return BlueprintFactors(
        industry=str(industry.get("category") or company.get("industry") or FALLBACK_INDUSTRY).lower(),
        industry_sub=str(industry.get("niche") or company.get("industry_subcategory") or "").lower(),
        b2b_focus=0.8 if _contains_any(combined, _B2B_KEYWORDS) else 0.3,
        b2c_focus=0.8 if _contains_any(combined, _B2C_KEYWORDS) else 0.3,
        is_service_business=count > 0,
        service_area_business=bool(industry.get("service_area") or company.get("service_area")),
        has_tagline=bool(company.get("tagline")),
        has_hero_image=bool(assets.get("hero_image")),
        has_logo=bool(assets.get("logo")),
        has_testimonials=len(testimonials) > 0,
        testimonials_count=len(testimonials),
        has_team_info=bool(_items(about_us, "team") or _items(about, "team")),
        has_stats=bool(_items(about_us, "stats") or _items(about, "stats")),
        has_company_history=bool(about_us.get("story") or about.get("history") or about.get("description")),
        has_portfolio=bool(_items(_dict(drafts.get("portfolio")), "items")),
        services_count=count,
        services_count_3_6=3 <= count <= 6,
        services_count_high=count > 6,
        has_service_descriptions=any(s.get("description") for s in services),
        style_preference=str(brand_profile.get("style") or brand.get("tone") or "modern"),
        premium_positioning=0.9 if (_contains_any(description, _PREMIUM_KEYWORDS) or _contains_any(style, _PREMIUM_KEYWORDS)) else 0.5,
        budget_positioning=0.8 if _contains_any(description, _BUDGET_KEYWORDS) else 0.3,
        has_physical_address=bool(contact.get("address") or company.get("address")),
        has_phone=bool(contact.get("phone") or company.get("phone")),
        has_email=bool(contact.get("email") or company.get("email")),
        established_business=0.8 if _contains_any(description, _ESTABLISHED_KEYWORDS) else 0.4,
    )


def calculate_preset_score(preset: TemplatePreset, factors: BlueprintFactors) -> float:
    score = 0.0
    max_score = 0.0
    suitability = preset.suitability

    if preset.industry == factors.industry:
        score += 0.4
    elif factors.industry in preset.industry or preset.industry in factors.industry:
        score += 0.2
    max_score += 0.4

    # Un 0 declarado cuenta como "sin opinión" (0.5).
    b2b = suitability.b2b or 0.5
    b2c = suitability.b2c or 0.5
    premium = suitability.premium or 0.5

    score += b2b * factors.b2b_focus * 0.15
    score += b2c * factors.b2c_focus * 0.15
    max_score += 0.3

    score += premium * factors.premium_positioning * 0.1
    score += (1 - premium) * factors.budget_positioning * 0.1
    max_score += 0.2

    style_match = 1.0 if preset.style == factors.style_preference else 0.5
    score += style_match * 0.1
    max_score += 0.1

    return min(1.0, score / max_score)


def calculate_pattern_score(manifest: PatternManifest, factors: BlueprintFactors) -> float:
    score = 0.5
    suitability = manifest.suitability

    if factors.industry in suitability.industries:
        score += 0.2
    if factors.style_preference in suitability.styles:
        score += 0.1

    for name, weight in suitability.score_factors.items():
        value = factors.get(name)
        if isinstance(value, bool):
            score += weight if value else 0.0
        elif isinstance(value, (int, float)):
            score += min(1.0, float(value)) * weight

    return min(1.0, max(0.0, score))


def _ranked(presets: list[TemplatePreset], factors: BlueprintFactors) -> list[ScoredPreset]:
    scored = [ScoredPreset(preset=p, score=calculate_preset_score(p, factors)) for p in presets]
    # sorted() es estable: en empate se conserva el orden del catálogo.
    return sorted(scored, key=lambda item: item.score, reverse=True)


def select_best_preset(
    blueprint: Blueprint | dict[str, Any],
    *,
    industry: str | None = None,
    force_preset: str | None = None,
    return_all: bool = False,
    root: Path | None = None,
) -> PresetSelection:
    factors = analyze_blueprint(blueprint)
    target = (industry or factors.industry).lower()

    presets = list_template_presets(target, root=root)
    if not presets and target != FALLBACK_INDUSTRY:
        logger.info("No presets for industry %r, falling back to %r", target, FALLBACK_INDUSTRY)
        target = FALLBACK_INDUSTRY
        presets = list_template_presets(target, root=root)
    if not presets:
        raise TemplateCatalogError(f"No presets found for industry: {industry or factors.industry}")

    if force_preset:
        forced = next((p for p in presets if p.id == force_preset), None)
        if forced is not None:
            return PresetSelection(preset=forced, score=1.0, factors=factors, industry=target)
        logger.warning("Forced preset %r not found in %r; scoring instead", force_preset, target)

    ranked = _ranked(presets, factors)
    best = ranked[0]
    logger.debug("Preset ranking for %s: %s", target, [(r.preset.id, round(r.score, 3)) for r in ranked])

    if return_all:
        return PresetSelection(
            preset=best.preset,
            score=best.score,
            factors=factors,
            industry=target,
            alternatives=ranked[1:],
            all=ranked,
        )
    return PresetSelection(
        preset=best.preset,
        score=best.score,
        factors=factors,
        industry=target,
        alternatives=ranked[1:4],
    )


def select_best_pattern(
    blueprint: Blueprint | dict[str, Any],
    patterns: list[PatternManifest],
) -> PatternSelection:
    if not patterns:
        raise TemplateCatalogError("No patterns available to select from")

    factors = analyze_blueprint(blueprint)
    scored = sorted(
        (ScoredPattern(pattern=p, score=calculate_pattern_score(p, factors)) for p in patterns),
        key=lambda item: item.score,
        reverse=True,
    )
    return PatternSelection(pattern=scored[0].pattern, score=scored[0].score, alternatives=scored[1:3])


def generate_template_comparison(
    blueprint: Blueprint | dict[str, Any],
    *,
    industry: str | None = None,
    root: Path | None = None,
) -> TemplateComparison:
    """Comparativa A/B/C de los tres mejores presets."""

    selection = select_best_preset(blueprint, industry=industry, return_all=True, root=root)
    top = (selection.all or [])[:3]
    options = [
        ComparisonOption(label=label, preset=item.preset, score=item.score, score_percent=round(item.score * 100))
        for label, item in zip(("A", "B", "C"), top)
    ]
    focus = "B2B" if selection.factors.b2b_focus > 0.5 else "B2C"
    return TemplateComparison(
        options=options,
        recommendation_label="A",
        recommendation_preset=top[0].preset,
        reason=f"Best match for {selection.factors.industry} industry with {focus} focus.",
        factors=selection.factors,
    )


def pattern_config_recommendations(
    manifest: PatternManifest,
    blueprint: Blueprint | dict[str, Any],
) -> dict[str, Any]:
    """Configuración sugerida: defaults del manifest + ajustes según factores."""

    factors = analyze_blueprint(blueprint)
    config: dict[str, Any] = {}

    for key, option in manifest.configuration.items():
        config[key] = option.default

        if key == "show_tagline":
            config[key] = factors.has_tagline
        elif key == "show_stats":
            config[key] = factors.has_stats
        elif key == "show_testimonials":
            config[key] = factors.has_testimonials
        elif key == "columns":
            if factors.services_count <= 2:
                config[key] = "2"
            elif factors.services_count <= 4:
                config[key] = "3"
            else:
                config[key] = "4"
        elif key == "background":
            if (
                factors.premium_positioning > 0.7
                and isinstance(option, EnumOption)
                and "dark" in option.options
            ):
                config[key] = "dark"

    return config

"""Redacción del blueprint a partir del intake (y del research, si lo hay).

Cada sección intenta primero el LLM (`complete_json`) y, si no hay proveedor,
falla o devuelve una forma inesperada, usa una versión determinista construida
solo con datos del intake. El blueprint siempre sale completo.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adapters.json_exporter import export_model_json
from core.domain.models import Blueprint, ClientIntake, ResearchBundle
from core.errors import LLMError
from core.interfaces.providers import CompletionClient

logger = logging.getLogger(__name__)

COPYWRITER_SYSTEM = "You are a copywriter. Return ONLY valid JSON, no markdown or explanation."
DEFAULT_PAGES = ["Home", "About", "Services", "Contact"]

_PAGE_SECTIONS: dict[str, list[str]] = {
    "Home": ["hero", "services-preview", "about-preview", "testimonials", "cta", "contact-preview"],
    "About": ["hero-simple", "about-full", "team", "values", "cta"],
    "Services": ["hero-simple", "services-full", "process", "cta"],
    "Contact": ["hero-simple", "contact-full", "map", "faq"],
    "Gallery": ["hero-simple", "gallery-grid", "cta"],
    "Testimonials": ["hero-simple", "testimonials-full", "cta"],
}
_INCLUDES_RE = re.compile(r"includes?\s+([^.]+)", re.IGNORECASE)


class _CTA(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str = Field(..., min_length=1)
    action: str = "form"


class HeroDraft(BaseModel):
    model_config = ConfigDict(extra="allow")

    headline: str = Field(..., min_length=1)
    subheadline: str = Field(..., min_length=1)
    cta_primary: _CTA
    cta_secondary: _CTA | None = None


class AboutDraft(BaseModel):
    model_config = ConfigDict(extra="allow")

    headline: str = Field(..., min_length=1)
    story: str = Field(..., min_length=1)
    values: list[dict[str, Any]] = Field(default_factory=list)
    credentials: list[str] = Field(default_factory=list)


class ServiceDraft(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    description: str = ""
    features: list[str] = Field(default_factory=list)
    cta: str = "Learn More"


class ServicesDraft(BaseModel):
    model_config = ConfigDict(extra="allow")

    headline: str = Field(..., min_length=1)
    intro: str = ""
    services: list[ServiceDraft] = Field(..., min_length=1)


def _cap(value: str) -> str:
    return value[:1].upper() + value[1:]


def extract_client_profile(intake: ClientIntake, research: ResearchBundle | None = None) -> dict[str, Any]:
    suggested = research.service_image_keywords if research else {}
    services = []
    for service in intake.services:
        data = service.model_dump(mode="json")
        if not data.get("image_keywords") and suggested.get(service.name):
            data["image_keywords"] = list(suggested[service.name])
        services.append(data)
    return {
        "company": {
            "name": intake.company.name,
            "slug": intake.project_slug,
            "tagline": intake.company.tagline,
            "description": intake.company.description,
            "years_in_business": intake.company.years_in_business,
        },
        "contact": intake.contact.model_dump(mode="json"),
        "brand": {
            "colors": intake.brand.colors,
            "tone": intake.brand.tone,
            "style": intake.brand.style,
        },
        "industry": intake.industry.model_dump(mode="json"),
        "services": services,
    }


def summarize_research(research: ResearchBundle | None) -> dict[str, Any]:
    if research is None:
        return {"best_practices_researched": [], "competitors_analyzed": False, "partners_researched": [], "research_date": None}
    return {
        "best_practices_researched": list(research.best_practices),
        "sources": {k: v.source for k, v in research.best_practices.items()},
        "competitors_analyzed": research.competitors is not None and research.competitors.source != "fallback",
        "partners_researched": list(research.partners),
        "research_date": research.timestamp.isoformat(),
    }


def _guidance(research: ResearchBundle | None, section: str) -> str:
    if research is None or section not in research.best_practices:
        return ""
    # Recortado: el research completo no cabe (ni hace falta) en cada prompt.
    return f"\nBest practices to apply:\n{research.best_practices[section].content[:2000]}\n"


def fallback_hero(intake: ClientIntake) -> dict[str, Any]:
    years = intake.company.years_in_business
    years_text = f"{years} years of" if years else "extensive"
    area = intake.industry.service_area or "Local"
    category = intake.industry.category
    return {
        "headline": f"{area}'s Trusted {_cap(category)} Experts",
        "subheadline": f"{intake.company.name} delivers quality {category} services with {years_text} experience.",
        "cta_primary": {"text": "Get Free Quote", "action": "form"},
        "cta_secondary": {"text": "Our Services", "action": "services"},
    }


def fallback_about(intake: ClientIntake) -> dict[str, Any]:
    years = intake.company.years_in_business
    area = intake.industry.service_area or "local"
    category = intake.industry.category
    name = intake.company.name

    story = [f"{f'For {years} years, ' if years else ''}{name} has been serving the {area} community with quality {category} services."]
    if intake.mission.mission:
        story.append(intake.mission.mission)
    if intake.mission.vision:
        story.append(f"Our vision: {intake.mission.vision}")

    values = []
    for raw in intake.mission.values[:4]:
        title, _, description = raw.partition(" - ")
        values.append({"title": title.strip() or raw, "description": description.strip() or raw})

    return {
        "headline": f"About {name}",
        "story": "\n\n".join(story),
        "values": values
        or [
            {"title": "Quality", "description": "We deliver excellence in every project."},
            {"title": "Reliability", "description": "You can count on us to deliver on time."},
            {"title": "Expertise", "description": "Years of experience in the industry."},
        ],
        "credentials": intake.mission.unique_selling_points[:3]
        or [
            f"Trusted {category} services in {area}",
            "Experienced and professional team",
            "Customer satisfaction guaranteed",
        ],
    }


def _service_features(name: str, description: str) -> list[str]:
    match = _INCLUDES_RE.search(description or "")
    if match:
        items = [s.strip() for s in re.split(r",\s*(?:and\s+)?", match.group(1)) if s.strip()]
        if items:
            return items[:3]
    return [f"Professional {name.lower()}", "Quality workmanship", "Competitive pricing"]


def fallback_services(intake: ClientIntake) -> dict[str, Any]:
    category = intake.industry.category
    return {
        "headline": f"Our {_cap(category)} Services",
        "intro": f"{intake.company.name} offers a full range of {category} services tailored to meet your needs.",
        "services": [
            {
                "name": s.name,
                "description": s.description
                or f"Professional {s.name.lower()} services tailored to your specific requirements.",
                "features": _service_features(s.name, s.description or ""),
                "cta": "Get Quote" if s.is_primary else "Learn More",
            }
            for s in intake.services
        ],
    }


def testimonials_placeholder(intake: ClientIntake, research: ResearchBundle | None = None) -> dict[str, Any]:
    draft = {
        "headline": "What Our Customers Say",
        "intro": f"See why {intake.industry.service_area or 'local'} customers trust {intake.company.name}.",
        "testimonials": [
            {
                "placeholder": True,
                "is_generated": True,
                "format": {"quote": "Customer testimonial text", "name": "Customer Name", "location": "City/Suburb", "rating": 5},
            }
        ],
        "review_platforms": {"google_rating": None, "google_review_count": None, "facebook_rating": None},
        "notes": "Collect real testimonials from client. Consider pulling from Google Reviews.",
    }
    if research is not None and research.partners:
        # Contexto para redactar testimonios de partners; el contenido se recorta.
        draft["partner_references"] = [
            {"name": name, "industry": finding.industry, "context": finding.content[:1000], "source": finding.source}
            for name, finding in research.partners.items()
        ]
    return draft


def contact_draft(intake: ClientIntake) -> dict[str, Any]:
    contact = intake.contact
    address = contact.address
    hours = contact.hours or None
    return {
        "headline": "Get In Touch",
        "intro": f"Ready to get started? Contact {intake.company.name} today.",
        "phone": {
            "number": contact.phone,
            "display": contact.phone,
            "note": (hours or {}).get("notes"),
        },
        "email": contact.email,
        "address": address.model_dump(mode="json") if address else None,
        "hours": hours,
        "form": {
            "fields": ["name", "phone", "email", "message"],
            "submit_text": "Send Message",
            "success_message": "Thanks! We'll be in touch within 24 hours.",
        },
        "map": {
            "show": address is not None,
            "address": ", ".join(p for p in (address.street, address.city) if p) if address else None,
        },
    }


def structure_recommendation(intake: ClientIntake) -> dict[str, Any]:
    pages = intake.website_goals.pages_needed or list(DEFAULT_PAGES)
    many_services = len(intake.services) > 4
    return {
        "pages": [
            {
                "name": page,
                "slug": re.sub(r"\s+", "-", page.lower()),
                "sections": _PAGE_SECTIONS.get(page, ["hero-simple", "content", "cta"]),
            }
            for page in pages
        ],
        "navigation": {
            "primary": [p for p in pages if p not in ("Privacy Policy", "Terms")],
            "footer": ["Privacy Policy", "Terms of Service"],
        },
        "recommendations": [
            "Consider individual pages for each major service (better for SEO)"
            if many_services
            else "Services can be on a single page with anchor links",
            "Add a blog/news section later for SEO value",
            "Ensure contact info is in header and footer",
        ],
    }


def _hero_prompt(intake: ClientIntake, guidance: str) -> str:
    services = "\n".join(f"- {s.name}: {s.description or ''}" for s in intake.services)
    return f"""Generate hero section content for {intake.company.name}, a {intake.industry.category} business.

Client Info:
- Tagline: {intake.company.tagline or 'None provided'}
- Service Area: {intake.industry.service_area or 'Local area'}
- Target Audience: {intake.industry.target_audience or 'General'}
- Unique Selling Points: {', '.join(intake.mission.unique_selling_points) or 'Not provided'}
- Brand Tone: {intake.brand.tone}

Services offered:
{services}
{guidance}
Return ONLY a JSON object:
{{"headline": "6-10 words, benefit-focused", "subheadline": "15-25 words",
  "cta_primary": {{"text": "...", "action": "call|form|quote"}},
  "cta_secondary": {{"text": "...", "action": "learn-more|services"}}}}"""


def _about_prompt(intake: ClientIntake, guidance: str) -> str:
    return f"""Generate about us section content for {intake.company.name}.

Client Info:
- Years in Business: {intake.company.years_in_business or 'Not specified'}
- Industry: {intake.industry.category}
- Vision: {intake.mission.vision or 'Not provided'}
- Mission: {intake.mission.mission or 'Not provided'}
- Values: {', '.join(intake.mission.values) or 'Not provided'}
- Brand Tone: {intake.brand.tone}
- Notes: {intake.notes or 'None'}
{guidance}
Return ONLY a JSON object:
{{"headline": "...", "story": "2-3 paragraphs in first person 'we'",
  "values": [{{"title": "...", "description": "..."}}], "credentials": ["..."]}}"""


def _services_prompt(intake: ClientIntake, guidance: str) -> str:
    services = "\n".join(
        f"- {s.name}: {s.description or 'No description'} ({s.price_range or 'Price varies'})" for s in intake.services
    )
    return f"""Generate services section content for {intake.company.name}.

Services to describe:
{services}

Client Info:
- Industry: {intake.industry.category}
- Brand Tone: {intake.brand.tone}
- Target Audience: {intake.industry.target_audience or 'General'}
{guidance}
Return ONLY a JSON object:
{{"headline": "...", "intro": "...", "services": [{{"name": "...", "description": "2-3 sentences",
  "features": ["...", "...", "..."], "cta": "Learn More|Get Quote"}}]}}
Include ALL services from the list above."""


async def _draft(
    llm: CompletionClient | None,
    *,
    section: str,
    prompt: str,
    model: type[BaseModel],
    fallback: dict[str, Any],
    max_tokens: int,
    warnings: list[str],
) -> dict[str, Any]:
    if llm is None or not llm.enabled:
        warnings.append(f"{section}: drafted without LLM (no provider configured)")
        return fallback
    try:
        data = await llm.complete_json(
            prompt,
            system=COPYWRITER_SYSTEM,
            max_tokens=max_tokens,
            operation=f"blueprint_{section}",
        )
        return model.model_validate(data).model_dump(mode="json", exclude_none=True)
    except (LLMError, ValidationError) as exc:
        logger.warning("Could not draft %s with the LLM, using fallback: %s", section, exc)
        warnings.append(f"{section}: LLM draft failed ({type(exc).__name__}), using fallback")
        return fallback


async def generate_blueprint(
    intake: ClientIntake,
    research: ResearchBundle | None = None,
    llm: CompletionClient | None = None,
) -> Blueprint:
    warnings: list[str] = []

    hero = await _draft(
        llm,
        section="hero",
        prompt=_hero_prompt(intake, _guidance(research, "hero")),
        model=HeroDraft,
        fallback=fallback_hero(intake),
        max_tokens=1000,
        warnings=warnings,
    )
    about = await _draft(
        llm,
        section="about_us",
        prompt=_about_prompt(intake, _guidance(research, "about-us")),
        model=AboutDraft,
        fallback=fallback_about(intake),
        max_tokens=2000,
        warnings=warnings,
    )
    if intake.services:
        services = await _draft(
            llm,
            section="services",
            prompt=_services_prompt(intake, _guidance(research, "services")),
            model=ServicesDraft,
            fallback=fallback_services(intake),
            max_tokens=3000,
            warnings=warnings,
        )
    else:
        services = fallback_services(intake)

    blueprint = Blueprint(
        client_profile=extract_client_profile(intake, research),
        research_summary=summarize_research(research),
        content_drafts={
            "hero": hero,
            "about_us": about,
            "services": services,
            "testimonials": testimonials_placeholder(intake, research),
            "contact": contact_draft(intake),
        },
        structure_recommendation=structure_recommendation(intake),
        warnings=warnings,
    )
    logger.info("Blueprint drafted for %s (%d fallback section(s))", intake.company.name, len(warnings))
    return blueprint


def save_blueprint(blueprint: Blueprint, directory: Path) -> Path:
    path = export_model_json(model=blueprint, output_path=directory / f"blueprint-v{blueprint.version or '1'}.json")
    logger.info("Blueprint saved to %s", path)
    return path


def load_blueprint(path: Path) -> Blueprint:
    return Blueprint.model_validate_json(path.read_text(encoding="utf-8"))

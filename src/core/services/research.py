"""Research de buenas prácticas y competencia, con cache en disco.

La base de conocimiento es un árbol de markdown con front matter:

    <kb>/best-practices/sections/<section>/by-industry/<industry>.md
    <kb>/industry-research/<industry>/patterns.md

Una entrada cuenta como vacía si todavía es la plantilla
(`*To be populated through research*`) o si su `last_updated` supera la
antigüedad máxima configurada.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from core.config import AppSettings
from core.domain.models import (
    ClientIntake,
    PartnerInfo,
    ResearchBundle,
    ResearchFinding,
    ServiceItem,
    slugify,
    utcnow,
)
from core.errors import LLMError
from core.interfaces.providers import CompletionClient

logger = logging.getLogger(__name__)

SECTIONS: tuple[str, ...] = ("hero", "about-us", "services", "testimonials", "contact")
TEMPLATE_MARKER = "*To be populated through research*"
DEFAULT_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.3

_LAST_UPDATED_RE = re.compile(r"last_updated:\s*(\d{4}-\d{2}-\d{2}[T\d:.\-+Z]*)")
_CONFIDENCE_RE = re.compile(r"^confidence:\s*([0-9.]+)\s*$", re.MULTILINE)
_FRONT_MATTER_RE = re.compile(r"\A---\n.*?\n---\n", re.DOTALL)

_SECTION_DESCRIPTIONS = {
    "hero": "hero section (main banner with headline, subheadline, and CTA)",
    "about-us": "about us section (company story, mission, values, team)",
    "services": "services section (service listings with descriptions)",
    "testimonials": "testimonials section (customer reviews and social proof)",
    "contact": "contact section (contact form, phone, address, hours)",
}

_FALLBACK_GUIDANCE = {
    "hero": "Lead with the outcome the customer wants, name the service area, and offer one clear call to action.",
    "about-us": "Tell the founding story briefly, show years of experience, and state concrete values with proof.",
    "services": "List core services first with one-sentence benefits and link each to a detail page.",
    "testimonials": "Use named, specific reviews that mention the project type and the result.",
    "contact": "Show phone, email, service area and hours above the fold; keep the form short.",
}


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_last_updated(markdown: str) -> datetime | None:
    match = _LAST_UPDATED_RE.search(markdown)
    return _parse_timestamp(match.group(1)) if match else None


def strip_front_matter(markdown: str) -> str:
    return _FRONT_MATTER_RE.sub("", markdown, count=1).strip()


def _title(value: str) -> str:
    text = value.replace("-", " ")
    return text[:1].upper() + text[1:]


class KnowledgeBase:
    """Cache de research en markdown."""

    def __init__(self, path: Path, *, max_age_days: int = 30, check_expiry: bool = True) -> None:
        self.path = Path(path)
        self.max_age_days = max_age_days
        self.check_expiry = check_expiry

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "KnowledgeBase":
        return cls(
            settings.knowledge_base_path or Path("knowledge"),
            max_age_days=settings.cache_max_age_days,
            check_expiry=settings.cache_check_expiry,
        )

    def best_practice_path(self, section: str, industry: str) -> Path:
        return self.path / "best-practices" / "sections" / section / "by-industry" / f"{slugify(industry)}.md"

    def competitor_path(self, industry: str) -> Path:
        return self.path / "industry-research" / slugify(industry) / "patterns.md"

    def is_expired(self, last_updated: datetime, *, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return now - last_updated > timedelta(days=self.max_age_days)

    def _read(self, path: Path) -> str | None:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        if TEMPLATE_MARKER in content:
            return None
        if self.check_expiry:
            last_updated = extract_last_updated(content)
            if last_updated is not None and self.is_expired(last_updated):
                logger.info("Cache expired for %s (older than %d days)", path, self.max_age_days)
                return None
        return content

    def read_best_practice(self, section: str, industry: str) -> str | None:
        return self._read(self.best_practice_path(section, industry))

    def read_competitors(self, industry: str) -> str | None:
        return self._read(self.competitor_path(industry))

    def write_best_practice(self, finding: ResearchFinding) -> Path:
        path = self.best_practice_path(finding.section, finding.industry)
        stamp = finding.researched_at.isoformat()
        markdown = f"""---
section: {finding.section}
industry: {finding.industry}
sources: []
confidence: {finding.confidence}
last_updated: {stamp}
version: 1.0
tags:
  - section:{finding.section}
  - industry:{finding.industry}
  - quality:researched
---

# {_title(finding.section)} Best Practices for {_title(finding.industry)}

{finding.content}

---

**Research Date**: {stamp}
**Confidence**: {finding.confidence}
"""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")
        logger.info("Saved best practices to %s", path)
        return path

    def write_competitors(self, finding: ResearchFinding) -> Path:
        path = self.competitor_path(finding.industry)
        stamp = finding.researched_at.isoformat()
        markdown = f"""---
industry: {finding.industry}
type: competitor-research
confidence: {finding.confidence}
last_updated: {stamp}
version: 1.0
---

# {_title(finding.industry)} Industry - Competitor Research

{finding.content}

---

**Research Date**: {stamp}
**Confidence**: {finding.confidence}
"""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")
        logger.info("Saved competitor research to %s", path)
        return path


def _cached_finding(section: str, industry: str, markdown: str) -> ResearchFinding:
    confidence = DEFAULT_CONFIDENCE
    match = _CONFIDENCE_RE.search(markdown)
    if match:
        try:
            confidence = min(1.0, max(0.0, float(match.group(1))))
        except ValueError:
            pass
    return ResearchFinding(
        section=section,
        industry=industry,
        content=strip_front_matter(markdown),
        source="cache",
        researched_at=extract_last_updated(markdown) or utcnow(),
        confidence=confidence,
    )


def best_practices_prompt(section: str, industry: str) -> str:
    description = _SECTION_DESCRIPTIONS.get(section, f"{section} section")
    return f"""Research best practices for writing an effective {description} for a {industry} business website.

I need:
1. **Key principles** - What makes this section effective?
2. **What works** - Specific patterns from successful {industry} websites
3. **What to avoid** - Common mistakes
4. **Formula/template** - A reusable structure
5. **Examples** - Effective {section} content for {industry}

Focus on conversion, industry-specific messaging, trust building and clear calls-to-action.
Format your response with clear headings and bullet points."""


def competitors_prompt(industry: str, location: str = "", max_competitors: int = 10) -> str:
    where = f" in {location}" if location else ""
    return f"""Research the top {max_competitors} {industry} company websites{where}.

For each website, analyze: company name and URL, hero section (headline, subheadline, CTA),
how services are presented, unique selling points, trust signals, overall impression.

Also provide:
- **Common patterns** across successful {industry} websites
- **Differentiation opportunities** - what is missing or could be done better
- **Messaging themes** - common language and positioning"""


async def research_best_practices(
    section: str,
    industry: str,
    llm: CompletionClient,
    kb: KnowledgeBase,
    *,
    force_refresh: bool = False,
) -> tuple[ResearchFinding, str | None]:
    """Devuelve (finding, warning). El warning solo aparece si hubo fallback."""

    if not force_refresh:
        cached = kb.read_best_practice(section, industry)
        if cached is not None:
            logger.info("Using cached knowledge for %s/%s", section, industry)
            return _cached_finding(section, industry, cached), None

    logger.info("Researching %s best practices for %s", section, industry)
    try:
        completion = await llm.complete(
            best_practices_prompt(section, industry),
            operation=f"research_{section.replace('-', '_')}",
        )
    except LLMError as exc:
        warning = f"Research for {section}/{industry} fell back to defaults: {exc}"
        logger.warning(warning)
        finding = ResearchFinding(
            section=section,
            industry=industry,
            content=_FALLBACK_GUIDANCE.get(section, "Keep the copy specific, local and benefit-led."),
            source="fallback",
            confidence=FALLBACK_CONFIDENCE,
        )
        return finding, warning

    finding = ResearchFinding(section=section, industry=industry, content=completion.content, source="research")
    try:
        kb.write_best_practice(finding)
    except OSError as exc:
        logger.warning("Could not cache %s/%s research: %s", section, industry, exc)
    return finding, None


async def research_competitors(
    industry: str,
    llm: CompletionClient,
    kb: KnowledgeBase,
    *,
    location: str = "",
    max_competitors: int = 10,
    force_refresh: bool = False,
) -> tuple[ResearchFinding, str | None]:
    if not force_refresh:
        cached = kb.read_competitors(industry)
        if cached is not None:
            logger.info("Using cached competitor research for %s", industry)
            return _cached_finding("competitors", industry, cached), None

    logger.info("Researching %s competitors%s", industry, f" ({location})" if location else "")
    try:
        completion = await llm.complete(
            competitors_prompt(industry, location, max_competitors),
            operation="research_competitors",
        )
    except LLMError as exc:
        warning = f"Competitor research for {industry} fell back to defaults: {exc}"
        logger.warning(warning)
        return (
            ResearchFinding(
                section="competitors",
                industry=industry,
                content="No competitor research available.",
                source="fallback",
                confidence=FALLBACK_CONFIDENCE,
            ),
            warning,
        )

    finding = ResearchFinding(section="competitors", industry=industry, content=completion.content, source="research")
    try:
        kb.write_competitors(finding)
    except OSError as exc:
        logger.warning("Could not cache competitor research for %s: %s", industry, exc)
    return finding, None


def partner_prompt(partner: PartnerInfo, client_industry: str) -> str:
    extra = partner.model_extra or {}
    context = []
    if extra.get("services_provided"):
        context.append(f"Services provided: {', '.join(map(str, extra['services_provided']))}")
    if extra.get("project_keywords"):
        context.append(f"Project types: {', '.join(map(str, extra['project_keywords']))}")
    industry = f" in the {partner.industry} industry" if partner.industry else ""
    return f"""Research the company "{partner.name}"{industry}.

Context: this company is a client/partner of a {client_industry} business.
{chr(10).join(context)}

I need to understand this company to write realistic testimonial content. Provide:
1. **Company overview** - type of company, approximate size, primary focus
2. **Industry context** - sector, common challenges, what they need from {client_industry} providers
3. **Project context** - typical projects, scale, geographic focus
4. **Professional language** - job titles and terminology used in their industry
5. **Credibility signals** - notable projects, reputation, certifications

Stick to factual, verifiable information."""


def image_keywords_prompt(services: list[ServiceItem], industry: str) -> str:
    listing = "\n".join(f"- {s.name}{f': {s.description}' if s.description else ''}" for s in services)
    return f"""Generate stock photo search keywords for these {industry} services:

{listing}

For each service give 3-5 specific keywords that find real, professional photos
(actions like "workers installing", equipment like "construction crane"), specific to {industry}.
Avoid generic terms like "business" or "professional" alone.

Return ONLY a JSON array:
[{{"service_name": "Service Name", "primary_keywords": ["kw1", "kw2", "kw3"], "secondary_keywords": ["kw4"]}}]"""


def fallback_image_keywords(service: ServiceItem, industry: str) -> list[str]:
    name = service.name.lower()
    return [kw for kw in (name, f"{industry} {name}".strip(), industry) if kw]


async def research_partners(
    partners: list[PartnerInfo],
    client_industry: str,
    llm: CompletionClient,
    *,
    max_partners: int = 5,
) -> tuple[dict[str, ResearchFinding], list[str], list[str]]:
    """Contexto de partners para testimonios: (findings por nombre, omitidos, warnings).

    Solo se investigan los `can_use_as_reference`; si el LLM falla, el partner
    queda con un finding `fallback` mínimo en vez de desaparecer.
    """

    findings: dict[str, ResearchFinding] = {}
    skipped = [p.name for p in partners[:max_partners] if not p.can_use_as_reference]
    selected = [p for p in partners[:max_partners] if p.can_use_as_reference]
    for name in skipped:
        logger.info("Skipping partner %s (not authorized for reference)", name)

    async def _one(partner: PartnerInfo) -> tuple[ResearchFinding, str | None]:
        logger.info("Researching partner %s", partner.name)
        try:
            completion = await llm.complete(partner_prompt(partner, client_industry), operation="research_partner")
        except LLMError as exc:
            warning = f"Partner research for {partner.name} fell back to defaults: {exc}"
            logger.warning(warning)
            content = f"{partner.name} ({partner.industry or 'client'}) works with this business."
            return (
                ResearchFinding(
                    section="partners",
                    industry=partner.industry or client_industry,
                    content=content,
                    source="fallback",
                    confidence=FALLBACK_CONFIDENCE,
                ),
                warning,
            )
        return (
            ResearchFinding(
                section="partners",
                industry=partner.industry or client_industry,
                content=completion.content,
                source="research",
            ),
            None,
        )

    results = await asyncio.gather(*(_one(p) for p in selected))
    warnings: list[str] = []
    for partner, (finding, warning) in zip(selected, results):
        findings[partner.name] = finding
        if warning:
            warnings.append(warning)
    return findings, skipped, warnings


def _parse_image_keywords(data: Any) -> dict[str, list[str]]:
    if isinstance(data, dict):
        data = data.get("services") or data.get("keywords") or []
    out: dict[str, list[str]] = {}
    for item in data if isinstance(data, list) else []:
        if not isinstance(item, dict) or not item.get("service_name"):
            continue
        keywords = [*(item.get("primary_keywords") or []), *(item.get("secondary_keywords") or [])]
        cleaned = [str(kw).strip() for kw in keywords if str(kw).strip()]
        if cleaned:
            out[str(item["service_name"])] = cleaned
    return out


async def research_service_image_keywords(
    services: list[ServiceItem],
    industry: str,
    llm: CompletionClient,
) -> tuple[dict[str, list[str]], str | None]:
    """Keywords de fotos para los servicios sin `image_keywords`.

    Cada servicio pedido recibe keywords: las del LLM o, si no llegan, su
    nombre más la industria.
    """

    pending = [s for s in services if not s.image_keywords]
    if not pending:
        return {}, None

    warning: str | None = None
    suggested: dict[str, list[str]] = {}
    try:
        data = await llm.complete_json(
            image_keywords_prompt(pending, industry),
            max_tokens=2000,
            operation="research_image_keywords",
        )
        suggested = _parse_image_keywords(data)
    except LLMError as exc:
        warning = f"Image keyword research fell back to service names: {exc}"
        logger.warning(warning)

    return {s.name: suggested.get(s.name) or fallback_image_keywords(s, industry) for s in pending}, warning


async def run_discovery_research(
    intake: ClientIntake,
    llm: CompletionClient,
    kb: KnowledgeBase,
    *,
    parallel: bool = True,
    force_refresh: bool = False,
) -> ResearchBundle:
    """Research completo: las cinco secciones, competencia, partners y keywords de fotos."""

    industry = intake.industry.category
    bundle = ResearchBundle(project=intake.project_slug)

    if parallel:
        results = await asyncio.gather(
            *(research_best_practices(s, industry, llm, kb, force_refresh=force_refresh) for s in SECTIONS)
        )
    else:
        results = [await research_best_practices(s, industry, llm, kb, force_refresh=force_refresh) for s in SECTIONS]

    for section, (finding, warning) in zip(SECTIONS, results):
        bundle.best_practices[section] = finding
        if warning:
            bundle.warnings.append(warning)

    competitors, warning = await research_competitors(
        industry,
        llm,
        kb,
        location=intake.industry.service_area or "",
        force_refresh=force_refresh,
    )
    bundle.competitors = competitors
    if warning:
        bundle.warnings.append(warning)

    if intake.partners:
        partners, skipped, partner_warnings = await research_partners(intake.partners, industry, llm)
        bundle.partners = partners
        bundle.partners_skipped = skipped
        bundle.warnings.extend(partner_warnings)

    keywords, warning = await research_service_image_keywords(intake.services, industry, llm)
    bundle.service_image_keywords = keywords
    if warning:
        bundle.warnings.append(warning)

    tracker = getattr(llm, "tracker", None)
    if tracker is not None:
        bundle.token_usage = tracker.totals()
    return bundle

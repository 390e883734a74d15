"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Sustituye a los validadores de esquema: un intake inválido falla en el borde.

Nota:
- El `Blueprint` guarda los borradores como documentos (dict) porque los
  patterns los direccionan con rutas tipo `content_drafts.hero.headline`.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slugify(value: str) -> str:
    """Slug apto para paths y URLs (`Acme Roofing & Co` -> `acme-roofing-co`)."""

    slug = _SLUG_RE.sub("-", (value or "").strip().lower()).strip("-")
    return slug or "project"


class CompanyInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=200, description="Nombre comercial.")
    slug: str | None = Field(default=None, description="Slug explícito del proyecto.")
    tagline: str | None = None
    description: str | None = Field(default=None, max_length=5_000)
    years_in_business: int | None = Field(default=None, ge=0, le=500)


class Address(BaseModel):
    model_config = ConfigDict(extra="allow")

    street: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None


class ContactInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    phone: str = Field(..., min_length=3, description="Teléfono principal.")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    address: Address | None = None
    hours: dict[str, Any] | None = Field(
        default=None,
        description="Horario libre (p.ej. {'weekdays': '7-17', 'notes': '24/7 emergencias'}).",
    )


class BrandInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    colors: dict[str, str] | None = Field(
        default=None,
        description="Colores de marca (primary/secondary/accent...), hex.",
    )
    tone: str = Field(default="professional")
    style: str | None = Field(default=None, description="Estilo visual preferido (modern, classic...).")


class IndustryInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: str = Field(..., min_length=1, description="Industria (p.ej. 'construction').")
    niche: str | None = None
    target_audience: str | None = None
    service_area: str | None = None


class ServiceItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    description: str | None = None
    price_range: str | None = None
    is_primary: bool = False
    image_keywords: list[str] = Field(default_factory=list)


class MissionInfo(BaseModel):
    vision: str | None = None
    mission: str | None = None
    values: list[str] = Field(default_factory=list)
    unique_selling_points: list[str] = Field(default_factory=list)


class PartnerInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    industry: str | None = None
    can_use_as_reference: bool = True


class WebsiteGoals(BaseModel):
    model_config = ConfigDict(extra="allow")

    pages_needed: list[str] | None = None


class ClientIntake(BaseModel):
    """Formulario de alta de un cliente.

    Es la única entrada del pipeline: todo lo demás (research, blueprint,
    tema) se deriva de aquí.
    """

    company: CompanyInfo
    contact: ContactInfo
    brand: BrandInfo = Field(default_factory=BrandInfo)
    industry: IndustryInfo
    services: list[ServiceItem] = Field(default_factory=list)
    mission: MissionInfo = Field(default_factory=MissionInfo)
    partners: list[PartnerInfo] = Field(default_factory=list)
    website_goals: WebsiteGoals = Field(default_factory=WebsiteGoals)
    notes: str | None = None

    @property
    def project_slug(self) -> str:
        return slugify(self.company.slug or self.company.name)


class ResearchFinding(BaseModel):
    """Resultado de investigar una sección/industria (o la competencia)."""

    section: str = Field(..., min_length=1)
    industry: str = Field(..., min_length=1)
    content: str = Field(default="")
    source: Literal["cache", "research", "fallback"] = "research"
    researched_at: datetime = Field(default_factory=utcnow)
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)


class ResearchBundle(BaseModel):
    """Research completo de descubrimiento para un cliente."""

    project: str
    best_practices: dict[str, ResearchFinding] = Field(default_factory=dict)
    competitors: ResearchFinding | None = None
    partners: dict[str, ResearchFinding] = Field(
        default_factory=dict,
        description="Contexto de cada partner citable (clave: nombre), para testimonios.",
    )
    partners_skipped: list[str] = Field(default_factory=list)
    service_image_keywords: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Keywords de fotos para servicios que no las traían en el intake.",
    )
    timestamp: datetime = Field(default_factory=utcnow)
    token_usage: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)


class Photo(BaseModel):
    """Foto de stock normalizada (Unsplash/Pexels) o placeholder local."""

    id: str
    source: Literal["unsplash", "pexels", "local"]
    url: str = Field(..., description="URL de la versión 'regular' (o path local).")
    thumb_url: str | None = None
    description: str = ""
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    photographer: str | None = None
    photographer_url: str | None = None
    attribution: str = ""


class Blueprint(BaseModel):
    """Documento con la copy redactada y la estructura recomendada de un sitio."""

    model_config = ConfigDict(extra="allow")

    version: str = Field(default="1.0")
    created_at: datetime = Field(default_factory=utcnow)
    status: Literal["draft", "reviewed", "approved"] = "draft"
    client_profile: dict[str, Any] = Field(default_factory=dict)
    research_summary: dict[str, Any] = Field(default_factory=dict)
    content_drafts: dict[str, Any] = Field(default_factory=dict)
    structure_recommendation: dict[str, Any] | None = None
    brand_profile: dict[str, Any] = Field(default_factory=dict)
    assets: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(
        default_factory=list,
        description="Secciones redactadas con fallback determinista (LLM no disponible/fallido).",
    )

    @property
    def slug(self) -> str:
        company = self.client_profile.get("company") or {}
        return slugify(str(company.get("slug") or company.get("name") or ""))

    def as_document(self) -> dict[str, Any]:
        """Vista dict (JSON) que usan selectores e inyección de contenido."""

        return self.model_dump(mode="json")


def as_document(blueprint: Blueprint | dict[str, Any]) -> dict[str, Any]:
    if isinstance(blueprint, Blueprint):
        return blueprint.as_document()
    return blueprint

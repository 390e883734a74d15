"""Modelos del catálogo de plantillas (presets y patterns).

Un *preset* combina industria + estilo visual y elige un pattern por sección.
Un *pattern* es un fragmento PHP con slots de contenido que apuntan al
blueprint mediante rutas con puntos.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

SECTIONS: tuple[str, ...] = ("hero", "services", "about", "testimonials", "contact")


class ContentSlot(BaseModel):
    required: bool = False
    source: str = Field(..., min_length=1, description="Ruta tipo 'content_drafts.hero.headline'.")
    fallback: str | list[Any] | None = None
    transform: Literal["uppercase", "lowercase", "capitalize", "truncate"] | None = None


class BooleanOption(BaseModel):
    type: Literal["boolean"]
    default: bool
    description: str | None = None


class NumberOption(BaseModel):
    type: Literal["number"]
    default: float
    min: float | None = None
    max: float | None = None
    description: str | None = None


class EnumOption(BaseModel):
    type: Literal["enum"]
    options: list[str]
    default: str
    description: str | None = None


class StringOption(BaseModel):
    type: Literal["string"]
    default: str
    description: str | None = None


ConfigOption = Annotated[
    Union[BooleanOption, NumberOption, EnumOption, StringOption],
    Field(discriminator="type"),
]


class PatternSuitability(BaseModel):
    industries: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)
    score_factors: dict[str, float] = Field(default_factory=dict)


class PatternManifest(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    category: Literal[
        "hero",
        "services",
        "about",
        "testimonials",
        "contact",
        "cta",
        "features",
        "team",
        "portfolio",
        "faq",
    ]
    variants: list[str] = Field(default_factory=lambda: ["default"])
    configuration: dict[str, ConfigOption] = Field(default_factory=dict)
    content_slots: dict[str, ContentSlot] = Field(default_factory=dict)
    tailwind_classes: dict[str, str] = Field(default_factory=dict)
    suitability: PatternSuitability = Field(default_factory=PatternSuitability)
    template_file: str = "template.php"
    preview: str | None = None

    path: Path | None = Field(default=None, exclude=True, description="Directorio de origen.")


class PresetPatterns(BaseModel):
    hero: str
    services: str
    about: str
    testimonials: str
    contact: str


class PresetColors(BaseModel):
    primary: str
    secondary: str
    accent: str | None = None
    background: str | None = None
    text: str | None = None


class PresetTypography(BaseModel):
    headings: str
    body: str


class PresetSuitability(BaseModel):
    b2b: float = Field(default=0.5, ge=0.0, le=1.0)
    b2c: float = Field(default=0.5, ge=0.0, le=1.0)
    premium: float = Field(default=0.5, ge=0.0, le=1.0)
    budget: float = Field(default=0.5, ge=0.0, le=1.0)


class TemplatePreset(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    industry: str = Field(..., min_length=1)
    style: str = Field(..., min_length=1)
    patterns: PresetPatterns
    configuration_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)
    colors: PresetColors
    typography: PresetTypography
    suitability: PresetSuitability = Field(default_factory=PresetSuitability)
    preview: str | None = None

    path: Path | None = Field(default=None, exclude=True)


class LoadedPattern(BaseModel):
    """Manifest + cuerpo PHP listos para inyectar contenido."""

    manifest: PatternManifest
    template: str

"""Validador de anti-patrones de diseño y copy.

Detecta elecciones "genéricas" (fuentes sobreusadas, frases de relleno,
combinaciones de color típicas de plantillas) para que cada sitio salga con
identidad propia.

Las reglas por defecto se pueden sobrescribir con
`<catalog_root>/tokens/anti-patterns.json` (misma forma que `DEFAULT_RULES`).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from adapters.http_client import extract_visible_text

logger = logging.getLogger(__name__)

DEFAULT_RULES: dict[str, Any] = {
    "fonts": {
        "banned": ["Inter", "Roboto", "Arial", "Helvetica", "Open Sans", "Montserrat"],
        "alternatives": {
            "default": {"heading": "Bricolage Grotesque", "body": "Instrument Sans"},
        },
    },
    "content": {
        "banned_phrases": [
            "Welcome to our website",
            "Lorem ipsum",
            "Click here",
            "Learn more",
            "We are a leading",
        ],
        "alternatives": {},
    },
    "colors": {
        "validation_rules": [{"rule": "no_purple_gradient"}],
    },
}

_PURPLE = ("purple", "violet", "#800080", "#8b00ff", "#9400d3")
_PINK = ("pink", "magenta", "#ff00ff", "#ff1493", "#ff69b4")


class Finding(BaseModel):
    message: str
    field: str
    suggestion: str | None = None


class AntiPatternReport(BaseModel):
    valid: bool = True
    errors: list[Finding] = Field(default_factory=list)
    warnings: list[Finding] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    def add_error(self, message: str, field: str, suggestion: str | None = None) -> None:
        self.valid = False
        self.errors.append(Finding(message=message, field=field, suggestion=suggestion))

    def add_warning(self, message: str, field: str, suggestion: str | None = None) -> None:
        self.warnings.append(Finding(message=message, field=field, suggestion=suggestion))

    def merge(self, other: "AntiPatternReport") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.suggestions.extend(other.suggestions)
        self.valid = not self.errors


def load_rules(catalog_root: Path | None = None) -> dict[str, Any]:
    """Reglas efectivas: override JSON del catálogo o `DEFAULT_RULES`."""

    if catalog_root is None:
        return DEFAULT_RULES
    path = catalog_root / "tokens" / "anti-patterns.json"
    if not path.is_file():
        return DEFAULT_RULES
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse %s (%s); using default anti-patterns", path, exc)
        return DEFAULT_RULES


def recommended_fonts(industry: str | None = None, *, rules: dict[str, Any] | None = None) -> dict[str, str]:
    alternatives = (rules or DEFAULT_RULES).get("fonts", {}).get("alternatives", {})
    return (
        alternatives.get(industry or "default")
        or alternatives.get("default")
        or {"heading": "Bricolage Grotesque", "body": "Instrument Sans"}
    )


def validate_fonts(
    typography: dict[str, Any] | None,
    industry: str | None = None,
    *,
    rules: dict[str, Any] | None = None,
) -> AntiPatternReport:
    rules = rules or DEFAULT_RULES
    report = AntiPatternReport()
    typography = typography or {}
    banned = rules.get("fonts", {}).get("banned", [])
    alternatives = rules.get("fonts", {}).get("alternatives", {})
    alt = recommended_fonts(industry, rules=rules)

    headings = typography.get("headings")
    if headings and headings in banned:
        report.add_error(
            f'Font "{headings}" is overused in generated designs',
            "typography.headings",
            f'Consider using "{alt.get("heading")}" instead for a more distinctive look',
        )

    body = typography.get("body")
    if body and body in banned:
        report.add_error(
            f'Font "{body}" is overused in generated designs',
            "typography.body",
            f'Consider using "{alt.get("body")}" instead',
        )

    if industry and industry in alternatives:
        pair = alternatives[industry]
        report.suggestions.append(
            f"For {industry} industry, recommended fonts: {pair.get('heading')} (headings) + {pair.get('body')} (body)"
        )
    return report


def _flatten_text(content: Any) -> str:
    if isinstance(content, str):
        return extract_visible_text(content) if "<" in content else content
    return json.dumps(content, ensure_ascii=False, default=str)


def validate_copy(content: Any, *, rules: dict[str, Any] | None = None) -> AntiPatternReport:
    """Busca frases de relleno en copy (dict/list/texto/HTML)."""

    rules = rules or DEFAULT_RULES
    report = AntiPatternReport()
    phrases = rules.get("content", {}).get("banned_phrases", [])
    alternatives = rules.get("content", {}).get("alternatives", {})

    haystack = _flatten_text(content).lower()
    for phrase in phrases:
        if phrase.lower() in haystack:
            alt = alternatives.get(phrase)
            report.add_warning(
                f'Generic phrase "{phrase}" detected',
                "content",
                f'Consider: "{alt}"' if alt else "Use more specific, authentic language",
            )
    return report


def validate_colors(colors: dict[str, Any] | None, *, rules: dict[str, Any] | None = None) -> AntiPatternReport:
    rules = rules or DEFAULT_RULES
    report = AntiPatternReport()
    colors = colors or {}
    primary = str(colors.get("primary") or "").lower()
    secondary = str(colors.get("secondary") or "").lower()

    for rule in rules.get("colors", {}).get("validation_rules", []):
        name = rule.get("rule")
        if name == "no_purple_gradient":
            has_purple = any(p in primary or p in secondary for p in _PURPLE)
            has_pink = any(p in primary or p in secondary for p in _PINK)
            if has_purple and has_pink:
                report.add_error(
                    "Purple-pink gradient pattern detected",
                    "colors",
                    "This combination reads as a stock template. Consider industry-appropriate colors.",
                )
        elif name == "no_neon":
            for neon in rule.get("colors", []):
                if neon.lower() in (primary, secondary):
                    report.add_warning(
                        f"Neon color {neon} detected",
                        "colors",
                        "Neon colors can appear unprofessional. Consider more muted alternatives.",
                    )
    return report


def validate_design(
    *,
    typography: dict[str, Any] | None = None,
    colors: dict[str, Any] | None = None,
    content: Any = None,
    industry: str | None = None,
    rules: dict[str, Any] | None = None,
) -> AntiPatternReport:
    report = validate_fonts(typography, industry, rules=rules)
    report.merge(validate_colors(colors, rules=rules))
    if content is not None:
        report.merge(validate_copy(content, rules=rules))
    return report


def auto_fix_fonts(
    typography: dict[str, Any],
    industry: str | None = None,
    *,
    rules: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """Sustituye fuentes vetadas por la alternativa recomendada."""

    rules = rules or DEFAULT_RULES
    banned = rules.get("fonts", {}).get("banned", [])
    alt = recommended_fonts(industry, rules=rules)
    fixed = dict(typography)
    changes: list[str] = []

    if fixed.get("headings") in banned:
        changes.append(f'Changed heading font from "{fixed["headings"]}" to "{alt["heading"]}"')
        fixed["headings"] = alt["heading"]
    if fixed.get("body") in banned:
        changes.append(f'Changed body font from "{fixed["body"]}" to "{alt["body"]}"')
        fixed["body"] = alt["body"]
    return fixed, changes

"""Exportación de reportes y previews (Jinja2 + WeasyPrint).

Por qué está en adapters:
- PDF/HTML son detalles de infraestructura (WeasyPrint/Jinja2).
- El Core solo conoce el `Blueprint`, el `AutoReviewResult` y el ensamblado.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.domain.models import Blueprint
from core.domain.review import AutoReviewResult


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_site_preview(*, title: str, css_variables: str, sections: Iterable[tuple[str, Any]]) -> str:
    """HTML estático con una vista previa de cada sección ensamblada.

    `sections` son pares (nombre, pattern ensamblado) con `manifest`,
    `content` y `summary`.
    """

    template = _get_env().get_template("preview.html")
    return template.render(
        title=title,
        css_variables=css_variables,
        sections=list(sections),
        generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


THEME_SCAFFOLD: tuple[str, ...] = ("style.css", "functions.php", "index.php", "inc/block-patterns.php")


def render_theme_scaffold(context: dict[str, Any]) -> dict[str, str]:
    """Archivos mínimos para que WordPress reconozca e instale el tema.

    `context` trae `theme_name`, `theme_slug`, `prefix`, `version`,
    `description`, `industry`, `category_label` y `patterns` (estos dos ya como
    literales PHP). Las plantillas `.j2` no pasan por autoescape HTML.
    """

    env = _get_env()
    return {path: env.get_template(f"theme/{path}.j2").render(**context) for path in THEME_SCAFFOLD}


def render_blueprint_html(*, blueprint: Blueprint, review: AutoReviewResult | None = None) -> str:
    """Renderiza un HTML autocontenido con la copy del blueprint."""

    doc = blueprint.as_document()
    company = (doc.get("client_profile") or {}).get("company") or {}
    template = _get_env().get_template("report.html")
    return template.render(
        blueprint=doc,
        company=company,
        drafts=doc.get("content_drafts") or {},
        structure=doc.get("structure_recommendation") or {},
        review=review,
        generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def export_blueprint_html(*, blueprint: Blueprint, output_path: Path, review: AutoReviewResult | None = None) -> Path:
    """Exporta el blueprint como HTML.

    Por qué existe:
    - Sirve como fallback cuando el render PDF no está soportado por el entorno.
    """

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_blueprint_html(blueprint=blueprint, review=review), encoding="utf-8")
    return output_path


def export_blueprint_pdf(*, blueprint: Blueprint, output_path: Path, review: AutoReviewResult | None = None) -> Path:
    """Exporta el blueprint como PDF (síncrono, WeasyPrint es CPU local).

    WeasyPrint se importa aquí: necesita Pango del sistema y su ausencia no debe
    impedir ensamblar temas ni exportar HTML.
    """

    from weasyprint import HTML

    output_path.parent.mkdir(parents=True, exist_ok=True)
    html = render_blueprint_html(blueprint=blueprint, review=review)
    HTML(string=html, base_url=str(_TEMPLATES_DIR)).write_pdf(str(output_path))
    return output_path

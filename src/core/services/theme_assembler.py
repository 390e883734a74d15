"""Ensamblado del tema: preset -> patterns con contenido -> tokens -> archivos.

Diseño:
- `assemble_theme` nunca lanza: acumula `errors`/`warnings` en el resultado
  para que la CLI (o el pipeline) decida cómo presentarlos.
- Las fotos se resuelven fuera (I/O async) y llegan ya listas por sección.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from adapters.report_exporter import render_site_preview, render_theme_scaffold
from core.domain.models import Blueprint, Photo, as_document, slugify
from core.domain.storage import GeneratedFile
from core.domain.templates import PatternManifest, TemplatePreset
from core.errors import WPFError
from core.resources_loader import load_preset_patterns
from core.services.content_injector import (
    ContentSummary,
    ContentValidation,
    generate_content_summary,
    inject_content_with_mapping,
    validate_content,
)
from core.services.design_tokens import (
    DesignTokenInput,
    DesignTokens,
    blueprint_brand_colors,
    extract_tokens_from_blueprint,
    generate_all_tokens,
)
from core.services.template_selector import (
    BlueprintFactors,
    generate_template_comparison,
    pattern_config_recommendations,
    select_best_preset,
)

logger = logging.getLogger(__name__)

IMAGE_SECTIONS: tuple[str, ...] = ("hero", "about", "services", "testimonials", "team", "gallery")
PREVIEW_SECTIONS: tuple[str, ...] = ("hero", "services", "about", "testimonials", "contact")
THEME_VERSION = "1.0.0"


@dataclass
class AssembledPattern:
    manifest: PatternManifest
    template: str
    config: dict[str, Any]
    content: dict[str, Any]
    validation: ContentValidation
    summary: ContentSummary


@dataclass
class AssemblyResult:
    success: bool = False
    preset: TemplatePreset | None = None
    preset_score: float = 0.0
    factors: BlueprintFactors | None = None
    patterns: dict[str, AssembledPattern] = field(default_factory=dict)
    token_input: DesignTokenInput | None = None
    design_tokens: DesignTokens | None = None
    images: dict[str, list[Photo]] = field(default_factory=dict)
    files: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComparisonAssembly:
    label: str
    preset: TemplatePreset
    score: float
    assembly: AssemblyResult


def _attach_images(result: AssemblyResult, photos: dict[str, list[Photo]]) -> None:
    for section, items in photos.items():
        pattern = result.patterns.get(section)
        if pattern is None or not items:
            continue
        result.images[section] = items
        pattern.content["images"] = [
            {"url": p.url, "description": p.description, "attribution": p.attribution} for p in items
        ]
        if section in ("hero", "about"):
            pattern.content["image_url"] = items[0].url


def _token_input(doc: dict[str, Any], preset: TemplatePreset, warnings: list[str]) -> DesignTokenInput:
    tokens = extract_tokens_from_blueprint(doc).model_dump()
    brand_profile = doc.get("brand_profile") or {}
    brand_colors, color_warnings = blueprint_brand_colors(doc)
    warnings.extend(color_warnings)

    # El preset rellena lo que el cliente no definió (o definió con valores no hex).
    palette = preset.colors.model_dump(exclude_none=True)
    if not brand_colors:
        tokens["colors"].update(palette)
    else:
        for key in ("primary", "secondary"):
            if key not in brand_colors and key in palette:
                tokens["colors"][key] = palette[key]
    if not brand_profile.get("typography"):
        tokens["typography"].update(preset.typography.model_dump(exclude_none=True))
    return DesignTokenInput.model_validate(tokens)


def assemble_theme(
    blueprint: Blueprint | dict[str, Any],
    *,
    industry: str | None = None,
    force_preset: str | None = None,
    output_dir: Path | None = None,
    dry_run: bool = False,
    photos: dict[str, list[Photo]] | None = None,
    root: Path | None = None,
) -> AssemblyResult:
    doc = as_document(blueprint)
    result = AssemblyResult()

    try:
        selection = select_best_preset(doc, industry=industry, force_preset=force_preset, root=root)
        result.preset = selection.preset
        result.preset_score = selection.score
        result.factors = selection.factors
        logger.info("Selected preset %s (score %d%%)", selection.preset.name, round(selection.score * 100))

        _, patterns = load_preset_patterns(selection.preset.industry, selection.preset.id, root=root)
        missing_sections = set(selection.preset.patterns.model_dump()) - set(patterns)
        for section in sorted(missing_sections):
            result.warnings.append(f"Pattern {section}: could not be loaded")

        for section, loaded in patterns.items():
            manifest = loaded.manifest
            config = pattern_config_recommendations(manifest, doc)
            config.update(selection.preset.configuration_overrides.get(section, {}))
            content = inject_content_with_mapping(manifest, doc)
            validation = validate_content(manifest, content)
            if not validation.valid:
                result.warnings.append(
                    f"Pattern {section}: missing required content: {', '.join(validation.missing)}"
                )
            summary = generate_content_summary(manifest, content)
            result.patterns[section] = AssembledPattern(
                manifest=manifest,
                template=loaded.template,
                config=config,
                content=content,
                validation=validation,
                summary=summary,
            )
            logger.debug("Pattern %s: %d%% complete", section, summary.completeness)

        if photos:
            _attach_images(result, photos)

        result.token_input = _token_input(doc, selection.preset, result.warnings)
        result.design_tokens = generate_all_tokens(result.token_input)

        if output_dir is not None and not dry_run:
            result.files = write_theme_files(result, output_dir, doc)

        result.success = True
    except (WPFError, ValidationError, OSError) as exc:
        logger.error("Theme assembly failed: %s", exc)
        result.errors.append(str(exc))

    return result


def to_php_literal(value: Any, indent: int = 1) -> str:
    """Literal PHP equivalente (arrays cortos `[...]`, strings con comilla simple)."""

    pad = "    " * indent
    close = "    " * (indent - 1)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    if isinstance(value, dict):
        if not value:
            return "[]"
        rows = [f"{pad}{to_php_literal(str(k))} => {to_php_literal(v, indent + 1)}," for k, v in value.items()]
        return "[\n" + "\n".join(rows) + f"\n{close}]"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        rows = [f"{pad}{to_php_literal(v, indent + 1)}," for v in value]
        return "[\n" + "\n".join(rows) + f"\n{close}]"
    return to_php_literal(str(value), indent)


def _strip_php_header(template: str) -> str:
    end = template.find("?>")
    return template[end + 2 :].strip() if end != -1 else template


def generate_pattern_file(section: str, pattern: AssembledPattern, *, generated_at: datetime | None = None) -> str:
    """PHP del pattern con `$config`, `$content` y `$classes` ya resueltos."""

    manifest = pattern.manifest
    stamp = (generated_at or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    header = f"""<?php
/**
 * {manifest.name} Pattern
 * Generated by WPF Theme Assembler
 *
 * Pattern ID: {manifest.id}
 * Section: {section}
 * Generated: {stamp}
 */

// Configuration (can be overridden)
$config = array_merge({to_php_literal(pattern.config)}, $config ?? []);

// Content (injected from blueprint)
$content = array_merge({to_php_literal(pattern.content)}, $content ?? []);

// Tailwind classes
$classes = {to_php_literal(manifest.tailwind_classes)};

?>
"""
    return header + "\n" + _strip_php_header(pattern.template) + "\n"


def _assembly_report(result: AssemblyResult) -> dict[str, Any]:
    if result.preset is None:
        raise WPFError("Cannot build an assembly report without a selected preset")
    return {
        "preset": {"id": result.preset.id, "name": result.preset.name, "score": result.preset_score},
        "patterns": {
            section: {
                "id": p.manifest.id,
                "completeness": p.summary.completeness,
                "config": p.config,
                "images": len(p.content.get("images") or []),
            }
            for section, p in result.patterns.items()
        },
        "images": {
            "categories": list(result.images),
            "total_photos": sum(len(v) for v in result.images.values()),
            "details": {
                section: [{"id": p.id, "description": p.description, "attribution": p.attribution} for p in photos]
                for section, photos in result.images.items()
            },
        }
        if result.images
        else None,
        "design_tokens": result.token_input.model_dump() if result.token_input else None,
        "warnings": result.warnings,
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }


def _header_safe(text: str) -> str:
    # Va dentro de comentarios CSS/PHP: sin saltos de línea ni cierre de bloque.
    return " ".join(text.replace("*/", "").split())


def theme_scaffold_context(result: AssemblyResult, blueprint: Blueprint | dict[str, Any]) -> dict[str, Any]:
    """Variables de `style.css`, `functions.php`, `index.php` e `inc/block-patterns.php`."""

    doc = as_document(blueprint)
    company = (doc.get("client_profile") or {}).get("company") or {}
    industry = ((doc.get("client_profile") or {}).get("industry") or {}).get("category") or "general"
    name = _header_safe(str(company.get("name") or "WPF Theme"))
    slug = slugify(str(company.get("slug") or name))
    preset_name = result.preset.name if result.preset else "custom"
    return {
        "theme_name": name,
        "theme_slug": slug,
        "prefix": "wpf_" + slug.replace("-", "_"),
        "version": THEME_VERSION,
        "description": _header_safe(f"Custom theme for {name}, assembled from the {preset_name} preset."),
        "industry": slugify(str(industry)),
        "category_label": to_php_literal(name),
        "patterns": to_php_literal({section: p.manifest.name for section, p in result.patterns.items()}, indent=2),
    }


def render_theme_files(result: AssemblyResult, blueprint: Blueprint | dict[str, Any]) -> list[GeneratedFile]:
    """Contenido de todos los archivos del tema (rutas relativas)."""

    if result.design_tokens is None or result.preset is None:
        raise WPFError("Cannot render theme files from an incomplete assembly")

    doc = as_document(blueprint)
    tokens = result.design_tokens
    scaffold = render_theme_scaffold(theme_scaffold_context(result, doc))
    files = [
        GeneratedFile(path=path, content=content + "\n", type=path.rsplit(".", 1)[-1])
        for path, content in scaffold.items()
    ]
    files += [
        GeneratedFile(path="theme.json", content=json.dumps(tokens.theme_json, indent=2) + "\n", type="json"),
        GeneratedFile(path="tailwind.config.js", content=tokens.tailwind_config, type="js"),
        GeneratedFile(path="css/variables.css", content=tokens.css_variables, type="css"),
    ]
    for section, pattern in result.patterns.items():
        files.append(
            GeneratedFile(
                path=f"patterns/{section}.php",
                content=generate_pattern_file(section, pattern),
                type="php",
                metadata={"pattern_id": pattern.manifest.id, "section": section},
            )
        )
        manifest_doc = {
            "id": pattern.manifest.id,
            "name": pattern.manifest.name,
            "config": pattern.config,
            "content_summary": pattern.summary.model_dump(),
        }
        files.append(
            GeneratedFile(
                path=f"patterns/{section}.manifest.json",
                content=json.dumps(manifest_doc, indent=2, ensure_ascii=False) + "\n",
                type="json",
            )
        )

    files.append(
        GeneratedFile(
            path="assembly-report.json",
            content=json.dumps(_assembly_report(result), indent=2, ensure_ascii=False) + "\n",
            type="json",
        )
    )

    company = ((doc.get("client_profile") or {}).get("company") or {}).get("name") or "Theme Preview"
    preview = render_site_preview(
        title=f"{company} - Website Preview",
        css_variables=tokens.css_variables,
        sections=[(s, result.patterns[s]) for s in PREVIEW_SECTIONS if s in result.patterns],
    )
    files.append(GeneratedFile(path="preview/index.html", content=preview, type="html"))
    return files


def write_theme_files(result: AssemblyResult, output_dir: Path, blueprint: Blueprint | dict[str, Any]) -> list[Path]:
    written: list[Path] = []
    for item in render_theme_files(result, blueprint):
        target = output_dir / item.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(item.content, encoding="utf-8")
        written.append(target)
    logger.info("Wrote %d theme files to %s", len(written), output_dir)
    return written


def collect_generated_files(result: AssemblyResult, blueprint: Blueprint | dict[str, Any]) -> list[GeneratedFile]:
    """Archivos del tema + blueprint, listos para `FileStorageService.save_project`."""

    doc = as_document(blueprint)
    files = render_theme_files(result, doc)
    files.append(
        GeneratedFile(
            path="blueprint.json",
            content=json.dumps(doc, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            type="json",
        )
    )
    return files


def generate_comparison_assembly(
    blueprint: Blueprint | dict[str, Any],
    *,
    industry: str | None = None,
    root: Path | None = None,
) -> list[ComparisonAssembly]:
    """Ensamblado en seco de las opciones A/B/C."""

    comparison = generate_template_comparison(blueprint, industry=industry, root=root)
    return [
        ComparisonAssembly(
            label=option.label,
            preset=option.preset,
            score=option.score,
            assembly=assemble_theme(
                blueprint,
                industry=option.preset.industry,
                force_preset=option.preset.id,
                dry_run=True,
                root=root,
            ),
        )
        for option in comparison.options
    ]

"""Cargador del catálogo de plantillas (presets + patterns).

Este módulo vive en `core/` porque:
- centraliza el *qué* datos necesitamos (preset.json/manifest.json/template.php)
  sin acoplarse a la CLI
- evita duplicar lógica de paths en selector y ensamblador.

Layout del catálogo:
    <root>/<industry>/<preset>/preset.json
    <root>/<industry>/<preset>/patterns/<section>/<pattern_id>/manifest.json
    <root>/shared/patterns/<section>/<pattern_id>/   (fallback compartido)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from core.config import AppSettings, get_user_config_dir
from core.domain.templates import LoadedPattern, PatternManifest, TemplatePreset
from core.errors import TemplateCatalogError

logger = logging.getLogger(__name__)

_NON_INDUSTRY_DIRS = {"shared", "base", "tokens"}


def _project_root() -> Path:
    # core/resources_loader.py -> core -> src -> <project_root>
    return Path(__file__).resolve().parents[2]


def templates_root(settings: AppSettings | None = None) -> Path:
    """Directorio raíz del catálogo.

    Reglas:
    - `settings.templates_dir` si está definido.
    - Si WPF_TEMPLATES_DIR está definido, se usa tal cual.
    - Si estamos en modo "frozen" (PyInstaller), usar un path del usuario.
    - En desarrollo, usar <project_root>/templates.
    """

    if settings is not None and settings.templates_dir is not None:
        return Path(settings.templates_dir)

    override = (os.environ.get("WPF_TEMPLATES_DIR") or "").strip()
    if override:
        return Path(override)

    if getattr(sys, "frozen", False):
        return get_user_config_dir() / "templates"

    return _project_root() / "templates"


def _read_json(path: Path, *, what: str) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise TemplateCatalogError(f"{what} not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise TemplateCatalogError(f"Invalid JSON in {what.lower()} {path}: {exc}") from exc


def load_pattern_manifest(pattern_path: Path) -> PatternManifest:
    data = _read_json(pattern_path / "manifest.json", what="Pattern manifest")
    try:
        manifest = PatternManifest.model_validate(data)
    except ValidationError as exc:
        raise TemplateCatalogError(f"Invalid pattern manifest {pattern_path}: {exc}") from exc
    manifest.path = pattern_path
    return manifest


def load_pattern_template(pattern_path: Path, template_file: str = "template.php") -> str:
    template_path = pattern_path / template_file
    try:
        return template_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TemplateCatalogError(f"Pattern template not found: {template_path}") from exc


def load_template_preset(industry: str, preset_id: str, *, root: Path | None = None) -> TemplatePreset:
    root = root or templates_root()
    preset_dir = root / industry / preset_id
    data = _read_json(preset_dir / "preset.json", what="Template preset")
    try:
        preset = TemplatePreset.model_validate(data)
    except ValidationError as exc:
        raise TemplateCatalogError(f"Invalid template preset {preset_dir}: {exc}") from exc
    preset.path = preset_dir
    return preset


def list_industries(*, root: Path | None = None) -> list[str]:
    root = root or templates_root()
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if p.is_dir() and p.name not in _NON_INDUSTRY_DIRS)


def list_template_presets(industry: str, *, root: Path | None = None) -> list[TemplatePreset]:
    """Presets válidos de una industria, en orden alfabético de directorio."""

    root = root or templates_root()
    industry_dir = root / industry
    if not industry_dir.is_dir():
        return []

    presets: list[TemplatePreset] = []
    for entry in sorted(industry_dir.iterdir()):
        if not entry.is_dir():
            continue
        try:
            presets.append(load_template_preset(industry, entry.name, root=root))
        except TemplateCatalogError as exc:
            logger.warning("Skipping preset %s/%s: %s", industry, entry.name, exc)
    return presets


def _pattern_dirs(root: Path, industry: str, preset_id: str, section: str) -> list[Path]:
    return [
        root / industry / preset_id / "patterns" / section,
        root / "shared" / "patterns" / section,
    ]


def resolve_pattern_path(
    industry: str,
    preset_id: str,
    section: str,
    pattern_id: str,
    *,
    root: Path | None = None,
) -> Path:
    """Directorio del pattern: primero el del preset, luego `shared/`."""

    root = root or templates_root()
    for base in _pattern_dirs(root, industry, preset_id, section):
        candidate = base / pattern_id
        if (candidate / "manifest.json").is_file():
            return candidate
    raise TemplateCatalogError(f"Pattern not found: {section}/{pattern_id} (preset {industry}/{preset_id})")


def list_patterns(industry: str, preset_id: str, category: str, *, root: Path | None = None) -> list[PatternManifest]:
    """Manifests de una categoría; los del preset ocultan a los compartidos con el mismo id."""

    root = root or templates_root()
    seen: set[str] = set()
    patterns: list[PatternManifest] = []
    for base in _pattern_dirs(root, industry, preset_id, category):
        if not base.is_dir():
            continue
        for entry in sorted(base.iterdir()):
            if not entry.is_dir() or entry.name in seen:
                continue
            try:
                manifest = load_pattern_manifest(entry)
            except TemplateCatalogError as exc:
                logger.warning("Skipping invalid pattern %s: %s", entry.name, exc)
                continue
            seen.add(entry.name)
            patterns.append(manifest)
    return patterns


def load_preset_patterns(
    industry: str,
    preset_id: str,
    *,
    root: Path | None = None,
) -> tuple[TemplatePreset, dict[str, LoadedPattern]]:
    root = root or templates_root()
    preset = load_template_preset(industry, preset_id, root=root)

    patterns: dict[str, LoadedPattern] = {}
    for section, pattern_id in preset.patterns.model_dump().items():
        try:
            path = resolve_pattern_path(industry, preset_id, section, pattern_id, root=root)
            manifest = load_pattern_manifest(path)
            template = load_pattern_template(path, manifest.template_file)
        except TemplateCatalogError as exc:
            logger.warning("Failed to load pattern %s/%s: %s", section, pattern_id, exc)
            continue
        patterns[section] = LoadedPattern(manifest=manifest, template=template)

    return preset, patterns

"""Inyección de contenido del blueprint en los slots de un pattern.

Cada slot declara una ruta (`content_drafts.hero.headline`,
`content_drafts.services.services[0].name`) y opcionalmente un fallback y una
transformación. Una ruta que no resuelve nunca lanza: devuelve `None`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from core.domain.models import Blueprint, as_document
from core.domain.templates import ContentSlot, PatternManifest
from core.errors import ContentSlotError

logger = logging.getLogger(__name__)

_INDEXED_RE = re.compile(r"^(\w+)\[(\d+)\]$")
_TRUNCATE_AT = 100
MAX_SERVICES = 12
MAX_TESTIMONIALS = 6


class ContentValidation(BaseModel):
    valid: bool
    missing: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SlotSummary(BaseModel):
    required: bool
    filled: bool
    preview: str


class ContentSummary(BaseModel):
    pattern: str
    name: str
    slots: dict[str, SlotSummary] = Field(default_factory=dict)
    completeness: int = Field(default=100, ge=0, le=100)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def get_value_from_path(doc: Any, path: str | None) -> Any:
    """Resuelve una ruta con puntos; `None` ante cualquier tramo ausente."""

    if not path or doc is None:
        return None

    clean = path[len("blueprint.") :] if path.startswith("blueprint.") else path
    current = doc
    for part in clean.split("."):
        if current is None:
            return None
        match = _INDEXED_RE.match(part)
        if match:
            key, index = match.group(1), int(match.group(2))
            seq = current.get(key) if isinstance(current, dict) else None
            if not isinstance(seq, list) or index >= len(seq):
                return None
            current = seq[index]
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
    return current


def apply_transform(value: Any, transform: str | None) -> Any:
    if value is None or transform is None:
        return value

    text = str(value)
    if transform == "uppercase":
        return text.upper()
    if transform == "lowercase":
        return text.lower()
    if transform == "capitalize":
        return text[:1].upper() + text[1:].lower()
    if transform == "truncate":
        return text[:_TRUNCATE_AT] + "..." if len(text) > _TRUNCATE_AT else text
    return value


def resolve_content_slot(slot: ContentSlot, blueprint: Blueprint | dict[str, Any]) -> Any:
    value = get_value_from_path(as_document(blueprint), slot.source)

    if _is_empty(value):
        if slot.fallback is not None:
            value = slot.fallback
        elif slot.required:
            raise ContentSlotError(f"Required content slot missing: {slot.source}")

    if slot.transform and value is not None:
        value = apply_transform(value, slot.transform)
    return value


def inject_content(manifest: PatternManifest, blueprint: Blueprint | dict[str, Any]) -> dict[str, Any]:
    doc = as_document(blueprint)
    content: dict[str, Any] = {}
    for name, slot in manifest.content_slots.items():
        try:
            content[name] = resolve_content_slot(slot, doc)
        except ContentSlotError as exc:
            logger.warning("Failed to resolve content slot %s in %s: %s", name, manifest.id, exc)
            content[name] = slot.fallback
    return content


def validate_content(manifest: PatternManifest, content: dict[str, Any]) -> ContentValidation:
    missing: list[str] = []
    warnings: list[str] = []
    for name, slot in manifest.content_slots.items():
        value = content.get(name)
        if slot.required and _is_empty(value):
            missing.append(name)
        elif value is None:
            warnings.append(name)
    return ContentValidation(valid=not missing, missing=missing, warnings=warnings)


def _preview(value: Any) -> str:
    if isinstance(value, str):
        return value[:50]
    return json.dumps(value, ensure_ascii=False)[:50]


def generate_content_summary(manifest: PatternManifest, content: dict[str, Any]) -> ContentSummary:
    slots: dict[str, SlotSummary] = {}
    filled = 0
    for name, slot in manifest.content_slots.items():
        value = content.get(name)
        has_value = not _is_empty(value)
        if has_value:
            filled += 1
            preview = _preview(value)
        elif slot.fallback:
            preview = f"[fallback: {str(slot.fallback)[:30]}]"
        else:
            preview = "[empty]"
        slots[name] = SlotSummary(required=slot.required, filled=has_value, preview=preview)

    total = len(manifest.content_slots)
    completeness = round(filled / total * 100) if total else 100
    return ContentSummary(pattern=manifest.id, name=manifest.name, slots=slots, completeness=completeness)


def _first(item: dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return default


def map_services(
    services: Any,
    *,
    max_items: int = MAX_SERVICES,
    include_description: bool = True,
    include_url: bool = True,
) -> list[dict[str, Any]]:
    if not isinstance(services, list):
        return []

    out: list[dict[str, Any]] = []
    for service in services[:max_items]:
        if not isinstance(service, dict):
            continue
        name = _first(service, "name", "title", default="Service")
        item: dict[str, Any] = {
            "name": name,
            "title": name,
            "icon": service.get("icon"),
        }
        if include_description:
            item["description"] = service.get("description") or ""
        if include_url:
            if service.get("url"):
                item["url"] = service["url"]
            else:
                anchor = service.get("slug") or re.sub(r"\s+", "-", str(name).lower())
                item["url"] = f"#{anchor}"
        out.append(item)
    return out


def map_testimonials(testimonials: Any, *, max_items: int = MAX_TESTIMONIALS) -> list[dict[str, Any]]:
    if not isinstance(testimonials, list):
        return []

    out: list[dict[str, Any]] = []
    for t in testimonials[:max_items]:
        if not isinstance(t, dict):
            continue
        quote = _first(t, "quote", "text", "content")
        out.append(
            {
                "quote": quote,
                "text": quote,
                "name": _first(t, "name", "author_name", "author", default="Client"),
                "company": _first(t, "company", "business"),
                "position": _first(t, "position", "author_role", "title"),
                "avatar": _first(t, "avatar", "image", "photo", default=None),
                "rating": t.get("rating") or 5,
                "project_type": t.get("project_type") or "",
                "is_generated": bool(t.get("is_generated", False)),
            }
        )
    return out


def map_stats(stats: Any) -> list[dict[str, Any]]:
    if not isinstance(stats, list):
        return []

    out: list[dict[str, Any]] = []
    for stat in stats:
        if not isinstance(stat, dict):
            continue
        value = _first(stat, "value", "number", "stat", default="0")
        label = _first(stat, "label", "text", "description")
        out.append({"value": value, "number": value, "label": label, "text": label})
    return out


def map_features(features: Any) -> list[dict[str, Any]]:
    if not isinstance(features, list):
        return []

    out: list[dict[str, Any]] = []
    for feature in features:
        if isinstance(feature, str):
            out.append({"text": feature, "name": feature})
        elif isinstance(feature, dict):
            out.append(
                {
                    "text": _first(feature, "text", "name", "title"),
                    "name": _first(feature, "name", "text", "title"),
                    "description": feature.get("description") or "",
                    "icon": feature.get("icon"),
                }
            )
    return out


def inject_content_with_mapping(manifest: PatternManifest, blueprint: Blueprint | dict[str, Any]) -> dict[str, Any]:
    """`inject_content` + normalización de listas (services, testimonials...)."""

    content = inject_content(manifest, blueprint)
    if isinstance(content.get("services"), list):
        content["services"] = map_services(content["services"])
    if isinstance(content.get("testimonials"), list):
        content["testimonials"] = map_testimonials(content["testimonials"])
    if isinstance(content.get("stats"), list):
        content["stats"] = map_stats(content["stats"])
    if isinstance(content.get("features"), list):
        content["features"] = map_features(content["features"])
    return content


def generate_placeholder_content(manifest: PatternManifest) -> dict[str, Any]:
    """Contenido de relleno para previsualizar un pattern sin blueprint."""

    content: dict[str, Any] = {}
    for name, slot in manifest.content_slots.items():
        if slot.fallback is not None:
            content[name] = slot.fallback
        elif "headline" in name or "title" in name:
            content[name] = "Your Headline Here"
        elif "description" in name or "subheadline" in name:
            content[name] = "A short paragraph describing this section for your visitors."
        elif "services" in name:
            content[name] = [
                {"name": "Service One", "description": "Description of service one."},
                {"name": "Service Two", "description": "Description of service two."},
                {"name": "Service Three", "description": "Description of service three."},
            ]
        elif "testimonials" in name:
            content[name] = [
                {"quote": "Great service!", "name": "John Doe", "company": "Acme Corp", "rating": 5},
                {"quote": "Highly recommended.", "name": "Jane Smith", "company": "Tech Inc", "rating": 5},
            ]
        elif "stats" in name:
            content[name] = [
                {"value": "100+", "label": "Projects"},
                {"value": "50+", "label": "Clients"},
                {"value": "10+", "label": "Years"},
            ]
        else:
            content[name] = f"[{name}]"
    return content

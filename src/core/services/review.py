"""Revisión de operador: checklist ponderado + chequeos automáticos.

El operador marca ítems del checklist (el score es el % de peso marcado) y
decide `approve`/`revise`. `auto_review` hace una primera pasada mecánica
sobre el blueprint antes de la revisión humana.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from pathlib import Path
from typing import Any

from adapters.json_exporter import export_model_json
from core.domain.models import Blueprint, as_document, utcnow
from core.domain.review import (
    AutoReviewResult,
    ChecklistCategory,
    ChecklistItem,
    Recommendation,
    Review,
    ReviewComment,
    Severity,
)
from core.errors import ReviewError
from core.services.anti_patterns import validate_copy

logger = logging.getLogger(__name__)

REVIEW_CHECKLIST: dict[str, tuple[str, list[tuple[str, str, int]]]] = {
    "content_quality": (
        "Content Quality",
        [
            ("headline_compelling", "Hero headline is compelling and clear", 10),
            ("subheadline_supports", "Subheadline supports the main message", 5),
            ("services_complete", "All services have descriptions", 10),
            ("ctas_clear", "CTAs are clear and actionable", 10),
            ("about_authentic", "About section tells authentic story", 5),
            ("contact_complete", "Contact info is complete and accurate", 10),
        ],
    ),
    "brand_alignment": (
        "Brand Alignment",
        [
            ("tone_consistent", "Tone matches client brand voice", 10),
            ("terminology_industry", "Industry terminology is correct", 5),
            ("usp_highlighted", "Unique selling points are highlighted", 10),
            ("values_reflected", "Company values are reflected", 5),
        ],
    ),
    "technical_accuracy": (
        "Technical Accuracy",
        [
            ("services_accurate", "Service descriptions are accurate", 10),
            ("contact_verified", "Contact details verified", 10),
            ("service_area_correct", "Service area is correct", 5),
            ("hours_accurate", "Business hours are accurate", 5),
        ],
    ),
    "structure": (
        "Structure & Navigation",
        [
            ("pages_logical", "Page structure is logical", 5),
            ("nav_intuitive", "Navigation is intuitive", 5),
            ("content_flow", "Content flow makes sense", 5),
        ],
    ),
}

_SEVERITY_LABEL = {"info": "[info]", "suggestion": "[suggestion]", "issue": "[issue]", "critical": "[critical]"}
_ALPHABET = string.ascii_lowercase + string.digits


def _new_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{''.join(secrets.choice(_ALPHABET) for _ in range(9))}"


def _initial_checklist() -> dict[str, ChecklistCategory]:
    return {
        key: ChecklistCategory(
            title=title,
            items=[ChecklistItem(id=item_id, label=label, weight=weight) for item_id, label, weight in items],
        )
        for key, (title, items) in REVIEW_CHECKLIST.items()
    }


def create_review(blueprint: Blueprint | dict[str, Any], operator: str = "Unknown") -> Review:
    doc = as_document(blueprint)
    company = (doc.get("client_profile") or {}).get("company") or {}
    return Review(
        id=_new_id("review"),
        blueprint_version=str(doc.get("version") or "1.0"),
        project=company.get("slug") or "unknown",
        operator=operator,
        checklist=_initial_checklist(),
    )


def calculate_score(review: Review) -> int:
    total = 0
    earned = 0
    for category in review.checklist.values():
        for item in category.items:
            total += item.weight
            if item.checked:
                earned += item.weight
    return round(earned / total * 100) if total else 0


def update_checklist_item(review: Review, category: str, item_id: str, checked: bool, note: str = "") -> Review:
    data = review.checklist.get(category)
    if data is None:
        raise ReviewError(f"Unknown category: {category}")
    item = next((i for i in data.items if i.id == item_id), None)
    if item is None:
        raise ReviewError(f"Unknown item: {item_id}")

    item.checked = checked
    if note:
        item.note = note
    review.overall_score = calculate_score(review)
    review.status = "in_progress"
    return review


def add_comment(review: Review, section: str, comment: str, severity: Severity = "info") -> ReviewComment:
    entry = ReviewComment(id=_new_id("comment"), section=section, comment=comment, severity=severity)
    review.comments.append(entry)
    return entry


def make_decision(review: Review, decision: str, notes: str = "") -> Review:
    if decision not in ("approve", "revise"):
        raise ReviewError('Decision must be "approve" or "revise"')
    review.decision = decision  # type: ignore[assignment]
    review.decision_notes = notes
    review.status = "approved" if decision == "approve" else "needs_revision"
    review.decided_at = utcnow()
    return review


def generate_report(review: Review) -> str:
    """Reporte markdown de la review (checklist, comentarios y decisión)."""

    lines = [
        "# Operator Review Report",
        "",
        f"**Project:** {review.project}",
        f"**Blueprint Version:** {review.blueprint_version}",
        f"**Reviewer:** {review.operator}",
        f"**Date:** {review.created_at.isoformat()}",
        f"**Status:** {review.status.upper()}",
        f"**Overall Score:** {review.overall_score}%",
        "",
        "---",
        "",
        "## Checklist Results",
        "",
    ]
    for category in review.checklist.values():
        checked = sum(1 for i in category.items if i.checked)
        lines.append(f"### {category.title} ({checked}/{len(category.items)})")
        lines.append("")
        for item in category.items:
            mark = "[x]" if item.checked else "[ ]"
            lines.append(f"- {mark} {item.label}" + (f" - *{item.note}*" if item.note else ""))
        lines.append("")

    if review.comments:
        lines += ["---", "", "## Comments", ""]
        for c in review.comments:
            lines.append(f"{_SEVERITY_LABEL.get(c.severity, '')} **{c.section}**: {c.comment}")
            lines.append("")

    if review.decision:
        lines += [
            "---",
            "",
            "## Decision",
            "",
            f"**Decision:** {review.decision.upper()}",
            "",
            review.decision_notes or "No additional notes.",
        ]
    return "\n".join(lines) + "\n"


def save_review(review: Review, output_dir: Path) -> Path:
    path = output_dir / f"review-{review.project}-{review.blueprint_version.replace('.', '-')}.json"
    return export_model_json(model=review, output_path=path)


def load_review(path: Path) -> Review:
    return Review.model_validate_json(path.read_text(encoding="utf-8"))


def _recommendation(errors: int, warnings: int) -> Recommendation:
    if errors > 2:
        return "needs_major_revision"
    if errors > 0 or warnings > 3:
        return "needs_minor_revision"
    if warnings > 0:
        return "ready_with_suggestions"
    return "ready_for_client"


def auto_score(passed: int, warnings: int, errors: int) -> float:
    return min(100.0, max(0.0, 100.0 - warnings * 5 - errors * 20) + passed * 5)


def auto_review(blueprint: Blueprint | dict[str, Any]) -> AutoReviewResult:
    doc = as_document(blueprint)
    drafts = doc.get("content_drafts") or {}
    passed: list[str] = []
    warnings: list[str] = []
    errors: list[str] = []

    hero = drafts.get("hero")
    if hero:
        if len(hero.get("headline") or "") >= 5:
            passed.append("Hero headline exists")
        else:
            errors.append("Missing or too short hero headline")
        if hero.get("subheadline"):
            passed.append("Subheadline exists")
        else:
            warnings.append("No subheadline defined")
        if (hero.get("cta_primary") or {}).get("text"):
            passed.append("Primary CTA defined")
        else:
            errors.append("Missing primary CTA")
    else:
        errors.append("Missing hero section")

    services = (drafts.get("services") or {}).get("services") or []
    if services:
        passed.append(f"{len(services)} services defined")
        empty = [s for s in services if not s.get("description")]
        if empty:
            warnings.append(f"{len(empty)} services missing descriptions")
    else:
        errors.append("No services defined")

    contact = drafts.get("contact")
    if contact:
        if (contact.get("phone") or {}).get("number"):
            passed.append("Phone number defined")
        else:
            errors.append("Missing phone number")
        if contact.get("email"):
            passed.append("Email defined")
        else:
            warnings.append("No email address")
    else:
        errors.append("Missing contact section")

    pages = (doc.get("structure_recommendation") or {}).get("pages") or []
    if pages:
        passed.append(f"{len(pages)} pages recommended")
    else:
        warnings.append("No page structure recommendations")

    for finding in validate_copy(drafts).warnings:
        warnings.append(finding.message)

    result = AutoReviewResult(
        score=auto_score(len(passed), len(warnings), len(errors)),
        passed=passed,
        warnings=warnings,
        errors=errors,
        recommendation=_recommendation(len(errors), len(warnings)),
    )
    logger.info("Auto review: score %.0f, %s", result.score, result.recommendation)
    return result

"""Orquestación completa: intake -> sitio almacenado.

Este módulo concentra el flujo que la CLI expone como `wpf build`. La CLI solo
pinta progreso; aquí no se imprime nada, todo llega por `PipelineHooks` y por
los `warnings` del resultado.

Pasos: research -> blueprint -> auto review -> (fotos) -> ensamblado ->
almacenamiento. Un fallo de LLM o de fotos degrada a contenido determinista y
se registra como warning; solo un ensamblado fallido corta el pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from adapters.file_storage import FileStorageService
from adapters.llm_client import LLMClient
from adapters.stock_photos import build_providers, photos_for_sections
from adapters.token_tracker import TokenTracker
from core.config import AppSettings
from core.domain.models import Blueprint, ClientIntake, Photo, ResearchBundle
from core.domain.review import AutoReviewResult
from core.domain.storage import StoredProject
from core.interfaces.providers import CompletionClient, PhotoProvider
from core.resources_loader import templates_root
from core.services.blueprint_builder import generate_blueprint
from core.services.research import KnowledgeBase, run_discovery_research
from core.services.review import auto_review
from core.services.theme_assembler import (
    IMAGE_SECTIONS,
    AssemblyResult,
    assemble_theme,
    collect_generated_files,
)

logger = logging.getLogger(__name__)


@dataclass
class SiteRequest:
    """Parámetros de una ejecución del pipeline."""

    intake: ClientIntake
    industry: str | None = None
    force_preset: str | None = None
    with_research: bool = True
    force_refresh: bool = False
    with_photos: bool = False
    store: bool = True
    project_id: str | None = None


@dataclass
class PipelineHooks:
    """Callbacks opcionales para la capa de UI (progreso, warnings)."""

    step: Callable[[str], None] | None = None
    warning: Callable[[str], None] | None = None


@dataclass
class PipelineResult:
    project_id: str
    blueprint: Blueprint
    review: AutoReviewResult
    assembly: AssemblyResult
    research: ResearchBundle | None = None
    stored: StoredProject | None = None
    warnings: list[str] = field(default_factory=list)
    token_usage: dict[str, object] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.assembly.success


async def build_site(
    *,
    settings: AppSettings,
    request: SiteRequest,
    hooks: PipelineHooks | None = None,
    llm: CompletionClient | None = None,
    photo_providers: Sequence[PhotoProvider] | None = None,
) -> PipelineResult:
    hooks = hooks or PipelineHooks()
    warnings: list[str] = []
    project_id = request.project_id or request.intake.project_slug

    def step(name: str) -> None:
        logger.info("[%s] %s", project_id, name)
        if hooks.step:
            hooks.step(name)

    def warn(messages: Sequence[str]) -> None:
        for message in messages:
            warnings.append(message)
            if hooks.warning:
                hooks.warning(message)

    tracker = TokenTracker(project_id)
    if llm is None:
        llm = LLMClient(settings, tracker=tracker)

    research: ResearchBundle | None = None
    if request.with_research:
        if llm.enabled:
            step("research")
            research = await run_discovery_research(
                request.intake,
                llm,
                KnowledgeBase.from_settings(settings),
                force_refresh=request.force_refresh,
            )
            warn(research.warnings)
        else:
            warn(["Research skipped: no LLM provider configured"])

    step("blueprint")
    blueprint = await generate_blueprint(request.intake, research, llm)
    warn(blueprint.warnings)

    step("review")
    review = auto_review(blueprint)
    warn([f"Review: {e}" for e in review.errors])

    photos: dict[str, list[Photo]] | None = None
    if request.with_photos:
        step("photos")
        providers = list(photo_providers) if photo_providers is not None else build_providers(settings)
        photos = await photos_for_sections(blueprint, IMAGE_SECTIONS, providers)
        placeholders = sum(1 for items in photos.values() for p in items if p.source == "local")
        if placeholders:
            warn([f"{placeholders} image(s) fell back to placeholders"])

    step("assemble")
    assembly = assemble_theme(
        blueprint,
        industry=request.industry,
        force_preset=request.force_preset,
        photos=photos,
        root=templates_root(settings),
    )
    warn(assembly.warnings)

    result = PipelineResult(
        project_id=project_id,
        blueprint=blueprint,
        review=review,
        assembly=assembly,
        research=research,
        warnings=warnings,
    )

    if not assembly.success:
        warn([f"Assembly failed: {e}" for e in assembly.errors])
    elif request.store:
        step("store")
        storage = FileStorageService(settings.storage_base_path)
        result.stored = storage.save_project(
            project_id,
            collect_generated_files(assembly, blueprint),
            {
                "slug": project_id,
                "company": request.intake.company.name,
                "industry": request.intake.industry.category,
                "preset": assembly.preset.id if assembly.preset else None,
                "blueprint_version": blueprint.version,
                "review_score": review.score,
            },
        )

    tracker = getattr(llm, "tracker", None) or tracker
    result.token_usage = tracker.totals()
    if settings.token_log_path and tracker.operations:
        tracker.save(Path(settings.token_log_path))
    return result

"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.review import AutoReviewResult
from core.domain.storage import DeploymentRecord, DeploymentStatus
from core.services.template_selector import ScoredPreset, TemplateComparison
from core.services.theme_assembler import AssemblyResult

_STATUS_STYLE = {
    DeploymentStatus.PENDING: "dim",
    DeploymentStatus.IN_PROGRESS: "cyan",
    DeploymentStatus.COMPLETED: "green",
    DeploymentStatus.FAILED: "red",
    DeploymentStatus.ROLLED_BACK: "yellow",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("WPF", style="bold cyan")
    subtitle = Text("Research • Blueprint • Theme assembly • Deploy", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _pct(score: float) -> str:
    return f"{round(score * 100)}%"


def build_presets_table(ranked: Sequence[ScoredPreset], *, title: str = "Presets") -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Preset", style="cyan", no_wrap=True)
    table.add_column("Industry", style="white")
    table.add_column("Score", style="green", justify="right")
    table.add_column("Description", style="dim")
    for i, item in enumerate(ranked, start=1):
        table.add_row(str(i), item.preset.id, item.preset.industry, _pct(item.score), item.preset.description or "")
    return table


def build_comparison_table(comparison: TemplateComparison) -> Table:
    table = Table(title="Template comparison")
    table.add_column("Option", style="bold", no_wrap=True)
    table.add_column("Preset", style="cyan")
    table.add_column("Match", style="green", justify="right")
    for option in comparison.options:
        marker = " *" if option.label == comparison.recommendation_label else ""
        table.add_row(f"{option.label}{marker}", option.preset.name, f"{option.score_percent}%")
    if comparison.reason:
        table.caption = comparison.reason
    return table


def build_assembly_table(result: AssemblyResult) -> Table:
    table = Table(title=f"Assembly: {result.preset.name if result.preset else 'n/a'}")
    table.add_column("Section", style="cyan", no_wrap=True)
    table.add_column("Pattern", style="white")
    table.add_column("Complete", style="green", justify="right")
    table.add_column("Missing", style="red")
    for section, pattern in result.patterns.items():
        table.add_row(
            section,
            pattern.manifest.id,
            f"{pattern.summary.completeness}%",
            ", ".join(pattern.validation.missing),
        )
    return table


def build_review_panel(review: AutoReviewResult) -> Panel:
    """Panel con el resultado de la revisión automática."""

    style = "green" if not review.errors else ("yellow" if len(review.errors) <= 2 else "red")
    body = Text()
    body.append(f"Score: {round(review.score)}/100\n", style="bold")
    body.append(f"Recommendation: {review.recommendation.replace('_', ' ')}\n\n")
    for item in review.passed:
        body.append(f"✓ {item}\n", style="green")
    for item in review.warnings:
        body.append(f"! {item}\n", style="yellow")
    for item in review.errors:
        body.append(f"✗ {item}\n", style="red")
    return Panel(body, title=Text("Auto review", style="bold"), border_style=style)


def build_warnings_panel(warnings: Iterable[str]) -> Panel | None:
    items = list(warnings)
    if not items:
        return None
    body = Text("\n".join(f"- {w}" for w in items))
    return Panel(body, title=Text("Warnings", style="bold yellow"), border_style="yellow")


def build_history_table(records: Sequence[DeploymentRecord], *, project_id: str) -> Table:
    table = Table(title=f"Deployments: {project_id}")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Env", style="white")
    table.add_column("Status", no_wrap=True)
    table.add_column("Started", style="dim")
    table.add_column("URL / error", style="dim")
    for record in records:
        detail = ""
        if record.result is not None:
            detail = record.result.url or record.result.error or ""
        table.add_row(
            record.id,
            record.environment,
            Text(record.status.value, style=_STATUS_STYLE.get(record.status, "white")),
            record.started_at.isoformat(timespec="seconds"),
            detail,
        )
    return table

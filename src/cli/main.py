"""CLI `wpf` (Typer + Rich).

Por qué una CLI delgada:
- Todo el flujo vive en `core.services`; aquí solo se cargan ficheros, se
  llama al servicio y se pinta el resultado.
- Los errores propios (`WPFError`) y de validación se convierten en un
  mensaje + exit code 1, sin traceback.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.deployer import DeployerService
from adapters.file_storage import FileStorageService
from adapters.json_exporter import export_model_json
from adapters.llm_client import LLMClient
from adapters.report_exporter import export_blueprint_html, export_blueprint_pdf
from adapters.stock_photos import build_providers, photos_for_sections
from adapters.token_tracker import TokenTracker
from cli import doctor
from cli.ui_components import (
    build_assembly_table,
    build_comparison_table,
    build_history_table,
    build_presets_table,
    build_review_panel,
    build_warnings_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.models import Blueprint, ClientIntake, ResearchBundle
from core.domain.storage import DeploymentConfig, DeploymentOptions
from core.errors import WPFError
from core.logging_setup import configure_logging
from core.resources_loader import templates_root
from core.services.blueprint_builder import generate_blueprint, load_blueprint, save_blueprint
from core.services.research import KnowledgeBase, run_discovery_research
from core.services.review import (
    REVIEW_CHECKLIST,
    add_comment,
    auto_review,
    create_review,
    generate_report,
    make_decision,
    save_review,
    update_checklist_item,
)
from core.services.site_pipeline import PipelineHooks, SiteRequest, build_site
from core.services.template_selector import generate_template_comparison, select_best_preset
from core.services.theme_assembler import IMAGE_SECTIONS, assemble_theme

app = typer.Typer(no_args_is_help=True, help="WPF: WordPress site factory.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _fail(message: str) -> NoReturn:
    _console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _load_intake(path: Path) -> ClientIntake:
    try:
        return ClientIntake.model_validate_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        _fail(f"Intake file not found: {path}")
    except ValidationError as exc:
        _fail(f"Invalid intake {path}:\n{exc}")


def _load_blueprint(path: Path) -> Blueprint:
    try:
        return load_blueprint(path)
    except FileNotFoundError:
        _fail(f"Blueprint file not found: {path}")
    except ValidationError as exc:
        _fail(f"Invalid blueprint {path}:\n{exc}")


def _print_warnings(warnings: list[str]) -> None:
    panel = build_warnings_panel(warnings)
    if panel is not None:
        _console.print(panel)


def _save_tokens(settings: AppSettings, tracker: TokenTracker) -> None:
    if settings.token_log_path and tracker.operations:
        tracker.save(Path(settings.token_log_path))
    if tracker.operations:
        totals = tracker.totals()
        _console.print(
            f"[dim]Tokens: {totals['total_tokens']} (${totals['total_cost_usd']:.4f}) "
            f"in {totals['operation_count']} call(s)[/dim]"
        )


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING..."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide the banner."),
) -> None:
    settings = AppSettings()
    configure_logging(log_level or settings.log_level)
    if not quiet:
        print_banner(_console)


@app.command()
def research(
    intake_path: Path = typer.Argument(..., help="Intake JSON file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the research bundle as JSON."),
    force_refresh: bool = typer.Option(False, "--force-refresh", help="Ignore the knowledge-base cache."),
    sequential: bool = typer.Option(False, "--sequential", help="Research sections one by one."),
) -> None:
    """Research industry best practices and competitors for an intake."""

    settings = AppSettings()
    intake = _load_intake(intake_path)
    tracker = TokenTracker(intake.project_slug)
    llm = LLMClient(settings, tracker=tracker)
    if not llm.enabled:
        _fail("No LLM provider configured. Run `wpf doctor setup-ai` first.")

    bundle = asyncio.run(
        run_discovery_research(
            intake,
            llm,
            KnowledgeBase.from_settings(settings),
            parallel=not sequential,
            force_refresh=force_refresh,
        )
    )

    table = Table(title=f"Research: {intake.company.name}")
    table.add_column("Section", style="cyan")
    table.add_column("Source", style="white")
    table.add_column("Confidence", style="green", justify="right")
    for section, finding in bundle.best_practices.items():
        table.add_row(section, finding.source, f"{finding.confidence:.2f}")
    if bundle.competitors is not None:
        table.add_row("competitors", bundle.competitors.source, f"{bundle.competitors.confidence:.2f}")
    for name, finding in bundle.partners.items():
        table.add_row(f"partner: {escape(name)}", finding.source, f"{finding.confidence:.2f}")
    _console.print(table)
    _print_warnings(bundle.warnings)
    if bundle.service_image_keywords:
        _console.print(f"[cyan]Image keywords suggested for {len(bundle.service_image_keywords)} service(s)[/cyan]")

    if output:
        export_model_json(model=bundle, output_path=output)
        _console.print(f"[green]Research saved to:[/green] {output}")
    _save_tokens(settings, tracker)


@app.command()
def blueprint(
    intake_path: Path = typer.Argument(..., help="Intake JSON file."),
    research_path: Optional[Path] = typer.Option(None, "--research", help="Research bundle JSON (from `wpf research`)."),
    output_dir: Path = typer.Option(Path("blueprints"), "--output-dir", "-o"),
    export_pdf: bool = typer.Option(False, "--export-pdf", help="Also export a PDF (falls back to HTML)."),
    export_html: bool = typer.Option(False, "--export-html", help="Also export an HTML report."),
) -> None:
    """Draft the marketing copy for an intake into a blueprint."""

    settings = AppSettings()
    intake = _load_intake(intake_path)
    bundle = None
    if research_path:
        try:
            bundle = ResearchBundle.model_validate_json(research_path.read_text(encoding="utf-8"))
        except (FileNotFoundError, ValidationError) as exc:
            _fail(f"Cannot read research bundle {research_path}: {exc}")

    tracker = TokenTracker(intake.project_slug)
    llm = LLMClient(settings, tracker=tracker)
    result = asyncio.run(generate_blueprint(intake, bundle, llm))
    target_dir = output_dir / result.slug
    path = save_blueprint(result, target_dir)
    _console.print(f"[green]Blueprint saved to:[/green] {path}")

    review = auto_review(result)
    _console.print(build_review_panel(review))
    _print_warnings(result.warnings)

    if export_pdf:
        pdf_path = target_dir / f"blueprint-v{result.version}.pdf"
        try:
            export_blueprint_pdf(blueprint=result, output_path=pdf_path, review=review)
            _console.print(f"[green]PDF:[/green] {pdf_path}")
        except Exception as exc:
            _console.print(f"[yellow]PDF export failed ({exc}); writing HTML instead.[/yellow]")
            export_html = True
    if export_html:
        html_path = export_blueprint_html(
            blueprint=result, output_path=target_dir / f"blueprint-v{result.version}.html", review=review
        )
        _console.print(f"[green]HTML:[/green] {html_path}")
    _save_tokens(settings, tracker)


@app.command()
def presets(
    blueprint_path: Path = typer.Argument(..., help="Blueprint JSON file."),
    industry: Optional[str] = typer.Option(None, "--industry", help="Override the blueprint industry."),
    compare: bool = typer.Option(False, "--compare", help="Show an A/B/C comparison of the top presets."),
) -> None:
    """Rank the catalog presets for a blueprint."""

    settings = AppSettings()
    doc = _load_blueprint(blueprint_path)
    root = templates_root(settings)
    try:
        if compare:
            _console.print(build_comparison_table(generate_template_comparison(doc, industry=industry, root=root)))
            return
        selection = select_best_preset(doc, industry=industry, return_all=True, root=root)
    except WPFError as exc:
        _fail(str(exc))
    _console.print(build_presets_table(selection.all or [], title=f"Presets for {selection.industry}"))


@app.command()
def assemble(
    blueprint_path: Path = typer.Argument(..., help="Blueprint JSON file."),
    output_dir: Path = typer.Option(Path("themes"), "--output-dir", "-o"),
    preset: Optional[str] = typer.Option(None, "--preset", help="Force a preset id."),
    industry: Optional[str] = typer.Option(None, "--industry"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write files."),
    photos: bool = typer.Option(False, "--photos", help="Fetch stock photos (Unsplash/Pexels)."),
) -> None:
    """Select a preset, fill its patterns and write the theme files."""

    settings = AppSettings()
    doc = _load_blueprint(blueprint_path)
    images = None
    if photos:
        images = asyncio.run(photos_for_sections(doc, IMAGE_SECTIONS, build_providers(settings)))

    result = assemble_theme(
        doc,
        industry=industry,
        force_preset=preset,
        output_dir=output_dir / doc.slug,
        dry_run=dry_run,
        photos=images,
        root=templates_root(settings),
    )
    if not result.success:
        _fail("; ".join(result.errors) or "Assembly failed")

    _console.print(build_assembly_table(result))
    _print_warnings(result.warnings)
    if result.files:
        _console.print(f"[green]Wrote {len(result.files)} files to:[/green] {output_dir / doc.slug}")


@app.command()
def build(
    intake_path: Path = typer.Argument(..., help="Intake JSON file."),
    preset: Optional[str] = typer.Option(None, "--preset", help="Force a preset id."),
    industry: Optional[str] = typer.Option(None, "--industry"),
    no_research: bool = typer.Option(False, "--no-research", help="Skip the research step."),
    force_refresh: bool = typer.Option(False, "--force-refresh"),
    photos: bool = typer.Option(False, "--photos", help="Fetch stock photos (Unsplash/Pexels)."),
    project_id: Optional[str] = typer.Option(None, "--project-id", help="Storage id (defaults to the slug)."),
) -> None:
    """Run the full pipeline: research, blueprint, review, assembly and storage."""

    settings = AppSettings()
    request = SiteRequest(
        intake=_load_intake(intake_path),
        industry=industry,
        force_preset=preset,
        with_research=not no_research,
        force_refresh=force_refresh,
        with_photos=photos,
        project_id=project_id,
    )
    hooks = PipelineHooks(step=lambda name: _console.print(f"[cyan]→[/cyan] {name}"))
    result = asyncio.run(build_site(settings=settings, request=request, hooks=hooks))

    _console.print(build_review_panel(result.review))
    if result.assembly.success:
        _console.print(build_assembly_table(result.assembly))
    _print_warnings(result.warnings)

    if not result.success:
        raise typer.Exit(code=1)
    if result.stored is not None:
        _console.print(
            f"[green]Project {result.project_id} stored at:[/green] {result.stored.storage_path} "
            f"({len(result.stored.files)} files)"
        )
    usage = result.token_usage
    if usage.get("operation_count"):
        _console.print(f"[dim]Tokens: {usage['total_tokens']} (${usage['total_cost_usd']:.4f})[/dim]")


@app.command()
def review(
    blueprint_path: Path = typer.Argument(..., help="Blueprint JSON file."),
    operator: str = typer.Option("Unknown", "--operator", help="Reviewer name."),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Walk through the checklist."),
    output_dir: Path = typer.Option(Path("reviews"), "--output-dir", "-o"),
) -> None:
    """Automated review of a blueprint, optionally followed by the operator checklist."""

    doc = _load_blueprint(blueprint_path)
    _console.print(build_review_panel(auto_review(doc)))
    if not interactive:
        return

    record = create_review(doc, operator)
    for category, (title, items) in REVIEW_CHECKLIST.items():
        _console.print(f"\n[bold]{title}[/bold]")
        for item_id, label, _weight in items:
            checked = typer.confirm(label, default=False)
            note = "" if checked else typer.prompt("  Note", default="", show_default=False)
            update_checklist_item(record, category, item_id, checked, note)

    while typer.confirm("Add a comment?", default=False):
        section = typer.prompt("  Section")
        text = typer.prompt("  Comment")
        severity = typer.prompt("  Severity (info/suggestion/issue/critical)", default="info")
        try:
            add_comment(record, section, text, severity)  # type: ignore[arg-type]
        except ValidationError as exc:
            _console.print(f"[yellow]Comment skipped: {exc.errors()[0]['msg']}[/yellow]")

    decision = typer.prompt("Decision (approve/revise)", default="revise").strip().lower()
    notes = typer.prompt("Decision notes", default="", show_default=False)
    try:
        make_decision(record, decision, notes)
    except WPFError as exc:
        _fail(str(exc))

    path = save_review(record, output_dir)
    report_path = path.with_suffix(".md")
    report_path.write_text(generate_report(record), encoding="utf-8")
    _console.print(f"[green]Review saved:[/green] {path} (score {record.overall_score}%, {record.status})")
    _console.print(f"[green]Report:[/green] {report_path}")


@app.command()
def verify(project_id: str = typer.Argument(..., help="Stored project id.")) -> None:
    """Re-hash a stored project and compare against its checksums."""

    settings = AppSettings()
    try:
        report = FileStorageService(settings.storage_base_path).verify_integrity(project_id)
    except WPFError as exc:
        _fail(str(exc))
    if report.valid:
        _console.print(f"[green]Project {project_id}: all files intact.[/green]")
        return
    for error in report.errors:
        _console.print(f"[red]✗[/red] {escape(error)}")
    raise typer.Exit(code=1)


@app.command()
def deploy(
    project_id: str = typer.Argument(..., help="Stored project id."),
    target: Path = typer.Option(..., "--target", help="Destination path (local provider)."),
    provider: str = typer.Option("local", "--provider", help="local, sftp, ftp or git."),
    environment: str = typer.Option("staging", "--env", help="staging or production."),
    backup: bool = typer.Option(False, "--backup"),
    clear_cache: bool = typer.Option(False, "--clear-cache"),
) -> None:
    """Deploy a stored project and record it in the deployment history."""

    settings = AppSettings()
    try:
        project = FileStorageService(settings.storage_base_path).require_project(project_id)
        config = DeploymentConfig(
            provider=provider,  # type: ignore[arg-type]
            environment=environment,  # type: ignore[arg-type]
            remote_path=str(target),
            options=DeploymentOptions(backup=backup, clear_cache=clear_cache),
        )
    except WPFError as exc:
        _fail(str(exc))
    except ValidationError as exc:
        _fail(f"Invalid deployment options:\n{exc}")

    result = DeployerService(config, settings.deployment_history_path).deploy(project_id, project.storage_path)
    for line in result.logs:
        _console.print(f"[dim]{line}[/dim]")
    if not result.success:
        _fail(f"Deployment {result.deployment_id} failed: {result.error}")
    _console.print(f"[green]Deployed {result.deployment_id}:[/green] {result.url}")


@app.command()
def history(
    project_id: str = typer.Argument(..., help="Stored project id."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON records."),
) -> None:
    """List deployments of a project, most recent first."""

    settings = AppSettings()
    deployer = DeployerService(DeploymentConfig(remote_path="."), settings.deployment_history_path)
    records = deployer.get_deployment_history(project_id)
    if as_json:
        _console.print_json(json.dumps([r.model_dump(mode="json") for r in records]))
        return
    if not records:
        _console.print(f"[yellow]No deployments recorded for {project_id}.[/yellow]")
        return
    _console.print(build_history_table(records, project_id=project_id))


@app.command()
def rollback(deployment_id: str = typer.Argument(..., help="Deployment id.")) -> None:
    """Mark a completed deployment as rolled back."""

    settings = AppSettings()
    deployer = DeployerService(DeploymentConfig(remote_path="."), settings.deployment_history_path)
    try:
        record = deployer.rollback(deployment_id)
    except WPFError as exc:
        _fail(str(exc))
    _console.print(f"[green]Deployment {record.id} is now {record.status.value}.[/green]")


def run() -> None:
    app()

"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.report_exporter import export_blueprint_pdf
from core.config import AppSettings, write_user_env_vars
from core.domain.models import Blueprint
from core.errors import TemplateCatalogError
from core.resources_loader import list_industries, list_template_presets, templates_root

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_pdf() -> tuple[bool, str]:
    """Attempt to generate a minimal PDF to detect WeasyPrint issues."""

    try:
        with tempfile.TemporaryDirectory() as tmp:
            export_blueprint_pdf(blueprint=Blueprint(), output_path=Path(tmp) / "doctor.pdf")
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


def _check_catalog(settings: AppSettings) -> tuple[bool, str]:
    root = templates_root(settings)
    try:
        industries = list_industries(root=root)
        presets = sum(len(list_template_presets(i, root=root)) for i in industries)
    except TemplateCatalogError as exc:
        return False, str(exc)
    if not presets:
        return False, f"No presets found under {root}"
    return True, f"{presets} preset(s) in {len(industries)} industries ({root})"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="WPF Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    if settings.ai_api_key:
        table.add_row("AI key", "OK", "Research and copywriting enabled")
    else:
        table.add_row("AI key", "OPTIONAL", "No key set -> deterministic copy fallback")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", settings.ai_model)

    photo_keys = [
        name
        for name, value in (("unsplash", settings.unsplash_access_key), ("pexels", settings.pexels_api_key))
        if value
    ]
    table.add_row(
        "Stock photos",
        "OK" if photo_keys else "OPTIONAL",
        ", ".join(photo_keys) if photo_keys else "No keys set -> placeholder images",
    )

    ok_catalog, detail_catalog = _check_catalog(settings)
    table.add_row("Template catalog", "OK" if ok_catalog else "FAIL", detail_catalog)

    ok_http, detail_http = asyncio.run(_check_http(settings.ai_base_url, settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    ok_pdf, detail_pdf = _check_pdf()
    table.add_row("WeasyPrint PDF", "OK" if ok_pdf else "FAIL", detail_pdf)

    _console.print(table)

    if not ok_pdf:
        _console.print(
            "\n[yellow]Note:[/yellow] When PDF export fails, `wpf blueprint --export-pdf` falls back to HTML."
        )


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt("AI provider", default="anthropic", show_default=True).strip().lower()

    presets: dict[str, dict[str, str]] = {
        "anthropic": {"WPF_AI_BASE_URL": "https://api.anthropic.com/v1/", "WPF_AI_MODEL": "claude-sonnet-4-20250514"},
        "openai": {"WPF_AI_BASE_URL": "https://api.openai.com/v1", "WPF_AI_MODEL": "gpt-4o-mini"},
        "openrouter": {"WPF_AI_BASE_URL": "https://openrouter.ai/api/v1", "WPF_AI_MODEL": "anthropic/claude-sonnet-4"},
        "ollama": {"WPF_AI_BASE_URL": "http://localhost:11434/v1", "WPF_AI_MODEL": "llama3"},
    }

    values = presets.get(provider, {}).copy()
    if not values:
        _console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get("WPF_AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get("WPF_AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", hide_input=True, confirmation_prompt=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    env = {"WPF_AI_BASE_URL": base_url, "WPF_AI_MODEL": model, "WPF_AI_API_KEY": api_key}

    unsplash = typer.prompt("Unsplash access key (optional)", default="", show_default=False).strip()
    pexels = typer.prompt("Pexels API key (optional)", default="", show_default=False).strip()
    if unsplash:
        env["WPF_UNSPLASH_ACCESS_KEY"] = unsplash
    if pexels:
        env["WPF_PEXELS_API_KEY"] = pexels

    env_path = write_user_env_vars(env)
    _console.print(f"[green]Saved AI config to:[/green] {env_path}")

"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (LLM/fotos/storage) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "wpf"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "wpf"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "wpf"
    return Path.home() / ".config" / "wpf"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# WPF user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="WPF_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request HTTP (segundos).",
    )
    user_agent: str = Field(
        default="wpf-site-factory/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones salientes.",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key del proveedor LLM (endpoint compatible OpenAI).",
    )
    ai_base_url: str = Field(
        default="https://api.anthropic.com/v1/",
        min_length=8,
        description="Base URL compatible OpenAI (Anthropic por defecto).",
    )
    ai_model: str = Field(
        default="claude-sonnet-4-20250514",
        min_length=1,
        description="Modelo por defecto para research y redacción.",
    )
    ai_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout para llamadas al proveedor LLM (segundos).",
    )
    ai_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Reintentos máximos ante fallos transitorios (rate limit, 5xx, red).",
    )

    unsplash_access_key: str | None = Field(
        default=None,
        description="Access key de Unsplash (opcional).",
    )
    pexels_api_key: str | None = Field(
        default=None,
        description="API key de Pexels (opcional).",
    )
    preferred_photo_source: Literal["unsplash", "pexels"] = Field(
        default="unsplash",
        description="Proveedor de fotos consultado primero.",
    )

    knowledge_base_path: Path | None = Field(
        default=None,
        description="Directorio de la base de conocimiento (cache de research).",
    )
    cache_max_age_days: int = Field(
        default=30,
        ge=0,
        description="Antigüedad máxima (días) de una entrada de research cacheada.",
    )
    cache_check_expiry: bool = Field(
        default=True,
        description="Si es False, el cache de research nunca expira.",
    )

    templates_dir: Path | None = Field(
        default=None,
        description="Catálogo de presets/patterns (por defecto <project_root>/templates).",
    )
    storage_base_path: Path = Field(
        default=Path("wpf-projects"),
        description="Directorio donde se guardan los proyectos generados.",
    )
    deployment_history_path: Path = Field(
        default=Path(".wpf-deployments"),
        description="Directorio del historial de despliegues (un JSON por deploy).",
    )
    token_log_path: Path | None = Field(
        default=None,
        description="Log JSON de consumo de tokens (opcional).",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )

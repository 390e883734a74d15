"""Configuración de logging.

Por qué Rich:
- La CLI ya renderiza con Rich; el handler mantiene el mismo estilo en consola.
- El Core solo usa `logging.getLogger(__name__)`; quién configura es el entrypoint.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: str | int = "INFO", *, console: Console | None = None) -> None:
    """Instala un `RichHandler` en el logger raíz (idempotente)."""

    global _CONFIGURED

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if _CONFIGURED:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)

    # httpx/openai son muy verbosos en INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    _CONFIGURED = True

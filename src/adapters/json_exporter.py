"""Exportación JSON (blueprints, reviews, metadata de proyectos).

Por qué JSON estable:
- `sort_keys` + UTF-8 sin escapar: los diffs entre versiones de un blueprint
  son legibles y reproducibles.
- Las escrituras de metadata son atómicas (temp + `os.replace`): un proceso
  interrumpido deja el fichero anterior, nunca uno a medias.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def dumps_stable(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n"


def write_json_atomic(path: Path, payload: Any) -> Path:
    """Escribe JSON en un temporal del mismo directorio y lo renombra encima."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.stem}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(dumps_stable(payload))
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return path


def export_model_json(*, model: BaseModel, output_path: Path) -> Path:
    """Exporta un modelo (Blueprint, Review...) a JSON UTF-8 con formato estable."""

    return write_json_atomic(output_path, model.model_dump(mode="json"))

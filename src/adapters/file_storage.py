"""Almacenamiento de proyectos generados en disco.

Layout:

    <base>/<project_id>/...              ficheros del tema
    <base>/.wpf-metadata/<project_id>.json

La metadata guarda tamaño y SHA-256 de cada fichero; `verify_integrity`
rehashea y compara. Todas las rutas relativas se resuelven dentro del
directorio del proyecto: `../` o rutas absolutas lanzan `StorageError`.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from adapters.json_exporter import write_json_atomic
from core.domain.models import utcnow
from core.domain.storage import GeneratedFile, IntegrityReport, StoredFile, StoredProject
from core.errors import ProjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

METADATA_DIR = ".wpf-metadata"


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _resolve_inside(root: Path, relative: str) -> Path:
    candidate = (root / relative).resolve()
    if candidate == root or root not in candidate.parents:
        raise StorageError(f"Path escapes project directory: {relative}")
    return candidate


class FileStorageService:
    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path).resolve()
        self.metadata_dir = self.base_path / METADATA_DIR
        self.metadata_dir.mkdir(parents=True, exist_ok=True)

    def project_path(self, project_id: str) -> Path:
        if not project_id or project_id in (".", "..", METADATA_DIR) or "/" in project_id or "\\" in project_id:
            raise StorageError(f"Invalid project id: {project_id!r}")
        return self.base_path / project_id

    def _metadata_path(self, project_id: str) -> Path:
        return self.metadata_dir / f"{project_id}.json"

    def _write_metadata(self, project: StoredProject) -> None:
        write_json_atomic(self._metadata_path(project.id), project.model_dump(mode="json"))

    def _write_file(self, target: Path, content: str) -> tuple[Path, int, str]:
        data = content.encode("utf-8")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target, len(data), sha256_hex(data)

    def save_project(
        self,
        project_id: str,
        files: Iterable[GeneratedFile],
        metadata: dict[str, Any] | None = None,
    ) -> StoredProject:
        """Escribe los ficheros y su metadata. Devuelve el proyecto almacenado."""

        root = self.project_path(project_id).resolve()
        metadata = dict(metadata or {})

        # Todas las rutas se validan antes de escribir nada.
        planned = [(file, _resolve_inside(root, file.path)) for file in files]
        root.mkdir(parents=True, exist_ok=True)

        stored: list[StoredFile] = []
        for file, target in planned:
            target, size, checksum = self._write_file(target, file.content)
            stored.append(
                StoredFile(
                    relative_path=file.path,
                    absolute_path=target,
                    size=size,
                    type=file.type,
                    checksum=checksum,
                )
            )

        previous = self.get_project(project_id)
        project = StoredProject(
            id=project_id,
            slug=str(metadata.get("slug") or project_id),
            files=stored,
            created_at=previous.created_at if previous else utcnow(),
            metadata=metadata,
            storage_path=root,
        )
        self._write_metadata(project)
        logger.info("Saved project %s (%d files) to %s", project_id, len(stored), root)
        return project

    def get_project(self, project_id: str) -> StoredProject | None:
        self.project_path(project_id)
        path = self._metadata_path(project_id)
        if not path.exists():
            return None
        try:
            return StoredProject.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise StorageError(f"Corrupt metadata for project {project_id}: {exc}") from exc

    def require_project(self, project_id: str) -> StoredProject:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return project

    def delete_project(self, project_id: str) -> bool:
        root = self.project_path(project_id)
        if not root.exists():
            return False
        shutil.rmtree(root)
        self._metadata_path(project_id).unlink(missing_ok=True)
        logger.info("Deleted project %s", project_id)
        return True

    def list_projects(self) -> list[str]:
        return sorted(p.stem for p in self.metadata_dir.glob("*.json"))

    def get_file(self, project_id: str, file_path: str) -> str | None:
        project = self.get_project(project_id)
        if project is None:
            return None
        target = _resolve_inside(project.storage_path.resolve(), file_path)
        if not target.is_file():
            return None
        return target.read_text(encoding="utf-8")

    def update_file(self, project_id: str, file_path: str, content: str) -> StoredFile:
        """Reescribe (o añade) un fichero y actualiza su checksum en la metadata."""

        project = self.require_project(project_id)
        target, size, checksum = self._write_file(_resolve_inside(project.storage_path.resolve(), file_path), content)

        entry = next((f for f in project.files if f.relative_path == file_path), None)
        if entry is None:
            entry = StoredFile(relative_path=file_path, absolute_path=target, size=size, type="other", checksum=checksum)
            project.files.append(entry)
        else:
            entry.size = size
            entry.checksum = checksum

        project.updated_at = utcnow()
        self._write_metadata(project)
        return entry

    def verify_integrity(self, project_id: str) -> IntegrityReport:
        project = self.get_project(project_id)
        if project is None:
            return IntegrityReport(valid=False, errors=["Project not found"])

        errors: list[str] = []
        for file in project.files:
            if not file.absolute_path.is_file():
                errors.append(f"Missing file: {file.relative_path}")
                continue
            if file.checksum and sha256_hex(file.absolute_path.read_bytes()) != file.checksum:
                errors.append(f"Checksum mismatch: {file.relative_path}")

        if errors:
            logger.warning("Integrity check failed for %s: %d problem(s)", project_id, len(errors))
        return IntegrityReport(valid=not errors, errors=errors)

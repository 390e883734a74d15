"""Despliegue de proyectos almacenados + historial JSON.

Cada despliegue deja un registro `<history>/<deployment_id>.json` que pasa por
`pending` -> `in-progress` -> `completed`/`failed` (y opcionalmente
`rolled-back`). Solo el proveedor `local` está implementado; `sftp`, `ftp` y
`git` fallan de forma explícita.

Por qué los fallos se devuelven y no se lanzan:
- El llamador (CLI/pipeline) siempre obtiene un `DeploymentResult` con logs,
  y el registro en disco refleja el fallo.
"""

from __future__ import annotations

import logging
import secrets
import shutil
import string
import time
from pathlib import Path

from pydantic import ValidationError

from adapters.json_exporter import write_json_atomic
from core.domain.models import utcnow
from core.domain.storage import (
    DeploymentConfig,
    DeploymentMetrics,
    DeploymentRecord,
    DeploymentResult,
    DeploymentStatus,
)
from core.errors import DeploymentError, DeploymentNotFoundError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def new_deployment_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"deploy-{int(time.time() * 1000)}-{suffix}"


def _tree_stats(root: Path) -> tuple[int, int]:
    files = [p for p in root.rglob("*") if p.is_file()]
    return len(files), sum(p.stat().st_size for p in files)


class DeployerService:
    def __init__(self, config: DeploymentConfig, history_path: Path) -> None:
        self.config = config
        self.history_path = Path(history_path)
        self.history_path.mkdir(parents=True, exist_ok=True)

    def _record_path(self, deployment_id: str) -> Path:
        return self.history_path / f"{deployment_id}.json"

    def _save(self, record: DeploymentRecord) -> None:
        write_json_atomic(self._record_path(record.id), record.model_dump(mode="json"))

    def _load(self, deployment_id: str) -> DeploymentRecord:
        path = self._record_path(deployment_id)
        if "/" in deployment_id or not path.exists():
            raise DeploymentNotFoundError(f"Deployment not found: {deployment_id}")
        return DeploymentRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def deploy(self, project_id: str, storage_path: Path) -> DeploymentResult:
        deployment_id = new_deployment_id()
        started = time.monotonic()
        logs: list[str] = []

        record = DeploymentRecord(
            id=deployment_id,
            project_id=project_id,
            environment=self.config.environment,
            config=self.config,
        )
        self._save(record)

        try:
            logs.append(f"[{utcnow().isoformat()}] Starting deployment: {deployment_id}")
            logs.append(f"Environment: {self.config.environment}")
            logs.append(f"Provider: {self.config.provider}")

            record.status = DeploymentStatus.IN_PROGRESS
            self._save(record)

            storage_path = Path(storage_path)
            if not storage_path.is_dir():
                raise DeploymentError(f"Storage path does not exist: {storage_path}")

            if self.config.options.backup:
                logs.append("Creating backup... (not supported by this provider, skipped)")

            url = self._run_provider(storage_path, logs)

            if self.config.options.clear_cache:
                logs.append("Clearing cache... (no-op)")
            if self.config.options.run_migrations:
                logs.append("Running migrations... (no-op)")

            files, size = _tree_stats(storage_path)
            duration_ms = int((time.monotonic() - started) * 1000)
            logs.append(f"[{utcnow().isoformat()}] Deployment completed successfully")
            logs.append(f"Duration: {duration_ms}ms")
            logs.append(f"Files deployed: {files}")
            logs.append(f"Total size: {size / 1024 / 1024:.2f} MB")

            result = DeploymentResult(
                success=True,
                deployment_id=deployment_id,
                url=url,
                logs=logs,
                status=DeploymentStatus.COMPLETED,
                metrics=DeploymentMetrics(duration_ms=duration_ms, files_deployed=files, total_size=size),
            )
            record.status = DeploymentStatus.COMPLETED
        except (DeploymentError, OSError) as exc:
            logs.append(f"[{utcnow().isoformat()}] Deployment failed: {exc}")
            logger.error("Deployment %s failed: %s", deployment_id, exc)
            result = DeploymentResult(
                success=False,
                deployment_id=deployment_id,
                logs=logs,
                status=DeploymentStatus.FAILED,
                error=str(exc),
            )
            record.status = DeploymentStatus.FAILED

        record.completed_at = utcnow()
        record.result = result
        self._save(record)
        return result

    def _run_provider(self, storage_path: Path, logs: list[str]) -> str:
        provider = self.config.provider
        if provider == "local":
            target = Path(self.config.remote_path)
            logs.append("Deploying to local filesystem...")
            shutil.copytree(storage_path, target, dirs_exist_ok=True)
            logs.append(f"Files copied to: {target}")
            return target.resolve().as_uri()
        logs.append(f"{provider.upper()} deployment not yet implemented")
        raise DeploymentError(f"{provider.upper()} deployment not yet implemented")

    def get_status(self, deployment_id: str) -> DeploymentStatus:
        return self._load(deployment_id).status

    def rollback(self, deployment_id: str) -> DeploymentRecord:
        """Marca un despliegue completado como `rolled-back` (no restaura ficheros)."""

        record = self._load(deployment_id)
        if record.status != DeploymentStatus.COMPLETED:
            raise DeploymentError(
                f"Can only rollback completed deployments ({deployment_id} is {record.status.value})"
            )
        record.status = DeploymentStatus.ROLLED_BACK
        self._save(record)
        logger.info("Deployment %s rolled back", deployment_id)
        return record

    def get_deployment_history(self, project_id: str) -> list[DeploymentRecord]:
        records: list[DeploymentRecord] = []
        for path in self.history_path.glob("*.json"):
            try:
                record = DeploymentRecord.model_validate_json(path.read_text(encoding="utf-8"))
            except ValidationError as exc:
                logger.warning("Skipping unreadable deployment record %s: %s", path.name, exc)
                continue
            if record.project_id == project_id:
                records.append(record)
        return sorted(records, key=lambda r: r.started_at, reverse=True)

"""Modelos de almacenamiento y despliegue.

Son registros planos que se persisten como JSON: la única invariante es
"JSON válido con esta forma", y de eso se encarga Pydantic.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from core.domain.models import utcnow

FileType = Literal["php", "css", "js", "json", "md", "xml", "txt", "html", "other"]


class GeneratedFile(BaseModel):
    path: str = Field(..., min_length=1, description="Ruta relativa dentro del proyecto.")
    content: str
    type: FileType = "other"
    metadata: dict[str, Any] = Field(default_factory=dict)


class StoredFile(BaseModel):
    relative_path: str
    absolute_path: Path
    size: int = Field(..., ge=0)
    type: FileType = "other"
    checksum: str | None = Field(default=None, description="SHA-256 hex del contenido.")


class StoredProject(BaseModel):
    id: str
    slug: str
    files: list[StoredFile] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)
    storage_path: Path


class IntegrityReport(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled-back"


class DeploymentOptions(BaseModel):
    backup: bool = False
    run_migrations: bool = False
    clear_cache: bool = False


class DeploymentConfig(BaseModel):
    provider: Literal["local", "sftp", "ftp", "git"] = "local"
    environment: Literal["staging", "production"] = "staging"
    credentials: dict[str, Any] = Field(default_factory=dict)
    remote_path: str = Field(..., min_length=1)
    options: DeploymentOptions = Field(default_factory=DeploymentOptions)


class DeploymentMetrics(BaseModel):
    duration_ms: int = Field(..., ge=0)
    files_deployed: int = Field(..., ge=0)
    total_size: int = Field(..., ge=0, description="Bytes.")


class DeploymentResult(BaseModel):
    success: bool
    deployment_id: str
    url: str | None = None
    logs: list[str] = Field(default_factory=list)
    deployed_at: datetime = Field(default_factory=utcnow)
    status: DeploymentStatus
    error: str | None = None
    metrics: DeploymentMetrics | None = None


class DeploymentRecord(BaseModel):
    id: str
    project_id: str
    environment: Literal["staging", "production"]
    status: DeploymentStatus = DeploymentStatus.PENDING
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    result: DeploymentResult | None = None
    config: DeploymentConfig

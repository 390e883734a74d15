"""Errores del dominio WPF.

Los adaptadores traducen errores de terceros (httpx, openai, OSError) a estas
clases cuando el llamador necesita distinguirlos; el resto se propaga tal cual.
"""

from __future__ import annotations


class WPFError(Exception):
    """Base de todos los errores propios."""


class TemplateCatalogError(WPFError):
    """Preset o pattern inexistente o inválido en el catálogo."""


class ContentSlotError(WPFError):
    """Slot de contenido requerido sin valor ni fallback."""


class DesignTokenError(WPFError):
    """Entrada inválida para generar design tokens."""


class LLMError(WPFError):
    """Base de fallos del proveedor LLM; los servicios caen a contenido determinista."""


class LLMUnavailableError(LLMError):
    """El proveedor LLM no está configurado o falló tras los reintentos."""


class LLMResponseError(LLMError):
    """El proveedor respondió, pero no con el JSON esperado."""


class StorageError(WPFError):
    """Fallo al persistir o leer un proyecto."""


class ProjectNotFoundError(StorageError):
    pass


class DeploymentError(WPFError):
    """Fallo de un despliegue o transición de estado inválida."""


class DeploymentNotFoundError(DeploymentError):
    pass


class ReviewError(WPFError):
    """Operación inválida sobre una review de operador."""

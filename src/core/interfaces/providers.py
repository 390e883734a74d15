"""Contratos de proveedores externos (LLM y fotos de stock).

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Los servicios del Core reciben "algo que completa prompts" o "algo que busca
  fotos"; en tests basta un fake con los mismos métodos.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import Photo


@runtime_checkable
class CompletionClient(Protocol):
    """Contrato mínimo de un LLM.

    Reglas de diseño:
    - Asíncrono porque siempre hay I/O de red.
    - Sin configuración disponible lanza `LLMUnavailableError`.
    """

    @property
    def enabled(self) -> bool: ...

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 4096,
        operation: str = "completion",
    ) -> Any: ...

    async def complete_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 4096,
        operation: str = "completion",
    ) -> Any: ...


@runtime_checkable
class PhotoProvider(Protocol):
    """Buscador de fotos de stock. Sin credenciales devuelve lista vacía."""

    name: str

    async def search(self, query: str, *, per_page: int = 10) -> list[Photo]: ...

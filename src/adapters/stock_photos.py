"""Fotos de stock (Unsplash / Pexels) con cascada de búsqueda.

Por qué una cascada:
- Las búsquedas muy específicas ("metal roof install denver") suelen volver
  vacías; se va relajando la query hasta "professional business".
- Sin API keys (o sin resultados) se usa un placeholder local: el ensamblado
  nunca se bloquea por fotos.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence
from urllib.parse import quote

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import Blueprint, Photo, as_document
from core.interfaces.providers import PhotoProvider

logger = logging.getLogger(__name__)

UNSPLASH_API_URL = "https://api.unsplash.com"
PEXELS_API_URL = "https://api.pexels.com/v1"
GENERIC_QUERY = "professional business"

_PLACEHOLDER_COLORS = {
    "construction": "f97316",
    "roofing": "78716c",
    "plumbing": "0ea5e9",
    "electrical": "eab308",
    "hvac": "06b6d4",
    "landscaping": "22c55e",
    "automotive": "ef4444",
    "healthcare": "06b6d4",
    "retail": "ec4899",
    "professional-services": "3b82f6",
    "real-estate": "10b981",
}


def _json_payload(resp: httpx.Response, provider: str) -> dict[str, Any]:
    """Cuerpo JSON de la búsqueda; `{}` si no es un objeto JSON (proxy, página de error...)."""

    try:
        payload = resp.json()
    except ValueError:
        logger.warning("%s returned a non-JSON body", provider)
        return {}
    if not isinstance(payload, dict):
        logger.warning("%s returned an unexpected payload: %s", provider, type(payload).__name__)
        return {}
    return payload


class UnsplashProvider:
    name = "unsplash"

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def search(self, query: str, *, per_page: int = 10) -> list[Photo]:
        key = self._settings.unsplash_access_key
        if not key:
            logger.debug("Unsplash access key not configured")
            return []

        params = {"query": query, "orientation": "landscape", "per_page": str(per_page)}
        headers = {"Authorization": f"Client-ID {key}"}
        try:
            async with build_async_client(self._settings, extra_headers=headers, transport=self._transport) as client:
                resp = await client.get(f"{UNSPLASH_API_URL}/search/photos", params=params)
        except httpx.HTTPError as exc:
            logger.warning("Unsplash request failed: %s", exc)
            return []

        if resp.status_code != 200:
            logger.warning("Unsplash API error: %s", resp.status_code)
            return []

        payload = _json_payload(resp, "Unsplash")
        photos: list[Photo] = []
        for item in payload.get("results") or []:
            if not isinstance(item, dict):
                continue
            urls = item.get("urls") or {}
            user = item.get("user") or {}
            name = user.get("name") or "Unknown"
            photos.append(
                Photo(
                    id=str(item.get("id")),
                    source="unsplash",
                    url=urls.get("regular") or f"{urls.get('raw', '')}&w=1200&q=80",
                    thumb_url=urls.get("thumb") or urls.get("small"),
                    description=item.get("alt_description") or item.get("description") or query,
                    width=item.get("width"),
                    height=item.get("height"),
                    photographer=name,
                    photographer_url=(user.get("links") or {}).get("html"),
                    attribution=f"Photo by {name} on Unsplash",
                )
            )
        return photos


class PexelsProvider:
    name = "pexels"

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def search(self, query: str, *, per_page: int = 10) -> list[Photo]:
        key = self._settings.pexels_api_key
        if not key:
            logger.debug("Pexels API key not configured")
            return []

        params = {"query": query, "orientation": "landscape", "per_page": str(per_page)}
        try:
            async with build_async_client(
                self._settings, extra_headers={"Authorization": key}, transport=self._transport
            ) as client:
                resp = await client.get(f"{PEXELS_API_URL}/search", params=params)
        except httpx.HTTPError as exc:
            logger.warning("Pexels request failed: %s", exc)
            return []

        if resp.status_code != 200:
            logger.warning("Pexels API error: %s", resp.status_code)
            return []

        payload = _json_payload(resp, "Pexels")
        photos: list[Photo] = []
        for item in payload.get("photos") or []:
            if not isinstance(item, dict):
                continue
            src = item.get("src") or {}
            name = item.get("photographer") or "Unknown"
            photos.append(
                Photo(
                    id=str(item.get("id")),
                    source="pexels",
                    url=src.get("large") or src.get("original") or "",
                    thumb_url=src.get("small"),
                    description=item.get("alt") or query,
                    width=item.get("width"),
                    height=item.get("height"),
                    photographer=name,
                    photographer_url=item.get("photographer_url"),
                    attribution=f"Photo by {name} on Pexels",
                )
            )
        return photos


def build_providers(settings: AppSettings) -> list[PhotoProvider]:
    """Proveedores en orden de preferencia."""

    unsplash = UnsplashProvider(settings)
    pexels = PexelsProvider(settings)
    if settings.preferred_photo_source == "pexels":
        return [pexels, unsplash]
    return [unsplash, pexels]


def search_queries(keywords: Sequence[str], industry: str, fallback_keywords: Sequence[str] | None = None) -> list[str]:
    """Cascada de queries, de la más específica a la genérica (sin duplicados)."""

    candidates = []
    if keywords:
        candidates.append(" ".join(keywords))
        candidates.append(f"{keywords[0]} {industry}")
    candidates.append(industry)
    candidates.append(" ".join(fallback_keywords) if fallback_keywords else GENERIC_QUERY)

    out: list[str] = []
    for query in candidates:
        query = query.strip()
        if query and query not in out:
            out.append(query)
    return out


def select_best_match(photos: Sequence[Photo], keywords: Sequence[str]) -> Photo | None:
    """Elige la foto con más keywords en su descripción.

    Desempata prefiriendo apaisadas y de al menos 1920px de ancho; a igualdad
    gana la primera (orden del proveedor).
    """

    if not photos:
        return None

    def score(photo: Photo) -> int:
        text = (photo.description or "").lower()
        value = sum(2 for kw in keywords if kw and kw.lower() in text)
        if photo.width and photo.height and photo.width > photo.height:
            value += 1
        if photo.width and photo.width >= 1920:
            value += 1
        return value

    return max(photos, key=score)


def local_placeholder(industry: str) -> Photo:
    color = _PLACEHOLDER_COLORS.get(industry, "6b7280")
    label = quote(industry or "business")
    return Photo(
        id=f"placeholder-{industry or 'business'}",
        source="local",
        url=f"https://placehold.co/1200x800/{color}/ffffff?text={label}",
        thumb_url=f"https://placehold.co/400x300/{color}/ffffff?text={label}",
        description=f"{industry} placeholder image",
        width=1200,
        height=800,
        attribution="",
    )


async def find_image(
    keywords: Sequence[str],
    industry: str,
    providers: Iterable[PhotoProvider],
    *,
    min_results: int = 3,
    fallback_keywords: Sequence[str] | None = None,
) -> Photo:
    """Primera query que devuelva `min_results` fotos en algún proveedor gana."""

    providers = list(providers)
    for query in search_queries(keywords, industry, fallback_keywords):
        for provider in providers:
            photos = await provider.search(query, per_page=5)
            if len(photos) >= min_results:
                logger.info("Photo for %r found on %s", query, provider.name)
                return select_best_match(photos, keywords) or photos[0]

    logger.info("No stock photo for %s (%s); using placeholder", ", ".join(keywords), industry)
    return local_placeholder(industry)


def _section_keywords(doc: dict[str, Any], section: str) -> list[list[str]]:
    profile = doc.get("client_profile") or {}
    industry = str((profile.get("industry") or {}).get("category") or "")
    services = profile.get("services") or []

    if section == "services":
        queries = []
        for service in services[:6]:
            kws = list(service.get("image_keywords") or []) or [str(service.get("name") or "")]
            queries.append([kw for kw in kws if kw])
        return queries or [[industry, "services"]]

    primary = next((s for s in services if s.get("is_primary")), services[0] if services else None)
    if section == "hero" and primary and primary.get("image_keywords"):
        return [list(primary["image_keywords"])]
    extra = {"hero": "professional", "about": "team", "testimonials": "happy customer", "team": "team portrait"}
    return [[kw for kw in (industry, extra.get(section, section)) if kw]]


async def photos_for_sections(
    blueprint: Blueprint | dict[str, Any],
    sections: Iterable[str],
    providers: Iterable[PhotoProvider],
    *,
    min_results: int = 3,
) -> dict[str, list[Photo]]:
    """Una foto por query de sección (servicios: una por servicio)."""

    doc = as_document(blueprint)
    industry = str(((doc.get("client_profile") or {}).get("industry") or {}).get("category") or "")
    providers = list(providers)

    out: dict[str, list[Photo]] = {}
    for section in sections:
        photos = []
        for keywords in _section_keywords(doc, section):
            photos.append(await find_image(keywords, industry, providers, min_results=min_results))
        out[section] = photos
    return out

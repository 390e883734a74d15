from __future__ import annotations

import httpx
import pytest

from adapters.stock_photos import (
    PexelsProvider,
    UnsplashProvider,
    build_providers,
    find_image,
    local_placeholder,
    photos_for_sections,
    search_queries,
    select_best_match,
)
from core.config import AppSettings
from core.domain.models import Photo, ResearchBundle
from core.services.blueprint_builder import extract_client_profile


def _settings(**kwargs) -> AppSettings:
    base = {"unsplash_access_key": None, "pexels_api_key": None}
    base.update(kwargs)
    return AppSettings(_env_file=None, **base)


def _unsplash_payload(n: int, description: str = "crane on a commercial construction site") -> dict:
    return {
        "results": [
            {
                "id": f"u{i}",
                "urls": {"regular": f"https://images.example/u{i}.jpg", "thumb": f"https://images.example/u{i}-t.jpg"},
                "alt_description": description,
                "width": 4000,
                "height": 2600,
                "user": {"name": "Ana", "links": {"html": "https://unsplash.com/@ana"}},
            }
            for i in range(n)
        ]
    }


class FakeProvider:
    def __init__(self, name: str, results: dict[str, list[Photo]]) -> None:
        self.name = name
        self.results = results
        self.queries: list[str] = []

    async def search(self, query: str, *, per_page: int = 10) -> list[Photo]:
        self.queries.append(query)
        return self.results.get(query, [])


def _photo(i: int, description: str = "", width: int | None = None, height: int | None = None) -> Photo:
    return Photo(id=str(i), source="unsplash", url=f"https://images.example/{i}.jpg", description=description, width=width, height=height)


class TestUnsplash:
    @pytest.mark.asyncio
    async def test_search_maps_results(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_unsplash_payload(2))

        provider = UnsplashProvider(_settings(unsplash_access_key="key-1"), transport=httpx.MockTransport(handler))
        photos = await provider.search("roofing", per_page=2)

        assert [p.id for p in photos] == ["u0", "u1"]
        assert photos[0].attribution == "Photo by Ana on Unsplash"
        assert photos[0].thumb_url == "https://images.example/u0-t.jpg"
        assert seen[0].headers["Authorization"] == "Client-ID key-1"
        assert seen[0].url.params["query"] == "roofing"
        assert seen[0].url.params["orientation"] == "landscape"

    @pytest.mark.asyncio
    async def test_no_key_skips_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("network should not be used")

        provider = UnsplashProvider(_settings(), transport=httpx.MockTransport(handler))
        assert await provider.search("roofing") == []

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"errors": ["Rate Limit Exceeded"]})

        provider = UnsplashProvider(_settings(unsplash_access_key="k"), transport=httpx.MockTransport(handler))
        assert await provider.search("roofing") == []

    @pytest.mark.asyncio
    async def test_transport_error_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        provider = UnsplashProvider(_settings(unsplash_access_key="k"), transport=httpx.MockTransport(handler))
        assert await provider.search("roofing") == []

    @pytest.mark.asyncio
    async def test_html_body_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html><body>Gateway login</body></html>")

        provider = UnsplashProvider(_settings(unsplash_access_key="k"), transport=httpx.MockTransport(handler))
        assert await provider.search("roofing") == []


class TestPexels:
    @pytest.mark.asyncio
    async def test_search_maps_results(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "pexels-key"
            return httpx.Response(
                200,
                json={
                    "photos": [
                        {
                            "id": 7,
                            "src": {"large": "https://images.example/p7.jpg", "small": "https://images.example/p7-s.jpg"},
                            "alt": "Builder on scaffolding",
                            "width": 1920,
                            "height": 1280,
                            "photographer": "Lee",
                        }
                    ]
                },
            )

        provider = PexelsProvider(_settings(pexels_api_key="pexels-key"), transport=httpx.MockTransport(handler))
        photos = await provider.search("builder")
        assert photos[0].id == "7"
        assert photos[0].source == "pexels"
        assert photos[0].attribution == "Photo by Lee on Pexels"

    @pytest.mark.asyncio
    async def test_json_list_body_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": 1}])

        provider = PexelsProvider(_settings(pexels_api_key="k"), transport=httpx.MockTransport(handler))
        assert await provider.search("builder") == []


class TestHelpers:
    def test_provider_order(self):
        assert [p.name for p in build_providers(_settings())] == ["unsplash", "pexels"]
        assert [p.name for p in build_providers(_settings(preferred_photo_source="pexels"))] == ["pexels", "unsplash"]

    def test_search_queries(self):
        assert search_queries(["metal roof", "install"], "roofing") == [
            "metal roof install",
            "metal roof roofing",
            "roofing",
            "professional business",
        ]
        assert search_queries([], "roofing", ["tools"]) == ["roofing", "tools"]
        assert search_queries(["roofing"], "roofing") == ["roofing", "roofing roofing", "professional business"]

    def test_best_match(self):
        photos = [
            _photo(1, "a house", width=800, height=1200),
            _photo(2, "crane at dusk", width=1000, height=800),
            _photo(3, "crane lifting steel", width=2400, height=1600),
        ]
        assert select_best_match(photos, ["crane", "steel"]).id == "3"
        assert select_best_match([], ["x"]) is None

    def test_placeholder(self):
        photo = local_placeholder("construction")
        assert photo.source == "local"
        assert "f97316" in photo.url
        assert local_placeholder("bakery").url.startswith("https://placehold.co/1200x800/6b7280/")


class TestCascade:
    @pytest.mark.asyncio
    async def test_falls_through_queries_and_providers(self):
        hits = [_photo(i, "construction crew") for i in range(3)]
        first = FakeProvider("unsplash", {})
        second = FakeProvider("pexels", {"construction": hits})
        photo = await find_image(["crew"], "construction", [first, second])
        assert photo.id == "0"
        assert first.queries == ["crew", "crew construction", "construction"]
        assert second.queries == ["crew", "crew construction", "construction"]

    @pytest.mark.asyncio
    async def test_min_results(self):
        provider = FakeProvider("unsplash", {"crew": [_photo(1)]})
        photo = await find_image(["crew"], "construction", [provider], min_results=3)
        assert photo.source == "local"

    @pytest.mark.asyncio
    async def test_sections(self, blueprint):
        provider = FakeProvider("unsplash", {"commercial construction crane": [_photo(i, "crane") for i in range(3)]})
        photos = await photos_for_sections(blueprint, ["hero", "services", "about"], [provider])
        assert photos["hero"][0].id == "0"
        # Un query por servicio.
        assert len(photos["services"]) == 3
        assert photos["about"][0].source == "local"

    @pytest.mark.asyncio
    async def test_researched_keywords_drive_service_queries(self, intake):
        research = ResearchBundle(project="x", service_image_keywords={"Roof Repair": ["roofer on ladder", "shingles"]})
        doc = {"client_profile": extract_client_profile(intake, research)}
        provider = FakeProvider("unsplash", {})
        await photos_for_sections(doc, ["services"], [provider])
        assert "roofer on ladder shingles" in provider.queries
        assert "Roof Repair" not in provider.queries

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from core.config import AppSettings
from core.domain.models import Blueprint, ClientIntake
from core.services.blueprint_builder import (
    contact_draft,
    extract_client_profile,
    fallback_about,
    fallback_hero,
    fallback_services,
    structure_recommendation,
    summarize_research,
    testimonials_placeholder,
)

CATALOG_ROOT = Path(__file__).resolve().parents[1] / "templates"


def sample_intake_data() -> dict[str, Any]:
    return {
        "company": {
            "name": "Summit Ridge Builders",
            "tagline": "Built right the first time",
            "description": "Established commercial and residential contractor since 2005.",
            "years_in_business": 18,
        },
        "contact": {
            "phone": "(555) 123-4567",
            "email": "info@summitridge.example",
            "address": {"street": "12 Main St", "city": "Denver", "state": "CO"},
            "hours": {"weekdays": "7am-5pm", "notes": "24/7 emergency callouts"},
        },
        "brand": {"tone": "professional", "style": "modern"},
        "industry": {
            "category": "construction",
            "niche": "commercial",
            "service_area": "Denver",
            "target_audience": "Property managers",
        },
        "services": [
            {
                "name": "Commercial Builds",
                "description": "Ground-up construction. Includes planning, permits, and site management.",
                "is_primary": True,
                "image_keywords": ["commercial construction", "crane"],
            },
            {"name": "Renovations", "description": "Office and retail fit-outs on a tight schedule."},
            {"name": "Roof Repair"},
        ],
        "mission": {
            "mission": "We build spaces that work as hard as the people in them.",
            "values": ["Safety - Every crew, every day", "Craftsmanship"],
            "unique_selling_points": ["Licensed and insured", "On-time guarantee"],
        },
    }


@pytest.fixture
def intake_data() -> dict[str, Any]:
    return sample_intake_data()


@pytest.fixture
def intake(intake_data: dict[str, Any]) -> ClientIntake:
    return ClientIntake.model_validate(intake_data)


@pytest.fixture
def blueprint(intake: ClientIntake) -> Blueprint:
    # Mismo resultado que generate_blueprint sin LLM, sin event loop.
    return Blueprint(
        client_profile=extract_client_profile(intake),
        research_summary=summarize_research(None),
        content_drafts={
            "hero": fallback_hero(intake),
            "about_us": fallback_about(intake),
            "services": fallback_services(intake),
            "testimonials": testimonials_placeholder(intake),
            "contact": contact_draft(intake),
        },
        structure_recommendation=structure_recommendation(intake),
    )


@pytest.fixture
def catalog_root() -> Path:
    return CATALOG_ROOT


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppSettings:
    monkeypatch.delenv("WPF_TEMPLATES_DIR", raising=False)
    return AppSettings(
        _env_file=None,
        ai_api_key=None,
        unsplash_access_key=None,
        pexels_api_key=None,
        templates_dir=CATALOG_ROOT,
        storage_base_path=tmp_path / "projects",
        deployment_history_path=tmp_path / "deployments",
        knowledge_base_path=tmp_path / "knowledge",
        token_log_path=None,
    )

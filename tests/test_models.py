from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.domain.models import Blueprint, ClientIntake, ResearchFinding, as_document, slugify


class TestSlugify:
    def test_basic(self):
        assert slugify("Acme Roofing & Co") == "acme-roofing-co"

    def test_empty_falls_back(self):
        assert slugify("") == "project"
        assert slugify("  !!! ") == "project"


class TestClientIntake:
    def test_valid_intake(self, intake_data):
        intake = ClientIntake.model_validate(intake_data)
        assert intake.company.name == "Summit Ridge Builders"
        assert intake.project_slug == "summit-ridge-builders"
        assert intake.services[0].is_primary is True
        assert intake.brand.tone == "professional"

    def test_explicit_slug_wins(self, intake_data):
        intake_data["company"]["slug"] = "Summit HQ"
        assert ClientIntake.model_validate(intake_data).project_slug == "summit-hq"

    def test_invalid_email_rejected(self, intake_data):
        intake_data["contact"]["email"] = "not-an-email"
        with pytest.raises(ValidationError):
            ClientIntake.model_validate(intake_data)

    def test_missing_company_name_rejected(self, intake_data):
        intake_data["company"]["name"] = ""
        with pytest.raises(ValidationError):
            ClientIntake.model_validate(intake_data)


class TestBlueprint:
    def test_slug_from_client_profile(self):
        bp = Blueprint(client_profile={"company": {"name": "Blue Sky Plumbing"}})
        assert bp.slug == "blue-sky-plumbing"

    def test_as_document_passthrough_for_dicts(self):
        doc = {"content_drafts": {}}
        assert as_document(doc) is doc

    def test_as_document_serializes_datetimes(self):
        doc = Blueprint().as_document()
        assert isinstance(doc["created_at"], str)
        assert doc["status"] == "draft"

    def test_extra_fields_survive_round_trip(self):
        bp = Blueprint.model_validate({"custom_section": {"a": 1}})
        assert bp.as_document()["custom_section"] == {"a": 1}


class TestResearchFinding:
    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ResearchFinding(section="hero", industry="construction", confidence=1.5)

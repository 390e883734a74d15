from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cli.main import app

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch, catalog_root, intake_data):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WPF_TEMPLATES_DIR", str(catalog_root))
    monkeypatch.setenv("WPF_STORAGE_BASE_PATH", str(tmp_path / "projects"))
    monkeypatch.setenv("WPF_DEPLOYMENT_HISTORY_PATH", str(tmp_path / "deployments"))
    for name in ("WPF_AI_API_KEY", "WPF_UNSPLASH_ACCESS_KEY", "WPF_PEXELS_API_KEY", "WPF_TOKEN_LOG_PATH"):
        monkeypatch.delenv(name, raising=False)

    intake_path = tmp_path / "intake.json"
    intake_path.write_text(json.dumps(intake_data), encoding="utf-8")
    return tmp_path


class TestBlueprintCommands:
    def test_blueprint_presets_assemble(self, workspace):
        result = runner.invoke(app, ["--quiet", "blueprint", "intake.json", "--output-dir", "bp"])
        assert result.exit_code == 0, result.output
        bp_path = workspace / "bp" / "summit-ridge-builders" / "blueprint-v1.0.json"
        assert bp_path.is_file()

        result = runner.invoke(app, ["--quiet", "presets", str(bp_path)])
        assert result.exit_code == 0, result.output
        assert "Presets for construction" in result.output

        result = runner.invoke(app, ["--quiet", "assemble", str(bp_path), "--dry-run", "-o", "themes"])
        assert result.exit_code == 0, result.output
        assert not (workspace / "themes").exists()

    def test_invalid_intake(self, workspace):
        (workspace / "bad.json").write_text("{}", encoding="utf-8")
        result = runner.invoke(app, ["--quiet", "blueprint", "bad.json"])
        assert result.exit_code == 1
        assert "Invalid intake" in result.output

    def test_missing_intake(self, workspace):
        result = runner.invoke(app, ["--quiet", "build", "nope.json"])
        assert result.exit_code == 1
        assert "Intake file not found" in result.output

    def test_research_requires_llm(self, workspace):
        result = runner.invoke(app, ["--quiet", "research", "intake.json"])
        assert result.exit_code == 1
        assert "No LLM provider configured" in result.output


class TestProjectLifecycle:
    def test_build_verify_deploy_rollback(self, workspace):
        result = runner.invoke(app, ["--quiet", "build", "intake.json", "--no-research"])
        assert result.exit_code == 0, result.output
        assert (workspace / "projects" / "summit-ridge-builders" / "style.css").is_file()

        result = runner.invoke(app, ["--quiet", "verify", "summit-ridge-builders"])
        assert result.exit_code == 0, result.output
        assert "all files intact" in result.output

        result = runner.invoke(app, ["--quiet", "deploy", "summit-ridge-builders", "--target", "site"])
        assert result.exit_code == 0, result.output
        assert (workspace / "site" / "style.css").is_file()

        records = list((workspace / "deployments").glob("deploy-*.json"))
        assert len(records) == 1
        deployment_id = records[0].stem

        result = runner.invoke(app, ["--quiet", "history", "summit-ridge-builders", "--json"])
        assert result.exit_code == 0, result.output
        assert deployment_id in result.output

        result = runner.invoke(app, ["--quiet", "rollback", deployment_id])
        assert result.exit_code == 0, result.output
        assert "rolled-back" in result.output

        # Un segundo rollback ya no parte de `completed`.
        result = runner.invoke(app, ["--quiet", "rollback", deployment_id])
        assert result.exit_code == 1

    def test_verify_detects_tampering(self, workspace):
        assert runner.invoke(app, ["--quiet", "build", "intake.json", "--no-research"]).exit_code == 0
        (workspace / "projects" / "summit-ridge-builders" / "style.css").write_text("x", encoding="utf-8")
        result = runner.invoke(app, ["--quiet", "verify", "summit-ridge-builders"])
        assert result.exit_code == 1
        assert "Checksum mismatch: style.css" in result.output

    def test_deploy_unknown_project(self, workspace):
        result = runner.invoke(app, ["--quiet", "deploy", "ghost", "--target", "site"])
        assert result.exit_code == 1
        assert "Project not found" in result.output

    def test_history_empty(self, workspace):
        result = runner.invoke(app, ["--quiet", "history", "ghost"])
        assert result.exit_code == 0
        assert "No deployments recorded" in result.output


class TestDoctor:
    def test_setup_ai_writes_provider_preset(self, workspace, monkeypatch):
        captured: dict[str, str] = {}

        def fake_write(values):
            captured.update(values)
            return workspace / "user.env"

        monkeypatch.setattr("cli.doctor.write_user_env_vars", fake_write)
        result = runner.invoke(app, ["--quiet", "doctor", "setup-ai"], input="openai\n\n\nsk-test\n\n\n")
        assert result.exit_code == 0, result.output
        assert captured == {
            "WPF_AI_BASE_URL": "https://api.openai.com/v1",
            "WPF_AI_MODEL": "gpt-4o-mini",
            "WPF_AI_API_KEY": "sk-test",
        }

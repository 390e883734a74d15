from __future__ import annotations

from pathlib import Path

from core.config import AppSettings, write_user_env_vars
from core.resources_loader import templates_root


class TestUserEnv:
    def test_write_merges_and_sorts(self, tmp_path):
        env_path = tmp_path / "cfg" / ".env"
        env_path.parent.mkdir()
        env_path.write_text('# old\nWPF_AI_MODEL="gpt-4o-mini"\nWPF_AI_API_KEY=old\n', encoding="utf-8")

        write_user_env_vars({"WPF_AI_API_KEY": "new", "WPF_PEXELS_API_KEY": None}, env_path=env_path)

        lines = env_path.read_text(encoding="utf-8").splitlines()
        assert lines == ["# WPF user config (.env)", "WPF_AI_API_KEY=new", "WPF_AI_MODEL=gpt-4o-mini"]


class TestSettings:
    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WPF_AI_MODEL", "claude-3-haiku-20240307")
        monkeypatch.setenv("WPF_STORAGE_BASE_PATH", str(tmp_path / "store"))
        monkeypatch.setenv("WPF_PREFERRED_PHOTO_SOURCE", "pexels")
        settings = AppSettings(_env_file=None)
        assert settings.ai_model == "claude-3-haiku-20240307"
        assert settings.storage_base_path == tmp_path / "store"
        assert settings.preferred_photo_source == "pexels"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("WPF_CACHE_MAX_AGE_DAYS=7\n", encoding="utf-8")
        assert AppSettings(_env_file=env_file).cache_max_age_days == 7

    def test_templates_root_precedence(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WPF_TEMPLATES_DIR", str(tmp_path / "env-catalog"))
        assert templates_root() == tmp_path / "env-catalog"
        explicit = AppSettings(_env_file=None, templates_dir=tmp_path / "explicit")
        assert templates_root(explicit) == Path(tmp_path / "explicit")

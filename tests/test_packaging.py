from __future__ import annotations

from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]


class TestProjectMetadata:
    def test_readme_is_the_project_readme(self):
        tomllib = pytest.importorskip("tomllib")
        project = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))["project"]
        assert project["readme"] == "README.md"
        assert (ROOT / "README.md").read_text(encoding="utf-8").startswith("# WPF")

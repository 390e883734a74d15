from __future__ import annotations

import json

from adapters.json_exporter import dumps_stable, export_model_json, write_json_atomic


class TestJsonExporter:
    def test_dumps_stable(self):
        text = dumps_stable({"b": 1, "a": "Año"})
        assert text.index('"a"') < text.index('"b"')
        assert "Año" in text
        assert text.endswith("}\n")

    def test_write_atomic_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "nested" / "meta.json"
        write_json_atomic(path, {"v": 1})
        write_json_atomic(path, {"v": 2})
        assert json.loads(path.read_text(encoding="utf-8")) == {"v": 2}
        assert [p.name for p in path.parent.iterdir()] == ["meta.json"]

    def test_export_model(self, blueprint, tmp_path):
        path = export_model_json(model=blueprint, output_path=tmp_path / "bp.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["client_profile"]["company"]["slug"] == "summit-ridge-builders"
        assert data["content_drafts"]["contact"]["email"] == "info@summitridge.example"

# tests/functional/test_diagram_admin_cli.py
"""
Functional tests for scripts/diagram_admin.py against an in-memory gateway.
"""

import asyncio
import importlib.util
import json
from pathlib import Path

import pytest

from dualflow.diagram import export_document, serialize
from dualflow.graph import Side


def _load_cli():
    script_path = Path(__file__).parents[2] / "scripts" / "diagram_admin.py"
    spec = importlib.util.spec_from_file_location("diagram_admin", script_path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


diagram_admin = _load_cli()


class TestDiagramAdminCLI:

    def test_import_list_export_delete(self, memory_gateway, scenario_store, tmp_path, capsys):
        source = tmp_path / "pipeline.json"
        source.write_text(export_document(scenario_store, "Pipeline"), encoding="utf-8")

        assert diagram_admin.main(["import", str(source)], gateway=memory_gateway) == 0
        assert "Imported Pipeline as" in capsys.readouterr().out

        summaries = asyncio.run(memory_gateway.list())
        diagram_id = summaries[0].id
        assert summaries[0].name == "Pipeline"

        assert diagram_admin.main(["list"], gateway=memory_gateway) == 0
        assert diagram_id in capsys.readouterr().out

        target = tmp_path / "out.json"
        assert diagram_admin.main(["export", diagram_id, "-o", str(target)], gateway=memory_gateway) == 0
        exported = json.loads(target.read_text(encoding="utf-8"))
        assert exported["name"] == "Pipeline"
        assert "id" not in exported
        assert exported["nodeRelations"] == serialize(scenario_store)["nodeRelations"]

        assert diagram_admin.main(["delete", diagram_id], gateway=memory_gateway) == 0
        assert len(memory_gateway) == 0

    def test_import_overwrite_and_show(self, memory_gateway, scenario_store, tmp_path, capsys):
        diagram_id = asyncio.run(memory_gateway.create("Draft", {}))
        scenario_store.delete_node(Side.LEFT, "l2")
        source = tmp_path / "edited.json"
        source.write_text(export_document(scenario_store, "Edited"), encoding="utf-8")

        assert diagram_admin.main(["import", str(source), "--name", "Final", "--overwrite", diagram_id],
                                  gateway=memory_gateway) == 0
        capsys.readouterr()

        assert diagram_admin.main(["show", diagram_id], gateway=memory_gateway) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["name"] == "Final"
        assert [n["id"] for n in shown["data"]["leftNodes"]] == ["l1"]

    def test_import_reports_warnings(self, memory_gateway, tmp_path, capsys):
        source = tmp_path / "broken.json"
        source.write_text(json.dumps({
            "name": "Broken",
            "rightNodes": [{"id": "r1"}],
            "rightEdges": [{"source": "r1", "target": "r2"}],
        }), encoding="utf-8")

        assert diagram_admin.main(["import", str(source)], gateway=memory_gateway) == 0
        assert "Warning:" in capsys.readouterr().err

    @pytest.mark.parametrize("argv", [["show", "missing"], ["delete", "missing"]])
    def test_unknown_diagram(self, memory_gateway, argv, capsys):
        assert diagram_admin.main(argv, gateway=memory_gateway) == 1
        assert "not found" in capsys.readouterr().out

    def test_malformed_import(self, memory_gateway, tmp_path):
        source = tmp_path / "bad.json"
        source.write_text("{nope", encoding="utf-8")
        assert diagram_admin.main(["import", str(source)], gateway=memory_gateway) == 1

    def test_no_command(self, memory_gateway):
        assert diagram_admin.main([], gateway=memory_gateway) == 1

"""Tests for scripts/calculate_batch.py."""

import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "calculate_batch.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("calculate_batch", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


ITEMS_YAML = """\
items:
  - linen_category_id: bedsheet
    category_name: Bed sheet
    quantity_sent: 10
    quantity_received: 8
    price_per_item: "5.00"
    express_delivery: true
"""


class TestCalculateBatchCli:
    def test_summary(self, cli, tmp_path, capsys):
        items = tmp_path / "items.yaml"
        items.write_text(ITEMS_YAML)

        assert cli.main([str(items)]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["grand_total"] == "80.50"
        assert output["has_discrepancy"] is True

    def test_invoice_from_json_list(self, cli, tmp_path, capsys):
        items = tmp_path / "items.json"
        items.write_text(
            json.dumps(
                [{"linen_category_id": "towel", "quantity_sent": 4, "price_per_item": "2.00"}]
            )
        )

        assert cli.main([str(items), "--invoice"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["lines"][0]["category_name"] == "towel"
        assert output["summary"]["grand_total"] == "9.20"

    def test_config_override(self, cli, tmp_path, capsys):
        items = tmp_path / "items.yaml"
        items.write_text(ITEMS_YAML)
        config = tmp_path / "engine.yaml"
        config.write_text("engine:\n  vat_rate: '0'\n")

        assert cli.main([str(items), "--config", str(config)]) == 0
        assert json.loads(capsys.readouterr().out)["grand_total"] == "70.00"

    @pytest.mark.parametrize("line", ["vat_rate: .nan", "vat_rate: true", "max_quantity: ten"])
    def test_bad_config_value_reported(self, cli, tmp_path, capsys, line):
        items = tmp_path / "items.yaml"
        items.write_text(ITEMS_YAML)
        config = tmp_path / "engine.yaml"
        config.write_text(f"engine:\n  {line}\n")

        assert cli.main([str(items), "--config", str(config)]) == 1
        assert "ERROR: " in capsys.readouterr().err

    def test_invalid_item_reports_code(self, cli, tmp_path, capsys):
        items = tmp_path / "items.yaml"
        items.write_text("- linen_category_id: x\n  quantity_sent: -1\n  price_per_item: '1'\n")

        assert cli.main([str(items)]) == 1
        assert "ERROR [INVALID_QUANTITY]" in capsys.readouterr().err

    def test_missing_file(self, cli, tmp_path, capsys):
        assert cli.main([str(tmp_path / "nope.yaml")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_wrong_shape(self, cli, tmp_path, capsys):
        items = tmp_path / "items.yaml"
        items.write_text("just a string\n")
        assert cli.main([str(items)]) == 1
        assert "expected a list" in capsys.readouterr().err

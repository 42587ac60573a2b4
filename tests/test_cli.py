import json

import pandas as pd
import pytest
from typer.testing import CliRunner

from frame_orders.cli import app
from tests.conftest import FIXTURES_DIR

runner = CliRunner()


@pytest.fixture(autouse=True)
def workspace(monkeypatch, tmp_path):
    monkeypatch.setenv("FRAME_ORDERS_HOME", str(tmp_path / "home"))
    return tmp_path / "home"


class TestCli:
    def test_vendors(self):
        result = runner.invoke(app, ["vendors"])
        assert result.exit_code == 0
        assert "marchon" in result.output
        assert "luxottica" in result.output

    def test_detect(self):
        result = runner.invoke(app, ["detect", str(FIXTURES_DIR / "europa_order.html")])
        assert result.exit_code == 0
        assert "europa" in result.output
        assert "signature-match" in result.output

    def test_detect_with_forwarded_headers(self):
        result = runner.invoke(app, [
            "detect", str(FIXTURES_DIR / "kenmark_order.html"),
            "--sender", "owner@gmail.com",
            "--forwarded-headers", "Reply-To: service@kenmarkeyewear.com",
        ])
        assert result.exit_code == 0, result.output
        assert "kenmark" in result.output
        assert "confidence: 90" in result.output

    def test_parse_writes_json_and_csv(self, tmp_path, workspace):
        json_path = tmp_path / "out" / "order.json"
        result = runner.invoke(app, [
            "parse", str(FIXTURES_DIR / "luxottica_order.html"),
            "--json-out", str(json_path),
            "--csv-out", "items.csv",
        ])
        assert result.exit_code == 0, result.output

        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["vendor"] == "luxottica"
        assert len(data["items"]) == 2

        df = pd.read_csv(workspace / "exports" / "items.csv")
        assert list(df["vendor"].unique()) == ["luxottica"]
        assert len(df) == 2

    def test_parse_error_exits_nonzero(self):
        result = runner.invoke(app, [
            "parse", str(FIXTURES_DIR / "kenmark_order.html"), "--vendor", "etnia", "--no-enrich",
        ])
        assert result.exit_code == 1
        assert "Could not parse document" in result.output

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from dal.models import ExecutionResult, FieldMeta
from report import cli

CONNECTION = '{"type": "mysql", "host": "db", "username": "app"}'


def _sales_result():
    return ExecutionResult.row_set(
        [{"product": "A", "sales": 1}, {"product": "B", "sales": 2}],
        [FieldMeta(name="product"), FieldMeta(name="sales")],
    )


def test_load_descriptor_inline_and_file(tmp_path):
    assert cli.load_descriptor(CONNECTION)["type"] == "mysql"

    path = tmp_path / "conn.json"
    path.write_text(CONNECTION, encoding="utf-8")
    assert cli.load_descriptor(f"@{path}")["host"] == "db"


def test_load_descriptor_requires_object():
    with pytest.raises(ValueError):
        cli.load_descriptor("[1, 2]")


def test_parser_chart_options():
    args = cli.build_parser().parse_args(
        ["chart", "-c", CONNECTION, "--sql", "SELECT 1", "--chart-type", "pie", "--publish"]
    )
    assert args.command == "chart"
    assert args.chart_type == "pie"
    assert args.publish is True
    assert args.database == ""


def test_test_command(monkeypatch, capsys):
    connector = SimpleNamespace(test_connection=AsyncMock(return_value=True))
    monkeypatch.setattr(cli, "get_connector", MagicMock(return_value=connector))

    cli.main(["test", "-c", CONNECTION])

    assert json.loads(capsys.readouterr().out) == {"ok": True}


def test_failed_connection_test_exits_nonzero(monkeypatch):
    connector = SimpleNamespace(test_connection=AsyncMock(return_value=False))
    monkeypatch.setattr(cli, "get_connector", MagicMock(return_value=connector))

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["test", "-c", CONNECTION])
    assert exc_info.value.code == 1


def test_query_rejects_mutation(capsys):
    """Guard rejections print the error payload and exit 1."""
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["query", "-c", CONNECTION, "--sql", "DROP TABLE users"])

    assert exc_info.value.code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"]["code"] == "READONLY_VIOLATION"


def test_chart_writes_html(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr("report.pipeline.run_query", AsyncMock(return_value=_sales_result()))
    output = tmp_path / "chart.html"

    cli.main(["chart", "-c", CONNECTION, "--sql", "SELECT product, sales FROM s", "-o", str(output)])

    document = output.read_text(encoding="utf-8")
    assert "饼图" in document
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"path": str(output), "chartType": "pie"}


def test_no_command_prints_help(capsys):
    cli.main([])
    assert "usage" in capsys.readouterr().out

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from common.errors import PolicyViolationError
from dal.models import ExecutionResult, FieldMeta
from dal.postgres import PostgresPanelRegistry
from dal.util.ids import is_valid_id
from report.models import ChartType, SemanticType
from report.pipeline import (
    create_visualization,
    query_to_panel,
    request_from_result,
    result_payload,
    run_query,
)
from report.publisher import Publisher
from report.renderer import extract_chart_config
from report.storage import MinioContentStore

DESCRIPTOR = {"type": "mysql", "host": "db", "username": "app", "password": "pw"}


def _sales_result():
    return ExecutionResult.row_set(
        [
            {"product": "A", "sales": 1200},
            {"product": "B", "sales": 1500},
            {"product": "C", "sales": 800},
        ],
        [FieldMeta(name="product"), FieldMeta(name="sales")],
    )


@pytest.fixture
def connector(monkeypatch):
    connector = SimpleNamespace(execute=AsyncMock(return_value=_sales_result()))
    get_connector = MagicMock(return_value=connector)
    monkeypatch.setattr("report.pipeline.get_connector", get_connector)
    connector.get_connector = get_connector
    return connector


@pytest.fixture
def minio_client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


@pytest.fixture
def control_conn():
    conn = AsyncMock()
    conn.fetchrow.return_value = {"created_at": datetime(2026, 1, 1, tzinfo=timezone.utc)}
    return conn


@pytest.fixture
def publisher(minio_client, control_conn):
    store = MinioContentStore(
        minio_client, bucket="reports", prefix="visualizations",
        public_base_url="https://cdn.example.com",
    )
    registry = PostgresPanelRegistry(control_conn, base_url="https://panel.example.com")
    return Publisher(store, registry)


@pytest.mark.asyncio
async def test_run_query_executes_read_only(connector):
    result = await run_query(DESCRIPTOR, "shop", "SELECT product, sales FROM s")

    assert result.is_row_set
    connector.execute.assert_awaited_once_with("shop", "SELECT product, sales FROM s")


@pytest.mark.asyncio
async def test_rejected_statement_never_reaches_connector(connector):
    """The guard runs before any connector is resolved."""
    with pytest.raises(PolicyViolationError):
        await run_query(DESCRIPTOR, "shop", "DELETE FROM users")

    connector.get_connector.assert_not_called()
    connector.execute.assert_not_awaited()


def test_request_from_result_infers_schema():
    request = request_from_result(_sales_result(), title="Sales")

    assert [(f.name, f.type) for f in request.columns] == [
        ("product", SemanticType.STRING),
        ("sales", SemanticType.NUMBER),
    ]
    assert request.rows == [["A", 1200], ["B", 1500], ["C", 800]]
    assert request.chart_type == ChartType.AUTO


def test_request_from_mutation_is_refused():
    with pytest.raises(PolicyViolationError):
        request_from_result(ExecutionResult.mutation(affected_rows=1))


def test_request_from_empty_row_set_is_refused():
    with pytest.raises(ValueError):
        request_from_result(ExecutionResult.row_set([], [FieldMeta(name="a")]))


@pytest.mark.asyncio
async def test_query_to_panel_end_to_end(connector, publisher, minio_client, control_conn):
    """Rows flow through inference, rendering, upload and registration."""
    result = await query_to_panel(
        DESCRIPTOR,
        "shop",
        "SELECT product, sales FROM s",
        publisher,
        owner_id="42",
        display_name="alice",
    )

    assert result.chart_type == ChartType.PIE
    assert result.chart_type_name == "饼图"
    assert is_valid_id(result.panel_id)
    assert result.panel_url == f"https://panel.example.com/panel/{result.panel_id}"
    assert result.target_url.startswith(
        "https://cdn.example.com/reports/visualizations/sql-chart-pie-"
    )

    args, _ = minio_client.put_object.call_args
    document = args[2].getvalue().decode("utf-8")
    assert "饼图" in document
    assert "查询结果可视化" in document
    config = extract_chart_config(document)
    assert config["data"]["datasets"][0]["data"] == [1200, 1500, 800]

    insert_args = control_conn.fetchrow.call_args.args
    assert insert_args[2] == "42"
    assert insert_args[3] == result.target_url
    assert insert_args[4] == "查询结果可视化"
    assert insert_args[5] == "由 alice 从 SQL Chat 创建的饼图"
    assert insert_args[6] is False


@pytest.mark.asyncio
async def test_create_visualization_keeps_explicit_type(publisher):
    request = request_from_result(_sales_result(), chart_type="bar", title="Sales")

    result = await create_visualization(request, publisher, owner_id="1", display_name="bob")

    assert result.chart_type == ChartType.BAR
    assert result_payload(result) == {
        "panelUrl": result.panel_url,
        "panelId": result.panel_id,
        "targetUrl": result.target_url,
        "chartType": "bar",
        "chartTypeName": "柱状图",
    }

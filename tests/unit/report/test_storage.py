import re
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from common.interfaces import ContentStore
from report.storage import HTML_CONTENT_TYPE, MinioContentStore, safe_object_name


@pytest.fixture
def client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    client.presigned_get_object.return_value = "https://minio/signed?sig=abc"
    return client


@pytest.fixture
def store(client):
    return MinioContentStore(
        client,
        bucket="reports",
        prefix="visualizations/",
        public_base_url="https://cdn.example.com/",
    )


def test_store_satisfies_protocol(store):
    assert isinstance(store, ContentStore)


@pytest.mark.asyncio
async def test_upload_document(store, client):
    """Documents are uploaded as HTML and addressed by their public URL."""
    content = "<html>图表</html>".encode("utf-8")

    result = await store.upload_document(content, "sql-chart-pie-1.html")

    assert re.fullmatch(r"visualizations/sql-chart-pie-1-[0-9a-f]{16}\.html", result.object_name)
    assert result.url == f"https://cdn.example.com/reports/{result.object_name}"
    assert result.size == len(content)

    args, kwargs = client.put_object.call_args
    assert args[0] == "reports"
    assert args[1] == result.object_name
    assert args[2].read() == content
    assert kwargs["length"] == len(content)
    assert kwargs["content_type"] == HTML_CONTENT_TYPE
    assert kwargs["metadata"]["Cache-Control"] == "public, max-age=3600"


@pytest.mark.asyncio
async def test_same_suggested_name_gets_distinct_keys(store, client):
    first = await store.upload_document(b"owner-a", "sql-chart-pie-1700000000000.html")
    second = await store.upload_document(b"owner-b", "sql-chart-pie-1700000000000.html")

    assert first.object_name != second.object_name
    assert first.url != second.url
    keys = [c.args[1] for c in client.put_object.call_args_list]
    assert keys == [first.object_name, second.object_name]


def test_object_name_without_extension(store):
    assert re.fullmatch(r"visualizations/report-[0-9a-f]{16}", store.object_name_for("report"))


@pytest.mark.asyncio
async def test_bucket_created_once_when_missing(store, client):
    client.bucket_exists.return_value = False

    await store.upload_document(b"a", "a.html")
    await store.upload_document(b"b", "b.html")

    client.make_bucket.assert_called_once_with("reports")
    assert client.bucket_exists.call_count == 1


@pytest.mark.asyncio
async def test_upload_failure_propagates(store, client):
    client.put_object.side_effect = RuntimeError("AccessDenied")

    with pytest.raises(RuntimeError, match="AccessDenied"):
        await store.upload_document(b"a", "a.html")


@pytest.mark.asyncio
async def test_signed_url(store, client):
    url = await store.signed_url("visualizations/a.html", expires_seconds=600)

    assert url == "https://minio/signed?sig=abc"
    client.presigned_get_object.assert_called_once_with(
        "reports", "visualizations/a.html", expires=timedelta(seconds=600)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("seconds", [0, 24 * 3600 + 1])
async def test_signed_url_bounds(store, seconds):
    with pytest.raises(ValueError):
        await store.signed_url("a.html", expires_seconds=seconds)


def test_defaults_from_settings(monkeypatch, client):
    monkeypatch.setenv("MINIO_BUCKET", "from-env")
    monkeypatch.setenv("MINIO_ENDPOINT", "minio:9000")

    store = MinioContentStore(client)

    assert store.bucket == "from-env"
    assert store.prefix == "visualizations"
    assert store.public_url("x.html") == "http://minio:9000/from-env/x.html"


@pytest.mark.parametrize(
    "suggested,expected",
    [
        ("sql-chart-bar-1.html", "sql-chart-bar-1.html"),
        ("../../etc/passwd", "passwd"),
        ("dir\\my report.html", "my-report.html"),
    ],
)
def test_safe_object_name(suggested, expected):
    assert safe_object_name(suggested) == expected


def test_safe_object_name_fallback():
    assert safe_object_name("///").startswith("visualization-")
    assert safe_object_name(None).endswith(".html")

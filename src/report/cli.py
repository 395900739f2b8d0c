import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from common.errors import SqlPanelError
from dal.factory import close_connectors, get_connector

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_descriptor(raw: str) -> Dict[str, Any]:
    """Parse a JSON connection descriptor, or ``@path`` to read it from a file."""
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text(encoding="utf-8")
    descriptor = json.loads(raw)
    if not isinstance(descriptor, dict):
        raise ValueError("Connection descriptor must be a JSON object")
    return descriptor


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


async def _cmd_test(args) -> int:
    ok = await get_connector(load_descriptor(args.connection)).test_connection()
    _print_json({"ok": ok})
    return 0 if ok else 1


async def _cmd_databases(args) -> int:
    databases = await get_connector(load_descriptor(args.connection)).list_databases()
    _print_json(databases)
    return 0


async def _cmd_schema(args) -> int:
    schemas = await get_connector(load_descriptor(args.connection)).get_schema(args.database)
    _print_json([schema.model_dump(exclude_none=True) for schema in schemas])
    return 0


async def _cmd_query(args) -> int:
    from report.pipeline import run_query

    result = await run_query(load_descriptor(args.connection), args.database, args.sql)
    _print_json(result.model_dump(exclude_none=True))
    return 0


async def _cmd_chart(args) -> int:
    from report.models import AxisLabels, StyleConfig
    from report.pipeline import request_from_result, run_query
    from report.renderer import generate_file_name, render_report

    result = await run_query(load_descriptor(args.connection), args.database, args.sql)
    axis_labels: Optional[AxisLabels] = None
    if args.x_label or args.y_label:
        axis_labels = AxisLabels(x=args.x_label, y=args.y_label)
    request = request_from_result(
        result,
        chart_type=args.chart_type,
        title=args.title,
        axis_labels=axis_labels,
        style=StyleConfig(theme=args.theme),
    )

    if not args.publish:
        rendered = render_report(request)
        output = Path(args.output or generate_file_name(rendered.chart_type))
        output.write_bytes(rendered.content)
        logger.info(f"Wrote {rendered.chart_type_name} report to {output}")
        _print_json({"path": str(output), "chartType": rendered.chart_type.value})
        return 0

    from dal.control_plane import ControlPlaneDatabase
    from dal.factory import get_panel_registry
    from report.pipeline import create_visualization, result_payload
    from report.publisher import Publisher
    from report.storage import MinioContentStore

    await ControlPlaneDatabase.init()
    try:
        publisher = Publisher(MinioContentStore(), get_panel_registry())
        published = await create_visualization(
            request, publisher, owner_id=args.owner, display_name=args.display_name
        )
    finally:
        await ControlPlaneDatabase.close()
    _print_json(result_payload(published))
    return 0


COMMANDS = {
    "test": _cmd_test,
    "databases": _cmd_databases,
    "schema": _cmd_schema,
    "query": _cmd_query,
    "chart": _cmd_chart,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the sqlpanel argument parser."""
    parser = argparse.ArgumentParser(description="Query databases read-only and chart the results")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_connection(sub):
        sub.add_argument(
            "--connection",
            "-c",
            required=True,
            help="JSON connection descriptor, or @path to a JSON file",
        )

    test_parser = subparsers.add_parser("test", help="Check that the database is reachable")
    add_connection(test_parser)

    db_parser = subparsers.add_parser("databases", help="List databases")
    add_connection(db_parser)

    schema_parser = subparsers.add_parser("schema", help="Describe tables and views")
    add_connection(schema_parser)
    schema_parser.add_argument("--database", "-d", default="", help="Database to describe")

    query_parser = subparsers.add_parser("query", help="Run a read-only statement")
    add_connection(query_parser)
    query_parser.add_argument("--database", "-d", default="", help="Database to use")
    query_parser.add_argument("--sql", required=True, help="Statement to run")

    chart_parser = subparsers.add_parser("chart", help="Run a statement and chart the rows")
    add_connection(chart_parser)
    chart_parser.add_argument("--database", "-d", default="", help="Database to use")
    chart_parser.add_argument("--sql", required=True, help="Statement to run")
    chart_parser.add_argument(
        "--chart-type",
        default="auto",
        choices=["line", "bar", "pie", "scatter", "radar", "area", "heatmap", "bubble", "auto"],
        help="Chart type (default: auto)",
    )
    chart_parser.add_argument("--title", default=None, help="Report title")
    chart_parser.add_argument("--theme", default=None, help="default, dark, business or colorful")
    chart_parser.add_argument("--x-label", default=None, help="X axis title")
    chart_parser.add_argument("--y-label", default=None, help="Y axis title")
    chart_parser.add_argument("--output", "-o", default=None, help="Where to write the HTML")
    chart_parser.add_argument(
        "--publish",
        action="store_true",
        help="Upload to MinIO and register a panel instead of writing a file",
    )
    chart_parser.add_argument("--owner", default="cli", help="Panel owner id (with --publish)")
    chart_parser.add_argument(
        "--display-name", default="cli", help="Owner display name (with --publish)"
    )
    return parser


async def _run(args) -> int:
    try:
        return await COMMANDS[args.command](args)
    finally:
        await close_connectors()


def main(argv=None):
    """Run the sqlpanel CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return

    try:
        code = asyncio.run(_run(args))
    except SqlPanelError as e:
        logger.error(f"{args.command} failed: {e}")
        _print_json({"error": e.to_dict()})
        sys.exit(1)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()

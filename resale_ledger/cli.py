from __future__ import annotations

import argparse
import json
from pathlib import Path

import uvicorn

from resale_ledger.api.utils import encode
from resale_ledger.core.config import get_settings
from resale_ledger.core.logging import configure_logging
from resale_ledger.persistence.pg import init_db
from resale_ledger.persistence.store import get_document_store
from resale_ledger.services.reports import ReportService, stats_frame


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resale Ledger CLI")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("init-db", help="Create the document table")

    serve = top.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: settings.api_host)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: settings.api_port)")

    report = top.add_parser("report", help="Print derived reports")
    report_sub = report.add_subparsers(dest="report_command", required=True)
    products = report_sub.add_parser("products", help="Per-product quantity, buyers, revenue, cost and profit")
    products.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    products.add_argument("--no-shipping", action="store_true", help="Exclude estimated shipping from cost")
    products.add_argument("--query", default=None, help="Product name filter")
    report_sub.add_parser("dashboard", help="Order counts and sales totals")

    export = top.add_parser("export", help="Write reports to disk")
    export_sub = export.add_subparsers(dest="export_command", required=True)
    export_products = export_sub.add_parser("products", help="Write the product rollup as CSV")
    export_products.add_argument("--out", default=None, help="Target path (default: <exports_root>/product_rollup.csv)")
    export_products.add_argument("--no-shipping", action="store_true")

    return parser


def _include_shipping(args: argparse.Namespace) -> bool | None:
    return False if args.no_shipping else None


def _report_products(args: argparse.Namespace) -> int:
    service = ReportService(get_document_store())
    rows = service.product_rollup(include_shipping=_include_shipping(args), query=args.query)
    if args.json:
        print(json.dumps([encode(row.as_dict()) for row in rows], ensure_ascii=False, indent=2))
    else:
        print(stats_frame(rows).to_string(index=False))
    return 0


def _report_dashboard() -> int:
    summary = ReportService(get_document_store()).dashboard()
    print(json.dumps(encode(summary.as_dict()), ensure_ascii=False, indent=2))
    return 0


def _export_products(args: argparse.Namespace) -> int:
    target = ReportService(get_document_store()).export_products(
        out=Path(args.out) if args.out else None,
        include_shipping=_include_shipping(args),
    )
    print(str(target))
    return 0


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run(
        "resale_ledger.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main() -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args()

    init_db()
    if args.command == "init-db":
        print("ok")
        return 0
    if args.command == "serve":
        return _serve(args)
    if args.command == "report" and args.report_command == "products":
        return _report_products(args)
    if args.command == "report" and args.report_command == "dashboard":
        return _report_dashboard()
    if args.command == "export" and args.export_command == "products":
        return _export_products(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sales_doctor import __version__ as TOOL_VERSION
from sales_doctor.column_detector import detect_columns
from sales_doctor.config import ConfigError, DEFAULT_CONFIG, load_config, starter_config_text
from sales_doctor.contracts import build_contract
from sales_doctor.loader import ALL_FORMATS, load_rows
from sales_doctor.pipeline import analyze_file
from sales_doctor.preprocessing import joined_row_text, locate_header_row
from sales_doctor.providers import ObservedCohortProvider, RandomCohortProvider, RandomStockProvider

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_INTERNAL_FAILURE = 6

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SalesDoctorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    package_logger = logging.getLogger("sales_doctor")
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG)
    elif quiet:
        package_logger.setLevel(logging.ERROR)


def timestamp_token() -> str:
    override = os.environ.get("SALES_DOCTOR_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "sales-doctor-output" / f"{input_path.stem}-{timestamp_token()}"


def determine_output_dir(args: argparse.Namespace, input_path: Path) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return default_output_dir(input_path)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: "1970-01-01T00:00:00Z" if key == "generated_at" else remove_generated_at(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def check_input(input_path: Path) -> None:
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    suffix = input_path.suffix.lower()
    if suffix not in ALL_FORMATS:
        raise CliError(
            f"Unsupported file type '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(ALL_FORMATS))}",
            EXIT_COMMAND_ERROR,
        )


def render_analysis_text(bundle: dict[str, Any]) -> str:
    summary = bundle.get("summary", {})
    lines = [
        "sales-doctor analyze",
        f"Header row: {summary.get('headerRow', '[unknown]')}",
        f"Data rows: {summary.get('rowCount', 0)}",
        f"Transactions: {summary.get('transactionCount', 0)}",
        f"Products: {summary.get('productCount', 0)}",
        f"Customers: {summary.get('customerCount', 0)}",
        f"Date range: {summary.get('startDate') or '?'} to {summary.get('endDate') or '?'}",
        f"Basket rules: {len(bundle.get('marketBasket', []))}",
    ]
    for kpi in bundle.get("kpiData", []):
        lines.append(f"{kpi['label']}: {kpi['value']}")
    if summary.get("reconciliationWarnings"):
        lines.append(f"Reconciliation warnings: {summary['reconciliationWarnings']}")
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = SalesDoctorArgumentParser(prog="sales-doctor", description="Retail sales book ingestion and analytics.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyse a sales export and write the analysis bundle.")
    analyze.add_argument("input", help="Input file path")
    analyze.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: first sheet)")
    analyze.add_argument("--config", help="Config path (.json supported; .yml/.yaml rejected honestly for now)")
    analyze.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    analyze.add_argument("--output", help="Explicit analysis output path")
    analyze.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    analyze.add_argument("--seed", type=int, default=None, help="Seed for placeholder stock levels")
    analyze.add_argument(
        "--cohorts",
        choices=["observed", "placeholder"],
        default="observed",
        help="Cohort table from the data or from the placeholder generator",
    )
    analyze.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    analyze.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    columns = subparsers.add_parser("columns", help="Show the header row and detected column map.")
    columns.add_argument("input", help="Input file path")
    columns.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: first sheet)")
    columns.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="sales-doctor.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_analyze(args: argparse.Namespace) -> int:
    configure_logging(verbose=args.verbose, quiet=args.quiet)
    input_path = Path(args.input)
    check_input(input_path)

    config = DEFAULT_CONFIG
    if args.config:
        try:
            config = load_config(Path(args.config))
        except ConfigError as exc:
            raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc

    out_dir = determine_output_dir(args, input_path)
    output_path = Path(args.output) if args.output else out_dir / "analysis.json"
    if output_path.exists():
        raise CliError(f"Refusing to overwrite existing output: {output_path}", EXIT_COMMAND_ERROR)

    cohort_provider = RandomCohortProvider(args.seed) if args.cohorts == "placeholder" else ObservedCohortProvider()
    result = analyze_file(
        input_path,
        sheet_name=args.sheet_name,
        config=config,
        stock_provider=RandomStockProvider(args.seed),
        cohort_provider=cohort_provider,
    )
    if not result.success or result.bundle is None:
        if args.json:
            print(json_dumps(result.to_dict()))
        eprint(f"{result.error_code}: {result.error}")
        return EXIT_PARSE_FAILED if result.status_code == 400 else EXIT_INTERNAL_FAILURE

    bundle = remove_generated_at(result.bundle)
    bundle["run_summary"]["output_file"] = str(output_path)
    write_json(output_path, bundle)
    if args.json:
        print(json_dumps(bundle))
    else:
        emit_human(render_analysis_text(bundle).rstrip(), quiet=args.quiet)
        for warning in result.warnings:
            emit_human(f"Warning: {warning}", quiet=args.quiet)
        emit_human(f"Analysis written: {output_path}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_columns(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    check_input(input_path)
    try:
        sheet = load_rows(input_path, sheet_name=args.sheet_name)
    except (ValueError, ImportError) as exc:
        raise CliError(str(exc), EXIT_PARSE_FAILED) from exc
    if not sheet.rows:
        raise CliError("File has insufficient data", EXIT_PARSE_FAILED)

    header_idx = locate_header_row(
        sheet.rows,
        max_scan=DEFAULT_CONFIG.header_scan_rows,
        min_cells=DEFAULT_CONFIG.header_min_cells,
        keywords=DEFAULT_CONFIG.header_keywords,
    )
    columns = detect_columns(sheet.rows[header_idx])
    contract = build_contract("sales_doctor.columns")
    payload = {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "file": str(input_path),
        "sheet_name": sheet.sheet_name,
        "header_row": header_idx + 1,
        "header_text": joined_row_text(sheet.rows[header_idx]),
        "columns": columns.to_dict(),
        "missing": columns.missing(),
    }
    if args.json:
        print(json_dumps(payload))
        return EXIT_SUCCESS

    lines = [
        "sales-doctor columns",
        f"File: {input_path}",
        f"Header row: {header_idx + 1}",
    ]
    for name, idx in payload["columns"].items():
        lines.append(f"{name}: {'-' if idx is None else idx + 1}")
    print("\n".join(lines))
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, starter_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "analyze":
            return run_analyze(args)
        if args.command == "columns":
            return run_columns(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())

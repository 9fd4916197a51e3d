"""
pipeline.py: the one-shot boundary between an uploaded sheet and its bundle.

    locate header -> detect columns -> stitch transactions -> analytics -> bundle

Nothing raises past ``analyze_rows``, ``analyze_file`` or ``analyze_upload``.
Input problems come back as a failed ``AnalysisResult`` with a stable code
and HTTP status 400. Anything else is logged with its traceback and
reported as ``INTERNAL_ERROR`` / 500.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from sales_doctor.analytics import run_analytics
from sales_doctor.bundle import assemble_bundle
from sales_doctor.column_detector import detect_columns
from sales_doctor.config import DEFAULT_CONFIG, AnalysisConfig
from sales_doctor.loader import load_rows, load_rows_from_bytes
from sales_doctor.preprocessing import locate_header_row, non_empty_cells
from sales_doctor.providers import CohortProvider, StockProvider
from sales_doctor.stitcher import stitch_transactions

logger = logging.getLogger(__name__)

NO_FILE = "NO_FILE"
INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
NO_HEADER_ROW = "NO_HEADER_ROW"
NO_TRANSACTIONS = "NO_TRANSACTIONS"
UNREADABLE_FILE = "UNREADABLE_FILE"
INTERNAL_ERROR = "INTERNAL_ERROR"

# a header row must locate at least one of these to be usable
ANCHOR_FIELDS = ("date", "voucher_no", "product_name")


class AnalysisError(Exception):
    """An input-shape problem the caller can fix by uploading a different file."""

    status_code = 400

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class AnalysisResult:
    success: bool
    bundle: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    status_code: int = 200
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str, code: str, status_code: int, warnings: Sequence[str] = ()) -> "AnalysisResult":
        return cls(success=False, error=message, error_code=code, status_code=status_code, warnings=list(warnings))

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return self.bundle or {"success": True}
        return {"success": False, "error": self.error, "code": self.error_code}


def _build_bundle(
    rows: Sequence[Sequence[Any]],
    *,
    config: AnalysisConfig,
    stock_provider: Optional[StockProvider],
    cohort_provider: Optional[CohortProvider],
    input_path: Optional[Path],
    warnings: list[str],
) -> dict[str, Any]:
    if sum(1 for row in rows if non_empty_cells(row)) < 2:
        raise AnalysisError("File has insufficient data", INSUFFICIENT_DATA)

    header_idx = locate_header_row(
        rows,
        max_scan=config.header_scan_rows,
        min_cells=config.header_min_cells,
        keywords=config.header_keywords,
    )
    columns = detect_columns(rows[header_idx])
    found = columns.found()
    logger.info("Header row %d; detected columns: %s", header_idx + 1, ", ".join(found) or "none")
    if not any(name in found for name in ANCHOR_FIELDS):
        raise AnalysisError(
            f"No header row found: row {header_idx + 1} has no date, voucher or product column",
            NO_HEADER_ROW,
        )
    missing = [name for name in ANCHOR_FIELDS if name not in found]
    if missing:
        logger.warning("Columns not found: %s", ", ".join(missing))

    data_rows = rows[header_idx + 1:]
    logger.info("Found %d data rows", len(data_rows))
    stitched = stitch_transactions(data_rows, columns, config=config, first_row_number=header_idx + 2)
    logger.info(
        "Stitched %d transactions (row kinds: %s)",
        len(stitched.transactions),
        dict(sorted(stitched.row_counts.items())),
    )
    for warning in stitched.warnings:
        logger.warning(warning)
    warnings.extend(stitched.warnings)
    if not stitched.transactions:
        raise AnalysisError("No valid transactions found in the file", NO_TRANSACTIONS)

    report = run_analytics(
        stitched.transactions,
        config=config,
        stock_provider=stock_provider,
        cohort_provider=cohort_provider,
    )
    return assemble_bundle(
        report,
        row_count=len(data_rows),
        header_row=header_idx,
        columns=columns,
        warnings=warnings,
        reconciliation_warnings=len(stitched.warnings),
        input_path=input_path,
        config=config,
    )


def analyze_rows(
    rows: Sequence[Sequence[Any]],
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    stock_provider: Optional[StockProvider] = None,
    cohort_provider: Optional[CohortProvider] = None,
    input_path: Optional[Path] = None,
    warnings: Sequence[str] = (),
) -> AnalysisResult:
    collected = list(warnings)
    try:
        bundle = _build_bundle(
            rows,
            config=config,
            stock_provider=stock_provider,
            cohort_provider=cohort_provider,
            input_path=input_path,
            warnings=collected,
        )
    except AnalysisError as exc:
        logger.warning("Analysis rejected (%s): %s", exc.code, exc)
        return AnalysisResult.failure(str(exc), exc.code, exc.status_code, collected)
    except Exception:
        logger.exception("Error processing %s", input_path or "rows")
        return AnalysisResult.failure("Processing failed", INTERNAL_ERROR, 500, collected)
    return AnalysisResult(success=True, bundle=bundle, warnings=collected)


def analyze_file(
    path: Path,
    *,
    sheet_name: Optional[str] = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
    stock_provider: Optional[StockProvider] = None,
    cohort_provider: Optional[CohortProvider] = None,
) -> AnalysisResult:
    path = Path(path)
    logger.info("Processing file: %s", path)
    try:
        sheet = load_rows(path, sheet_name=sheet_name)
    except FileNotFoundError as exc:
        return AnalysisResult.failure(str(exc), NO_FILE, 400)
    except (ValueError, ImportError) as exc:
        return AnalysisResult.failure(str(exc), UNREADABLE_FILE, 400)
    except Exception:
        logger.exception("Error reading %s", path)
        return AnalysisResult.failure("Processing failed", INTERNAL_ERROR, 500)
    return analyze_rows(
        sheet.rows,
        config=config,
        stock_provider=stock_provider,
        cohort_provider=cohort_provider,
        input_path=path,
        warnings=sheet.warnings,
    )


def analyze_upload(
    data: Optional[bytes],
    filename: str = "upload.xlsx",
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    stock_provider: Optional[StockProvider] = None,
    cohort_provider: Optional[CohortProvider] = None,
) -> AnalysisResult:
    if not data:
        return AnalysisResult.failure("No file provided", NO_FILE, 400)
    logger.info("Processing upload: %s, size: %d", filename, len(data))
    try:
        sheet = load_rows_from_bytes(data, filename)
    except (ValueError, ImportError) as exc:
        return AnalysisResult.failure(str(exc), UNREADABLE_FILE, 400)
    except Exception:
        logger.exception("Error reading upload %s", filename)
        return AnalysisResult.failure("Processing failed", INTERNAL_ERROR, 500)
    return analyze_rows(
        sheet.rows,
        config=config,
        stock_provider=stock_provider,
        cohort_provider=cohort_provider,
        warnings=sheet.warnings,
    )

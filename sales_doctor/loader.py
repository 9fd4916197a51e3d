"""
loader.py: reads a sales export into a plain grid of raw cells.

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods

Public API:
    sheet = load_rows("path/to/sales.xlsx")
    sheet.rows   # list[list[Any]], first sheet only unless sheet_name is given

Workbook cells keep their native types (numbers stay numbers, dates stay
datetimes) because the date normaliser understands spreadsheet serials and
datetime objects directly. Text files yield strings. Trailing empty cells
are trimmed; blank rows are kept as ``[]`` so row numbers stay meaningful.
"""

from __future__ import annotations

import csv
import io
import logging
import tempfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import chardet
import pandas as pd
from openpyxl import load_workbook

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS = {".csv", ".tsv", ".txt"}
OPENPYXL_FORMATS = {".xlsx", ".xlsm"}
PANDAS_FORMATS = {".xls", ".ods"}
ALL_FORMATS = TEXT_FORMATS | OPENPYXL_FORMATS | PANDAS_FORMATS


@dataclass
class LoadedSheet:
    rows: list[list[Any]]
    detected_format: str
    sheet_name: Optional[str] = None
    sheet_names: list[str] = field(default_factory=list)
    encoding: Optional[str] = None
    delimiter: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def trim_row(values) -> list[Any]:
    row = [None if _is_empty(value) else value for value in values]
    while row and row[-1] is None:
        row.pop()
    return row


# ══════════════════════════════════════════════════════════════════════════════
# TEXT FILES
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw[:200_000])
    return result.get("encoding") or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line: UTF-8, then the detected encoding, then
    latin-1, then CP1252 with replacement. Null bytes are dropped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: Optional[str] = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", "").rstrip("\r"))
    return "\n".join(decoded_lines)


def _detect_delimiter(text: str) -> str:
    """csv.Sniffer first, then the candidate giving the most consistent width."""
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])
    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim, best_score = ",", float("-inf")
    for delim in (",", ";", "\t", "|"):
        rows = [row for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim) if any(row)]
        if len(rows) < 2:
            continue
        mode_width, mode_count = Counter(len(row) for row in rows).most_common(1)[0]
        score = mode_width * 2.0 + mode_count / len(rows) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_delim, best_score = delim, score
    return best_delim


def _load_text(path: Path, suffix: str) -> LoadedSheet:
    raw = path.read_bytes()
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    rows = [trim_row(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)]
    return LoadedSheet(rows=rows, detected_format=suffix.lstrip("."), encoding=encoding, delimiter=delimiter)


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOKS
# ══════════════════════════════════════════════════════════════════════════════

def _load_openpyxl(path: Path, suffix: str, sheet_name: Optional[str]) -> LoadedSheet:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc
    try:
        names = list(wb.sheetnames)
        if sheet_name is not None and sheet_name not in names:
            raise ValueError(f"Sheet '{sheet_name}' not found. Available: {names}")
        chosen = sheet_name or names[0]
        rows = [trim_row(values) for values in wb[chosen].iter_rows(values_only=True)]
    finally:
        wb.close()
    return _finish_workbook(rows, suffix, chosen, names)


def _require_engine(suffix: str) -> Optional[str]:
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd; run: pip install xlrd")
        return "xlrd"
    try:
        import odf  # noqa: F401
    except ImportError:
        raise ImportError(".ods files require odfpy; run: pip install odfpy")
    return "odf"


def _load_pandas(path: Path, suffix: str, sheet_name: Optional[str]) -> LoadedSheet:
    engine = _require_engine(suffix)
    try:
        with pd.ExcelFile(path, engine=engine) as xf:
            names = [str(name) for name in xf.sheet_names]
            if sheet_name is not None and sheet_name not in names:
                raise ValueError(f"Sheet '{sheet_name}' not found. Available: {names}")
            chosen = sheet_name or names[0]
            frame = pd.read_excel(xf, sheet_name=chosen, header=None, dtype=object)
    except ValueError as exc:
        if "not found" in str(exc):
            raise
        raise ValueError(f"Could not read workbook: {exc}") from exc
    rows = [trim_row(values) for values in frame.itertuples(index=False, name=None)]
    return _finish_workbook(rows, suffix, chosen, names)


def _finish_workbook(rows: list[list[Any]], suffix: str, chosen: str, names: list[str]) -> LoadedSheet:
    warnings = []
    if len(names) > 1:
        others = [name for name in names if name != chosen]
        warnings.append(f"Multiple sheets found ({len(names)} total); used '{chosen}'. Ignored: {others}")
    return LoadedSheet(
        rows=rows,
        detected_format=suffix.lstrip("."),
        sheet_name=chosen,
        sheet_names=names,
        warnings=warnings,
    )


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_rows(path: Path, sheet_name: Optional[str] = None) -> LoadedSheet:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in ALL_FORMATS:
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {', '.join(sorted(ALL_FORMATS))}")

    if suffix in TEXT_FORMATS:
        sheet = _load_text(path, suffix)
    elif suffix in OPENPYXL_FORMATS:
        sheet = _load_openpyxl(path, suffix, sheet_name)
    else:
        sheet = _load_pandas(path, suffix, sheet_name)
    logger.info("Loaded %s: %d rows (sheet=%s)", path.name, len(sheet.rows), sheet.sheet_name)
    return sheet


def load_rows_from_bytes(data: bytes, filename: str, sheet_name: Optional[str] = None) -> LoadedSheet:
    """Same as ``load_rows`` for an upload body; the filename picks the format."""
    suffix = Path(filename).suffix.lower() or ".xlsx"
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / f"upload{suffix}"
        path.write_bytes(data)
        return load_rows(path, sheet_name=sheet_name)

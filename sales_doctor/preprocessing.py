from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from sales_doctor.normalization import cell_text

SUMMARY_LABEL_RE = re.compile(r"^\s*(grand\s+total|total\s*>>|total)", re.IGNORECASE)


def non_empty_cells(row: Sequence[Any]) -> list[str]:
    cells = []
    for cell in row:
        text = cell_text(cell)
        if text:
            cells.append(text)
    return cells


def joined_row_text(row: Sequence[Any]) -> str:
    return " | ".join(non_empty_cells(row))


def is_summary_label(value: Any) -> bool:
    return bool(SUMMARY_LABEL_RE.match(cell_text(value)))


def looks_like_header_row(
    row: Sequence[Any],
    *,
    min_cells: int = 5,
    keywords: Iterable[str] = ("date", "voucher", "product"),
) -> bool:
    if len(non_empty_cells(row)) < min_cells:
        return False
    text = joined_row_text(row).lower()
    return any(keyword in text for keyword in keywords)


def locate_header_row(
    all_rows: Sequence[Sequence[Any]],
    *,
    max_scan: int = 20,
    min_cells: int = 5,
    keywords: Iterable[str] = ("date", "voucher", "product"),
) -> int:
    """Index of the first plausible header row within the scan window, else 0.

    Exports usually carry a company banner and report title above the table,
    sometimes in merged cells, so the header rarely sits on row 0.
    """
    keywords = tuple(keywords)
    for idx, row in enumerate(all_rows[:max_scan]):
        if looks_like_header_row(row, min_cells=min_cells, keywords=keywords):
            return idx
    return 0

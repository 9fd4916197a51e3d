"""
Rebuilds vouchers from the two-level layout sales books are exported in:

    05-01-2026  V1  ANUSMRITI          ...header totals...
                    Belt Half Pant  9002  1  1805 ...
                    Shoes           9806  1  3209 ...
    06-01-2026  V2  CASH PARTY         ...

A header row carries the date, the voucher number and, in the product-name
column, the customer. Detail rows below it carry product name and code but no
date or voucher. Detail rows are attached to the most recent header; ones
that appear before any header are dropped.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sales_doctor.column_detector import ColumnMap
from sales_doctor.config import DEFAULT_CONFIG, AnalysisConfig
from sales_doctor.entities import (
    normalize_customer_name,
    normalize_payment_method,
    payment_from_name,
    title_case,
)
from sales_doctor.models import WALK_IN_NAME, ProductLine, Transaction
from sales_doctor.normalization import is_iso_date, parse_amount, parse_date
from sales_doctor.preprocessing import is_summary_label, non_empty_cells

logger = logging.getLogger(__name__)


class StitchState(Enum):
    NO_CURRENT_TRANSACTION = "no_current_transaction"
    BUILDING_TRANSACTION = "building_transaction"


class RowKind(Enum):
    HEADER = "header"
    DETAIL = "detail"
    SPARSE = "sparse"
    SUMMARY = "summary"
    AMBIGUOUS = "ambiguous"


@dataclass
class StitchResult:
    transactions: list[Transaction]
    row_counts: Counter = field(default_factory=Counter)
    warnings: list[str] = field(default_factory=list)


def classify_row(row: Sequence[Any], columns: ColumnMap) -> RowKind:
    if len(non_empty_cells(row)) < 2:
        return RowKind.SPARSE
    if (row and is_summary_label(row[0])) or is_summary_label(columns.value(row, "product_name")):
        return RowKind.SUMMARY

    has_date = parse_date(columns.value(row, "date")) != ""
    has_voucher = columns.text(row, "voucher_no") != ""
    has_name = columns.text(row, "product_name") != ""
    has_code = columns.text(row, "product_code") != ""

    if has_date and has_voucher and has_name and not has_code:
        return RowKind.HEADER
    if not has_date and not has_voucher and has_name and has_code:
        return RowKind.DETAIL
    return RowKind.AMBIGUOUS


def _amount(row: Sequence[Any], columns: ColumnMap, field_name: str) -> float:
    return parse_amount(columns.value(row, field_name))


def start_transaction(
    row: Sequence[Any],
    columns: ColumnMap,
    row_number: int,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> Transaction:
    raw_name = columns.text(row, "product_name")
    customer = normalize_customer_name(
        raw_name,
        walk_in_synonyms=config.walk_in_synonyms,
        payment_quirks=config.payment_name_quirks,
    )
    mode = normalize_payment_method(columns.value(row, "transaction_mode"))
    if customer == "":
        # payment method leaked into the name column
        leaked = payment_from_name(raw_name, config.payment_name_quirks)
        customer = WALK_IN_NAME
        if leaked:
            mode = leaked

    date = parse_date(columns.value(row, "date"))
    return Transaction(
        date=date if is_iso_date(date) else "",
        voucher_no=columns.text(row, "voucher_no"),
        customer_name=customer,
        transaction_mode=mode,
        row_number=row_number,
        total_gross=_amount(row, columns, "gross"),
        total_discount=_amount(row, columns, "discount"),
        total_net=_amount(row, columns, "net_amt"),
        total_vat=_amount(row, columns, "vat_amt"),
        total_qty=_amount(row, columns, "quantity"),
    )


def build_line(row: Sequence[Any], columns: ColumnMap) -> ProductLine:
    return ProductLine(
        product_name=title_case(columns.text(row, "product_name")),
        product_code=columns.text(row, "product_code"),
        unit=columns.text(row, "unit") or "Pcs",
        quantity=_amount(row, columns, "quantity"),
        rate=_amount(row, columns, "rate"),
        gross=_amount(row, columns, "gross"),
        discount=_amount(row, columns, "discount"),
        taxable_amt=_amount(row, columns, "taxable_amt"),
        vat_amt=_amount(row, columns, "vat_amt"),
        net_amt=_amount(row, columns, "net_amt"),
    )


def reconciliation_warning(txn: Transaction, tolerance: float) -> str | None:
    if not txn.lines or not txn.total_net:
        return None
    line_net = txn.line_net
    if abs(txn.total_net - line_net) <= tolerance:
        return None
    return (
        f"Voucher {txn.voucher_no} (row {txn.row_number}): header net {txn.total_net:.2f} "
        f"differs from line total {line_net:.2f}; header total kept"
    )


def stitch_transactions(
    rows: Sequence[Sequence[Any]],
    columns: ColumnMap,
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    first_row_number: int = 1,
) -> StitchResult:
    """Run the header/detail state machine over data rows (header row excluded).

    ``first_row_number`` is the 1-based sheet row of ``rows[0]`` and is only
    used for messages. Output is a pure function of the inputs.
    """
    result = StitchResult(transactions=[])
    state = StitchState.NO_CURRENT_TRANSACTION
    current: Transaction | None = None

    def emit(txn: Transaction) -> None:
        warning = reconciliation_warning(txn, config.reconciliation_tolerance)
        if warning:
            result.warnings.append(warning)
        result.transactions.append(txn)

    for offset, row in enumerate(rows):
        row_number = first_row_number + offset
        kind = classify_row(row, columns)
        result.row_counts[kind.value] += 1

        if kind is RowKind.HEADER:
            if state is StitchState.BUILDING_TRANSACTION and current is not None:
                emit(current)
            current = start_transaction(row, columns, row_number, config)
            state = StitchState.BUILDING_TRANSACTION
        elif kind is RowKind.DETAIL:
            if state is StitchState.BUILDING_TRANSACTION and current is not None:
                current.lines.append(build_line(row, columns))
            else:
                result.row_counts["orphan_detail"] += 1
                logger.debug("Row %d: detail row before any voucher header dropped", row_number)

    if state is StitchState.BUILDING_TRANSACTION and current is not None:
        emit(current)

    if result.row_counts["ambiguous"]:
        logger.debug("%d ambiguous rows dropped", result.row_counts["ambiguous"])
    return result

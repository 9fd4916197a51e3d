"""Built-in sample sales book, shown before anything has been uploaded.

The rows mimic a real register export: a banner and report title above the
header, voucher header rows carrying the customer in the product-name
column, detail rows below them, and a grand-total footer.
"""

from __future__ import annotations

from typing import Any

SAMPLE_HEADER = [
    "Date",
    "Voucher No.",
    "Product Name",
    "Product Code",
    "Transaction Mode",
    "Unit",
    "Quantity",
    "Rate",
    "Gross Amount",
    "Discount",
    "Taxable Amt.",
    "VAT Amt.",
    "Net Amt.",
]

VAT_RATE = 0.13

# (date, voucher, customer, mode, [(product, code, qty, rate, discount), ...])
SAMPLE_VOUCHERS = [
    ("05-01-2026", "SV-001", "ANUSMRITI", "Cash", [("Belt Half Pant", "9002", 1, 1800, 200), ("Cotton Top", "9301", 2, 950, 0)]),
    ("06-01-2026", "SV-002", "CASH PARTY", "Cash", [("Shoes", "9806-2", 1, 2840, 0)]),
    ("12-01-2026", "SV-003", "PRIYA SHARMA", "FonePay", [("Floral Dress", "9201", 1, 3400, 300), ("Silk Scarf", "9402", 1, 650, 0)]),
    ("20-01-2026", "SV-004", "FONEPAY", "", [("Cotton Top", "9301", 1, 950, 0)]),
    ("03-02-2026", "SV-005", "ANUSMRITI", "eSewa", [("Denim Jeans", "9110", 1, 2600, 100), ("Cotton Top", "9301", 1, 950, 0)]),
    ("09-02-2026", "SV-006", "SITA KC", "Card", [("Floral Dress", "9201", 1, 3400, 0), ("Silk Scarf", "9402", 2, 650, 100)]),
    ("18-02-2026", "SV-007", "CASH PARTY", "Cash", [("Leather Bag", "9401", 1, 4200, 400)]),
    ("27-02-2026", "SV-008", "PRIYA SHARMA", "FonePay", [("Belt Half Pant", "9002", 1, 1800, 0), ("Cotton Top", "9301", 1, 950, 0)]),
    ("06-03-2026", "SV-009", "ANUSMRITI", "Cash", [("Shoes", "9806-2", 1, 2840, 140), ("Leather Bag", "9401", 1, 4200, 0)]),
    ("15-03-2026", "SV-010", "SITA KC", "Card", [("Floral Dress", "9201", 1, 3400, 200), ("Silk Scarf", "9402", 1, 650, 0)]),
    ("24-03-2026", "SV-011", "CASH PARTY", "Cash", [("Denim Jeans", "9110", 2, 2600, 0)]),
    ("02-04-2026", "SV-012", "ANUSMRITI", "FonePay", [("Belt Half Pant", "9002", 1, 1800, 0), ("Cotton Top", "9301", 1, 950, 50)]),
    ("11-04-2026", "SV-013", "RAMESH THAPA", "Khalti", [("Denim Jeans", "9110", 1, 2600, 0), ("Shoes", "9806-2", 1, 2840, 0)]),
]


def _amounts(qty: int, rate: float, discount: float) -> list[float]:
    gross = qty * rate
    taxable = gross - discount
    vat = round(taxable * VAT_RATE, 2)
    return [gross, discount, taxable, vat, round(taxable + vat, 2)]


def build_sample_rows() -> list[list[Any]]:
    rows: list[list[Any]] = [
        ["Ambassador Fashion Pvt. Ltd."],
        ["Sales Register", None, "Baisakh 2082 - Chaitra 2082"],
        [],
        list(SAMPLE_HEADER),
    ]
    grand = [0.0] * 5
    for day, voucher, customer, mode, lines in SAMPLE_VOUCHERS:
        details = []
        totals = [0.0] * 5
        qty_total = 0
        for name, code, qty, rate, discount in lines:
            amounts = _amounts(qty, rate, discount)
            totals = [a + b for a, b in zip(totals, amounts)]
            qty_total += qty
            details.append([None, None, name, code, None, "Pcs", qty, rate, *amounts])
        rows.append([day, voucher, customer, None, mode or None, None, qty_total, None, *[round(t, 2) for t in totals]])
        rows.extend(details)
        grand = [a + b for a, b in zip(grand, totals)]
    rows.append(["Grand Total", None, None, None, None, None, None, None, *[round(t, 2) for t in grand]])
    return rows


SAMPLE_ROWS = build_sample_rows()

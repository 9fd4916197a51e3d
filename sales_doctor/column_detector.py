"""
column_detector.py

Maps the semantic fields of a sales book (date, voucher, product, amounts...)
to column positions in whatever header row the export happens to carry.

Matching runs in three passes over each field's synonym list: exact, then
prefix, then substring. The first hit wins. Fields are not exclusive, so two
fields can resolve to the same column when an export uses duplicate or very
generic headers; downstream code treats every field as optional anyway.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass, fields
from typing import Any, Optional

from sales_doctor.normalization import cell_text

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("date", "date (a.d.)", "date ad", "date_ad", "trans_date", "transaction date", "sale date", "sale_date", "invoice date", "bill date"),
    "voucher_no": ("voucher no", "voucher no.", "voucher", "voucher number", "invoice no", "invoice", "bill no", "bill_no", "bill number"),
    "product_name": ("product name", "product_name", "particulars", "item name", "product", "item", "description"),
    "product_code": ("product code", "product_code", "item code", "sku", "code"),
    "transaction_mode": ("transaction mode", "transaction_mode", "payment mode", "payment method", "payment", "mode"),
    "quantity": ("quantity", "qty", "units", "pcs"),
    "rate": ("rate", "unit price", "unit_price", "price", "mrp"),
    "gross": ("gross amount", "gross amt", "gross_amount", "gross", "total"),
    "discount": ("discount amount", "discount", "disc amt", "disc_amount", "disc"),
    "taxable_amt": ("taxable amt", "taxable amt.", "taxable amount", "taxable_amt", "taxable"),
    "vat_amt": ("vat amt", "vat amt.", "vat amount", "vat_amt", "vat", "tax amount", "tax"),
    "net_amt": ("net amt", "net amt.", "net amount", "net_amt", "net", "final amount", "amount"),
    "unit": ("unit", "uom"),
}

MATCH_PASSES = ("exact", "prefix", "substring")


@dataclass(frozen=True)
class ColumnMap:
    """Field name -> column index, ``None`` when the field was not found."""

    date: Optional[int] = None
    voucher_no: Optional[int] = None
    product_name: Optional[int] = None
    product_code: Optional[int] = None
    transaction_mode: Optional[int] = None
    quantity: Optional[int] = None
    rate: Optional[int] = None
    gross: Optional[int] = None
    discount: Optional[int] = None
    taxable_amt: Optional[int] = None
    vat_amt: Optional[int] = None
    net_amt: Optional[int] = None
    unit: Optional[int] = None

    def get(self, field_name: str) -> Optional[int]:
        return getattr(self, field_name)

    def value(self, row: Sequence[Any], field_name: str) -> Any:
        idx = self.get(field_name)
        if idx is None or idx >= len(row):
            return None
        return row[idx]

    def text(self, row: Sequence[Any], field_name: str) -> str:
        return cell_text(self.value(row, field_name))

    def found(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def missing(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is None]

    def to_dict(self) -> dict[str, Optional[int]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def normalize_header(value: Any) -> str:
    """Lowercase, strip diacritics, collapse punctuation and spacing."""
    text = unicodedata.normalize("NFKD", cell_text(value))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(re.sub(r"[^a-z0-9]+", " ", text.lower()).split())


def _matches(header: str, synonym: str, how: str) -> bool:
    if not header:
        return False
    if how == "exact":
        return header == synonym
    if how == "prefix":
        return header.startswith(synonym)
    return synonym in header


def find_column(headers: Sequence[str], synonyms: Sequence[str]) -> Optional[int]:
    # A header such as "Product Code" with no "Product Name" beside it is claimed
    # by product_name in the prefix pass as well; such a sheet stitches nothing.
    normalized_synonyms = [normalize_header(s) for s in synonyms]
    for how in MATCH_PASSES:
        for synonym in normalized_synonyms:
            for idx, header in enumerate(headers):
                if _matches(header, synonym, how):
                    return idx
    return None


def detect_columns(
    header_row: Sequence[Any],
    synonyms: dict[str, tuple[str, ...]] = FIELD_SYNONYMS,
) -> ColumnMap:
    headers = [normalize_header(cell) for cell in header_row]
    return ColumnMap(**{field_name: find_column(headers, words) for field_name, words in synonyms.items()})

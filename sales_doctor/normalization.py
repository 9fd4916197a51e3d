from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any

EXCEL_EPOCH = datetime(1899, 12, 30)
EXCEL_MAX_SERIAL = 2_958_465  # 9999-12-31
MONTH_NAMES = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_CURRENCY_RE = re.compile(r"(रू|रु|₨|Rs\.?|NPR|INR|USD|EUR|GBP|[€£¥₹$])", re.IGNORECASE)
_AMOUNT_NULL = {"", "-", "--", "n/a", "na", "nil", "none", "null", "nan"}


def _strip_nulls(value: object) -> str:
    if value is None:
        return ""
    return str(value).replace("\x00", "")


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed text; integral floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    return _strip_nulls(value).strip()


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def round_half_up(value: float, digits: int = 0):
    """Rounds halves towards +inf like JavaScript's Math.round (12.5 -> 13, where ``round`` gives 12)."""
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5)
    return rounded / scale if digits else rounded


def parse_amount(raw: Any) -> float:
    """Parse a locale-formatted amount. Never raises; 0.0 for anything unparseable.

    When both ``.`` and ``,`` appear, whichever occurs last is the decimal
    separator. A lone comma followed by one or two digits is a decimal comma
    (``12,5``); any other comma is a thousands separator. Several periods
    with no comma are thousands separators (``1.234.567``).
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return _finite(float(raw))

    v = _strip_nulls(raw).strip()
    if v.lower() in _AMOUNT_NULL:
        return 0.0
    v = _CURRENCY_RE.sub("", v)
    v = re.sub(r"\s+", "", v)

    # accounting negatives: (500) -> -500
    m = re.match(r"^\(([^()]+)\)$", v)
    if m:
        v = "-" + m.group(1)

    last_dot, last_comma = v.rfind("."), v.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        if last_comma > last_dot:
            v = v.replace(".", "").replace(",", ".")
        else:
            v = v.replace(",", "")
    elif last_comma >= 0:
        if v.count(",") == 1 and re.search(r",\d{1,2}$", v):
            v = v.replace(",", ".")
        else:
            v = v.replace(",", "")
    elif v.count(".") > 1:
        v = v.replace(".", "")

    try:
        return _finite(float(v))
    except ValueError:
        return 0.0


def _fmt(dt: date) -> str:
    return dt.strftime("%Y-%m-%d")


def _serial_to_iso(serial: float) -> str:
    if not math.isfinite(serial) or serial < 1 or serial > EXCEL_MAX_SERIAL:
        return ""
    return _fmt(EXCEL_EPOCH + timedelta(days=int(serial)))


def _day_first(a: int, b: int, year: int) -> str:
    for day, month in ((a, b), (b, a)):
        try:
            return _fmt(datetime(year, month, day))
        except ValueError:
            continue
    return ""


def _valid_ymd(year: int, month: int, day: int) -> str:
    try:
        return _fmt(datetime(year, month, day))
    except ValueError:
        return ""


def parse_date(raw: Any) -> str:
    """Normalise a date cell to ``YYYY-MM-DD``.

    Numbers are spreadsheet serials (Windows 1900 system, epoch 1899-12-30).
    Strings are tried against day-first ``DD-MM-YYYY`` (``-``, ``/`` or ``.``
    separated), ``YYYY-MM-DD`` with an optional time part, and written month
    names. Anything else comes back trimmed but unparsed; ``""`` means there
    is no date at all.
    """
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, datetime):
        return _fmt(raw)
    if isinstance(raw, date):
        return _fmt(raw)
    if isinstance(raw, (int, float)):
        return _serial_to_iso(float(raw))

    v = _strip_nulls(raw).strip()
    if not v:
        return ""

    m = re.match(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:[T ].*)?$", v)
    if m:
        return _valid_ymd(int(m.group(1)), int(m.group(2)), int(m.group(3))) or v

    m = re.match(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})$", v)
    if m:
        return _day_first(int(m.group(1)), int(m.group(2)), int(m.group(3))) or v

    m = re.match(r"^(\d{1,2})[\s-]+([A-Za-z]+)[\s-]+(\d{4})$", v)
    if m and m.group(2).lower() in MONTH_NAMES:
        return _valid_ymd(int(m.group(3)), MONTH_NAMES[m.group(2).lower()], int(m.group(1))) or v

    m = re.match(r"^([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})$", v)
    if m and m.group(1).lower() in MONTH_NAMES:
        return _valid_ymd(int(m.group(3)), MONTH_NAMES[m.group(1).lower()], int(m.group(2))) or v

    # serials that arrive as text from CSV exports
    if re.match(r"^\d{5}(?:\.\d+)?$", v) and 20_000 <= float(v) <= 80_000:
        return _serial_to_iso(float(v))

    return v


def is_iso_date(value: str) -> bool:
    if not ISO_DATE_RE.match(value or ""):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True

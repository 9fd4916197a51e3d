"""Canonical forms for customers, payment methods and product categories."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from sales_doctor.models import WALK_IN_NAME
from sales_doctor.normalization import cell_text

DEFAULT_WALK_IN_SYNONYMS = ("CASH PARTY", "CASHPARTY", "CASH")

# letters-only uppercase key -> canonical method
PAYMENT_SYNONYMS = {
    "CASH": "Cash",
    "CASHPAYMENT": "Cash",
    "FONEPAY": "FonePay",
    "FONEPAYQR": "FonePay",
    "PHONEPAY": "FonePay",
    "CARD": "Card",
    "CREDITCARD": "Card",
    "DEBITCARD": "Card",
    "CREDITDEBITCARD": "Card",
    "POS": "Card",
    "ESEWA": "eSewa",
    "KHALTI": "Khalti",
    "CHEQUE": "Cheque",
    "CHECK": "Cheque",
    "BANKTRANSFER": "Bank Transfer",
    "BANK": "Bank Transfer",
    "BANKDEPOSIT": "Bank Transfer",
    "ONLINETRANSFER": "Bank Transfer",
}
UNKNOWN_PAYMENT = "Other"


def _letters_key(value: str) -> str:
    return re.sub(r"[^A-Z]", "", value.upper())


def title_case(value: str) -> str:
    return " ".join(token[:1].upper() + token[1:].lower() for token in value.split())


def is_walk_in(value: str, synonyms: Iterable[str] = DEFAULT_WALK_IN_SYNONYMS) -> bool:
    upper = " ".join(value.upper().split())
    if upper == WALK_IN_NAME.upper():
        return True
    keys = {_letters_key(s) for s in synonyms}
    return upper in set(synonyms) or _letters_key(upper) in keys


def payment_from_name(value: str, quirks: Iterable[str] = ()) -> str | None:
    """Canonical payment method when a name cell really holds one, else None.

    Every key of ``PAYMENT_SYNONYMS`` counts; ``quirks`` adds shop-specific names.
    """
    key = _letters_key(value)
    if key and (key in PAYMENT_SYNONYMS or key in {_letters_key(q) for q in quirks}):
        return normalize_payment_method(value)
    return None


def normalize_customer_name(
    raw: object,
    *,
    walk_in_synonyms: Iterable[str] = DEFAULT_WALK_IN_SYNONYMS,
    payment_quirks: Iterable[str] = (),
) -> str:
    """Walk-in sentinel, title-cased name, or "" when the cell held a payment method."""
    text = " ".join(cell_text(raw).split())
    if not text:
        return ""
    if is_walk_in(text, walk_in_synonyms):
        return WALK_IN_NAME
    if payment_from_name(text, payment_quirks) is not None:
        return ""
    return title_case(text)


def normalize_payment_method(raw: object) -> str:
    text = cell_text(raw)
    if not text:
        return UNKNOWN_PAYMENT
    key = _letters_key(text)
    if not key:
        return UNKNOWN_PAYMENT
    if key in PAYMENT_SYNONYMS:
        return PAYMENT_SYNONYMS[key]
    return title_case(text)


@dataclass(frozen=True)
class CategoryRule:
    category: str
    predicate: Callable[[str], bool]


def contains_any(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(needle in name for needle in needles)


def _belt_without_pant(name: str) -> bool:
    return "belt" in name and "pant" not in name


# evaluated top to bottom, first match wins
CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Bottoms", contains_any("pant", "jeans", "trouser", "skirt")),
    CategoryRule("Footwear", contains_any("shoe", "slipper", "sandal", "boot")),
    CategoryRule("Accessories", _belt_without_pant),
    CategoryRule("Accessories", contains_any("bag", "scarf", "clutch", "accessori")),
    CategoryRule("Dresses", contains_any("dress", "gown", "frock", "co-ord", "co ord", "coord")),
)
DEFAULT_CATEGORY = "Tops"


def categorize_product(
    name: str,
    rules: Iterable[CategoryRule] = CATEGORY_RULES,
    default: str = DEFAULT_CATEGORY,
) -> str:
    lowered = (name or "").lower()
    for rule in rules:
        if rule.predicate(lowered):
            return rule.category
    return default

"""Collaborators for data a sales book does not contain.

Stock levels and reorder points are not in the export at all. Until a real
inventory source is connected the engine is handed a ``RandomStockProvider``,
which produces plausible placeholder numbers and nothing more. Any decision
based on inventory alerts needs a real provider.

Cohort retention *can* be derived from the transactions, so the default
``ObservedCohortProvider`` computes it. ``RandomCohortProvider`` reproduces the
old placeholder table for callers that still want it.
"""

from __future__ import annotations

import random
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional, Protocol

from sales_doctor.models import CohortRow, Transaction


@dataclass(frozen=True)
class StockLevel:
    stock_level: int
    reorder_point: int


class StockProvider(Protocol):
    def stock_for(self, product_code: str, product_name: str) -> StockLevel:
        ...


class RandomStockProvider:
    """Placeholder stock numbers in the ranges the dashboard expects."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def stock_for(self, product_code: str, product_name: str) -> StockLevel:
        stock = max(5, round(self._rng.random() * 50))
        reorder = max(3, round(self._rng.random() * 20))
        return StockLevel(stock_level=stock, reorder_point=reorder)


class FixedStockProvider:
    """Stock read from a real source, keyed by product code."""

    def __init__(self, levels: Mapping[str, StockLevel], default: StockLevel = StockLevel(0, 0)) -> None:
        self._levels = dict(levels)
        self._default = default

    def stock_for(self, product_code: str, product_name: str) -> StockLevel:
        return self._levels.get(product_code, self._levels.get(product_name, self._default))


class CohortProvider(Protocol):
    def cohorts(self, transactions: Sequence[Transaction], max_offset: int, limit: int) -> list[CohortRow]:
        ...


MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def month_key(iso_date: str) -> str:
    return iso_date[:7]


def month_index(key: str) -> int:
    year, month = key.split("-")
    return int(year) * 12 + int(month) - 1


def key_from_index(index: int) -> str:
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{MONTH_ABBR[int(month) - 1]} {year}"


class ObservedCohortProvider:
    """First-purchase-month cohorts; ``mN`` is the share active N months later.

    Walk-in buyers are anonymous and are left out.
    """

    def cohorts(self, transactions: Sequence[Transaction], max_offset: int, limit: int) -> list[CohortRow]:
        active: dict[str, set[int]] = defaultdict(set)
        for txn in transactions:
            if not txn.date or txn.is_walk_in:
                continue
            active[txn.customer_name].add(month_index(month_key(txn.date)))
        if not active:
            return []

        last_month = max(max(months) for months in active.values())
        members: dict[int, list[str]] = defaultdict(list)
        for name, months in active.items():
            members[min(months)].append(name)

        rows: list[CohortRow] = []
        for start in sorted(members)[:limit]:
            names = members[start]
            retention: list[Optional[float]] = []
            for offset in range(max_offset + 1):
                if start + offset > last_month:
                    retention.append(None)
                    continue
                returning = sum(1 for name in names if start + offset in active[name])
                retention.append(returning / len(names) * 100)
            rows.append(CohortRow(cohort=month_label(key_from_index(start)), size=len(names), retention=tuple(retention)))
        return rows


class RandomCohortProvider:
    """The placeholder retention curve: 100 at m0, then decaying random bands."""

    BANDS = ((60, 15), (45, 15), (30, 15), (25, 10), (20, 8), (15, 8))

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def cohorts(self, transactions: Sequence[Transaction], max_offset: int, limit: int) -> list[CohortRow]:
        keys = sorted({month_key(t.date) for t in transactions if t.date})[:limit]
        rows = []
        for i, key in enumerate(keys):
            retention: list[Optional[float]] = [100.0]
            for offset, (base, spread) in enumerate(self.BANDS[:max_offset], start=1):
                if i < len(keys) - offset:
                    retention.append(float(round(base + self._rng.random() * spread)))
                else:
                    retention.append(None)
            rows.append(CohortRow(cohort=month_label(key), size=0, retention=tuple(retention)))
        return rows

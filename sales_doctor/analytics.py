"""
analytics.py

Derives everything the dashboard shows from a list of stitched transactions:
product aggregates with ABC classes, customer aggregates with RFM scores,
the monthly revenue series and its forecast, category and payment mixes,
inventory alerts, segment and cohort tables, and market-basket rules.

Nothing in here reads a file or draws a random number. Stock levels and
cohort tables come from the injected providers, so a run is reproducible
whenever the providers are.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import pandas as pd

from sales_doctor.basket import mine_rules
from sales_doctor.config import DEFAULT_CONFIG, AnalysisConfig
from sales_doctor.entities import categorize_product
from sales_doctor.models import (
    Breakdown,
    CohortRow,
    CustomerAggregate,
    ForecastPoint,
    InventoryAlert,
    MarketBasketRule,
    MonthlyPoint,
    ProductAggregate,
    SegmentSummary,
    Transaction,
)
from sales_doctor.normalization import round_half_up
from sales_doctor.providers import (
    CohortProvider,
    ObservedCohortProvider,
    RandomStockProvider,
    StockProvider,
    key_from_index,
    month_index,
    month_key,
    month_label,
)

logger = logging.getLogger(__name__)

SEGMENTS = ("VIP", "Loyal", "Regular", "At-Risk", "Lost")


@dataclass
class Totals:
    revenue: float = 0.0
    discount: float = 0.0
    vat: float = 0.0
    quantity: float = 0.0
    start_date: str = ""
    end_date: str = ""


@dataclass
class AnalyticsReport:
    transactions: list[Transaction]
    totals: Totals
    products: list[ProductAggregate] = field(default_factory=list)
    customers: list[CustomerAggregate] = field(default_factory=list)
    top_customers: list[CustomerAggregate] = field(default_factory=list)
    monthly: list[MonthlyPoint] = field(default_factory=list)
    forecast: list[ForecastPoint] = field(default_factory=list)
    categories: list[Breakdown] = field(default_factory=list)
    payments: list[Breakdown] = field(default_factory=list)
    inventory_alerts: list[InventoryAlert] = field(default_factory=list)
    segments: list[SegmentSummary] = field(default_factory=list)
    cohorts: list[CohortRow] = field(default_factory=list)
    rules: list[MarketBasketRule] = field(default_factory=list)


def _percent(part: float, whole: float) -> int:
    return round_half_up(part / whole * 100) if whole > 0 else 0


def compute_totals(transactions: Sequence[Transaction]) -> Totals:
    dates = sorted(t.date for t in transactions if t.date)
    return Totals(
        revenue=sum(t.effective_net for t in transactions),
        discount=sum(t.total_discount for t in transactions),
        vat=sum(t.total_vat for t in transactions),
        quantity=sum(line.quantity for t in transactions for line in t.lines),
        start_date=dates[0] if dates else "",
        end_date=dates[-1] if dates else "",
    )


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def assign_abc_classes(
    products: list[ProductAggregate],
    a_cutoff: float = 0.70,
    b_cutoff: float = 0.90,
) -> None:
    """Label products sorted by revenue (descending) by cumulative share.

    The cumulative share includes the product being labelled, so the product
    that crosses the A cut-off is already a B. With no revenue at all every
    product is a C.
    """
    total = sum(p.revenue for p in products)
    if total <= 0:
        for product in products:
            product.abc_class = "C"
        return
    cumulative = 0.0
    for product in products:
        cumulative += product.revenue
        share = cumulative / total
        if share <= a_cutoff:
            product.abc_class = "A"
        elif share <= b_cutoff:
            product.abc_class = "B"
        else:
            product.abc_class = "C"


def product_margin(gross: float, discount: float, default: float = 0.30) -> float:
    if gross <= 0:
        return default
    return min(1.0, max(0.0, (gross - discount) / gross))


def aggregate_products(
    transactions: Sequence[Transaction],
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    stock_provider: Optional[StockProvider] = None,
) -> list[ProductAggregate]:
    by_key: dict[str, ProductAggregate] = {}
    for txn in transactions:
        for line in txn.lines:
            if not line.product_code and not line.product_name:
                continue
            key = line.product_code or line.product_name
            product = by_key.get(key)
            if product is None:
                product = by_key[key] = ProductAggregate(product_code=key, product_name=line.product_name)
            if line.product_name:
                product.product_name = line.product_name
            product.quantity += line.quantity
            product.revenue += line.net_amt
            product.gross += line.gross
            product.discount += line.discount

    products = sorted(by_key.values(), key=lambda p: p.revenue, reverse=True)
    assign_abc_classes(products, config.abc_a_cutoff, config.abc_b_cutoff)

    provider = stock_provider or RandomStockProvider()
    for product in products:
        product.category = categorize_product(product.product_name)
        product.margin = product_margin(product.gross, product.discount, config.default_margin)
        stock = provider.stock_for(product.product_code, product.product_name)
        product.stock_level = stock.stock_level
        product.reorder_point = stock.reorder_point
    return products


def inventory_alerts(products: Sequence[ProductAggregate], limit: int = 5) -> list[InventoryAlert]:
    alerts = []
    for product in products:
        if product.stock_level > product.reorder_point:
            continue
        daily_rate = max(1.0, product.quantity / 30)
        alerts.append(
            InventoryAlert(
                product_code=product.product_code,
                product_name=product.product_name,
                stock_level=product.stock_level,
                reorder_point=product.reorder_point,
                days_until_stockout=max(1, round_half_up(product.stock_level / daily_rate)),
                severity="critical" if product.stock_level <= product.reorder_point * 0.5 else "warning",
            )
        )
        if len(alerts) >= limit:
            break
    return alerts


def category_breakdown(products: Sequence[ProductAggregate]) -> list[Breakdown]:
    revenue: dict[str, float] = {}
    counts: Counter[str] = Counter()
    for product in products:
        revenue[product.category] = revenue.get(product.category, 0.0) + product.revenue
        counts[product.category] += 1
    total = sum(revenue.values())
    return [
        Breakdown(label=name, amount=amount, count=counts[name], percentage=_percent(amount, total))
        for name, amount in revenue.items()
    ]


def payment_breakdown(transactions: Sequence[Transaction]) -> list[Breakdown]:
    amounts: dict[str, float] = {}
    counts: Counter[str] = Counter()
    for txn in transactions:
        mode = txn.transaction_mode or "Other"
        amounts[mode] = amounts.get(mode, 0.0) + txn.effective_net
        counts[mode] += 1
    total = sum(amounts.values())
    return [
        Breakdown(label=mode, amount=amount, count=counts[mode], percentage=_percent(amount, total))
        for mode, amount in amounts.items()
    ]


# ---------------------------------------------------------------------------
# Customers and RFM
# ---------------------------------------------------------------------------

def score_recency(days: Optional[int], buckets: Sequence[tuple[int, int]]) -> int:
    if days is None:
        return 1
    for threshold, score in buckets:
        if days <= threshold:
            return score
    return 1


def score_bucket(value: float, buckets: Sequence[tuple[float, int]]) -> int:
    for threshold, score in buckets:
        if value >= threshold:
            return score
    return 1


def assign_segment(recency: int, frequency: int, monetary: int, is_walk_in: bool) -> str:
    if is_walk_in:
        return "Regular"
    if recency >= 4 and frequency >= 4 and monetary >= 4:
        return "VIP"
    if recency >= 3 and frequency >= 3:
        return "Loyal"
    if recency >= 3:
        return "Regular"
    if recency <= 2 and frequency >= 2:
        return "At-Risk"
    return "Lost"


def rfm_composite(recency: int, frequency: int, monetary: int) -> int:
    return round_half_up((recency + frequency + monetary) / 15 * 100)


def _days_between(later: str, earlier: str) -> Optional[int]:
    if not later or not earlier:
        return None
    return (date.fromisoformat(later) - date.fromisoformat(earlier)).days


def aggregate_customers(
    transactions: Sequence[Transaction],
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    reference_date: str = "",
) -> list[CustomerAggregate]:
    """Customers sorted by total spend, descending, with RFM fields filled in."""
    spend: dict[str, float] = {}
    vouchers: dict[str, set[str]] = {}
    last_seen: dict[str, str] = {}
    modes: dict[str, Counter] = {}
    for txn in transactions:
        name = txn.customer_name
        spend[name] = spend.get(name, 0.0) + txn.effective_net
        vouchers.setdefault(name, set()).add(txn.voucher_no)
        if txn.date > last_seen.get(name, ""):
            last_seen[name] = txn.date
        modes.setdefault(name, Counter())[txn.transaction_mode] += 1

    customers = []
    for name, total in spend.items():
        customer = CustomerAggregate(
            name=name,
            orders=len(vouchers[name]),
            total_spend=total,
            last_purchase=last_seen.get(name, ""),
            preferred_payment=modes[name].most_common(1)[0][0],
        )
        customer.recency_score = score_recency(
            _days_between(reference_date, customer.last_purchase), config.recency_buckets
        )
        customer.frequency_score = score_bucket(customer.orders, config.frequency_buckets)
        customer.monetary_score = score_bucket(customer.total_spend, config.monetary_buckets)
        customer.rfm_score = rfm_composite(
            customer.recency_score, customer.frequency_score, customer.monetary_score
        )
        customer.segment = assign_segment(
            customer.recency_score,
            customer.frequency_score,
            customer.monetary_score,
            customer.is_walk_in,
        )
        customer.churn_risk = config.churn_risk.get(customer.segment, 0.0)
        multiplier = config.clv_repeat_multiplier if customer.orders > 1 else config.clv_single_multiplier
        customer.clv = customer.total_spend * multiplier
        customers.append(customer)

    customers.sort(key=lambda c: c.total_spend, reverse=True)
    for idx, customer in enumerate(customers, start=1):
        customer.id = f"C{idx:03d}"
    return customers


def segment_summary(customers: Sequence[CustomerAggregate]) -> list[SegmentSummary]:
    total = max(1, len(customers))
    rows = []
    for segment in SEGMENTS:
        members = [c for c in customers if c.segment == segment]
        avg_spend = sum(c.total_spend for c in members) / len(members) if members else 0.0
        rows.append(
            SegmentSummary(
                segment=segment,
                count=len(members),
                percentage=round_half_up(len(members) / total * 100, 1),
                avg_spend=avg_spend,
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Time series
# ---------------------------------------------------------------------------

def monthly_series(transactions: Sequence[Transaction]) -> list[MonthlyPoint]:
    dated = [t for t in transactions if t.date]
    if not dated:
        return []
    frame = pd.DataFrame(
        {
            "key": [month_key(t.date) for t in dated],
            "revenue": [t.effective_net for t in dated],
        }
    )
    grouped = frame.groupby("key", sort=True)["revenue"].agg(["sum", "count"])
    return [
        MonthlyPoint(key=str(key), month=month_label(str(key)), revenue=float(row["sum"]), orders=int(row["count"]))
        for key, row in grouped.iterrows()
    ]


def forecast_revenue(
    series: Sequence[MonthlyPoint],
    *,
    window: int = 3,
    horizon: int = 4,
    band_step: float = 0.10,
) -> list[ForecastPoint]:
    """Straight-line extrapolation from the last ``window`` months.

    The base is the window's mean revenue and the per-step slope is
    ``(last - first) / len(window)``. The band widens by ``band_step`` of the
    predicted value per step. This is not a fitted or seasonal model.
    Predictions and lower bounds are floored at zero.
    """
    recent = list(series)[-window:]
    if not recent:
        return []
    revenues = [point.revenue for point in recent]
    average = sum(revenues) / len(revenues)
    slope = (revenues[-1] - revenues[0]) / len(revenues)
    last_index = month_index(recent[-1].key)

    points = []
    for step in range(1, horizon + 1):
        predicted = max(0.0, average + slope * step)
        width = band_step * step
        points.append(
            ForecastPoint(
                step=step,
                month=month_label(key_from_index(last_index + step)),
                predicted=predicted,
                lower=max(0.0, predicted * (1 - width)),
                upper=predicted * (1 + width),
            )
        )
    return points


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_analytics(
    transactions: Sequence[Transaction],
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
    stock_provider: Optional[StockProvider] = None,
    cohort_provider: Optional[CohortProvider] = None,
) -> AnalyticsReport:
    transactions = list(transactions)
    totals = compute_totals(transactions)
    products = aggregate_products(transactions, config=config, stock_provider=stock_provider)
    customers = aggregate_customers(transactions, config=config, reference_date=totals.end_date)
    monthly = monthly_series(transactions)
    cohorts = (cohort_provider or ObservedCohortProvider()).cohorts(
        transactions, config.cohort_max_offset, config.cohort_limit
    )
    report = AnalyticsReport(
        transactions=transactions,
        totals=totals,
        products=products,
        customers=customers,
        top_customers=customers[: config.customer_top_n],
        monthly=monthly,
        forecast=forecast_revenue(
            monthly,
            window=config.forecast_window,
            horizon=config.forecast_horizon,
            band_step=config.forecast_band_step,
        ),
        categories=category_breakdown(products),
        payments=payment_breakdown(transactions),
        inventory_alerts=inventory_alerts(products, config.alert_limit),
        segments=segment_summary(customers),
        cohorts=cohorts,
        rules=mine_rules(
            transactions,
            min_transactions=config.basket_min_transactions,
            min_pair_count=config.basket_min_pair_count,
            min_confidence=config.basket_min_confidence,
            max_rules=config.basket_max_rules,
        ),
    )
    logger.info(
        "Analytics: %d products, %d customers, %d months, %d basket rules",
        len(products),
        len(customers),
        len(monthly),
        len(report.rules),
    )
    return report

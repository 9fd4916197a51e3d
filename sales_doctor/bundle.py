"""Packages an analytics report into the response bundle the dashboard reads.

Only templating and formatting happen here. Every number comes from
``AnalyticsReport``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional

from sales_doctor import __version__ as TOOL_VERSION
from sales_doctor.analytics import AnalyticsReport
from sales_doctor.column_detector import ColumnMap
from sales_doctor.config import DEFAULT_CONFIG, AnalysisConfig
from sales_doctor.contracts import build_contract, build_run_summary
from sales_doctor.models import KPI, Transaction
from sales_doctor.normalization import round_half_up
from sales_doctor.providers import month_key

LAKH = 100_000


def format_currency(value: float, label: str = "रू") -> str:
    """``रू 2.85 L`` from one lakh upwards, ``रू 12,345`` below."""
    if value >= LAKH:
        return f"{label} {value / LAKH:.2f} L"
    return f"{label} {round_half_up(value):,}"


def percent_change(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round_half_up((current - previous) / previous * 100, 1)


def _margin_percent(gross: float, discount: float, default: float) -> float:
    if gross <= 0:
        return round_half_up(default * 100, 1)
    return round_half_up((gross - discount) / gross * 100, 1)


def _month_metrics(transactions: Sequence[Transaction]) -> dict[str, dict[str, Any]]:
    metrics: dict[str, dict[str, Any]] = {}
    for txn in transactions:
        if not txn.date:
            continue
        bucket = metrics.setdefault(
            month_key(txn.date),
            {"revenue": 0.0, "orders": 0, "customers": set(), "quantity": 0.0, "gross": 0.0, "discount": 0.0},
        )
        bucket["revenue"] += txn.effective_net
        bucket["orders"] += 1
        bucket["customers"].add(txn.customer_name)
        for line in txn.lines:
            bucket["quantity"] += line.quantity
            bucket["gross"] += line.gross
            bucket["discount"] += line.discount
    return metrics


def build_kpis(report: AnalyticsReport, config: AnalysisConfig = DEFAULT_CONFIG) -> list[KPI]:
    """Headline figures. ``change`` compares the last month with the one before."""
    totals = report.totals
    orders = len(report.transactions)
    avg_order = totals.revenue / orders if orders else 0.0
    line_gross = sum(p.gross for p in report.products)
    line_discount = sum(p.discount for p in report.products)
    turnover = totals.quantity / max(1, len(report.products) * 20)

    months = _month_metrics(report.transactions)
    keys = sorted(months)
    current = months[keys[-1]] if keys else None
    previous = months[keys[-2]] if len(keys) > 1 else None

    def change(metric) -> float:
        if current is None or previous is None:
            return 0.0
        return percent_change(metric(current), metric(previous))

    def aov(bucket: dict[str, Any]) -> float:
        return bucket["revenue"] / bucket["orders"] if bucket["orders"] else 0.0

    margin_change = 0.0
    if current is not None and previous is not None:
        margin_change = round_half_up(
            _margin_percent(current["gross"], current["discount"], config.default_margin)
            - _margin_percent(previous["gross"], previous["discount"], config.default_margin),
            1,
        )

    rows = [
        ("Total Revenue", format_currency(totals.revenue, config.currency_label), change(lambda b: b["revenue"]), "revenue"),
        ("Orders Processed", f"{orders:,}", change(lambda b: b["orders"]), "orders"),
        ("Avg. Order Value", format_currency(avg_order, config.currency_label), change(aov), "aov"),
        ("Active Customers", str(len(report.customers)), change(lambda b: len(b["customers"])), "customers"),
        ("Inventory Turnover", f"{turnover:.1f}x", change(lambda b: b["quantity"]), "inventory"),
        ("Gross Margin", f"{_margin_percent(line_gross, line_discount, config.default_margin)}%", margin_change, "margin"),
    ]
    return [
        KPI(label=label, value=value, change=delta, trend="up" if delta >= 0 else "down", icon=icon)
        for label, value, delta, icon in rows
    ]


def build_narratives(report: AnalyticsReport, config: AnalysisConfig = DEFAULT_CONFIG) -> dict[str, str]:
    label = config.currency_label
    totals = report.totals
    narratives = {
        "overview": (
            f"{len(report.transactions)} transactions between {totals.start_date or 'unknown'} and "
            f"{totals.end_date or 'unknown'} brought in {format_currency(totals.revenue, label)}."
        ),
    }

    class_a = [p for p in report.products if p.abc_class == "A"]
    if report.products:
        top = report.products[0]
        narratives["products"] = (
            f"{top.product_name} leads with {format_currency(top.revenue, label)} in revenue. "
            f"{len(class_a)} of {len(report.products)} products make up the A class."
        )
    else:
        narratives["products"] = "No product lines were found."

    if report.customers:
        top_customer = report.customers[0]
        vip = sum(1 for c in report.customers if c.segment == "VIP")
        at_risk = sum(1 for c in report.customers if c.segment == "At-Risk")
        narratives["customers"] = (
            f"{top_customer.name} is the top customer at {format_currency(top_customer.total_spend, label)}. "
            f"{vip} VIP and {at_risk} at-risk customers."
        )
    else:
        narratives["customers"] = "No customers were found."

    if report.monthly:
        best = max(report.monthly, key=lambda m: m.revenue)
        trend = f"Best month was {best.month} at {format_currency(best.revenue, label)}."
        if report.forecast:
            nxt = report.forecast[0]
            trend += f" {nxt.month} is projected at {format_currency(nxt.predicted, label)} by straight-line extrapolation."
        narratives["trends"] = trend
    else:
        narratives["trends"] = "No dated transactions to chart."

    critical = sum(1 for a in report.inventory_alerts if a.severity == "critical")
    narratives["inventory"] = (
        f"{len(report.inventory_alerts)} products at or below reorder point, {critical} critical. "
        "Stock figures are placeholders until an inventory source is connected."
    )

    if report.rules:
        rule = report.rules[0]
        narratives["basket"] = (
            f"Customers who buy {rule.antecedent} also buy {rule.consequent} "
            f"({rule.confidence:.0%} confidence, lift {rule.lift:.2f})."
        )
    else:
        narratives["basket"] = "Not enough multi-item baskets to find buying patterns."
    return narratives


def assemble_bundle(
    report: AnalyticsReport,
    *,
    row_count: int,
    header_row: int,
    columns: ColumnMap,
    warnings: Sequence[str] = (),
    reconciliation_warnings: int = 0,
    input_path: Optional[Path] = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    contract = build_contract("sales_doctor.analysis")
    totals = report.totals
    summary = {
        "rowCount": row_count,
        "columnCount": len(columns.found()),
        "headerRow": header_row + 1,
        "transactionCount": len(report.transactions),
        "productCount": len(report.products),
        "customerCount": len(report.customers),
        "startDate": totals.start_date,
        "endDate": totals.end_date,
        "totalRevenue": round_half_up(totals.revenue),
        "totalDiscount": round_half_up(totals.discount),
        "totalVat": round_half_up(totals.vat),
        "reconciliationWarnings": reconciliation_warnings,
    }
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "success": True,
        "summary": summary,
        "columns": columns.to_dict(),
        "kpiData": [kpi.to_dict() for kpi in build_kpis(report, config)],
        "products": [p.to_dict() for p in report.products],
        "customers": [c.to_dict() for c in report.top_customers],
        "monthlySalesData": [m.to_dict() for m in report.monthly],
        "categoryBreakdown": [
            {"name": b.label, "value": b.percentage, "revenue": round_half_up(b.amount), "count": b.count}
            for b in report.categories
        ],
        "paymentMethods": [
            {"method": b.label, "percentage": b.percentage, "amount": round_half_up(b.amount), "count": b.count}
            for b in report.payments
        ],
        "inventoryAlerts": [a.to_dict() for a in report.inventory_alerts],
        "forecastData": [f.to_dict() for f in report.forecast],
        "rfmSegments": [s.to_dict() for s in report.segments],
        "cohortData": [c.to_dict() for c in report.cohorts],
        "marketBasket": [r.to_dict() for r in report.rules],
        "narratives": build_narratives(report, config),
        "run_summary": build_run_summary(
            tool="sales-doctor",
            input_path=input_path,
            metrics={
                "rows": row_count,
                "transactions": len(report.transactions),
                "products": len(report.products),
                "customers": len(report.customers),
                "rules": len(report.rules),
            },
            warnings=list(warnings),
        ),
    }


def build_query_context(bundle: dict[str, Any], limit: int = 10) -> dict[str, Any]:
    """Compact view of a bundle for the natural-language query collaborator."""
    return {
        "summary": bundle.get("summary", {}),
        "kpis": bundle.get("kpiData", []),
        "topProducts": bundle.get("products", [])[:limit],
        "topCustomers": bundle.get("customers", [])[:limit],
        "monthlySales": bundle.get("monthlySalesData", []),
        "segments": bundle.get("rfmSegments", []),
        "basketRules": bundle.get("marketBasket", []),
    }

"""Domain model for reconstructed sales transactions and derived analytics.

All of these objects are created fresh per upload and discarded once the
output bundle has been assembled. ``to_dict`` renders the camelCase shape the
presentation layer consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from sales_doctor.normalization import round_half_up

WALK_IN_NAME = "Cash Party (Walk-in)"


@dataclass
class ProductLine:
    product_name: str
    product_code: str
    unit: str = "Pcs"
    quantity: float = 0.0
    rate: float = 0.0
    gross: float = 0.0
    discount: float = 0.0
    taxable_amt: float = 0.0
    vat_amt: float = 0.0
    net_amt: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "productName": self.product_name,
            "productCode": self.product_code,
            "unit": self.unit,
            "quantity": self.quantity,
            "rate": self.rate,
            "gross": self.gross,
            "discount": self.discount,
            "taxableAmt": self.taxable_amt,
            "vatAmt": self.vat_amt,
            "netAmt": self.net_amt,
        }


@dataclass
class Transaction:
    """One voucher. Header totals are kept verbatim from the header row."""

    date: str
    voucher_no: str
    customer_name: str
    transaction_mode: str
    row_number: int = 0
    lines: list[ProductLine] = field(default_factory=list)
    total_gross: float = 0.0
    total_discount: float = 0.0
    total_net: float = 0.0
    total_vat: float = 0.0
    total_qty: float = 0.0

    @property
    def is_walk_in(self) -> bool:
        return self.customer_name == WALK_IN_NAME

    @property
    def line_net(self) -> float:
        return sum(line.net_amt for line in self.lines)

    @property
    def effective_net(self) -> float:
        # header total wins; line sum only stands in when the header carries none
        if self.total_net:
            return self.total_net
        return self.line_net

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "voucherNo": self.voucher_no,
            "customerName": self.customer_name,
            "transactionMode": self.transaction_mode,
            "rowNumber": self.row_number,
            "lines": [line.to_dict() for line in self.lines],
            "totalGross": self.total_gross,
            "totalDiscount": self.total_discount,
            "totalNet": self.total_net,
            "totalVat": self.total_vat,
            "totalQty": self.total_qty,
        }


@dataclass
class ProductAggregate:
    product_code: str
    product_name: str
    category: str = "Tops"
    quantity: float = 0.0
    revenue: float = 0.0
    gross: float = 0.0
    discount: float = 0.0
    abc_class: str = "C"
    margin: float = 0.0
    stock_level: int = 0
    reorder_point: int = 0

    @property
    def avg_price(self) -> float:
        return self.revenue / self.quantity if self.quantity > 0 else 0.0

    @property
    def profit(self) -> float:
        return self.revenue * self.margin

    def to_dict(self) -> dict[str, Any]:
        return {
            "productCode": self.product_code,
            "productName": self.product_name,
            "category": self.category,
            "totalQuantitySold": self.quantity,
            "totalRevenue": round_half_up(self.revenue),
            "totalGross": round_half_up(self.gross),
            "totalDiscount": round_half_up(self.discount),
            "totalProfit": round_half_up(self.profit),
            "margin": round_half_up(self.margin, 3),
            "avgPrice": round_half_up(self.avg_price),
            "stockLevel": self.stock_level,
            "reorderPoint": self.reorder_point,
            "abcClass": self.abc_class,
        }


@dataclass
class CustomerAggregate:
    name: str
    id: str = ""
    orders: int = 0
    total_spend: float = 0.0
    last_purchase: str = ""
    preferred_payment: str = "Other"
    recency_score: int = 1
    frequency_score: int = 1
    monetary_score: int = 1
    rfm_score: int = 0
    segment: str = "Lost"
    churn_risk: float = 0.0
    clv: float = 0.0

    @property
    def is_walk_in(self) -> bool:
        return self.name == WALK_IN_NAME

    @property
    def avg_order_value(self) -> float:
        return self.total_spend / self.orders if self.orders > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "totalSpend": round_half_up(self.total_spend),
            "totalOrders": self.orders,
            "avgOrderValue": round_half_up(self.avg_order_value),
            "lastPurchase": self.last_purchase,
            "preferredPayment": self.preferred_payment,
            "recencyScore": self.recency_score,
            "frequencyScore": self.frequency_score,
            "monetaryScore": self.monetary_score,
            "rfmScore": self.rfm_score,
            "segment": self.segment,
            "churnRisk": self.churn_risk,
            "clv": round_half_up(self.clv),
        }


@dataclass(frozen=True)
class MarketBasketRule:
    antecedent: str
    consequent: str
    support: float
    confidence: float
    lift: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "antecedent": self.antecedent,
            "consequent": self.consequent,
            "support": round_half_up(self.support, 2),
            "confidence": round_half_up(self.confidence, 2),
            "lift": round_half_up(self.lift, 2),
            "count": self.count,
        }


@dataclass(frozen=True)
class MonthlyPoint:
    key: str  # YYYY-MM
    month: str  # "Jan 2026"
    revenue: float
    orders: int

    @property
    def avg_order(self) -> float:
        return self.revenue / self.orders if self.orders > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "month": self.month,
            "revenue": round_half_up(self.revenue),
            "orders": self.orders,
            "avgOrder": round_half_up(self.avg_order),
        }


@dataclass(frozen=True)
class ForecastPoint:
    step: int
    month: str
    predicted: float
    lower: float
    upper: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "month": self.month,
            "predicted": round_half_up(self.predicted),
            "lower": round_half_up(self.lower),
            "upper": round_half_up(self.upper),
        }


@dataclass(frozen=True)
class InventoryAlert:
    product_code: str
    product_name: str
    stock_level: int
    reorder_point: int
    days_until_stockout: int
    severity: str  # critical | warning

    def to_dict(self) -> dict[str, Any]:
        return {
            "productCode": self.product_code,
            "productName": self.product_name,
            "stockLevel": self.stock_level,
            "reorderPoint": self.reorder_point,
            "daysUntilStockout": self.days_until_stockout,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class CohortRow:
    cohort: str
    size: int
    retention: tuple[Optional[float], ...]  # index = month offset, m0 first

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"cohort": self.cohort, "size": self.size}
        for offset, value in enumerate(self.retention):
            payload[f"m{offset}"] = None if value is None else round_half_up(value)
        return payload


@dataclass(frozen=True)
class SegmentSummary:
    segment: str
    count: int
    percentage: float
    avg_spend: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment": self.segment,
            "count": self.count,
            "percentage": self.percentage,
            "avgSpend": round_half_up(self.avg_spend),
        }


@dataclass(frozen=True)
class Breakdown:
    """Share of revenue for one category or payment method."""

    label: str
    amount: float
    count: int
    percentage: int


@dataclass(frozen=True)
class KPI:
    label: str
    value: str
    change: float
    trend: str
    icon: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "value": self.value,
            "change": self.change,
            "trend": self.trend,
            "icon": self.icon,
        }

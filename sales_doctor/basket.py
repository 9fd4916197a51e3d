from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from itertools import combinations

from sales_doctor.models import MarketBasketRule, Transaction


def basket_items(txn: Transaction) -> list[str]:
    """Distinct product names in first-seen order."""
    return list(dict.fromkeys(line.product_name for line in txn.lines if line.product_name))


def mine_rules(
    transactions: Sequence[Transaction],
    *,
    min_transactions: int = 3,
    min_pair_count: int = 2,
    min_confidence: float = 0.20,
    max_rules: int = 8,
) -> list[MarketBasketRule]:
    """Directed pair rules over baskets holding at least two distinct products.

    Support is measured against the multi-item baskets only. Rules are ranked
    by lift; ties keep the order pairs were first seen in.
    """
    baskets = [items for items in (basket_items(t) for t in transactions) if len(items) >= 2]
    if len(baskets) < min_transactions:
        return []

    total = len(baskets)
    item_counts: Counter[str] = Counter()
    pair_counts: Counter[tuple[str, str]] = Counter()
    for items in baskets:
        item_counts.update(items)
        for a, b in combinations(items, 2):
            # a pair keeps the orientation it was first seen in
            key = (b, a) if (b, a) in pair_counts else (a, b)
            pair_counts[key] += 1

    rules: list[MarketBasketRule] = []
    for (a, b), joint in pair_counts.items():
        if joint < min_pair_count:
            continue
        for antecedent, consequent in ((a, b), (b, a)):
            confidence = joint / item_counts[antecedent]
            if confidence < min_confidence:
                continue
            baseline = item_counts[consequent] / total
            rules.append(
                MarketBasketRule(
                    antecedent=antecedent,
                    consequent=consequent,
                    support=joint / total,
                    confidence=confidence,
                    lift=confidence / baseline,
                    count=joint,
                )
            )

    rules.sort(key=lambda rule: rule.lift, reverse=True)
    return rules[:max_rules]

import unittest

from sales_doctor.basket import basket_items, mine_rules
from sales_doctor.models import ProductLine, Transaction


def basket(voucher, *names):
    return Transaction(
        date="2026-01-05",
        voucher_no=voucher,
        customer_name="Anusmriti",
        transaction_mode="Cash",
        lines=[ProductLine(product_name=name, product_code=name[:3]) for name in names],
    )


class MarketBasketTests(unittest.TestCase):
    def test_fewer_than_three_multi_item_baskets_gives_no_rules(self):
        transactions = [
            basket("V1", "Cotton Top", "Silk Scarf"),
            basket("V2", "Cotton Top", "Silk Scarf"),
            basket("V3", "Cotton Top"),
            basket("V4", "Silk Scarf"),
            basket("V5", "Cotton Top", "Cotton Top"),
        ]
        self.assertEqual(mine_rules(transactions), [])

    def test_pair_in_two_of_three_baskets(self):
        transactions = [
            basket("V1", "Cotton Top", "Silk Scarf"),
            basket("V2", "Cotton Top", "Silk Scarf", "Floral Dress"),
            basket("V3", "Floral Dress", "Leather Bag"),
        ]
        rules = mine_rules(transactions)
        self.assertEqual(
            [(r.antecedent, r.consequent) for r in rules],
            [("Cotton Top", "Silk Scarf"), ("Silk Scarf", "Cotton Top")],
        )
        payload = rules[0].to_dict()
        self.assertEqual(payload["support"], 0.67)
        self.assertEqual(payload["confidence"], 1.0)
        self.assertEqual(payload["lift"], 1.5)
        self.assertEqual(payload["count"], 2)

    def test_confidence_threshold(self):
        transactions = [
            basket("V1", "Cotton Top", "Silk Scarf"),
            basket("V2", "Cotton Top", "Silk Scarf"),
            basket("V3", "Cotton Top", "Floral Dress"),
            basket("V4", "Cotton Top", "Leather Bag"),
        ]
        rules = mine_rules(transactions, min_confidence=0.6)
        # Cotton Top -> Silk Scarf has confidence 0.5 and is dropped
        self.assertEqual([(r.antecedent, r.consequent) for r in rules], [("Silk Scarf", "Cotton Top")])

    def test_rules_sorted_by_lift_and_capped(self):
        transactions = [
            basket("V1", "A", "B"),
            basket("V2", "A", "B"),
            basket("V3", "C", "D"),
            basket("V4", "C", "D"),
            basket("V5", "C", "E"),
            basket("V6", "A", "C"),
        ]
        rules = mine_rules(transactions, max_rules=3)
        self.assertEqual(len(rules), 3)
        lifts = [r.lift for r in rules]
        self.assertEqual(lifts, sorted(lifts, reverse=True))

    def test_equal_lift_keeps_first_seen_orientation(self):
        transactions = [basket(f"V{i}", "Silk Scarf", "Cotton Top") for i in range(3)]
        rules = mine_rules(transactions)
        self.assertEqual(
            [(r.antecedent, r.consequent) for r in rules],
            [("Silk Scarf", "Cotton Top"), ("Cotton Top", "Silk Scarf")],
        )

    def test_duplicate_lines_count_once(self):
        self.assertEqual(basket_items(basket("V1", "Cotton Top", "Silk Scarf", "Cotton Top")), ["Cotton Top", "Silk Scarf"])


if __name__ == "__main__":
    unittest.main()

import unittest

from sales_doctor.column_detector import detect_columns
from sales_doctor.models import WALK_IN_NAME
from sales_doctor.sample import SAMPLE_HEADER, SAMPLE_ROWS
from sales_doctor.stitcher import RowKind, classify_row, stitch_transactions

FIELD_INDEX = {
    "date": 0,
    "voucher": 1,
    "name": 2,
    "code": 3,
    "mode": 4,
    "unit": 5,
    "qty": 6,
    "rate": 7,
    "gross": 8,
    "discount": 9,
    "taxable": 10,
    "vat": 11,
    "net": 12,
}


def make_row(**values):
    row = [None] * len(SAMPLE_HEADER)
    for key, value in values.items():
        row[FIELD_INDEX[key]] = value
    return row


SCENARIO_ROWS = [
    make_row(date="2026-01-05", voucher="V1", name="ANUSMRITI"),
    make_row(name="Belt Half Pant", code="9002", qty=1, net=1805),
    make_row(date="2026-01-06", voucher="V2", name="CASH PARTY"),
    make_row(name="Shoes", code="9806-2", qty=1, net=3209),
]


class StitcherTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.columns = detect_columns(SAMPLE_HEADER)

    def test_header_detail_scenario(self):
        result = stitch_transactions(SCENARIO_ROWS, self.columns)
        self.assertEqual(len(result.transactions), 2)
        first, second = result.transactions
        self.assertEqual(first.customer_name, "Anusmriti")
        self.assertEqual(first.date, "2026-01-05")
        self.assertEqual([line.product_name for line in first.lines], ["Belt Half Pant"])
        self.assertEqual(first.effective_net, 1805)
        self.assertEqual(second.customer_name, WALK_IN_NAME)
        self.assertEqual(second.lines[0].product_code, "9806-2")
        self.assertEqual(second.effective_net, 3209)

    def test_orphan_detail_rows_are_dropped(self):
        rows = [make_row(name="Shoes", code="9806-2", qty=1, net=3209)] + SCENARIO_ROWS
        result = stitch_transactions(rows, self.columns)
        self.assertEqual(len(result.transactions), 2)
        self.assertEqual(result.row_counts["orphan_detail"], 1)
        self.assertEqual(sum(len(t.lines) for t in result.transactions), 2)

    def test_only_orphans_yield_nothing(self):
        rows = [make_row(name="Shoes", code="9806-2", qty=1, net=3209)]
        result = stitch_transactions(rows, self.columns)
        self.assertEqual(result.transactions, [])
        self.assertEqual(result.warnings, [])

    def test_header_without_details_is_kept(self):
        rows = [
            make_row(date="2026-01-05", voucher="V1", name="ANUSMRITI", net=500),
            make_row(date="2026-01-06", voucher="V2", name="SITA KC", net=700),
        ]
        result = stitch_transactions(rows, self.columns)
        self.assertEqual([len(t.lines) for t in result.transactions], [0, 0])
        self.assertEqual([t.total_net for t in result.transactions], [500, 700])

    def test_header_totals_are_kept_and_mismatch_is_reported(self):
        rows = [
            make_row(date="2026-01-05", voucher="V1", name="ANUSMRITI", gross=2100, discount=100, net=2000, vat=230, qty=1),
            make_row(name="Belt Half Pant", code="9002", qty=1, net=1805),
        ]
        result = stitch_transactions(rows, self.columns, first_row_number=5)
        txn = result.transactions[0]
        self.assertEqual(txn.total_net, 2000)
        self.assertEqual(txn.total_gross, 2100)
        self.assertEqual(txn.total_discount, 100)
        self.assertEqual(txn.total_vat, 230)
        self.assertEqual(txn.total_qty, 1)
        self.assertEqual(txn.effective_net, 2000)
        self.assertEqual(txn.row_number, 5)
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("V1", result.warnings[0])
        self.assertIn("row 5", result.warnings[0])

    def test_small_rounding_difference_is_not_reported(self):
        rows = [
            make_row(date="2026-01-05", voucher="V1", name="ANUSMRITI", net=1805.5),
            make_row(name="Belt Half Pant", code="9002", qty=1, net=1805),
        ]
        self.assertEqual(stitch_transactions(rows, self.columns).warnings, [])

    def test_summary_and_sparse_rows_are_skipped(self):
        rows = SCENARIO_ROWS + [
            make_row(date="Grand Total", net=5014),
            make_row(name="TOTAL >>", code="x", net=5014),
            make_row(name="lonely"),
        ]
        result = stitch_transactions(rows, self.columns)
        self.assertEqual(len(result.transactions), 2)
        self.assertEqual(result.row_counts["summary"], 2)
        self.assertEqual(result.row_counts["sparse"], 1)

    def test_payment_method_in_name_column_becomes_walk_in(self):
        rows = [
            make_row(date="2026-01-20", voucher="V4", name="FONEPAY", mode="Cash"),
            make_row(name="Cotton Top", code="9301", qty=1, net=1073.5),
        ]
        txn = stitch_transactions(rows, self.columns).transactions[0]
        self.assertEqual(txn.customer_name, WALK_IN_NAME)
        self.assertEqual(txn.transaction_mode, "FonePay")

    def test_any_payment_synonym_in_name_column_becomes_walk_in(self):
        rows = [
            make_row(date="2026-01-21", voucher="V5", name="PhonePay", mode="Cash"),
            make_row(name="Cotton Top", code="9301", qty=1, net=950),
            make_row(date="2026-01-22", voucher="V6", name="Bank Deposit"),
            make_row(name="Silk Scarf", code="9402", qty=1, net=1200),
        ]
        transactions = stitch_transactions(rows, self.columns).transactions
        self.assertEqual([t.customer_name for t in transactions], [WALK_IN_NAME, WALK_IN_NAME])
        self.assertEqual([t.transaction_mode for t in transactions], ["FonePay", "Bank Transfer"])

    def test_unparsed_date_text_still_starts_a_voucher(self):
        rows = [
            make_row(date="Poush 21", voucher="V9", name="ANUSMRITI"),
            make_row(name="Cotton Top", code="9301", qty=1, net=950),
        ]
        txn = stitch_transactions(rows, self.columns).transactions[0]
        self.assertEqual(txn.voucher_no, "V9")
        self.assertEqual(txn.date, "")

    def test_classify_row(self):
        self.assertIs(classify_row(SCENARIO_ROWS[0], self.columns), RowKind.HEADER)
        self.assertIs(classify_row(SCENARIO_ROWS[1], self.columns), RowKind.DETAIL)
        # a code on a dated row fits neither shape
        self.assertIs(
            classify_row(make_row(date="2026-01-05", voucher="V1", name="X", code="1"), self.columns),
            RowKind.AMBIGUOUS,
        )
        self.assertIs(classify_row([], self.columns), RowKind.SPARSE)

    def test_stitching_is_deterministic(self):
        first = [t.to_dict() for t in stitch_transactions(SAMPLE_ROWS[4:], self.columns).transactions]
        second = [t.to_dict() for t in stitch_transactions(SAMPLE_ROWS[4:], self.columns).transactions]
        self.assertEqual(first, second)
        self.assertEqual(len(first), 13)

    def test_every_line_belongs_to_a_transaction(self):
        result = stitch_transactions(SAMPLE_ROWS[4:], self.columns)
        detail_rows = result.row_counts["detail"] - result.row_counts["orphan_detail"]
        self.assertEqual(sum(len(t.lines) for t in result.transactions), detail_rows)


if __name__ == "__main__":
    unittest.main()

import unittest

from sales_doctor.preprocessing import (
    is_summary_label,
    joined_row_text,
    locate_header_row,
    looks_like_header_row,
    non_empty_cells,
)
from sales_doctor.sample import SAMPLE_HEADER, SAMPLE_ROWS


class HeaderLocatorTests(unittest.TestCase):
    def test_banner_rows_above_the_header_are_skipped(self):
        self.assertEqual(locate_header_row(SAMPLE_ROWS), 3)

    def test_wide_row_without_keywords_is_not_a_header(self):
        rows = [
            ["a", "b", "c", "d", "e"],
            list(SAMPLE_HEADER),
        ]
        self.assertEqual(locate_header_row(rows), 1)

    def test_narrow_row_with_keywords_is_not_a_header(self):
        self.assertFalse(looks_like_header_row(["Date", "Voucher", "Product"]))

    def test_falls_back_to_first_row(self):
        rows = [["x"], ["1", "2", "3", "4", "5"]]
        self.assertEqual(locate_header_row(rows), 0)

    def test_scan_depth_is_limited(self):
        rows = [["filler"]] * 25 + [list(SAMPLE_HEADER)]
        self.assertEqual(locate_header_row(rows), 0)
        self.assertEqual(locate_header_row(rows, max_scan=30), 25)

    def test_custom_keywords(self):
        rows = [["Miti", "Bill", "Saman", "Rakam", "Kaifiyat"]]
        self.assertEqual(locate_header_row([["t"]] + rows, keywords=("miti",)), 1)


class RowHelperTests(unittest.TestCase):
    def test_non_empty_cells_and_joined_text(self):
        row = [None, " Date ", "", 12.0, float("nan")]
        self.assertEqual(non_empty_cells(row), ["Date", "12"])
        self.assertEqual(joined_row_text(row), "Date | 12")

    def test_summary_labels(self):
        for label in ("TOTAL", "Grand Total", "total >>", "  Total:"):
            with self.subTest(label=label):
                self.assertTrue(is_summary_label(label))
        for label in ("Cotton Top", "", None, "Subtotal"):
            with self.subTest(label=label):
                self.assertFalse(is_summary_label(label))


if __name__ == "__main__":
    unittest.main()

import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook

from sales_doctor.loader import load_rows, load_rows_from_bytes, trim_row


def write_workbook(path: Path, sheets: dict) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


class LoaderTests(unittest.TestCase):
    def test_xlsx_keeps_native_types_and_blank_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_workbook(
                Path(tmpdir) / "sales.xlsx",
                {
                    "Sales": [
                        ["Ambassador Fashion"],
                        [],
                        ["Date", "Voucher No.", "Product Name", None, None],
                        [datetime(2026, 1, 5), "V1", "ANUSMRITI", 1805.5],
                    ]
                },
            )
            sheet = load_rows(path)
        self.assertEqual(sheet.detected_format, "xlsx")
        self.assertEqual(sheet.sheet_name, "Sales")
        self.assertEqual(sheet.rows[0], ["Ambassador Fashion"])
        self.assertEqual(sheet.rows[1], [])
        self.assertEqual(sheet.rows[2], ["Date", "Voucher No.", "Product Name"])
        self.assertEqual(sheet.rows[3][0], datetime(2026, 1, 5))
        self.assertEqual(sheet.rows[3][3], 1805.5)
        self.assertEqual(sheet.warnings, [])

    def test_first_sheet_is_default_and_others_are_reported(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_workbook(
                Path(tmpdir) / "book.xlsx",
                {"January": [["a", "b"]], "February": [["c", "d"]]},
            )
            first = load_rows(path)
            chosen = load_rows(path, sheet_name="February")
            with self.assertRaisesRegex(ValueError, "not found"):
                load_rows(path, sheet_name="March")
        self.assertEqual(first.rows, [["a", "b"]])
        self.assertIn("Multiple sheets found", first.warnings[0])
        self.assertEqual(chosen.rows, [["c", "d"]])
        self.assertEqual(chosen.sheet_names, ["January", "February"])

    def test_semicolon_csv(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sales.csv"
            path.write_text(
                "Date;Voucher No.;Product Name;Net Amt.\n"
                "05-01-2026;V1;ANUSMRITI;1805\n"
                ";;Belt Half Pant;1805\n",
                encoding="utf-8",
            )
            sheet = load_rows(path)
        self.assertEqual(sheet.delimiter, ";")
        self.assertEqual(sheet.rows[0], ["Date", "Voucher No.", "Product Name", "Net Amt."])
        self.assertEqual(sheet.rows[2], [None, None, "Belt Half Pant", "1805"])

    def test_tsv_uses_tabs(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sales.tsv"
            path.write_text("Date\tVoucher\n05-01-2026\tV1\n", encoding="utf-8")
            sheet = load_rows(path)
        self.assertEqual(sheet.rows, [["Date", "Voucher"], ["05-01-2026", "V1"]])

    def test_corrupt_workbook(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "corrupt.xlsx"
            path.write_bytes(b"this is not a zip archive")
            with self.assertRaisesRegex(ValueError, "Could not read workbook"):
                load_rows(path)

    def test_missing_and_unsupported_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                load_rows(Path(tmpdir) / "missing.xlsx")
            path = Path(tmpdir) / "notes.pdf"
            path.write_bytes(b"%PDF")
            with self.assertRaisesRegex(ValueError, "Unsupported format"):
                load_rows(path)

    def test_bytes_upload(self):
        sheet = load_rows_from_bytes(b"Date,Voucher\n05-01-2026,V1\n", "upload.csv")
        self.assertEqual(sheet.rows[1], ["05-01-2026", "V1"])

    def test_trim_row(self):
        self.assertEqual(trim_row(["a", None, " ", float("nan")]), ["a"])
        self.assertEqual(trim_row([None, "b"]), [None, "b"])
        self.assertEqual(trim_row(()), [])


if __name__ == "__main__":
    unittest.main()

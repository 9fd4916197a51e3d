from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook

from sales_doctor.sample import SAMPLE_ROWS


ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "sales_doctor.cli"]
FIXED_STAMP = "20260301T010203Z"


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = dict(os.environ)
    merged_env["SALES_DOCTOR_OUTPUT_STAMP"] = FIXED_STAMP
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=merged_env,
    )


def write_sample_book(directory: Path) -> Path:
    path = directory / "sales_register.xlsx"
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales Register"
    for row in SAMPLE_ROWS:
        ws.append(row)
    wb.save(path)
    return path


class SalesDoctorCliTests(unittest.TestCase):
    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertRegex(proc.stdout.strip(), r"^\d+\.\d+\.\d+$")

    def test_analyze_writes_bundle_to_out_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            out_dir = Path(tmpdir) / "out"
            proc = run_cli("analyze", str(book), "--out", str(out_dir), "--seed", "7")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertIn("Analysis written:", proc.stderr)
            self.assertIn("Transactions: 13", proc.stderr)
            bundle = json.loads((out_dir / "analysis.json").read_text(encoding="utf-8"))
        self.assertEqual(bundle["contract"]["name"], "sales_doctor.analysis")
        self.assertEqual(bundle["run_summary"]["generated_at"], "1970-01-01T00:00:00Z")
        self.assertTrue(bundle["run_summary"]["output_file"].endswith("analysis.json"))

    def test_analyze_refuses_to_overwrite(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            out_dir = Path(tmpdir) / "out"
            first = run_cli("analyze", str(book), "--out", str(out_dir))
            self.assertEqual(first.returncode, 0, first.stderr)
            second = run_cli("analyze", str(book), "--out", str(out_dir))
        self.assertEqual(second.returncode, 1)
        self.assertIn("Refusing to overwrite", second.stderr)

    def test_analyze_json_stdout_contains_only_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            proc = run_cli("analyze", str(book), "--out", str(Path(tmpdir) / "out"), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        bundle = json.loads(proc.stdout)
        self.assertEqual(bundle["summary"]["headerRow"], 4)
        self.assertEqual(proc.stderr.strip(), "")

    def test_placeholder_cohorts(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            proc = run_cli(
                "analyze", str(book), "--out", str(Path(tmpdir) / "out"),
                "--json", "--cohorts", "placeholder", "--seed", "3",
            )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        bundle = json.loads(proc.stdout)
        self.assertTrue(bundle["cohortData"])

    def test_insufficient_data_returns_exit_2(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "tiny.csv"
            path.write_text("Date\n", encoding="utf-8")
            proc = run_cli("analyze", str(path), "--out", str(Path(tmpdir) / "out"), "--json")
            self.assertFalse((Path(tmpdir) / "out" / "analysis.json").exists())
        self.assertEqual(proc.returncode, 2)
        self.assertIn("INSUFFICIENT_DATA", proc.stderr)
        self.assertEqual(json.loads(proc.stdout)["code"], "INSUFFICIENT_DATA")

    def test_unreadable_workbook_returns_exit_2(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "corrupt.xlsx"
            path.write_bytes(b"not a workbook")
            proc = run_cli("analyze", str(path), "--out", str(Path(tmpdir) / "out"))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("UNREADABLE_FILE", proc.stderr)

    def test_missing_and_unsupported_inputs_return_exit_1(self):
        missing = run_cli("analyze", "does-not-exist.xlsx")
        self.assertEqual(missing.returncode, 1)
        self.assertIn("File not found", missing.stderr)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "notes.pdf"
            path.write_bytes(b"%PDF")
            unsupported = run_cli("analyze", str(path))
        self.assertEqual(unsupported.returncode, 1)
        self.assertIn("Unsupported file type", unsupported.stderr)

    def test_bad_config_returns_exit_1(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            config = Path(tmpdir) / "config.yaml"
            config.write_text("customer_top_n: 5\n", encoding="utf-8")
            proc = run_cli("analyze", str(book), "--config", str(config), "--out", str(Path(tmpdir) / "out"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("YAML", proc.stderr)

    def test_config_init_writes_once(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sales-doctor.json"
            first = run_cli("config", "init", "--path", str(path))
            self.assertEqual(first.returncode, 0, first.stderr)
            payload = json.loads(path.read_text(encoding="utf-8"))
            second = run_cli("config", "init", "--path", str(path))
        self.assertEqual(payload["customer_top_n"], 20)
        self.assertEqual(second.returncode, 1)
        self.assertIn("Refusing to overwrite", second.stderr)

    def test_columns_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            book = write_sample_book(Path(tmpdir))
            proc = run_cli("columns", str(book), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "sales_doctor.columns")
        self.assertEqual(payload["header_row"], 4)
        self.assertEqual(payload["sheet_name"], "Sales Register")
        self.assertEqual(payload["columns"]["voucher_no"], 1)

    def test_bad_arguments_return_exit_1(self):
        proc = run_cli("analyze")
        self.assertEqual(proc.returncode, 1)
        proc = run_cli("frobnicate")
        self.assertEqual(proc.returncode, 1)


if __name__ == "__main__":
    unittest.main()
